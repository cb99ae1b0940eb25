from dataclasses import dataclass, field
from typing import Any

MODE_ATTACK = "attack"
MODE_ABILITY = "ability"
MODES = (MODE_ATTACK, MODE_ABILITY)


def _id_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


@dataclass
class AbilityDefinition:
    id: str
    name: str
    cooldown: int = 0
    attack_effects: list[str] = field(default_factory=list)
    ability_effects: list[str] = field(default_factory=list)
    description: str = ""

    def effect_ids(self, mode: str) -> list[str]:
        if mode == MODE_ATTACK:
            return list(self.attack_effects)
        if mode == MODE_ABILITY:
            return list(self.ability_effects)
        raise ValueError(f"Unknown mode: {mode}")

    def usable_modes(self) -> list[str]:
        return [mode for mode in MODES if self.effect_ids(mode)]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "cooldown": self.cooldown,
            "description": self.description,
            "effects": {"attack": list(self.attack_effects), "ability": list(self.ability_effects)},
        }

    @classmethod
    def from_dict(cls, data):
        effects = data.get("effects") or {}
        try:
            cooldown = int(data.get("cooldown") or 0)
        except (TypeError, ValueError):
            cooldown = 0
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            cooldown=max(0, cooldown),
            attack_effects=_id_list(effects.get("attack")),
            ability_effects=_id_list(effects.get("ability")),
            description=str(data.get("description") or ""),
        )
