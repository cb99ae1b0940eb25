from dataclasses import dataclass, field

from server.src.objects.active_effects import ActiveEffect


@dataclass
class CharacterState:
    """In-memory view of one character while a request is being resolved."""
    id: int
    user_id: str
    sl_uuid: str
    name: str
    base_stats: dict[str, int]
    health: int
    max_health: int
    abilities: list[str] = field(default_factory=list)
    active_effects: list[ActiveEffect] = field(default_factory=list)
    status: int = 0

    def stat(self, name: str) -> int:
        return int(self.base_stats.get((name or "").lower(), 0) or 0)

    def owns(self, ability_id: str) -> bool:
        return ability_id in self.abilities
