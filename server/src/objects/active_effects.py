from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

ACTIVE_EFFECTS_VERSION = 1
LIVE_STATS_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass
class ActiveEffect:
    effect_id: str
    name: str
    category: str
    turns_remaining: int
    duration: str | None = None
    scene_effect: bool = False
    stat: str | None = None
    modifier: int = 0
    modifier_type: str = "roll_bonus"
    control_type: str | None = None
    amount: int = 0
    applied_by: str | None = None
    source_ability_id: str | None = None
    source_ability_name: str | None = None
    applied_at: str | None = None

    def __post_init__(self):
        if isinstance(self.turns_remaining, bool) or not isinstance(self.turns_remaining, int):
            raise TypeError("turnsRemaining must be an integer")
        if self.turns_remaining < 0:
            raise ValueError("turnsRemaining must not be negative")

    def to_dict(self) -> dict[str, Any]:
        d = {
            "effectId": self.effect_id,
            "name": self.name,
            "category": self.category,
            "turnsRemaining": self.turns_remaining,
            "duration": self.duration,
            "sceneEffect": self.scene_effect,
            "stat": self.stat,
            "modifier": self.modifier,
            "modifierType": self.modifier_type,
            "controlType": self.control_type,
            "amount": self.amount,
            "appliedBy": self.applied_by,
            "sourceAbilityId": self.source_ability_id,
            "sourceAbilityName": self.source_ability_name,
            "appliedAt": self.applied_at,
        }
        return {k: v for k, v in d.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActiveEffect":
        if not isinstance(data, dict):
            raise TypeError("active effect entry must be an object")
        return cls(
            effect_id=str(data["effectId"]),
            name=str(data.get("name") or data["effectId"]),
            category=str(data["category"]),
            turns_remaining=data["turnsRemaining"],
            duration=data.get("duration"),
            scene_effect=bool(data.get("sceneEffect", False)),
            stat=data.get("stat"),
            modifier=int(data.get("modifier") or 0),
            modifier_type=data.get("modifierType") or "roll_bonus",
            control_type=data.get("controlType"),
            amount=int(data.get("amount") or 0),
            applied_by=data.get("appliedBy"),
            source_ability_id=data.get("sourceAbilityId"),
            source_ability_name=data.get("sourceAbilityName"),
            applied_at=data.get("appliedAt"),
        )


def dump_active_effects(effects: list[ActiveEffect]) -> dict[str, Any]:
    return {"version": ACTIVE_EFFECTS_VERSION, "effects": [e.to_dict() for e in effects]}


def load_active_effects(raw: Any) -> list[ActiveEffect]:
    """Read a stored effect blob; anything malformed becomes an empty list."""
    if raw is None:
        return []
    try:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)
        if isinstance(raw, list):
            entries = raw
        elif isinstance(raw, dict):
            if raw.get("version") != ACTIVE_EFFECTS_VERSION or not isinstance(raw.get("effects"), list):
                raise ValueError(f"unsupported active effects shape (version={raw.get('version')!r})")
            entries = raw["effects"]
        else:
            raise TypeError(f"unexpected active effects type {type(raw).__name__}")
        return [ActiveEffect.from_dict(e) for e in entries]
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning("Discarding corrupted active effects: %s", exc)
        return []


def _int_map(value: Any) -> dict[str, int]:
    if not isinstance(value, dict):
        raise TypeError("expected an object of integers")
    return {str(k): int(v) for k, v in value.items()}


@dataclass(frozen=True)
class LiveStats:
    stats: dict[str, int] = field(default_factory=dict)
    roll_bonus: dict[str, int] = field(default_factory=dict)
    stat_value: dict[str, int] = field(default_factory=dict)
    controls: dict[str, str] = field(default_factory=dict)
    version: int = LIVE_STATS_VERSION

    def has_control(self, control_type: str) -> bool:
        return bool(self.controls.get(control_type))

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "stats": dict(self.stats),
            "rollBonus": dict(self.roll_bonus),
            "statValue": dict(self.stat_value),
            "controls": dict(self.controls),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "LiveStats":
        """Coerce a cached projection; unknown shapes give an empty value."""
        try:
            if not isinstance(data, dict) or data.get("version") != LIVE_STATS_VERSION:
                raise ValueError("unsupported live stats shape")
            controls = data.get("controls") or {}
            if not isinstance(controls, dict):
                raise TypeError("controls must be an object")
            return cls(
                stats=_int_map(data.get("stats") or {}),
                roll_bonus=_int_map(data.get("rollBonus") or {}),
                stat_value=_int_map(data.get("statValue") or {}),
                controls={str(k): str(v) for k, v in controls.items()},
            )
        except (ValueError, TypeError) as exc:
            logger.warning("Discarding cached live stats: %s", exc)
            return cls()
