from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Union

DURATION_IMMEDIATE = "immediate"
DURATION_SCENE = "scene"
DURATION_PERMANENT = "permanent"
SCENE_TURNS = 999

TARGET_TYPES = (
    "self",
    "enemy",
    "ally",
    "all_enemies",
    "all_allies",
    "all_enemies_and_self",
    "all_allies_and_self",
    "area",
)

_TURNS_RE = re.compile(r"^turns:(\d+)$")


def duration_turns(duration: str | None) -> int:
    """Turns an effect with this duration stays attached; 0 means it is never stored."""
    if not duration or duration in (DURATION_IMMEDIATE, DURATION_PERMANENT):
        return 0
    if duration == DURATION_SCENE:
        return SCENE_TURNS
    m = _TURNS_RE.match(duration.strip())
    return int(m.group(1)) if m else 0


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        if value is None or value == "":
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class CheckEffect:
    id: str
    name: str
    target: str | None = None
    duration: str | None = DURATION_IMMEDIATE
    check_stat: str | None = None
    check_vs: str = "tn"
    check_vs_stat: str | None = None
    target_number: int = 10

    category: ClassVar[str] = "check"

    @property
    def contested(self) -> bool:
        return self.check_vs == "enemy_stat" and bool(self.check_vs_stat)


@dataclass(frozen=True)
class StatModifierEffect:
    id: str
    name: str
    target: str | None = None
    duration: str | None = None
    stat: str = "all"
    modifier: int = 0
    modifier_type: str = "roll_bonus"

    category: ClassVar[str] = "stat_modifier"


@dataclass(frozen=True)
class ControlEffect:
    id: str
    name: str
    target: str | None = None
    duration: str | None = None
    control_type: str | None = None

    category: ClassVar[str] = "control"


@dataclass(frozen=True)
class DamageEffect:
    id: str
    name: str
    target: str | None = None
    duration: str | None = DURATION_IMMEDIATE
    formula: str | None = None
    fixed: int = 0

    category: ClassVar[str] = "damage"


@dataclass(frozen=True)
class HealEffect:
    id: str
    name: str
    target: str | None = None
    duration: str | None = DURATION_IMMEDIATE
    formula: str | None = None

    category: ClassVar[str] = "heal"


EffectDefinition = Union[CheckEffect, StatModifierEffect, ControlEffect, DamageEffect, HealEffect]


def is_over_time(effect: DamageEffect | HealEffect) -> bool:
    return duration_turns(effect.duration) > 0


def effect_from_dict(data: dict[str, Any]) -> EffectDefinition:
    """Build the typed effect from a catalog document (camelCase keys)."""
    if not isinstance(data, dict) or not data.get("id"):
        raise ValueError("Effect document must be an object with an id")
    effect_id = str(data["id"])
    common = {
        "id": effect_id,
        "name": str(data.get("name") or data.get("description") or effect_id),
        "target": data.get("target"),
    }
    category = data.get("category")
    if category == "check":
        check_vs = (data.get("checkVs") or "tn").lower()
        if check_vs == "fixed":
            check_vs = "tn"
        tn = data.get("targetNumber", data.get("checkTN"))
        return CheckEffect(
            duration=data.get("duration") or DURATION_IMMEDIATE,
            check_stat=data.get("checkStat"),
            check_vs=check_vs,
            check_vs_stat=data.get("checkVsStat"),
            target_number=_safe_int(tn, 10) or 10,
            **common,
        )
    if category == "stat_modifier":
        return StatModifierEffect(
            duration=data.get("duration"),
            stat=str(data.get("stat") or "all"),
            modifier=_safe_int(data.get("modifier")),
            modifier_type=data.get("modifierType") or "roll_bonus",
            **common,
        )
    if category == "control":
        return ControlEffect(
            duration=data.get("duration"),
            control_type=data.get("controlType"),
            **common,
        )
    if category == "damage":
        return DamageEffect(
            duration=data.get("duration") or DURATION_IMMEDIATE,
            formula=data.get("damageFormula"),
            fixed=_safe_int(data.get("damageFixed")),
            **common,
        )
    if category == "heal":
        return HealEffect(
            duration=data.get("duration") or DURATION_IMMEDIATE,
            formula=data.get("healFormula"),
            **common,
        )
    raise ValueError(f"Unknown effect category: {category!r} (effect {effect_id})")
