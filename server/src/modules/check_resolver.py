import random
from dataclasses import dataclass
from typing import Protocol

from server.src.modules.live_stats import effective_stat_modifier, stat_tier_modifier
from server.src.objects.active_effects import LiveStats
from server.src.objects.characters import CharacterState
from server.src.objects.effects import CheckEffect

DIE_SIDES = 20
BASE_TARGET_NUMBER = 10
DEFAULT_DEFENSE_VALUE = 2


class Roller(Protocol):
    def randint(self, a: int, b: int) -> int: ...


def default_roller() -> Roller:
    return random.SystemRandom()


@dataclass(frozen=True)
class CheckResult:
    success: bool
    roll: int
    modifier: int
    total: int
    target_number: int
    roll_info: str
    label: str
    defense_stat: str | None = None


def _display(stat: str | None) -> str:
    s = (stat or "").strip()
    return s[:1].upper() + s[1:].lower() if s else ""


def resolve_check(
    effect: CheckEffect,
    caster: CharacterState,
    caster_live: LiveStats | None,
    roller: Roller,
    defender: CharacterState | None = None,
    defender_live: LiveStats | None = None,
    defender_value: int | None = None,
) -> CheckResult:
    """Roll 1d20 + caster modifier against a fixed or stat-derived target number.

    Contested checks use 10 + the defender's effective modifier. Ties succeed.
    """
    modifier = effective_stat_modifier(caster.base_stats, caster_live, effect.check_stat) if effect.check_stat else 0

    defense_stat = None
    if effect.contested:
        defense_stat = effect.check_vs_stat.lower()
        if defender is not None and defender_live is not None:
            target_number = BASE_TARGET_NUMBER + effective_stat_modifier(defender.base_stats, defender_live, defense_stat)
        else:
            value = defender_value if defender_value is not None else DEFAULT_DEFENSE_VALUE
            target_number = BASE_TARGET_NUMBER + stat_tier_modifier(value)
    elif effect.check_vs == "tn":
        target_number = effect.target_number or BASE_TARGET_NUMBER
    else:
        target_number = BASE_TARGET_NUMBER

    roll = roller.randint(1, DIE_SIDES)
    total = roll + modifier
    roll_info = f"Roll: {roll}+{modifier}={total} vs TN:{target_number}"

    if not effect.check_stat:
        label = roll_info
    elif defense_stat:
        label = f"{_display(effect.check_stat)} vs {_display(defense_stat)}: {roll_info}"
    else:
        label = f"{effect.check_stat} check: {roll_info}"

    return CheckResult(
        success=total >= target_number,
        roll=roll,
        modifier=modifier,
        total=total,
        target_number=target_number,
        roll_info=roll_info,
        label=label,
        defense_stat=defense_stat,
    )
