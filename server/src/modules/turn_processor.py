from dataclasses import dataclass, field, replace

from server.src.modules.live_stats import project_live_stats
from server.src.modules.universes import UniverseProfile
from server.src.objects.active_effects import ActiveEffect, LiveStats
from server.src.objects.effects import DURATION_PERMANENT, DURATION_SCENE


@dataclass(frozen=True)
class TurnResult:
    active_effects: list[ActiveEffect]
    live_stats: LiveStats
    healing_applied: int = 0
    damage_applied: int = 0
    heal_effect_names: list[str] = field(default_factory=list)


def process_turn(active_effects: list[ActiveEffect], base_stats: dict[str, int], stat_names: tuple[str, ...]) -> TurnResult:
    """Advance every effect by one turn.

    Over-time amounts are taken from the effects present before the tick.
    Scene and permanent effects do not count down.
    """
    healing = 0
    damage = 0
    heal_names: list[str] = []
    for effect in active_effects:
        if effect.amount <= 0:
            continue
        if effect.category == "heal":
            healing += effect.amount
            heal_names.append(effect.name)
        elif effect.category == "damage":
            damage += effect.amount

    remaining: list[ActiveEffect] = []
    for effect in active_effects:
        if effect.duration in (DURATION_SCENE, DURATION_PERMANENT):
            remaining.append(effect)
            continue
        turns = effect.turns_remaining - 1
        if turns > 0:
            remaining.append(replace(effect, turns_remaining=turns))

    return TurnResult(
        active_effects=remaining,
        live_stats=project_live_stats(base_stats, remaining, stat_names),
        healing_applied=healing,
        damage_applied=damage,
        heal_effect_names=heal_names,
    )


def clear_scene_effects(
    active_effects: list[ActiveEffect],
    base_stats: dict[str, int],
    profile: UniverseProfile,
) -> tuple[list[ActiveEffect], LiveStats]:
    remaining = [e for e in active_effects if profile.keeps_after_scene(e.duration)]
    return remaining, project_live_stats(base_stats, remaining, profile.stat_names)
