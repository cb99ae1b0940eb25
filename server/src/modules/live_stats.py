import logging
from typing import Iterable

from server.src.objects.active_effects import ActiveEffect, LiveStats

logger = logging.getLogger(__name__)

BLOCKING_CONTROLS = {
    "stun": "stunned",
    "sleep": "asleep",
}


def stat_tier_modifier(value: int) -> int:
    if value <= 0:
        return -3
    if value == 1:
        return -2
    if value == 2:
        return 0
    if value == 3:
        return 2
    if value == 4:
        return 4
    return 6


def _stat_keys(stat: str | None, stat_names: tuple[str, ...]) -> tuple[str, ...]:
    key = (stat or "").strip().lower()
    if key == "all":
        return stat_names
    if key in stat_names:
        return (key,)
    return ()


def project_live_stats(
    base_stats: dict[str, int],
    active_effects: Iterable[ActiveEffect],
    stat_names: tuple[str, ...],
) -> LiveStats:
    """Fold active stat modifiers and control effects onto base stats."""
    stats = {name: int(base_stats.get(name, 0) or 0) for name in stat_names}
    roll_bonus: dict[str, int] = {}
    stat_value: dict[str, int] = {}
    controls: dict[str, str] = {}

    for effect in active_effects:
        if effect.category == "stat_modifier":
            keys = _stat_keys(effect.stat, stat_names)
            if not keys:
                logger.debug("Ignoring modifier on unknown stat %r (%s)", effect.stat, effect.effect_id)
            bucket = stat_value if effect.modifier_type == "stat_value" else roll_bonus
            for key in keys:
                stats[key] += effect.modifier
                bucket[key] = bucket.get(key, 0) + effect.modifier
        elif effect.category == "control" and effect.control_type:
            controls[effect.control_type] = effect.name or effect.effect_id

    return LiveStats(
        stats=stats,
        roll_bonus={k: v for k, v in roll_bonus.items() if v != 0},
        stat_value={k: v for k, v in stat_value.items() if v != 0},
        controls=controls,
    )


def effective_stat_modifier(base_stats: dict[str, int], live: LiveStats | None, stat: str | None) -> int:
    key = (stat or "").strip().lower()
    base = int(base_stats.get(key, 0) or 0)
    if live is None:
        return stat_tier_modifier(base)
    return stat_tier_modifier(base + live.stat_value.get(key, 0)) + live.roll_bonus.get(key, 0)


def control_block_reason(live: LiveStats) -> str | None:
    for control_type, label in BLOCKING_CONTROLS.items():
        if live.has_control(control_type):
            return f"Cannot act while {label} ({live.controls[control_type]})"
    return None
