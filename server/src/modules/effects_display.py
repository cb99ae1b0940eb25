from urllib.parse import quote

from server.src.objects.active_effects import ActiveEffect
from server.src.objects.effects import DURATION_SCENE

# characters encodeURIComponent leaves alone
_LSL_SAFE = "-_.!~*'()"


def encode_for_lsl(text: str) -> str:
    return quote(text or "", safe=_LSL_SAFE)


def _is_scene(effect: ActiveEffect) -> bool:
    return effect.scene_effect or effect.duration == DURATION_SCENE


def _short_turns(effect: ActiveEffect) -> str:
    return "scene" if _is_scene(effect) else f"{effect.turns_remaining}t"


def _long_turns(effect: ActiveEffect) -> str:
    if _is_scene(effect):
        return "scene"
    n = effect.turns_remaining
    return f"{n} turn left" if n == 1 else f"{n} turns left"


def _stat_entry(effect: ActiveEffect) -> str:
    stat = (effect.stat or "").strip()
    short = "All" if stat.lower() == "all" else stat[:3].capitalize()
    sign = "+" if effect.modifier >= 0 else ""
    return f"{short} {sign}{effect.modifier}({_short_turns(effect)})"


def _control_entry(effect: ActiveEffect) -> str:
    name = effect.name if effect.name and effect.name != effect.effect_id else ""
    if not name:
        name = (effect.control_type or "control").capitalize()
    return f"{name} by {effect.applied_by or 'Unknown'}({_long_turns(effect)})"


def format_effects_for_lsl(effects: list[ActiveEffect]) -> str:
    """One line per section: stat modifiers, over-time effects, control effects."""
    stat_parts = [_stat_entry(e) for e in effects if e.category == "stat_modifier"]
    regen_parts = [
        f"{e.name} +{e.amount}/turn({_short_turns(e)})" for e in effects if e.category == "heal" and e.amount > 0
    ]
    bleed_parts = [
        f"{e.name} -{e.amount}/turn({_short_turns(e)})" for e in effects if e.category == "damage" and e.amount > 0
    ]
    control_parts = [_control_entry(e) for e in effects if e.category == "control"]

    lines = []
    if stat_parts:
        lines.append("✨ " + ", ".join(stat_parts))
    if regen_parts:
        lines.append("💚 " + ", ".join(regen_parts))
    if bleed_parts:
        lines.append("🩸 " + ", ".join(bleed_parts))
    if control_parts:
        lines.append("💤 Control: " + ", ".join(control_parts))
    return "\n".join(lines) if lines else "No active effects"
