import math
import re
from dataclasses import dataclass, field

from server.src.modules.live_stats import effective_stat_modifier
from server.src.objects.abilities import AbilityDefinition
from server.src.objects.active_effects import ActiveEffect, LiveStats
from server.src.objects.characters import CharacterState
from server.src.objects.effects import (
    DURATION_SCENE,
    CheckEffect,
    ControlEffect,
    DamageEffect,
    EffectDefinition,
    HealEffect,
    StatModifierEffect,
    duration_turns,
    is_over_time,
)

_PERCENT_OF_MAX_RE = re.compile(r"maxHP\s*\*\s*([\d.]+)", re.IGNORECASE)


@dataclass
class AffectedRecord:
    """Working state for one character touched by an ability use."""
    character: CharacterState
    active_effects: list[ActiveEffect]
    effects: list[str] = field(default_factory=list)
    damage_dealt: int = 0
    healing_received: int = 0

    @property
    def uuid(self) -> str:
        return self.character.sl_uuid

    @property
    def name(self) -> str:
        return self.character.name

    def touched(self) -> bool:
        return bool(self.effects) or self.damage_dealt > 0 or self.healing_received > 0


def formula_amount(formula: str | None, caster: CharacterState, caster_live: LiveStats | None) -> int:
    """Evaluate ``"N"``, ``"N + Stat"`` or ``"maxHP * p"`` for the caster."""
    if not formula:
        return 0
    m = _PERCENT_OF_MAX_RE.search(formula)
    if m:
        try:
            return math.floor(caster.max_health * float(m.group(1)))
        except ValueError:
            return 0
    parts = [p.strip() for p in formula.split("+")]
    try:
        amount = int(parts[0])
    except ValueError:
        amount = 0
    if len(parts) > 1 and parts[1]:
        amount += effective_stat_modifier(caster.base_stats, caster_live, parts[1])
    return amount


def add_active_effect(current: list[ActiveEffect], new_effect: ActiveEffect) -> list[ActiveEffect]:
    """Attach ``new_effect``; an existing entry with the same id is only replaced by a longer one."""
    for i, existing in enumerate(current):
        if existing.effect_id == new_effect.effect_id:
            if new_effect.turns_remaining > existing.turns_remaining:
                updated = list(current)
                updated[i] = new_effect
                return updated
            return current
    return current + [new_effect]


def build_active_effect(
    effect: EffectDefinition,
    caster_name: str,
    ability: AbilityDefinition,
    applied_at: str,
    amount: int = 0,
) -> ActiveEffect | None:
    turns = duration_turns(effect.duration)
    if turns <= 0:
        return None
    return ActiveEffect(
        effect_id=effect.id,
        name=effect.name,
        category=effect.category,
        turns_remaining=turns,
        duration=effect.duration,
        scene_effect=effect.duration == DURATION_SCENE,
        stat=getattr(effect, "stat", None),
        modifier=getattr(effect, "modifier", 0),
        modifier_type=getattr(effect, "modifier_type", "roll_bonus"),
        control_type=getattr(effect, "control_type", None),
        amount=amount,
        applied_by=caster_name,
        source_ability_id=ability.id,
        source_ability_name=ability.name,
        applied_at=applied_at,
    )


def _attach(record: AffectedRecord, effect, caster: CharacterState, ability, applied_at, amount=0):
    active = build_active_effect(effect, caster.name, ability, applied_at, amount)
    if active is not None:
        record.active_effects = add_active_effect(record.active_effects, active)


def _apply_damage(effect: DamageEffect, caster, caster_live, record, ability, applied_at):
    amount = formula_amount(effect.formula, caster, caster_live) if effect.formula else effect.fixed
    if amount <= 0:
        return
    if is_over_time(effect):
        _attach(record, effect, caster, ability, applied_at, amount)
        record.effects.append(f"-{amount} HP/turn")
        return
    record.damage_dealt += amount
    record.effects.append(f"-{amount} HP")


def _apply_heal(effect: HealEffect, caster, caster_live, record, ability, applied_at):
    amount = formula_amount(effect.formula, caster, caster_live)
    if amount <= 0:
        return
    if is_over_time(effect):
        _attach(record, effect, caster, ability, applied_at, amount)
        record.effects.append(f"+{amount} HP/turn")
        return
    record.healing_received += amount
    record.effects.append(f"+{amount} HP")


def _apply_stat_modifier(effect: StatModifierEffect, caster, caster_live, record, ability, applied_at):
    _attach(record, effect, caster, ability, applied_at)
    sign = "+" if effect.modifier >= 0 else ""
    if effect.stat.lower() == "all":
        record.effects.append(f"All stats {sign}{effect.modifier}")
    else:
        record.effects.append(f"{effect.stat} {sign}{effect.modifier}")


def _apply_control(effect: ControlEffect, caster, caster_live, record, ability, applied_at):
    _attach(record, effect, caster, ability, applied_at)
    record.effects.append(effect.control_type or "Control")


def apply_effect(
    effect: EffectDefinition,
    caster: CharacterState,
    caster_live: LiveStats,
    record: AffectedRecord,
    ability: AbilityDefinition,
    applied_at: str,
) -> None:
    """Apply one resolved, non-check effect to a target's working record."""
    if isinstance(effect, DamageEffect):
        _apply_damage(effect, caster, caster_live, record, ability, applied_at)
    elif isinstance(effect, HealEffect):
        _apply_heal(effect, caster, caster_live, record, ability, applied_at)
    elif isinstance(effect, StatModifierEffect):
        _apply_stat_modifier(effect, caster, caster_live, record, ability, applied_at)
    elif isinstance(effect, ControlEffect):
        _apply_control(effect, caster, caster_live, record, ability, applied_at)
    elif isinstance(effect, CheckEffect):
        raise TypeError(f"Check effect {effect.id} must be resolved, not applied")
    else:
        raise TypeError(f"Unhandled effect type: {type(effect).__name__}")
