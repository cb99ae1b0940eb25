import logging
import math
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.catalog import load_catalog
from server.src.modules.character_store import (
    character_state,
    find_user,
    last_ability_use,
    load_social_groups,
    nearby_character_ids,
    write_character,
)
from server.src.modules.check_resolver import Roller, resolve_check
from server.src.modules.effect_applicator import AffectedRecord, apply_effect
from server.src.modules.effects_display import encode_for_lsl, format_effects_for_lsl
from server.src.modules.live_stats import control_block_reason, project_live_stats
from server.src.modules.logging_helpers import EVENT_ABILITY_USE, record_event
from server.src.modules.realm_db import Character, utcnow
from server.src.modules.target_resolver import resolve_targets
from server.src.modules.turn_processor import process_turn
from server.src.modules.universes import UniverseProfile
from server.src.objects.abilities import MODE_ABILITY
from server.src.objects.effects import CheckEffect

logger = logging.getLogger(__name__)


class CombatError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class AbilityUseCommand:
    caster_uuid: str
    ability_id: str | None = None
    ability_name: str | None = None
    target_uuid: str | None = None
    nearby_uuids: list[str] = field(default_factory=list)
    mode: str = MODE_ABILITY


def cooldown_message(remaining_seconds: int, label: str = "ability") -> str:
    minutes, seconds = divmod(remaining_seconds, 60)
    return f"{label.capitalize()} on cooldown. Available in {minutes}m {seconds}s"


async def _check_cooldown(session: AsyncSession, user_id: str, ability, now, label: str) -> None:
    if ability.cooldown <= 0:
        return
    window = timedelta(seconds=ability.cooldown)
    recent = await last_ability_use(session, user_id, ability.id, now - window)
    if recent is None:
        return
    remaining = math.ceil((recent.timestamp + window - now).total_seconds())
    if remaining > 0:
        raise CombatError(400, cooldown_message(remaining, label))


def _narrative(caster_name: str, ability_name: str, roll_info: str, success: bool, records, caster_uuid: str) -> str:
    message = f"{caster_name} uses {ability_name}"
    if roll_info:
        message += f" - {roll_info}"
    if not success:
        return message + " → Failed!"
    message += " → Success!"
    summaries = []
    for uuid, record in records.items():
        if record.effects:
            who = "Self" if uuid == caster_uuid else record.name
            summaries.append(f"{who}: {', '.join(record.effects)}")
    if summaries:
        message += f" [{'; '.join(summaries)}]"
    return message


async def use_ability(
    session: AsyncSession,
    profile: UniverseProfile,
    command: AbilityUseCommand,
    roller: Roller,
) -> dict:
    """Resolve one ability use and commit every resulting change together."""
    label = profile.ability_label
    caster_user = await find_user(session, command.caster_uuid, profile.key)
    if caster_user is None:
        raise CombatError(404, "Caster not found")
    if caster_user.character is None:
        raise CombatError(404, "Caster character not found")
    caster = character_state(caster_user, caster_user.character)

    if caster.health <= 0:
        raise CombatError(400, f"Cannot use {label}s while unconscious")
    if caster.status not in profile.allowed_statuses:
        raise CombatError(400, profile.mode_error)

    catalog = load_catalog(profile.key)
    ability = catalog.find_ability(command.ability_id, command.ability_name)
    if ability is None:
        raise CombatError(404, f"{label.capitalize()} not found")
    if not caster.owns(ability.id):
        raise CombatError(400, f"You do not have this {label}")

    now = utcnow()
    await _check_cooldown(session, caster_user.id, ability, now, label)

    caster_live = project_live_stats(caster.base_stats, caster.active_effects, profile.stat_names)
    blocked = control_block_reason(caster_live)
    if blocked:
        raise CombatError(400, blocked)

    rows: dict[str, Character] = {caster.sl_uuid: caster_user.character}
    target = None
    target_live = None
    if command.target_uuid:
        target_user = await find_user(session, command.target_uuid, profile.key)
        if target_user is None or target_user.character is None:
            raise CombatError(404, "Target not found")
        target = character_state(target_user, target_user.character)
        if target.health <= 0:
            raise CombatError(400, "Target is unconscious")
        target_live = project_live_stats(target.base_stats, target.active_effects, profile.stat_names)
        rows.setdefault(target.sl_uuid, target_user.character)

    effect_ids = ability.effect_ids(command.mode)
    if not effect_ids:
        raise CombatError(400, f"{label.capitalize()} has no effects defined")

    nearby = list(dict.fromkeys(command.nearby_uuids or []))
    for uuid in (command.target_uuid, caster.sl_uuid):
        if uuid and uuid not in nearby:
            nearby.append(uuid)
    nearby_map = await nearby_character_ids(session, nearby, profile.key)
    groups = await load_social_groups(session, caster_user.id)

    records: dict[str, AffectedRecord] = {
        caster.sl_uuid: AffectedRecord(character=caster, active_effects=list(caster.active_effects)),
    }
    missing: set[str] = set()

    async def record_for(uuid: str) -> AffectedRecord | None:
        if uuid in records:
            return records[uuid]
        if uuid in missing:
            return None
        if target is not None and uuid == target.sl_uuid:
            state = target
        else:
            user = await find_user(session, uuid, profile.key)
            if user is None or user.character is None:
                missing.add(uuid)
                return None
            state = character_state(user, user.character)
            rows[uuid] = user.character
        records[uuid] = AffectedRecord(character=state, active_effects=list(state.active_effects))
        return records[uuid]

    applied_at = now.isoformat() + "Z"
    activation_success = True
    roll_info = ""
    for effect_id in effect_ids:
        effect = catalog.effects.get(effect_id)
        if effect is None:
            logger.warning("%s ability %s references unknown effect %s", profile.key, ability.id, effect_id)
            continue

        if isinstance(effect, CheckEffect):
            defender_value = target.stat(effect.check_vs_stat) if target is not None and effect.contested else None
            result = resolve_check(
                effect, caster, caster_live, roller,
                defender=target, defender_live=target_live, defender_value=defender_value,
            )
            activation_success = result.success
            roll_info = result.label
            if not activation_success:
                break
            continue

        targets = resolve_targets(effect.target, caster.sl_uuid, command.target_uuid, nearby, groups, nearby_map)
        for uuid in targets:
            record = await record_for(uuid)
            if record is not None:
                apply_effect(effect, caster, caster_live, record, ability, applied_at)

    caster_record = records[caster.sl_uuid]
    turn = process_turn(caster_record.active_effects, caster.base_stats, profile.stat_names)

    caster_health = caster.health
    for uuid, record in records.items():
        if uuid == caster.sl_uuid:
            health = caster.health - record.damage_dealt + record.healing_received + turn.healing_applied - turn.damage_applied
            caster_health = write_character(rows[uuid], health, turn.active_effects, turn.live_stats)
        else:
            health = record.character.health - record.damage_dealt + record.healing_received
            live = project_live_stats(record.character.base_stats, record.active_effects, profile.stat_names)
            write_character(rows[uuid], health, record.active_effects, live)

    caster_user.last_active = now
    record_event(
        session,
        caster_user.id,
        EVENT_ABILITY_USE,
        {
            "abilityId": ability.id,
            "abilityName": ability.name,
            "success": activation_success,
            "targetUuid": command.target_uuid,
            "affectedCount": len(records),
            "rollInfo": roll_info,
            "mode": command.mode,
        },
        ability_id=ability.id,
    )
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise

    logger.info(
        "%s used %s (%s): success=%s affected=%d",
        caster.name, ability.name, profile.key, activation_success, len(records),
    )
    message = _narrative(caster.name, ability.name, roll_info, activation_success, records, caster.sl_uuid)
    return {
        "activationSuccess": activation_success,
        "abilityUsed": ability.name,
        "rollInfo": roll_info,
        "affected": [
            {"uuid": r.uuid, "name": encode_for_lsl(r.name), "effects": r.effects}
            for r in records.values()
            if r.touched()
        ],
        "caster": {
            "uuid": caster.sl_uuid,
            "name": encode_for_lsl(caster.name),
            "health": caster_health,
            "maxHealth": caster.max_health,
            "healingApplied": turn.healing_applied,
            "effectsDisplay": encode_for_lsl(format_effects_for_lsl(turn.active_effects)),
        },
        "message": encode_for_lsl(message),
    }
