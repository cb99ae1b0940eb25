from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.ability_use import CombatError
from server.src.modules.catalog import load_catalog
from server.src.modules.character_store import character_state, find_user, write_character
from server.src.modules.check_resolver import Roller, resolve_check
from server.src.modules.effects_display import encode_for_lsl, format_effects_for_lsl
from server.src.modules.live_stats import project_live_stats
from server.src.modules.logging_helpers import EVENT_EFFECT_DEACTIVATED, EVENT_SCENE_END, EVENT_TURN_END, record_event
from server.src.modules.realm_db import utcnow
from server.src.modules.turn_processor import clear_scene_effects, process_turn
from server.src.modules.universes import UniverseProfile
from server.src.objects.effects import DURATION_SCENE, CheckEffect


async def _load_player(session: AsyncSession, player_uuid: str, profile: UniverseProfile):
    user = await find_user(session, player_uuid, profile.key)
    if user is None:
        raise CombatError(404, "User not found")
    if user.character is None:
        raise CombatError(404, "Character not found")
    return user, character_state(user, user.character)


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


async def end_turn(session: AsyncSession, profile: UniverseProfile, player_uuid: str) -> dict:
    user, state = await _load_player(session, player_uuid, profile)
    turn = process_turn(state.active_effects, state.base_stats, profile.stat_names)
    health = state.health + turn.healing_applied - turn.damage_applied
    new_health = write_character(user.character, health, turn.active_effects, turn.live_stats)
    user.last_active = utcnow()
    record_event(session, user.id, EVENT_TURN_END, {
        "healingApplied": turn.healing_applied,
        "damageApplied": turn.damage_applied,
        "effectsRemaining": len(turn.active_effects),
    })
    await _commit(session)

    parts = [f"⏳ {state.name} ended turn."]
    if turn.healing_applied > 0:
        parts.append(f"+{turn.healing_applied} HP healed.")
    if turn.damage_applied > 0:
        parts.append(f"-{turn.damage_applied} HP from effects.")
    parts.append(f"HP: {new_health}/{state.max_health}.")
    if turn.active_effects:
        parts.append(f"{len(turn.active_effects)} effects remaining.")
    else:
        parts.append("No active effects.")

    return {
        "displayMessage": encode_for_lsl(" ".join(parts)),
        "effectsRemaining": len(turn.active_effects),
        "effectsDisplay": encode_for_lsl(format_effects_for_lsl(turn.active_effects)),
        "health": new_health,
        "maxHealth": state.max_health,
    }


async def end_scene(session: AsyncSession, profile: UniverseProfile, player_uuid: str) -> dict:
    user, state = await _load_player(session, player_uuid, profile)
    remaining, live = clear_scene_effects(state.active_effects, state.base_stats, profile)
    removed = len(state.active_effects) - len(remaining)
    write_character(user.character, state.health, remaining, live)
    user.last_active = utcnow()
    record_event(session, user.id, EVENT_SCENE_END, {"effectsCleared": removed})
    await _commit(session)

    parts = [f"⏳ {state.name} ended scene."]
    parts.append(f"{removed} effects cleared." if removed > 0 else "No effects to clear.")
    return {
        "displayMessage": encode_for_lsl(" ".join(parts)),
        "effectsRemaining": len(remaining),
        "effectsDisplay": encode_for_lsl(format_effects_for_lsl(remaining)),
    }


async def active_effects_summary(session: AsyncSession, profile: UniverseProfile, player_uuid: str) -> dict:
    _user, state = await _load_player(session, player_uuid, profile)
    live = project_live_stats(state.base_stats, state.active_effects, profile.stat_names)
    return {
        "characterName": encode_for_lsl(state.name),
        "activeEffects": [e.to_dict() for e in state.active_effects],
        "liveStats": live.to_dict(),
        "effectsDisplay": encode_for_lsl(format_effects_for_lsl(state.active_effects)),
    }


async def list_abilities(session: AsyncSession, profile: UniverseProfile, player_uuid: str) -> dict:
    """Owned abilities; ones without effects are listed but flagged as not usable."""
    _user, state = await _load_player(session, player_uuid, profile)
    catalog = load_catalog(profile.key)
    items = []
    for ability_id in state.abilities:
        ability = catalog.find_ability(ability_id=ability_id)
        if ability is None:
            continue
        items.append({
            "id": ability.id,
            "name": ability.name,
            "cooldown": ability.cooldown,
            "description": ability.description,
            "modes": ability.usable_modes(),
            "usable": bool(ability.usable_modes()),
        })
    return {"abilities": items, "count": len(items)}


async def deactivate_effect(session: AsyncSession, profile: UniverseProfile, player_uuid: str, effect_id: str) -> dict:
    """Drop one of the player's own scene effects. Doing so uses up their turn."""
    user, state = await _load_player(session, player_uuid, profile)
    if state.status not in profile.allowed_statuses:
        raise CombatError(400, profile.mode_error)

    index = next((i for i, e in enumerate(state.active_effects) if e.effect_id == effect_id), None)
    if index is None:
        raise CombatError(404, "Effect not found in active effects")
    effect = state.active_effects[index]
    if effect.duration != DURATION_SCENE:
        raise CombatError(400, "Cannot deactivate turn-based effects")
    if effect.applied_by and effect.applied_by != state.name:
        raise CombatError(403, "Cannot deactivate effects cast by others")

    kept = state.active_effects[:index] + state.active_effects[index + 1:]
    turn = process_turn(kept, state.base_stats, profile.stat_names)
    health = state.health + turn.healing_applied - turn.damage_applied
    new_health = write_character(user.character, health, turn.active_effects, turn.live_stats)
    user.last_active = utcnow()
    record_event(session, user.id, EVENT_EFFECT_DEACTIVATED, {
        "effectId": effect.effect_id,
        "effectsRemaining": len(turn.active_effects),
    })
    await _commit(session)

    remaining = len(turn.active_effects)
    return {
        "playerName": encode_for_lsl(state.name),
        "effectDeactivated": encode_for_lsl(effect.name),
        "effectsRemaining": remaining,
        "health": new_health,
        "effectsDisplay": encode_for_lsl(format_effects_for_lsl(turn.active_effects)),
        "message": encode_for_lsl(f"Deactivated {effect.name}. Effects remaining: {remaining}. Turn used."),
    }


async def stat_check(
    session: AsyncSession,
    profile: UniverseProfile,
    player_uuid: str,
    stat_type: str,
    target_number: int,
    roller: Roller,
) -> dict:
    """Roll a single stat check against a fixed target number; nothing is written."""
    _user, state = await _load_player(session, player_uuid, profile)
    stat = stat_type.strip().lower()
    if stat not in profile.stat_names:
        raise CombatError(400, "Invalid stat type")

    stat_label = stat.capitalize()
    check = CheckEffect(
        id=f"{stat}_check",
        name=f"{stat_label} check",
        check_stat=stat_label,
        check_vs="tn",
        target_number=target_number,
    )
    live = project_live_stats(state.base_stats, state.active_effects, profile.stat_names)
    result = resolve_check(check, state, live, roller)

    if result.success:
        message = f"{state.name} succeeds on {stat_label} check! ({result.roll_info})"
    else:
        message = f"{state.name} fails {stat_label} check. ({result.roll_info})"
    return {
        "isSuccess": "true" if result.success else "false",
        "d20Roll": result.roll,
        "statModifier": result.modifier,
        "totalRoll": result.total,
        "targetNumber": result.target_number,
        "statType": stat,
        "statValue": state.stat(stat),
        "message": encode_for_lsl(message),
        "player": {"uuid": state.sl_uuid, "name": encode_for_lsl(state.name)},
    }
