import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.ability_use import AbilityUseCommand, CombatError, use_ability
from server.src.modules.api_helpers import (
    DeactivateEffectRequest,
    PlayerRequest,
    StatCheckRequest,
    UseAbilityRequest,
    error_response,
    parse_signed,
)
from server.src.modules.check_resolver import Roller, default_roller
from server.src.modules.combat_actions import (
    active_effects_summary,
    deactivate_effect,
    end_scene,
    end_turn,
    list_abilities,
    stat_check,
)
from server.src.modules.realm_db import get_session
from server.src.modules.universes import ARKANA, GOR, UniverseProfile, get_profile
from server.src.objects.abilities import MODE_ABILITY, MODE_ATTACK

logger = logging.getLogger(__name__)

POWER_CHECK_STAT = "mental"
POWER_CHECK_TN = 12

router = APIRouter(
    prefix="/api",
    tags=["combat"],
)


def get_roller() -> Roller:
    return default_roller()


async def _run(request: Request, action, *args):
    try:
        data = await action(*args)
    except CombatError as exc:
        return error_response(exc.message, exc.status_code)
    except Exception:
        logger.exception("%s %s failed", request.method, request.url.path)
        return error_response("Internal server error", 500)
    return {"success": True, "data": data}


async def _use_ability(request: Request, session: AsyncSession, roller: Roller, profile: UniverseProfile, mode=None):
    payload, error = await parse_signed(request, session, profile, UseAbilityRequest, "caster_uuid")
    if error:
        return error
    command = AbilityUseCommand(
        caster_uuid=str(payload.caster_uuid),
        ability_id=payload.ability_id,
        ability_name=payload.ability_name,
        target_uuid=str(payload.target_uuid) if payload.target_uuid else None,
        nearby_uuids=[str(u) for u in payload.nearby_uuids],
        mode=mode or payload.mode,
    )
    return await _run(request, use_ability, session, profile, command, roller)


@router.post("/gor/combat/use-ability")
async def gor_use_ability(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    return await _use_ability(request, session, roller, GOR)


@router.post("/arkana/combat/power-activate")
async def arkana_power_activate(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    return await _use_ability(request, session, roller, ARKANA, MODE_ABILITY)


@router.post("/arkana/combat/power-attack")
async def arkana_power_attack(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    return await _use_ability(request, session, roller, ARKANA, MODE_ATTACK)


async def _player_action(request: Request, session: AsyncSession, universe: str, action):
    profile = get_profile(universe)
    if profile is None:
        return error_response(f"Unknown universe: {universe}", 404)
    payload, error = await parse_signed(request, session, profile, PlayerRequest, "player_uuid")
    if error:
        return error
    return await _run(request, action, session, profile, str(payload.player_uuid))


@router.post("/{universe}/combat/end-turn")
async def combat_end_turn(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _player_action(request, session, universe, end_turn)


@router.post("/{universe}/combat/end-scene")
async def combat_end_scene(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _player_action(request, session, universe, end_scene)


@router.post("/{universe}/combat/user-active-effects")
async def combat_user_active_effects(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _player_action(request, session, universe, active_effects_summary)


@router.post("/gor/combat/user-abilities")
async def gor_user_abilities(request: Request, session: AsyncSession = Depends(get_session)):
    return await _player_action(request, session, GOR.key, list_abilities)


@router.post("/arkana/combat/user-powers")
async def arkana_user_powers(request: Request, session: AsyncSession = Depends(get_session)):
    return await _player_action(request, session, ARKANA.key, list_abilities)


@router.post("/arkana/combat/deactivate-active-effect")
async def arkana_deactivate_active_effect(request: Request, session: AsyncSession = Depends(get_session)):
    payload, error = await parse_signed(request, session, ARKANA, DeactivateEffectRequest, "player_uuid")
    if error:
        return error
    return await _run(request, deactivate_effect, session, ARKANA, str(payload.player_uuid), payload.effect_id)


async def _stat_check(request: Request, session: AsyncSession, roller: Roller, profile: UniverseProfile):
    payload, error = await parse_signed(request, session, profile, StatCheckRequest, "player_uuid")
    if error:
        return error
    return await _run(
        request, stat_check, session, profile,
        str(payload.player_uuid), payload.stat_type, payload.target_number, roller,
    )


@router.post("/gor/combat/stat-check")
async def gor_stat_check(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    return await _stat_check(request, session, roller, GOR)


@router.post("/arkana/combat/feat-stat-check")
async def arkana_feat_stat_check(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    return await _stat_check(request, session, roller, ARKANA)


@router.post("/arkana/combat/power-check")
async def arkana_power_check(
    request: Request,
    session: AsyncSession = Depends(get_session),
    roller: Roller = Depends(get_roller),
):
    payload, error = await parse_signed(request, session, ARKANA, PlayerRequest, "player_uuid")
    if error:
        return error
    return await _run(
        request, stat_check, session, ARKANA,
        str(payload.player_uuid), POWER_CHECK_STAT, POWER_CHECK_TN, roller,
    )
