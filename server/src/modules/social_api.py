import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.api_helpers import GroupChangeRequest, PlayerRequest, error_response, parse_signed
from server.src.modules.character_store import (
    characters_by_ids,
    find_character_by_id,
    find_user,
    load_social_groups,
    save_social_groups,
)
from server.src.modules.realm_db import get_session, utcnow
from server.src.modules.universes import get_profile
from server.src.objects.social_groups import SocialGroupError, SocialGroups

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["social"],
)


async def _owner(session: AsyncSession, payload, profile):
    user = await find_user(session, str(payload.player_uuid), profile.key)
    if user is None:
        raise SocialGroupError(f"User not found in {profile.label} universe", 404)
    groups = await load_social_groups(session, user.id) or SocialGroups(user_id=user.id)
    return user, groups


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise


async def _handle(request: Request, session: AsyncSession, universe: str, model, action):
    profile = get_profile(universe)
    if profile is None:
        return error_response(f"Unknown universe: {universe}", 404)
    payload, error = await parse_signed(request, session, profile, model, "player_uuid")
    if error:
        return error
    try:
        data = await action(session, profile, payload)
    except SocialGroupError as exc:
        return error_response(exc.message, exc.status_code)
    except Exception:
        logger.exception("%s %s failed", request.method, request.url.path)
        return error_response("Internal server error", 500)
    return {"success": True, "data": data}


async def _list_groups(session, profile, payload):
    user, groups = await _owner(session, payload, profile)
    members = await characters_by_ids(session, groups.all_member_ids())
    enriched = {}
    for name, ids in groups.to_dict().items():
        enriched[name] = [
            {"characterId": cid, "characterName": members[cid][0], "slUuid": members[cid][1]}
            for cid in ids
            if cid in members
        ]
    user.last_active = utcnow()
    await _commit(session)
    return {"groups": enriched}


async def _add_member(session, profile, payload):
    user, groups = await _owner(session, payload, profile)
    found = await find_character_by_id(session, payload.target_character_id, profile.key)
    if found is None:
        raise SocialGroupError("Target user not found", 404)
    target_user, target_character = found
    if target_user.id == user.id:
        raise SocialGroupError("Cannot add yourself to a group")
    groups.add_member(payload.group_name, payload.target_character_id)
    await save_social_groups(session, groups)
    user.last_active = utcnow()
    await _commit(session)
    logger.info("%s added character %s to %s", user.sl_uuid, target_character.id, payload.group_name)
    return {
        "message": f"{target_character.character_name} added to {payload.group_name}",
        "groups": groups.to_dict(),
    }


async def _remove_member(session, profile, payload):
    user, groups = await _owner(session, payload, profile)
    groups.remove_member(payload.group_name, payload.target_character_id)
    await save_social_groups(session, groups)
    user.last_active = utcnow()
    found = await find_character_by_id(session, payload.target_character_id, profile.key)
    name = found[1].character_name if found else f"User #{payload.target_character_id}"
    await _commit(session)
    return {
        "message": f"{name} removed from {payload.group_name}",
        "groups": groups.to_dict(),
    }


@router.get("/{universe}/social/groups")
async def social_groups(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _handle(request, session, universe, PlayerRequest, _list_groups)


@router.post("/{universe}/social/groups/add")
async def social_groups_add(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _handle(request, session, universe, GroupChangeRequest, _add_member)


@router.post("/{universe}/social/groups/remove")
async def social_groups_remove(universe: str, request: Request, session: AsyncSession = Depends(get_session)):
    return await _handle(request, session, universe, GroupChangeRequest, _remove_member)
