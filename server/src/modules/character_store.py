from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.logging_helpers import EVENT_ABILITY_USE
from server.src.modules.realm_db import Character, Event, SocialGroupSet, User, utcnow
from server.src.objects.active_effects import ActiveEffect, LiveStats, dump_active_effects, load_active_effects
from server.src.objects.characters import CharacterState
from server.src.objects.social_groups import SocialGroups


async def find_user(session: AsyncSession, sl_uuid: str, universe: str) -> User | None:
    stmt = select(User).where(User.sl_uuid == sl_uuid, func.lower(User.universe) == universe.lower())
    return (await session.execute(stmt)).scalar_one_or_none()


async def find_character_by_id(session: AsyncSession, character_id: int, universe: str) -> tuple[User, Character] | None:
    stmt = (
        select(User, Character)
        .join(Character, Character.user_id == User.id)
        .where(Character.id == character_id, func.lower(User.universe) == universe.lower())
    )
    row = (await session.execute(stmt)).first()
    return (row[0], row[1]) if row else None


async def characters_by_ids(session: AsyncSession, ids: set[int]) -> dict[int, tuple[str, str]]:
    """Character id -> (name, uuid) for the given ids."""
    if not ids:
        return {}
    stmt = select(Character.id, Character.character_name, User.sl_uuid).join(User, Character.user_id == User.id).where(
        Character.id.in_(ids)
    )
    return {cid: (name, uuid) for cid, name, uuid in (await session.execute(stmt)).all()}


async def nearby_character_ids(session: AsyncSession, uuids: list[str], universe: str) -> dict[int, str]:
    """Character id -> uuid for every registered nearby character."""
    if not uuids:
        return {}
    stmt = (
        select(Character.id, User.sl_uuid)
        .join(User, Character.user_id == User.id)
        .where(User.sl_uuid.in_(uuids), func.lower(User.universe) == universe.lower())
    )
    return {cid: uuid for cid, uuid in (await session.execute(stmt)).all()}


def character_state(user: User, row: Character) -> CharacterState:
    return CharacterState(
        id=row.id,
        user_id=user.id,
        sl_uuid=user.sl_uuid,
        name=row.character_name,
        base_stats={str(k).lower(): int(v or 0) for k, v in (row.base_stats or {}).items()},
        health=int(row.health_current or 0),
        max_health=int(row.health_max or 0),
        abilities=[str(a) for a in (row.abilities or [])],
        active_effects=load_active_effects(row.active_effects),
        status=int(user.status or 0),
    )


def write_character(row: Character, health: int, effects: list[ActiveEffect], live: LiveStats) -> int:
    """Stage the new health/effects on the row; health is clamped to [0, max]."""
    clamped = max(0, min(int(row.health_max or 0), health))
    row.health_current = clamped
    row.active_effects = dump_active_effects(effects)
    row.live_stats = live.to_dict()
    row.updated_at = utcnow()
    return clamped


async def load_social_groups(session: AsyncSession, user_id: str) -> SocialGroups | None:
    row = await session.get(SocialGroupSet, user_id)
    if row is None:
        return None
    return SocialGroups.from_dict(user_id, row.groups)


async def save_social_groups(session: AsyncSession, groups: SocialGroups) -> None:
    row = await session.get(SocialGroupSet, groups.user_id)
    if row is None:
        session.add(SocialGroupSet(user_id=groups.user_id, groups=groups.to_dict()))
    else:
        row.groups = groups.to_dict()
        row.updated_at = utcnow()


async def last_ability_use(session: AsyncSession, user_id: str, ability_id: str, since: datetime) -> Event | None:
    stmt = (
        select(Event)
        .where(
            Event.user_id == user_id,
            Event.type == EVENT_ABILITY_USE,
            Event.ability_id == ability_id,
            Event.timestamp >= since,
        )
        .order_by(Event.timestamp.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()
