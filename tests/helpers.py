from contextlib import asynccontextmanager
from datetime import datetime, timezone
from urllib.parse import unquote

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from main import app
from server.src.modules.character_store import find_user
from server.src.modules.combat_api import get_roller
from server.src.modules.realm_db import AsyncSessionLocal, Character, Event, User
from server.src.modules.request_auth import generate_signature
from server.src.objects.active_effects import ActiveEffect, dump_active_effects

CASTER = "11111111-1111-4111-8111-111111111111"
TARGET = "22222222-2222-4222-8222-222222222222"
ALLY = "33333333-3333-4333-8333-333333333333"
STRANGER = "44444444-4444-4444-8444-444444444444"
UNKNOWN = "99999999-9999-4999-8999-999999999999"


@asynccontextmanager
async def api_client(roller=None):
    if roller is not None:
        app.dependency_overrides[get_roller] = lambda: roller
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class ScriptedRoller:
    """Returns the queued d20 results in order."""

    def __init__(self, *rolls: int):
        self.rolls = list(rolls)
        self.calls = 0

    def randint(self, a: int, b: int) -> int:
        self.calls += 1
        return self.rolls.pop(0)


def now_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def signed(universe: str, **fields) -> dict:
    timestamp = now_timestamp()
    return {
        "universe": universe,
        "timestamp": timestamp,
        "signature": generate_signature(timestamp, universe),
        **fields,
    }


def decoded(value: str) -> str:
    return unquote(value)


async def create_character(
    universe: str,
    sl_uuid: str,
    name: str,
    stats: dict | None = None,
    health: int = 100,
    max_health: int = 100,
    abilities: list[str] | None = None,
    effects: list[ActiveEffect] | None = None,
    status: int = 0,
) -> tuple[str, int]:
    """Insert a user and character; returns (user id, character id)."""
    async with AsyncSessionLocal() as session:
        user = User(sl_uuid=sl_uuid, universe=universe, username=name.lower(), status=status)
        session.add(user)
        await session.flush()
        character = Character(
            user_id=user.id,
            character_name=name,
            base_stats=stats or {},
            health_current=health,
            health_max=max_health,
            abilities=abilities or [],
            active_effects=dump_active_effects(effects or []),
        )
        session.add(character)
        await session.commit()
        return user.id, character.id


async def load_character(universe: str, sl_uuid: str) -> Character:
    async with AsyncSessionLocal() as session:
        user = await find_user(session, sl_uuid, universe)
        return user.character


async def list_events(event_type: str | None = None) -> list[Event]:
    async with AsyncSessionLocal() as session:
        stmt = select(Event).order_by(Event.timestamp)
        if event_type:
            stmt = stmt.where(Event.type == event_type)
        return list((await session.execute(stmt)).scalars().all())


async def add_event(user_id: str, event_type: str, ability_id: str | None, timestamp: datetime) -> None:
    async with AsyncSessionLocal() as session:
        session.add(Event(user_id=user_id, type=event_type, ability_id=ability_id, details={}, timestamp=timestamp))
        await session.commit()
