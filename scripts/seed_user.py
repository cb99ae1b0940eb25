#!/usr/bin/env python
"""Create (or refresh) a player and character for local testing.

    python scripts/seed_user.py gor 00000000-0000-0000-0000-000000000001 "Tarl" --stats strength=3,agility=2 \
        --abilities second_wind,capture_throw
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from server.src.modules.character_store import find_user
from server.src.modules.realm_db import AsyncSessionLocal, Character, User, init_models
from server.src.modules.universes import PROFILES


def _stats(raw: str) -> dict[str, int]:
    out = {}
    for part in (raw or "").split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        out[key.strip().lower()] = int(value)
    return out


async def seed(universe: str, sl_uuid: str, name: str, stats: dict[str, int], abilities: list[str], health: int):
    await init_models()
    async with AsyncSessionLocal() as session:
        user = await find_user(session, sl_uuid, universe)
        character = user.character if user is not None else None
        if user is None:
            user = User(sl_uuid=sl_uuid, universe=universe, username=name, status=0)
            session.add(user)
            await session.flush()
        if character is None:
            character = Character(user_id=user.id, character_name=name)
            session.add(character)
        character.character_name = name
        character.base_stats = {k: stats.get(k, 2) for k in PROFILES[universe].stat_names}
        character.health_current = health
        character.health_max = health
        character.abilities = abilities
        character.active_effects = {"version": 1, "effects": []}
        await session.commit()
        print(f"seeded {universe} character {name} ({sl_uuid}) id={character.id}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed a test character")
    parser.add_argument("universe")
    parser.add_argument("sl_uuid")
    parser.add_argument("name")
    parser.add_argument("--stats", default="")
    parser.add_argument("--abilities", default="")
    parser.add_argument("--health", type=int, default=100)
    args = parser.parse_args(argv)
    if args.universe not in PROFILES:
        parser.error(f"unknown universe: {args.universe}")
    abilities = [a.strip() for a in args.abilities.split(",") if a.strip()]
    asyncio.run(seed(args.universe, args.sl_uuid.lower(), args.name, _stats(args.stats), abilities, args.health))


if __name__ == "__main__":
    main()
