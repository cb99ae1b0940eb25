#!/usr/bin/env python
"""Upsert the bundled ability/effect catalogs (server/data/<universe>/*.json) into MongoDB.

Idempotent: documents are upserted by (universe, id).
"""
from __future__ import annotations

import argparse
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db_mongo import ensure_indexes
from server.src.modules.catalog import seed_catalog
from server.src.modules.universes import PROFILES


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "universes",
        nargs="*",
        help="universes to seed (default: all)",
    )
    args = parser.parse_args(argv)
    unknown = [u for u in args.universes if u not in PROFILES]
    if unknown:
        parser.error(f"unknown universe(s): {', '.join(unknown)}")

    ensure_indexes()
    for universe in args.universes or sorted(PROFILES):
        counts = seed_catalog(universe)
        print(f"[OK] {universe}: {counts['abilities']} abilities, {counts['effects']} effects upserted")
    print("[DONE] Catalog seeded.")


if __name__ == "__main__":
    main()
