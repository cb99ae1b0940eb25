import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from pymongo.errors import PyMongoError

from db_mongo import get_col, norm_key
from server.src.objects.abilities import AbilityDefinition
from server.src.objects.effects import EffectDefinition, effect_from_dict
from settings import settings

logger = logging.getLogger(__name__)

DATA_ROOT = Path(settings.catalog_data_dir) if settings.catalog_data_dir else Path(__file__).resolve().parents[2] / "data"
ABILITIES_FILE = "abilities.json"
EFFECTS_FILE = "effects.json"


@dataclass
class Catalog:
    universe: str
    abilities: list[AbilityDefinition]
    effects: dict[str, EffectDefinition]
    source: str

    def find_ability(self, ability_id: str | None = None, ability_name: str | None = None) -> AbilityDefinition | None:
        if ability_id:
            return next((a for a in self.abilities if a.id == ability_id), None)
        if ability_name:
            key = norm_key(ability_name)
            return next((a for a in self.abilities if norm_key(a.name) == key), None)
        return None


_CACHE: dict[str, tuple[float, Catalog]] = {}


def invalidate_catalog_cache(universe: str | None = None) -> None:
    if universe is None:
        _CACHE.clear()
    else:
        _CACHE.pop(universe.lower(), None)


def _read_json(universe: str, filename: str) -> list[dict]:
    path = DATA_ROOT / universe / filename
    if not path.is_file():
        logger.warning("Catalog file missing: %s", path)
        return []
    with path.open("r", encoding="utf-8") as f:
        rows = json.load(f)
    return [r for r in rows if isinstance(r, dict)]


def _read_mongo(universe: str) -> tuple[list[dict], list[dict]] | None:
    try:
        abilities = list(get_col("abilities").find({"universe": universe}, {"_id": 0}))
        effects = list(get_col("effects").find({"universe": universe}, {"_id": 0}))
    except PyMongoError as exc:
        logger.warning("Catalog database unavailable for %s, using JSON files: %s", universe, exc)
        return None
    if not abilities and not effects:
        return None
    return abilities, effects


def _build(universe: str, ability_docs: list[dict], effect_docs: list[dict], source: str) -> Catalog:
    abilities = []
    for doc in ability_docs:
        try:
            abilities.append(AbilityDefinition.from_dict(doc))
        except (KeyError, TypeError) as exc:
            logger.warning("Skipping malformed %s ability %r: %s", universe, doc.get("id"), exc)
    effects: dict[str, EffectDefinition] = {}
    for doc in effect_docs:
        try:
            effect = effect_from_dict(doc)
        except ValueError as exc:
            logger.warning("Skipping %s effect: %s", universe, exc)
            continue
        effects[effect.id] = effect
    return Catalog(universe=universe, abilities=abilities, effects=effects, source=source)


def load_catalog(universe: str) -> Catalog:
    """Database first, bundled JSON as fallback; cached per universe."""
    key = (universe or "").lower()
    cached = _CACHE.get(key)
    now = time.monotonic()
    if cached and now - cached[0] < settings.catalog_cache_ttl_seconds:
        return cached[1]

    docs = _read_mongo(key)
    if docs is not None:
        catalog = _build(key, docs[0], docs[1], "database")
    else:
        catalog = _build(key, _read_json(key, ABILITIES_FILE), _read_json(key, EFFECTS_FILE), "json")
    logger.info(
        "Loaded %s catalog from %s: %d abilities, %d effects",
        key, catalog.source, len(catalog.abilities), len(catalog.effects),
    )
    _CACHE[key] = (now, catalog)
    return catalog


def seed_catalog(universe: str) -> dict[str, int]:
    """Upsert the bundled JSON catalog for ``universe`` into MongoDB."""
    key = universe.lower()
    counts = {}
    for col_name, filename in (("abilities", ABILITIES_FILE), ("effects", EFFECTS_FILE)):
        col = get_col(col_name)
        count = 0
        for doc in _read_json(key, filename):
            doc = {**doc, "universe": key}
            if col_name == "abilities":
                doc["name_key"] = norm_key(doc.get("name") or doc["id"])
            col.update_one({"universe": key, "id": doc["id"]}, {"$set": doc}, upsert=True)
            count += 1
        counts[col_name] = count
    invalidate_catalog_cache(key)
    return counts


def find_ability(universe: str, ability_id: str | None = None, ability_name: str | None = None) -> AbilityDefinition | None:
    return load_catalog(universe).find_ability(ability_id, ability_name)


def get_effect(universe: str, effect_id: str) -> EffectDefinition | None:
    return load_catalog(universe).effects.get(effect_id)
