import json

import pytest

from server.src.objects.active_effects import (
    ActiveEffect,
    LiveStats,
    dump_active_effects,
    load_active_effects,
)
from server.src.objects.effects import (
    CheckEffect,
    DamageEffect,
    StatModifierEffect,
    duration_turns,
    effect_from_dict,
)

STORED = {
    "effectId": "buff_strength_2",
    "name": "Combat Focus",
    "category": "stat_modifier",
    "turnsRemaining": 3,
    "duration": "turns:3",
    "stat": "Strength",
    "modifier": 2,
    "modifierType": "roll_bonus",
    "appliedBy": "Tarl",
}


def test_versioned_blob_loads():
    (effect,) = load_active_effects({"version": 1, "effects": [STORED]})
    assert effect.effect_id == "buff_strength_2"
    assert effect.turns_remaining == 3
    assert effect.applied_by == "Tarl"


def test_legacy_list_and_json_string_load():
    assert len(load_active_effects([STORED])) == 1
    assert len(load_active_effects(json.dumps({"version": 1, "effects": [STORED]}))) == 1


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        {"version": 2, "effects": [STORED]},
        {"effects": "nope"},
        [{"name": "missing id"}],
        [{**STORED, "turnsRemaining": -1}],
        [{**STORED, "turnsRemaining": "3"}],
        42,
    ],
)
def test_corrupted_blobs_become_empty(raw):
    assert load_active_effects(raw) == []


def test_none_is_empty():
    assert load_active_effects(None) == []


def test_dump_writes_the_versioned_shape():
    effect = ActiveEffect.from_dict(STORED)
    dumped = dump_active_effects([effect])
    assert dumped["version"] == 1
    assert dumped["effects"][0]["turnsRemaining"] == 3
    assert "controlType" not in dumped["effects"][0]


def test_turns_remaining_must_be_a_non_negative_int():
    with pytest.raises(TypeError):
        ActiveEffect(effect_id="x", name="x", category="control", turns_remaining=True)
    with pytest.raises(ValueError):
        ActiveEffect(effect_id="x", name="x", category="control", turns_remaining=-2)


def test_live_stats_round_trip_and_bad_cache():
    live = LiveStats(stats={"strength": 5}, roll_bonus={"strength": 2}, controls={"stun": "Stunning Blow"})
    assert LiveStats.from_dict(live.to_dict()) == live
    assert LiveStats.from_dict({"version": 7}) == LiveStats()
    assert LiveStats.from_dict("garbage") == LiveStats()


def test_duration_turns():
    assert duration_turns("turns:3") == 3
    assert duration_turns("scene") == 999
    assert duration_turns("immediate") == 0
    assert duration_turns("permanent") == 0
    assert duration_turns(None) == 0
    assert duration_turns("turns:x") == 0


def test_effect_documents_parse_into_variants():
    check = effect_from_dict({"id": "c", "category": "check", "checkStat": "Physical", "checkVs": "fixed", "checkTN": 12})
    assert isinstance(check, CheckEffect)
    assert check.check_vs == "tn"
    assert check.target_number == 12
    assert check.contested is False

    contested = effect_from_dict(
        {"id": "m", "category": "check", "checkStat": "Mental", "checkVs": "enemy_stat", "checkVsStat": "Mental"}
    )
    assert contested.contested is True

    stat = effect_from_dict({"id": "s", "category": "stat_modifier", "stat": "Agility", "modifier": "-1"})
    assert isinstance(stat, StatModifierEffect)
    assert stat.modifier == -1
    assert stat.modifier_type == "roll_bonus"

    damage = effect_from_dict({"id": "d", "category": "damage", "damageFixed": 3, "target": "area"})
    assert isinstance(damage, DamageEffect)
    assert (damage.fixed, damage.duration, damage.name) == (3, "immediate", "d")


def test_unknown_category_is_rejected():
    with pytest.raises(ValueError):
        effect_from_dict({"id": "x", "category": "teleport"})
    with pytest.raises(ValueError):
        effect_from_dict({"category": "heal"})
