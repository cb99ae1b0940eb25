import pytest

from server.src.modules.logging_helpers import EVENT_EFFECT_DEACTIVATED
from server.src.objects.active_effects import ActiveEffect, load_active_effects
from tests.helpers import CASTER, UNKNOWN, api_client, create_character, decoded, list_events, load_character, signed

URL = "/api/arkana/combat/deactivate-active-effect"


def _scene_buff(applied_by="Vesper"):
    return ActiveEffect(
        effect_id="buff_dexterity_stat_1", name="Reflex Boost", category="stat_modifier",
        turns_remaining=999, duration="scene", scene_effect=True,
        stat="dexterity", modifier=1, modifier_type="stat_value", applied_by=applied_by,
    )


def _mental_debuff(turns=2):
    return ActiveEffect(
        effect_id="debuff_mental_roll_2", name="Psychic Lance", category="stat_modifier",
        turns_remaining=turns, duration=f"turns:{turns}", stat="mental", modifier=-2, applied_by="Orrin",
    )


async def _deactivate(effect_id, player_uuid=CASTER):
    async with api_client() as client:
        return await client.post(URL, json=signed("arkana", player_uuid=player_uuid, effect_id=effect_id))


@pytest.mark.asyncio
async def test_deactivating_a_scene_effect_recomputes_live_stats():
    await create_character(
        "arkana", CASTER, "Vesper", stats={"dexterity": 2, "mental": 3},
        effects=[_scene_buff(), _mental_debuff()],
    )
    response = await _deactivate("buff_dexterity_stat_1")
    assert response.status_code == 200
    data = response.json()["data"]
    assert decoded(data["effectDeactivated"]) == "Reflex Boost"
    assert data["effectsRemaining"] == 1
    assert decoded(data["message"]) == "Deactivated Reflex Boost. Effects remaining: 1. Turn used."

    character = await load_character("arkana", CASTER)
    (left,) = load_active_effects(character.active_effects)
    # the turn is spent, so the other effect counts down
    assert (left.effect_id, left.turns_remaining) == ("debuff_mental_roll_2", 1)
    assert character.live_stats["statValue"] == {}
    assert character.live_stats["rollBonus"] == {"mental": -2}

    (event,) = await list_events(EVENT_EFFECT_DEACTIVATED)
    assert event.details == {"effectId": "buff_dexterity_stat_1", "effectsRemaining": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "effects,effect_id,status,error",
    [
        ([], "buff_dexterity_stat_1", 404, "Effect not found in active effects"),
        ([_mental_debuff()], "debuff_mental_roll_2", 400, "Cannot deactivate turn-based effects"),
        ([_scene_buff(applied_by="Orrin")], "buff_dexterity_stat_1", 403, "Cannot deactivate effects cast by others"),
    ],
)
async def test_deactivation_is_refused(effects, effect_id, status, error):
    await create_character("arkana", CASTER, "Vesper", effects=effects)
    response = await _deactivate(effect_id)
    assert response.status_code == status
    assert response.json() == {"success": False, "error": error}

    character = await load_character("arkana", CASTER)
    assert [e.effect_id for e in load_active_effects(character.active_effects)] == [e.effect_id for e in effects]
    assert await list_events(EVENT_EFFECT_DEACTIVATED) == []


@pytest.mark.asyncio
async def test_deactivation_requires_rp_mode():
    await create_character("arkana", CASTER, "Vesper", status=1, effects=[_scene_buff()])
    response = await _deactivate("buff_dexterity_stat_1")
    assert response.status_code == 400
    assert response.json()["error"] == "Must be in RP mode to use powers"


@pytest.mark.asyncio
async def test_deactivation_for_unknown_player():
    response = await _deactivate("buff_dexterity_stat_1", player_uuid=UNKNOWN)
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"
