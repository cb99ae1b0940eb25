import pytest

from server.src.objects.active_effects import ActiveEffect, load_active_effects
from tests.helpers import (
    CASTER,
    STRANGER,
    TARGET,
    UNKNOWN,
    ScriptedRoller,
    api_client,
    create_character,
    decoded,
    load_character,
    signed,
)

URL = "/api/arkana/combat/power-activate"
ATTACK_URL = "/api/arkana/combat/power-attack"
ARKANA_STATS = {"physical": 4, "dexterity": 2, "mental": 3, "perception": 2}
POWERS = ["psychic_lance", "mending_touch", "shockwave", "dream_weave"]


async def _caster(**kwargs):
    kwargs.setdefault("stats", ARKANA_STATS)
    kwargs.setdefault("abilities", POWERS)
    return await create_character("arkana", CASTER, "Vesper", **kwargs)


async def _other(uuid, name, **kwargs):
    kwargs.setdefault("stats", {"physical": 2, "dexterity": 2, "mental": 2, "perception": 2})
    return await create_character("arkana", uuid, name, **kwargs)


async def _activate(body, *rolls, url=URL):
    async with api_client(ScriptedRoller(*rolls)) as client:
        return await client.post(url, json=signed("arkana", caster_uuid=CASTER, **body))


@pytest.mark.asyncio
async def test_contested_power_ties_go_to_the_caster():
    await _caster()
    await _other(TARGET, "Orrin")
    response = await _activate({"power_id": "psychic_lance", "target_uuid": TARGET}, 8, url=ATTACK_URL)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["rollInfo"] == "Mental vs Mental: Roll: 8+2=10 vs TN:10"
    assert data["activationSuccess"] is True
    assert data["affected"] == [{"uuid": TARGET, "name": "Orrin", "effects": ["-4 HP", "Mental -2"]}]

    target = await load_character("arkana", TARGET)
    assert target.health_current == 96
    (effect,) = load_active_effects(target.active_effects)
    assert (effect.effect_id, effect.turns_remaining) == ("debuff_mental_roll_2", 2)


@pytest.mark.asyncio
async def test_power_by_name_heals_an_ally():
    await _caster()
    await _other(TARGET, "Orrin", health=80)
    response = await _activate({"power_name": "Mending Touch", "target_uuid": TARGET})
    data = response.json()["data"]
    assert data["abilityUsed"] == "Mending Touch"
    assert data["affected"][0]["effects"] == ["+5 HP"]
    assert (await load_character("arkana", TARGET)).health_current == 85


@pytest.mark.asyncio
async def test_area_power_hits_everyone_registered_nearby():
    await _caster()
    await _other(TARGET, "Orrin")
    await _other(STRANGER, "Mira")
    response = await _activate({"power_id": "shockwave", "nearby_uuids": [TARGET, STRANGER, UNKNOWN]}, 8, url=ATTACK_URL)
    data = response.json()["data"]
    assert data["rollInfo"] == "Physical check: Roll: 8+4=12 vs TN:12"
    assert [a["uuid"] for a in data["affected"]] == [CASTER, TARGET, STRANGER]
    assert data["caster"]["health"] == 97
    assert "Self: -3 HP" in decoded(data["message"])
    for uuid in (TARGET, STRANGER):
        assert (await load_character("arkana", uuid)).health_current == 97


@pytest.mark.asyncio
async def test_sleep_on_success_then_sleeper_cannot_act():
    await _caster()
    await _other(TARGET, "Orrin", abilities=["psychic_lance"])
    response = await _activate({"power_id": "dream_weave", "target_uuid": TARGET}, 10)
    assert response.json()["data"]["activationSuccess"] is True

    async with api_client(ScriptedRoller(20)) as client:
        blocked = await client.post(
            ATTACK_URL,
            json=signed("arkana", caster_uuid=TARGET, power_id="psychic_lance", target_uuid=CASTER),
        )
    assert blocked.status_code == 400
    assert blocked.json()["error"] == "Cannot act while asleep (Dream Weave)"


@pytest.mark.asyncio
async def test_arkana_requires_rp_mode():
    await _caster(status=1)
    response = await _activate({"power_id": "shockwave"}, 10)
    assert response.status_code == 400
    assert response.json()["error"] == "Must be in RP mode to use powers"


@pytest.mark.asyncio
async def test_gor_characters_are_invisible_to_arkana():
    await create_character("gor", CASTER, "Tarl", abilities=POWERS)
    response = await _activate({"power_id": "shockwave"}, 10)
    assert response.status_code == 404
    assert response.json()["error"] == "Caster not found"


@pytest.mark.asyncio
async def test_existing_sleep_blocks_activation():
    sleep = ActiveEffect(
        effect_id="control_sleep_2", name="Dream Weave", category="control",
        turns_remaining=2, duration="turns:2", control_type="sleep",
    )
    await _caster(effects=[sleep])
    response = await _activate({"power_id": "shockwave"}, 10)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot act while asleep (Dream Weave)"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url,power_id",
    [(URL, "psychic_lance"), (ATTACK_URL, "mending_touch")],
)
async def test_power_without_effects_in_the_route_mode(url, power_id):
    await _caster()
    await _other(TARGET, "Orrin")
    response = await _activate({"power_id": power_id, "target_uuid": TARGET}, 20, url=url)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Power has no effects defined"}
    assert (await load_character("arkana", TARGET)).health_current == 100


@pytest.mark.asyncio
async def test_attack_route_ignores_a_requested_mode():
    await _caster()
    await _other(TARGET, "Orrin")
    response = await _activate(
        {"power_id": "psychic_lance", "target_uuid": TARGET, "mode": "ability"}, 15, url=ATTACK_URL,
    )
    assert response.status_code == 200
    assert response.json()["data"]["activationSuccess"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "caster_kwargs,body,status,error",
    [
        ({"health": 0}, {"power_id": "mending_touch"}, 400, "Cannot use powers while unconscious"),
        ({}, {"power_id": "no_such_power"}, 404, "Power not found"),
        ({"abilities": []}, {"power_id": "mending_touch"}, 400, "You do not have this power"),
    ],
)
async def test_power_preconditions_use_power_wording(caster_kwargs, body, status, error):
    await _caster(**caster_kwargs)
    response = await _activate(body, 15)
    assert response.status_code == status
    assert response.json() == {"success": False, "error": error}
