from server.src.objects.social_groups import SocialGroups

GROUP_FOR_TARGET = {
    "all_enemies": "Enemies",
    "all_enemies_and_self": "Enemies",
    "all_allies": "Allies",
    "all_allies_and_self": "Allies",
}


def _unique(ids):
    return list(dict.fromkeys(i for i in ids if i))


def _group_members_nearby(groups: SocialGroups, group_name: str, nearby_characters: dict[int, str]) -> list[str]:
    members = set(groups.members_of(group_name))
    return [uuid for cid, uuid in nearby_characters.items() if cid in members]


def resolve_targets(
    target_type: str | None,
    caster_uuid: str,
    target_uuid: str | None,
    nearby_uuids: list[str],
    groups: SocialGroups | None = None,
    nearby_characters: dict[int, str] | None = None,
) -> list[str]:
    """Expand an effect target type into the ordered list of affected uuids.

    ``nearby_characters`` maps character id to uuid for every nearby character;
    group filtering applies only when both it and ``groups`` are given.
    """
    if target_type == "self":
        return [caster_uuid]
    if target_type in ("enemy", "ally"):
        return [target_uuid] if target_uuid else []
    if target_type in GROUP_FOR_TARGET:
        with_self = target_type.endswith("_and_self")
        if groups is not None and nearby_characters is not None:
            found = _group_members_nearby(groups, GROUP_FOR_TARGET[target_type], nearby_characters)
            return _unique(([caster_uuid] if with_self else []) + found)
        if with_self:
            return _unique(nearby_uuids)
        return _unique(u for u in nearby_uuids if u != caster_uuid)
    if target_type == "area":
        return _unique(nearby_uuids)
    return []
