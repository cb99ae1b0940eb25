from dataclasses import dataclass, field
from typing import Any

DEFAULT_GROUPS = ("Allies", "Enemies")


class SocialGroupError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class SocialGroups:
    """Named groups of character ids owned by one account."""
    user_id: str
    groups: dict[str, list[int]] = field(default_factory=dict)

    def __post_init__(self):
        for name in DEFAULT_GROUPS:
            self.groups.setdefault(name, [])

    def members_of(self, group_name: str) -> list[int]:
        return list(self.groups.get(group_name) or [])

    def add_member(self, group_name: str, character_id: int) -> None:
        members = self.groups.setdefault(group_name, [])
        if character_id in members:
            raise SocialGroupError("User is already in this group")
        members.append(character_id)

    def remove_member(self, group_name: str, character_id: int) -> None:
        if group_name not in self.groups:
            raise SocialGroupError(f'Group "{group_name}" not found', 404)
        members = self.groups[group_name]
        if character_id not in members:
            raise SocialGroupError("User is not in this group")
        members.remove(character_id)
        if not members and group_name not in DEFAULT_GROUPS:
            del self.groups[group_name]

    def all_member_ids(self) -> set[int]:
        return {cid for members in self.groups.values() for cid in members}

    def to_dict(self) -> dict[str, list[int]]:
        return {name: list(members) for name, members in self.groups.items()}

    @classmethod
    def from_dict(cls, user_id: str, data: Any):
        groups: dict[str, list[int]] = {}
        if isinstance(data, dict):
            for name, members in data.items():
                if not isinstance(members, list):
                    continue
                ids = []
                for m in members:
                    try:
                        ids.append(int(m))
                    except (TypeError, ValueError):
                        continue
                groups[str(name)] = ids
        return cls(user_id=user_id, groups=groups)
