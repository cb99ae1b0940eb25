from dataclasses import dataclass

from server.src.objects.effects import DURATION_PERMANENT, DURATION_SCENE


@dataclass(frozen=True)
class UniverseProfile:
    key: str
    label: str
    stat_names: tuple[str, ...]
    allowed_statuses: frozenset[int]
    mode_error: str
    ability_label: str
    # Gor ends a scene by dropping scene effects only, Arkana keeps only permanent ones.
    scene_end_keeps_turn_effects: bool

    def keeps_after_scene(self, duration: str | None) -> bool:
        if self.scene_end_keeps_turn_effects:
            return duration != DURATION_SCENE
        return duration == DURATION_PERMANENT


GOR = UniverseProfile(
    key="gor",
    label="Gor",
    stat_names=("strength", "agility", "intellect", "perception", "charisma"),
    allowed_statuses=frozenset({0, 1, 2, 3}),
    mode_error="Must be in Full, Survival, Combat or RP mode to use abilities",
    ability_label="ability",
    scene_end_keeps_turn_effects=True,
)

ARKANA = UniverseProfile(
    key="arkana",
    label="Arkana",
    stat_names=("physical", "dexterity", "mental", "perception"),
    allowed_statuses=frozenset({0}),
    mode_error="Must be in RP mode to use powers",
    ability_label="power",
    scene_end_keeps_turn_effects=False,
)

PROFILES = {p.key: p for p in (GOR, ARKANA)}


def get_profile(universe: str | None) -> UniverseProfile | None:
    return PROFILES.get((universe or "").strip().lower())
