from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

UNKNOWN = "unknown"

LASTMODIFIED = "lastmodified"

# Ordered so that the structured tree reads zeroBuild first.
BUILD_MODES: Tuple[str, ...] = ("zeroBuild", "build")
GAME_MODES: Tuple[str, ...] = ("regular", "reload")
COMP_MODES: Tuple[str, ...] = ("pubs", "ranked", "bots")
TEAM_SIZES: Tuple[str, ...] = ("solo", "duo", "trio", "squad")
INPUT_TYPES: Tuple[str, ...] = ("gamepad", "keyboardmouse")

# (stat kind, key substring). First match wins, so "br_placetop1_" must keep
# its trailing underscore to stay clear of top10/top12.
STAT_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("matches", "br_matchesplayed"),
    ("kills", "br_kills"),
    ("wins", "br_placetop1_"),
    ("top3", "br_placetop3_"),
    ("top5", "br_placetop5_"),
    ("top6", "br_placetop6_"),
    ("top10", "br_placetop10_"),
    ("top12", "br_placetop12_"),
    ("top25", "br_placetop25_"),
    ("minutes", "br_minutesplayed"),
    (LASTMODIFIED, "lastmodified"),
)

DIMENSIONS: Tuple[str, ...] = ("buildMode", "gameMode", "compMode", "teamSize")


@dataclass(frozen=True)
class Taxonomy:
    """Marker tables used to classify opaque upstream stat keys.

    Every dimension is a tuple of ``(marker, value)`` pairs checked in order;
    the first marker found as a substring of the key decides the value.
    Dimensions with a fallback use it when no marker matches.
    """

    build_markers: Tuple[Tuple[str, str], ...] = (("nobuild", "zeroBuild"),)
    build_fallback: str = "build"
    game_markers: Tuple[Tuple[str, str], ...] = (
        ("nobuildbr", "regular"),
        ("default", "regular"),
        ("punchberry", "reload"),
        ("sunflower", "reload"),
        ("blastberry", "reload"),
    )
    comp_markers: Tuple[Tuple[str, str], ...] = (
        ("habanero", "ranked"),
        ("bots", "bots"),
    )
    comp_fallback: str = "pubs"
    team_markers: Tuple[Tuple[str, str], ...] = (
        ("solo", "solo"),
        ("duo", "duo"),
        ("trio", "trio"),
        ("squad", "squad"),
    )
    input_markers: Tuple[Tuple[str, str], ...] = (
        ("gamepad", "gamepad"),
        ("keyboardmouse", "keyboardmouse"),
    )
    stat_patterns: Tuple[Tuple[str, str], ...] = STAT_PATTERNS
    build_modes: Tuple[str, ...] = BUILD_MODES
    game_modes: Tuple[str, ...] = GAME_MODES
    comp_modes: Tuple[str, ...] = COMP_MODES
    team_sizes: Tuple[str, ...] = TEAM_SIZES
    input_types: Tuple[str, ...] = INPUT_TYPES
    # (gameMode, teamSize) pairs upstream never offers.
    excluded_pairs: Tuple[Tuple[str, str], ...] = (("reload", "trio"),)

    @property
    def counter_kinds(self) -> Tuple[str, ...]:
        return tuple(kind for kind, _ in self.stat_patterns if kind != LASTMODIFIED)

    def vocabulary(self, dimension: str) -> Tuple[str, ...]:
        return {
            "buildMode": self.build_modes,
            "gameMode": self.game_modes,
            "compMode": self.comp_modes,
            "teamSize": self.team_sizes,
            "inputType": self.input_types,
        }[dimension]

    def stat_pattern(self, kind: str) -> Optional[str]:
        for name, pattern in self.stat_patterns:
            if name == kind:
                return pattern
        return None

    def is_excluded(self, game_mode: str, team_size: str) -> bool:
        return (game_mode, team_size) in self.excluded_pairs


DEFAULT_TAXONOMY = Taxonomy()
