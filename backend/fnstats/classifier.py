from __future__ import annotations

from typing import NamedTuple, Optional, Tuple

from fnstats.taxonomy import DEFAULT_TAXONOMY, UNKNOWN, Taxonomy


class KeyClassification(NamedTuple):
    build_mode: str
    game_mode: str
    comp_mode: str
    team_size: str
    input_type: str
    stat_kind: str

    @property
    def quadruple(self) -> Tuple[str, str, str, str]:
        return (self.build_mode, self.game_mode, self.comp_mode, self.team_size)

    @property
    def is_structurable(self) -> bool:
        return UNKNOWN not in (self.game_mode, self.team_size, self.stat_kind)


def _first_match(
    key: str, markers: Tuple[Tuple[str, str], ...], fallback: Optional[str] = None
) -> str:
    for marker, value in markers:
        if marker in key:
            return value
    return fallback if fallback is not None else UNKNOWN


class KeyClassifier:
    """Map raw upstream stat keys onto the reporting taxonomy."""

    def __init__(self, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> None:
        self.taxonomy = taxonomy
        self._stat_markers = tuple(
            (pattern, kind) for kind, pattern in taxonomy.stat_patterns
        )

    def classify(self, key: str) -> KeyClassification:
        if not isinstance(key, str):
            raise TypeError(f"Stat key must be a string, got {type(key).__name__}")
        taxonomy = self.taxonomy
        return KeyClassification(
            build_mode=_first_match(
                key, taxonomy.build_markers, taxonomy.build_fallback
            ),
            game_mode=_first_match(key, taxonomy.game_markers),
            comp_mode=_first_match(key, taxonomy.comp_markers, taxonomy.comp_fallback),
            team_size=_first_match(key, taxonomy.team_markers),
            input_type=_first_match(key, taxonomy.input_markers),
            stat_kind=_first_match(key, self._stat_markers),
        )


def classify_key(key: str, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> KeyClassification:
    return KeyClassifier(taxonomy).classify(key)
