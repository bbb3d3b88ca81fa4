from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable

from fnstats.stat_tree import StatBranch, prune_branches
from fnstats.taxonomy import DEFAULT_TAXONOMY, Taxonomy


@dataclass(frozen=True)
class FilterSelection:
    """Filter tokens sorted into the taxonomy dimension each one constrains."""

    build_modes: FrozenSet[str] = frozenset()
    game_modes: FrozenSet[str] = frozenset()
    comp_modes: FrozenSet[str] = frozenset()
    team_sizes: FrozenSet[str] = frozenset()

    @classmethod
    def from_tokens(
        cls, tokens: Iterable[str], taxonomy: Taxonomy = DEFAULT_TAXONOMY
    ) -> "FilterSelection":
        tokens = [token for token in (tokens or []) if isinstance(token, str)]

        def selected(dimension: str) -> FrozenSet[str]:
            vocabulary = taxonomy.vocabulary(dimension)
            return frozenset(token for token in tokens if token in vocabulary)

        return cls(
            build_modes=selected("buildMode"),
            game_modes=selected("gameMode"),
            comp_modes=selected("compMode"),
            team_sizes=selected("teamSize"),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.build_modes or self.game_modes or self.comp_modes or self.team_sizes
        )

    def allows(self, dimension: str, value: str) -> bool:
        if dimension == "buildMode":
            if self.build_modes:
                return value in self.build_modes
            return value != "build"
        if dimension == "gameMode":
            return not self.game_modes or value in self.game_modes
        if dimension == "compMode":
            # Bots only ever appear when named, whatever else is selected.
            if value == "bots":
                return "bots" in self.comp_modes
            return not self.comp_modes or value in self.comp_modes
        if dimension == "teamSize":
            return not self.team_sizes or value in self.team_sizes
        return True


def filter_tree(
    tree: StatBranch,
    tokens: Iterable[str] = (),
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
) -> StatBranch:
    """Prune a structured tree down to the selected modes and team sizes.

    Without tokens the result keeps zero-build only and drops bots. Naming a
    value in a dimension turns that dimension into an allowlist; tokens that
    belong to no dimension are ignored.
    """
    selection = FilterSelection.from_tokens(tokens, taxonomy)
    pruned = prune_branches(tree, selection.allows)
    if pruned is None:
        return StatBranch(dimension=tree.dimension, children={})
    return pruned
