from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fnstats.result_filter import FilterSelection, filter_tree
from fnstats.raw_ops import filter_raw_stats
from fnstats.stat_tree import StatBranch, StatLeaf, iter_leaves
from fnstats.taxonomy import Taxonomy


def _leaf(matches: int) -> StatLeaf:
    return StatLeaf(counters={"matches": matches})


def _build_tree() -> StatBranch:
    def comp(**teams: StatLeaf) -> StatBranch:
        return StatBranch("teamSize", teams)

    return StatBranch(
        "buildMode",
        {
            "zeroBuild": StatBranch(
                "gameMode",
                {
                    "regular": StatBranch(
                        "compMode",
                        {
                            "pubs": comp(solo=_leaf(5), duo=_leaf(2)),
                            "ranked": comp(squad=_leaf(3)),
                            "bots": comp(solo=_leaf(9)),
                        },
                    ),
                    "reload": StatBranch("compMode", {"pubs": comp(duo=_leaf(4))}),
                },
            ),
            "build": StatBranch(
                "gameMode",
                {"regular": StatBranch("compMode", {"pubs": comp(solo=_leaf(8))})},
            ),
        },
    )


def _paths(tree: StatBranch) -> list:
    return [path for path, _ in iter_leaves(tree)]


def test_default_drops_build_and_bots() -> None:
    result = filter_tree(_build_tree(), [])

    assert "build" not in result
    assert _paths(result) == [
        ("zeroBuild", "regular", "pubs", "solo"),
        ("zeroBuild", "regular", "pubs", "duo"),
        ("zeroBuild", "regular", "ranked", "squad"),
        ("zeroBuild", "reload", "pubs", "duo"),
    ]


def test_naming_bots_keeps_them() -> None:
    result = filter_tree(_build_tree(), ["bots"])

    assert _paths(result) == [("zeroBuild", "regular", "bots", "solo")]


def test_build_alone_is_an_allowlist() -> None:
    result = filter_tree(_build_tree(), ["build"])

    assert list(result) == ["build"]

    both = filter_tree(_build_tree(), ["build", "zeroBuild"])
    assert list(both) == ["zeroBuild", "build"]


def test_team_and_game_filters_prune_emptied_branches() -> None:
    result = filter_tree(_build_tree(), ["duo"])

    assert _paths(result) == [
        ("zeroBuild", "regular", "pubs", "duo"),
        ("zeroBuild", "reload", "pubs", "duo"),
    ]
    assert "ranked" not in result["zeroBuild"]["regular"]

    reload_only = filter_tree(_build_tree(), ["reload", "ranked"])
    assert reload_only.to_dict() == {}
    assert reload_only.dimension == "buildMode"


def test_unknown_tokens_are_ignored() -> None:
    assert filter_tree(_build_tree(), ["lategame", 7]).to_dict() == filter_tree(
        _build_tree(), []
    ).to_dict()


def test_filtering_does_not_mutate_the_input() -> None:
    tree = _build_tree()
    before = tree.to_dict()

    filter_tree(tree, ["squad"])

    assert tree.to_dict() == before


def test_selection_sorts_tokens_by_dimension() -> None:
    selection = FilterSelection.from_tokens(["solo", "ranked", "reload", "build", "x"])

    assert selection.team_sizes == frozenset({"solo"})
    assert selection.comp_modes == frozenset({"ranked"})
    assert selection.game_modes == frozenset({"reload"})
    assert selection.build_modes == frozenset({"build"})
    assert FilterSelection.from_tokens([]).is_empty


def test_tokens_follow_an_injected_vocabulary() -> None:
    taxonomy = Taxonomy(
        comp_markers=(("habanero", "ranked"), ("bots", "bots"), ("cup", "cup")),
        comp_modes=("pubs", "ranked", "bots", "cup"),
    )

    selection = FilterSelection.from_tokens(["cup", "duo"], taxonomy)
    raw = {
        "br_kills_keyboardmouse_m0_playlist_cup_nobuildbr_duo": 3,
        "br_kills_keyboardmouse_m0_playlist_nobuildbr_duo": 5,
    }

    assert selection.comp_modes == frozenset({"cup"})
    assert selection.team_sizes == frozenset({"duo"})
    assert FilterSelection.from_tokens(["cup"]).is_empty
    assert filter_raw_stats(raw, ["cup"], taxonomy) == {
        "br_kills_keyboardmouse_m0_playlist_cup_nobuildbr_duo": 3
    }
