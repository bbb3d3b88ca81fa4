from __future__ import annotations

import math
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fnstats.rates import annotate_leaf, annotate_rates
from fnstats.stat_tree import StatBranch, StatLeaf


def test_rates_for_a_typical_bucket() -> None:
    leaf = StatLeaf(counters={"matches": 10, "wins": 2, "kills": 16, "minutes": 40, "top5": 4})

    rates = annotate_leaf(leaf).rates

    assert rates["winRate"] == 0.2
    assert rates["top5Rate"] == 0.4
    assert rates["killsPerDeath"] == 2
    assert rates["killsPer20"] == 8
    assert rates["minutesPerKill"] == 2.5
    assert "top10Rate" not in rates


def test_missing_wins_and_kills_default_to_zero() -> None:
    annotated = annotate_leaf(StatLeaf(counters={"matches": 4, "minutes": 30}))

    assert annotated["wins"] == 0
    assert annotated["kills"] == 0
    assert annotated["winRate"] == 0
    assert annotated["killsPer20"] == 0
    assert math.isinf(annotated["minutesPerKill"])


def test_every_match_won_gives_infinite_kills_per_death() -> None:
    annotated = annotate_leaf(StatLeaf(counters={"matches": 3, "wins": 3, "kills": 5}))

    assert annotated["killsPerDeath"] == math.inf


def test_zero_over_zero_is_nan() -> None:
    annotated = annotate_leaf(StatLeaf(counters={"matches": 2, "wins": 2, "kills": 0, "minutes": 0}))

    assert math.isnan(annotated["killsPerDeath"])
    assert math.isnan(annotated["killsPer20"])
    assert math.isnan(annotated["minutesPerKill"])


def test_missing_minutes_gives_nan_time_rates() -> None:
    annotated = annotate_leaf(StatLeaf(counters={"matches": 5, "kills": 2}))

    assert math.isnan(annotated["killsPer20"])
    assert math.isnan(annotated["minutesPerKill"])


def test_annotate_rates_copies_the_tree() -> None:
    leaf = StatLeaf(counters={"matches": 10, "wins": 1, "kills": 9})
    tree = StatBranch("teamSize", {"solo": leaf})

    annotated = annotate_rates(tree)

    assert annotated["solo"]["winRate"] == 0.1
    assert leaf.rates == {}
    assert "wins" in tree["solo"]
    assert tree["solo"].counters == {"matches": 10, "wins": 1, "kills": 9}
