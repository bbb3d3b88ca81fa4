from __future__ import annotations

import math
from typing import Dict, Optional

from fnstats.stat_tree import Number, StatLeaf, StatNode, map_leaves

PLACEMENT_KINDS = ("top3", "top5", "top6", "top10", "top12", "top25")


def _ratio(numerator: Optional[Number], denominator: Optional[Number]) -> float:
    """Float division that yields inf/nan instead of raising.

    A missing operand gives nan. Callers presenting rates must handle
    non-finite values themselves.
    """
    if numerator is None or denominator is None:
        return math.nan
    if denominator == 0:
        if numerator == 0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def annotate_leaf(leaf: StatLeaf) -> StatLeaf:
    counters: Dict[str, Number] = dict(leaf.counters)
    counters.setdefault("wins", 0)
    counters.setdefault("kills", 0)

    matches = counters["matches"]
    wins = counters["wins"]
    kills = counters["kills"]
    minutes = counters.get("minutes")

    rates: Dict[str, float] = {"winRate": _ratio(wins, matches)}
    for kind in PLACEMENT_KINDS:
        if kind in counters:
            rates[f"{kind}Rate"] = _ratio(counters[kind], matches)

    # A win ends without a death, so deaths are the matches not won.
    rates["killsPerDeath"] = _ratio(kills, matches - wins)
    rates["killsPer20"] = _ratio(kills * 20, minutes)
    rates["minutesPerKill"] = _ratio(minutes, kills)
    return StatLeaf(counters=counters, rates=rates)


def annotate_rates(tree: StatNode) -> StatNode:
    """Return a copy of ``tree`` with derived rates on every leaf."""
    return map_leaves(tree, annotate_leaf)
