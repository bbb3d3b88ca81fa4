from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Tuple

from fnstats.classifier import KeyClassifier
from fnstats.stat_tree import Number, StatBranch, StatLeaf, StatNode, iter_leaves
from fnstats.taxonomy import DEFAULT_TAXONOMY, DIMENSIONS, Taxonomy

logger = logging.getLogger(__name__)

Quadruple = Tuple[str, str, str, str]

# Counters a collapsed team-size leaf always reports, even when zero.
COLLAPSED_SEED_COUNTERS = ("matches", "wins", "kills", "minutes")


def _group_by_quadruple(
    raw: Mapping[str, Number], classifier: KeyClassifier
) -> Dict[Quadruple, Dict[str, List[Number]]]:
    grouped: Dict[Quadruple, Dict[str, List[Number]]] = defaultdict(
        lambda: defaultdict(list)
    )
    counter_kinds = set(classifier.taxonomy.counter_kinds)
    for key, value in raw.items():
        info = classifier.classify(key)
        if not info.is_structurable or info.stat_kind not in counter_kinds:
            continue
        grouped[info.quadruple][info.stat_kind].append(value)
    return grouped


def _build_leaf(
    values_by_kind: Mapping[str, List[Number]], taxonomy: Taxonomy
) -> Optional[StatLeaf]:
    match_values = values_by_kind.get("matches")
    if not match_values:
        return None
    if sum(match_values) == 0:
        return None
    counters = {
        kind: sum(values_by_kind[kind])
        for kind in taxonomy.counter_kinds
        if values_by_kind.get(kind)
    }
    return StatLeaf(counters=counters)


def structure_stats(
    raw: Mapping[str, Number],
    include_bots: bool = False,
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
) -> StatBranch:
    """Bucket a raw stat map into buildMode → gameMode → compMode → teamSize.

    Values of keys landing in the same bucket and stat kind (one key per input
    device, or per playlist variant) are summed. Buckets without any non-zero
    match count are left out, and so are levels left without children.
    """
    classifier = KeyClassifier(taxonomy)
    grouped = _group_by_quadruple(raw, classifier)

    build_children: Dict[str, StatNode] = {}
    for build_mode in taxonomy.build_modes:
        game_children: Dict[str, StatNode] = {}
        for game_mode in taxonomy.game_modes:
            comp_children: Dict[str, StatNode] = {}
            for comp_mode in taxonomy.comp_modes:
                if comp_mode == "bots" and not include_bots:
                    continue
                team_children: Dict[str, StatNode] = {}
                for team_size in taxonomy.team_sizes:
                    if taxonomy.is_excluded(game_mode, team_size):
                        continue
                    quadruple = (build_mode, game_mode, comp_mode, team_size)
                    if quadruple not in grouped:
                        continue
                    leaf = _build_leaf(grouped[quadruple], taxonomy)
                    if leaf is not None:
                        team_children[team_size] = leaf
                if team_children:
                    comp_children[comp_mode] = StatBranch(DIMENSIONS[3], team_children)
            if comp_children:
                game_children[game_mode] = StatBranch(DIMENSIONS[2], comp_children)
        if game_children:
            build_children[build_mode] = StatBranch(DIMENSIONS[1], game_children)

    tree = StatBranch(DIMENSIONS[0], build_children)
    logger.debug(
        f"Structured {len(raw)} raw stats into {len(list(iter_leaves(tree)))} buckets"
    )
    return tree


def collapse_to_team_sizes(
    tree: StatBranch, taxonomy: Taxonomy = DEFAULT_TAXONOMY
) -> StatBranch:
    """Sum counters across build, game and comp modes, keyed by team size only.

    Bots buckets never contribute. Rates are not carried over; annotate the
    collapsed tree afterwards.
    """
    totals: Dict[str, Dict[str, Number]] = {}
    for path, leaf in iter_leaves(tree):
        if "bots" in path:
            continue
        team_size = path[-1]
        bucket = totals.setdefault(
            team_size, {name: 0 for name in COLLAPSED_SEED_COUNTERS}
        )
        for name, value in leaf.counters.items():
            bucket[name] = bucket.get(name, 0) + value

    ordered = [size for size in taxonomy.team_sizes if size in totals]
    ordered += [size for size in totals if size not in ordered]
    return StatBranch(
        DIMENSIONS[3],
        {size: StatLeaf(counters=totals[size]) for size in ordered},
    )
