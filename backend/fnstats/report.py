from __future__ import annotations

import logging
import time
from typing import Optional, Union

from fnstats.models import ReportOptions, TimeWindow
from fnstats.rates import annotate_rates
from fnstats.raw_ops import (
    RawStatMap,
    filter_by_stat_patterns,
    filter_raw_stats,
    sorted_stats,
)
from fnstats.result_filter import FilterSelection, filter_tree
from fnstats.retriever import WindowedStatsRetriever
from fnstats.stat_tree import StatBranch
from fnstats.stats_client import StatsConfigError
from fnstats.structurer import collapse_to_team_sizes, structure_stats

logger = logging.getLogger(__name__)


def build_report(
    raw: RawStatMap, options: ReportOptions, retriever: WindowedStatsRetriever
) -> Union[StatBranch, RawStatMap]:
    """Shape an isolated-window raw map according to ``options.mode``."""
    taxonomy = retriever.taxonomy
    filters = list(options.filters)

    if options.mode == "raw":
        stats = filter_raw_stats(raw, filters, taxonomy) if filters else dict(raw)
        if options.stat_pattern_keys:
            stats = filter_by_stat_patterns(stats, options.stat_pattern_keys, taxonomy)
        return sorted_stats(stats)

    include_bots = "bots" in filters
    t0 = time.perf_counter()
    tree = structure_stats(raw, include_bots=include_bots, taxonomy=taxonomy)
    logger.info(f"[TIMING] structure: {time.perf_counter() - t0:.3f}s")

    if options.mode == "trn":
        # Unfiltered, the tracker-style summary spans both build modes.
        if not FilterSelection.from_tokens(filters, taxonomy).is_empty:
            tree = filter_tree(tree, filters, taxonomy)
        return annotate_rates(collapse_to_team_sizes(tree, taxonomy))

    if options.mode == "structured":
        t0 = time.perf_counter()
        annotated = annotate_rates(tree)
        logger.info(f"[TIMING] annotate: {time.perf_counter() - t0:.3f}s")
        return filter_tree(annotated, filters, taxonomy)

    raise StatsConfigError(f"Unsupported report mode: {options.mode}")


async def get_player_report(
    account_id: str,
    window: TimeWindow,
    options: Optional[ReportOptions] = None,
    *,
    retriever: WindowedStatsRetriever,
) -> Union[StatBranch, RawStatMap]:
    """Retrieve one player's stats for ``window`` and shape them into a report.

    Returns a :class:`StatBranch` tree for the ``structured`` and ``trn``
    modes and a key-sorted raw stat map for ``raw``. Upstream failures
    propagate unchanged.
    """
    options = options or ReportOptions()

    total_start = time.perf_counter()
    raw = await retriever.retrieve_window(
        account_id, window, strategy=options.retrieval_strategy
    )
    logger.info(
        f"[TIMING] retrieve_window: {time.perf_counter() - total_start:.2f}s ({len(raw)} raw stats)"
    )

    report = build_report(raw, options, retriever)
    logger.info(f"[TIMING] TOTAL: {time.perf_counter() - total_start:.2f}s")
    return report
