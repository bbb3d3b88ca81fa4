from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
)

from fnstats.models import TimeWindow
from fnstats.raw_ops import (
    Number,
    RawStatMap,
    Snapshot,
    filter_raw_stats,
    latest_modified_timestamp,
    sorted_stats,
    stats_difference,
    subtract_snapshots,
)
from fnstats.settings import DEFAULT_HISTORY_ORIGIN
from fnstats.stats_client import StatsConfigError
from fnstats.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from fnstats.timeutils import format_time, midnight_utc, tomorrow_midnight_utc, utc_now

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[str, Mapping[str, int]], Awaitable[Any]]

STRATEGIES = ("triple", "direct")


def _snapshot_stats(result: Any) -> Mapping[str, Number]:
    """Accept a Snapshot or a ``{"stats": {...}}`` payload from the fetcher."""
    if isinstance(result, Snapshot):
        return result.stats
    if isinstance(result, Mapping):
        stats = result.get("stats")
        if not isinstance(stats, Mapping):
            raise TypeError("Snapshot payload has no \"stats\" mapping")
        return stats
    raise TypeError(
        f"Snapshot fetcher returned {type(result).__name__}, expected a Snapshot or mapping"
    )


@dataclass(frozen=True)
class HistoryStep:
    end_time: int
    stats: Dict[str, Number]
    differences: Dict[str, Any] = field(default_factory=dict)
    latest_modified: int = 0


class WindowedStatsRetriever:
    """Isolate a reporting window from cumulative upstream snapshots.

    The stats endpoint only ever reports totals accumulated since the start of
    recorded history, sampled at irregular snapshot times. The default
    ``triple`` strategy asks for totals up to the window end (clamped to
    tonight's midnight) and totals up to the window start, then subtracts.
    ``direct`` hands the window to upstream as-is; it returns nothing useful
    when fewer than two upstream snapshots fall inside the window.
    """

    def __init__(
        self,
        fetch_snapshot: SnapshotFetcher,
        history_origin: int = DEFAULT_HISTORY_ORIGIN,
        clock: Callable[[], datetime] = utc_now,
        taxonomy: Taxonomy = DEFAULT_TAXONOMY,
    ) -> None:
        self.fetch_snapshot = fetch_snapshot
        self.history_origin = history_origin
        self.clock = clock
        self.taxonomy = taxonomy

    def resolve_strategy(self, window: TimeWindow, strategy: str = "triple") -> str:
        if strategy not in STRATEGIES:
            raise StatsConfigError(f"Unsupported retrieval strategy: {strategy}")
        if strategy == "triple" and window.start_time <= self.history_origin:
            logger.info(
                f"Start time {format_time(window.start_time)} is at or before the history origin "
                f"{format_time(self.history_origin)}; using direct retrieval for lifetime stats"
            )
            return "direct"
        return strategy

    async def retrieve_window(
        self, account_id: str, window: TimeWindow, strategy: str = "triple"
    ) -> RawStatMap:
        strategy = self.resolve_strategy(window, strategy)
        if strategy == "direct":
            logger.info(
                f"Direct retrieval: {format_time(window.start_time)} to {format_time(window.end_time)}"
            )
            stats = _snapshot_stats(
                await self.fetch_snapshot(account_id, window.as_query())
            )
            logger.info(f"Retrieved {len(stats)} raw stats")
            return dict(stats)

        end_or_now = min(window.end_time, tomorrow_midnight_utc(self.clock()))
        to_end = {"start_time": self.history_origin, "end_time": end_or_now}
        to_start = {"start_time": self.history_origin, "end_time": window.start_time}
        logger.info(
            f"Triple retrieval for {format_time(window.start_time)} to {format_time(window.end_time)}: "
            f"cumulative to {format_time(end_or_now)} minus cumulative to {format_time(window.start_time)}"
        )

        # Completion order does not matter; the later snapshot is always the minuend.
        later, earlier = await self._fetch_pair(account_id, to_end, to_start)
        later_stats = _snapshot_stats(later)
        earlier_stats = _snapshot_stats(earlier)
        logger.info(
            f"Retrieved {len(later_stats)} raw stats to window end, {len(earlier_stats)} to window start"
        )

        isolated = subtract_snapshots(later_stats, earlier_stats)
        logger.info(f"Resulting in {len(isolated)} raw stats for the isolated window")
        return isolated

    async def _fetch_pair(
        self,
        account_id: str,
        first: Mapping[str, int],
        second: Mapping[str, int],
    ) -> Tuple[Any, Any]:
        """Fetch two windows concurrently; the first failure cancels the other."""
        tasks = [
            asyncio.ensure_future(self.fetch_snapshot(account_id, first)),
            asyncio.ensure_future(self.fetch_snapshot(account_id, second)),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()
        return tasks[0].result(), tasks[1].result()

    async def walk_snapshot_history(
        self,
        account_id: str,
        stop_time: int,
        filters: Iterable[str] = (),
        delay: float = 5.0,
        max_steps: int = 50,
    ) -> List[HistoryStep]:
        """Step back through upstream snapshots using their lastmodified stamps.

        Each step fetches totals from the history origin to ``end_time`` and
        records what changed relative to the step before it (the later one).
        The next ``end_time`` is midnight UTC of the newest lastmodified stamp.
        """
        filters = list(filters or [])
        end_time = tomorrow_midnight_utc(self.clock())
        steps: List[HistoryStep] = []
        previous: Optional[HistoryStep] = None

        while len(steps) < max_steps:
            logger.info(
                f"History step {len(steps) + 1}: {format_time(self.history_origin)} to {format_time(end_time)}"
            )
            result = await self.fetch_snapshot(
                account_id, {"start_time": self.history_origin, "end_time": end_time}
            )
            stats: Mapping[str, Number] = _snapshot_stats(result)
            if filters:
                stats = filter_raw_stats(stats, filters, self.taxonomy)
            stats = sorted_stats(stats)

            differences = stats_difference(previous.stats, stats) if previous else {}
            latest = latest_modified_timestamp(stats)
            step = HistoryStep(
                end_time=end_time,
                stats=stats,
                differences=differences,
                latest_modified=latest,
            )
            steps.append(step)
            previous = step

            if latest == 0 or latest <= stop_time:
                logger.info("Reached end of history: no earlier lastmodified stamps")
                break
            next_end = midnight_utc(latest)
            if next_end <= stop_time or next_end >= end_time:
                logger.info(f"Reached end of history at {format_time(end_time)}")
                break
            end_time = next_end
            if delay > 0:
                await asyncio.sleep(delay)

        return steps
