"""Operations over flat upstream stat maps.

A raw stat map is what the stats endpoint returns under ``stats``: opaque keys
mapped to cumulative counters or to ``lastmodified`` epoch timestamps. None of
these helpers mutate their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Union

from fnstats.classifier import KeyClassifier
from fnstats.taxonomy import (
    DEFAULT_TAXONOMY,
    DIMENSIONS,
    LASTMODIFIED,
    UNKNOWN,
    Taxonomy,
)
from fnstats.timeutils import format_time

Number = Union[int, float]
RawStatMap = Dict[str, Number]


@dataclass(frozen=True)
class Snapshot:
    """Cumulative stats from ``start_time`` (the history origin) to ``end_time``."""

    stats: Mapping[str, Number] = field(default_factory=dict)
    start_time: Optional[int] = None
    end_time: Optional[int] = None


def _stats_of(value: Union[Snapshot, Mapping[str, Number]]) -> Mapping[str, Number]:
    if isinstance(value, Snapshot):
        return value.stats
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"Expected a Snapshot or mapping, got {type(value).__name__}")


def _is_lastmodified(key: str) -> bool:
    return LASTMODIFIED in key


def subtract_snapshots(
    larger: Union[Snapshot, Mapping[str, Number]],
    smaller: Union[Snapshot, Mapping[str, Number]],
) -> RawStatMap:
    """Isolate the activity between two cumulative snapshots.

    ``larger`` must be the snapshot with the later end time. Every key seen on
    either side is kept; a side missing the key contributes 0. ``lastmodified``
    markers are not counts, so they carry the larger snapshot's value (or 0).
    """
    larger_stats = _stats_of(larger)
    smaller_stats = _stats_of(smaller)
    keys = list(dict.fromkeys([*larger_stats.keys(), *smaller_stats.keys()]))

    result: RawStatMap = {}
    for key in keys:
        larger_value = larger_stats.get(key) or 0
        if _is_lastmodified(key):
            result[key] = larger_value
        else:
            result[key] = larger_value - (smaller_stats.get(key) or 0)
    return result


def filter_raw_stats(
    raw: Mapping[str, Number],
    filters: Iterable[str] = (),
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
) -> RawStatMap:
    """Key-level counterpart of the structured result filter.

    Keys that cannot be placed in the tree (unknown game mode or team size, or a
    team size upstream never offers for the game mode) are dropped. Build and
    bots keys are excluded unless named; every named dimension is an allowlist.
    Input-device tokens are honoured here as well.
    """
    filters = list(filters or [])
    build_filters, game_filters, comp_filters, team_filters, input_filters = (
        [f for f in filters if f in taxonomy.vocabulary(dimension)]
        for dimension in (*DIMENSIONS, "inputType")
    )

    classifier = KeyClassifier(taxonomy)
    filtered: RawStatMap = {}
    for key, value in raw.items():
        info = classifier.classify(key)
        if info.game_mode == UNKNOWN or info.team_size == UNKNOWN:
            continue
        if taxonomy.is_excluded(info.game_mode, info.team_size):
            continue

        if build_filters:
            if info.build_mode not in build_filters:
                continue
        elif info.build_mode == "build":
            continue

        if game_filters and info.game_mode not in game_filters:
            continue

        if comp_filters:
            if info.comp_mode not in comp_filters:
                continue
        elif info.comp_mode == "bots":
            continue

        if team_filters and info.team_size not in team_filters:
            continue
        if input_filters and info.input_type not in input_filters:
            continue

        filtered[key] = value
    return filtered


def filter_by_stat_patterns(
    raw: Mapping[str, Number],
    stat_kinds: Iterable[str],
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
) -> RawStatMap:
    """Keep keys of the named stat kinds; lastmodified keys always survive."""
    patterns = [
        pattern
        for pattern in (taxonomy.stat_pattern(kind) for kind in stat_kinds or [])
        if pattern
    ]
    if not patterns:
        return dict(raw)
    return {
        key: value
        for key, value in raw.items()
        if _is_lastmodified(key) or any(pattern in key for pattern in patterns)
    }


def sorted_stats(raw: Mapping[str, Number]) -> RawStatMap:
    return {key: raw[key] for key in sorted(raw)}


def modified_times(
    raw: Mapping[str, Number], ascending: bool = False, limit: int = 0
) -> Dict[str, str]:
    entries = [
        (key, int(value)) for key, value in raw.items() if _is_lastmodified(key)
    ]
    entries.sort(key=lambda entry: entry[1], reverse=not ascending)
    if limit > 0:
        entries = entries[:limit]
    return {key: f"{format_time(stamp)} ({stamp})" for key, stamp in entries}


def latest_modified_timestamp(raw: Mapping[str, Number]) -> int:
    stamps = [int(value) for key, value in raw.items() if _is_lastmodified(key)]
    return max(stamps, default=0)


def stats_difference(
    later: Mapping[str, Number], earlier: Mapping[str, Number]
) -> Dict[str, Union[Number, str]]:
    """Changes between two cumulative snapshots, keyed on the later one."""
    diff: Dict[str, Union[Number, str]] = {}
    for key, value in later.items():
        if key not in earlier:
            diff[key] = value
            continue
        previous = earlier[key]
        if value == previous:
            continue
        if _is_lastmodified(key):
            diff[key] = format_time(int(value))
        else:
            diff[key] = value - previous
    return diff

