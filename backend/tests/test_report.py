from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Mapping

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fnstats.models import ReportOptions, TimeWindow
from fnstats.raw_ops import Snapshot
from fnstats.report import build_report, get_player_report
from fnstats.retriever import WindowedStatsRetriever
from fnstats.stat_tree import StatBranch
from fnstats.stats_client import StatsAPIError

ZB_SOLO = "keyboardmouse_m0_playlist_nobuildbr_solo"
BUILD_SOLO = "gamepad_m0_playlist_defaultsolo"
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
WINDOW = TimeWindow(start_time=1717372800, end_time=1718150400)

RAW: Dict[str, int] = {
    f"br_matchesplayed_{ZB_SOLO}": 10,
    f"br_placetop1_{ZB_SOLO}": 2,
    f"br_kills_{ZB_SOLO}": 16,
    f"br_minutesplayed_{ZB_SOLO}": 40,
}


def _build_retriever(raw: Mapping[str, int]) -> WindowedStatsRetriever:
    async def fetch(account_id: str, window: Mapping[str, int]) -> Snapshot:
        return Snapshot(stats=dict(raw), **window)

    return WindowedStatsRetriever(fetch, clock=lambda: NOW)


def _direct(**kwargs) -> ReportOptions:
    return ReportOptions(retrieval_strategy="direct", **kwargs)


def test_structured_report_end_to_end() -> None:
    report = asyncio.run(
        get_player_report("abc", WINDOW, _direct(), retriever=_build_retriever(RAW))
    )

    assert isinstance(report, StatBranch)
    assert report.to_dict() == {
        "zeroBuild": {
            "regular": {
                "pubs": {
                    "solo": {
                        "matches": 10,
                        "wins": 2,
                        "kills": 16,
                        "minutes": 40,
                        "winRate": 0.2,
                        "killsPerDeath": 2,
                        "killsPer20": 8,
                        "minutesPerKill": 2.5,
                    }
                }
            }
        }
    }


def test_structured_report_hides_build_unless_requested() -> None:
    raw = {**RAW, f"br_matchesplayed_{BUILD_SOLO}": 4, f"br_kills_{BUILD_SOLO}": 1}
    retriever = _build_retriever(raw)

    default = asyncio.run(get_player_report("abc", WINDOW, _direct(), retriever=retriever))
    build_only = asyncio.run(
        get_player_report("abc", WINDOW, _direct(filters=["build"]), retriever=retriever)
    )

    assert list(default) == ["zeroBuild"]
    assert list(build_only) == ["build"]
    assert build_only["build"]["regular"]["pubs"]["solo"]["killsPerDeath"] == 0.25


def test_trn_report_collapses_to_team_sizes() -> None:
    raw = {**RAW, f"br_matchesplayed_{BUILD_SOLO}": 10, f"br_placetop1_{BUILD_SOLO}": 3}

    report = build_report(raw, _direct(mode="trn"), _build_retriever(raw))

    assert report.dimension == "teamSize"
    solo = report["solo"]
    assert solo["matches"] == 20
    assert solo["wins"] == 5
    assert solo["winRate"] == 0.25

    zero_build_only = build_report(raw, _direct(mode="trn", filters=["zeroBuild"]), _build_retriever(raw))
    assert zero_build_only["solo"]["matches"] == 10


def test_raw_report_is_sorted_and_filtered() -> None:
    raw = {**RAW, f"br_kills_{BUILD_SOLO}": 3, "s11_social_bp_level": 100}
    retriever = _build_retriever(raw)

    unfiltered = build_report(raw, _direct(mode="raw"), retriever)
    kills = build_report(
        raw, _direct(mode="raw", filters=["zeroBuild"], stat_pattern_keys=["kills"]), retriever
    )

    assert list(unfiltered) == sorted(raw)
    assert kills == {f"br_kills_{ZB_SOLO}": 16}


def test_triple_report_uses_the_window_difference() -> None:
    async def fetch(account_id: str, window: Mapping[str, int]) -> Snapshot:
        scale = 2 if window["end_time"] == WINDOW.end_time else 1
        return Snapshot(stats={key: value * scale for key, value in RAW.items()}, **window)

    retriever = WindowedStatsRetriever(fetch, clock=lambda: NOW)

    report = asyncio.run(get_player_report("abc", WINDOW, ReportOptions(), retriever=retriever))

    assert report["zeroBuild"]["regular"]["pubs"]["solo"]["matches"] == 10


def test_report_propagates_upstream_errors() -> None:
    async def fetch(account_id: str, window: Mapping[str, int]) -> Snapshot:
        raise StatsAPIError("Stats API error: 500 - boom", status=500)

    retriever = WindowedStatsRetriever(fetch, clock=lambda: NOW)

    with pytest.raises(StatsAPIError):
        asyncio.run(get_player_report("abc", WINDOW, retriever=retriever))
