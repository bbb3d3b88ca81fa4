from __future__ import annotations

import logging
import math
from typing import Any, AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from fnstats.env import load_env
from fnstats.models import (
    HistoryReport,
    HistoryStepModel,
    PlayerReport,
    ReportMode,
    ReportOptions,
    RetrievalStrategy,
    TimeWindow,
)
from fnstats.report import get_player_report
from fnstats.retriever import WindowedStatsRetriever
from fnstats.settings import Settings
from fnstats.stat_tree import StatBranch
from fnstats.stats_client import AsyncStatsClient, StatsAPIError, StatsConfigError
from fnstats.timeutils import (
    format_time,
    last_time_window,
    parse_time,
    tomorrow_midnight_utc,
)

load_env()

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fortnite Window Stats API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json_safe(obj: Any) -> Any:
    """Recursively replace inf/nan rates with None so the payload is valid JSON."""
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_safe(v) for v in obj]
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj


async def get_stats_client() -> AsyncIterator[AsyncStatsClient]:
    try:
        client = AsyncStatsClient(
            access_token=settings.access_token,
            stats_url=settings.stats_api_url,
            account_url=settings.account_api_url,
            timeout=settings.request_timeout,
            debug_mode=settings.debug_mode,
        )
    except StatsConfigError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    try:
        yield client
    finally:
        await client.close()


def get_retriever(
    client: AsyncStatsClient = Depends(get_stats_client),
) -> WindowedStatsRetriever:
    return WindowedStatsRetriever(
        client.fetch_snapshot, history_origin=settings.history_origin
    )


def _resolve_window(
    start_time: Optional[str],
    end_time: Optional[str],
    last_count: Optional[int],
    last_unit: str,
) -> TimeWindow:
    if last_count is not None:
        return TimeWindow(**last_time_window(last_count, last_unit))
    if start_time is None:
        raise ValueError("Provide start_time (and optionally end_time) or last_count.")
    start = parse_time(start_time)
    end = parse_time(end_time) if end_time else tomorrow_midnight_utc()
    return TimeWindow(start_time=start, end_time=end)


async def _build_player_report(
    account_id: str,
    retriever: WindowedStatsRetriever,
    start_time: Optional[str],
    end_time: Optional[str],
    last_count: Optional[int],
    last_unit: str,
    filters: List[str],
    stats: List[str],
    mode: ReportMode,
    strategy: Optional[RetrievalStrategy],
) -> PlayerReport:
    window = _resolve_window(start_time, end_time, last_count, last_unit)
    effective = retriever.resolve_strategy(
        window, strategy or settings.retrieval_strategy
    )
    options = ReportOptions(
        filters=filters,
        stat_pattern_keys=stats,
        mode=mode,
        retrieval_strategy=effective,
    )
    logger.info(
        f"Report for {account_id}: {format_time(window.start_time)} to {format_time(window.end_time)} "
        f"(mode={mode}, filters={filters})"
    )
    report = await get_player_report(account_id, window, options, retriever=retriever)
    payload = report.to_dict() if isinstance(report, StatBranch) else report
    return PlayerReport(
        account_id=account_id,
        start_time=window.start_time,
        end_time=window.end_time,
        mode=mode,
        strategy=effective,
        filters=filters,
        stats=_json_safe(payload),
    )


@app.get("/api/report/{account_id}", response_model=PlayerReport)
async def player_report(
    account_id: str,
    start_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
    last_count: Optional[int] = Query(None, ge=1),
    last_unit: str = Query("day"),
    filters: List[str] = Query([]),
    stats: List[str] = Query([]),
    mode: ReportMode = Query("structured"),
    strategy: Optional[RetrievalStrategy] = Query(None),
    retriever: WindowedStatsRetriever = Depends(get_retriever),
) -> PlayerReport:
    try:
        return await _build_player_report(
            account_id,
            retriever,
            start_time,
            end_time,
            last_count,
            last_unit,
            filters,
            stats,
            mode,
            strategy,
        )
    except StatsAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@app.get("/api/players/{display_name}/report", response_model=PlayerReport)
async def player_report_by_name(
    display_name: str,
    start_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
    last_count: Optional[int] = Query(None, ge=1),
    last_unit: str = Query("day"),
    filters: List[str] = Query([]),
    stats: List[str] = Query([]),
    mode: ReportMode = Query("structured"),
    strategy: Optional[RetrievalStrategy] = Query(None),
    client: AsyncStatsClient = Depends(get_stats_client),
) -> PlayerReport:
    try:
        account_id = await client.lookup_account_id(display_name)
        logger.info(f"Found player: {display_name} ({account_id})")
        retriever = WindowedStatsRetriever(
            client.fetch_snapshot, history_origin=settings.history_origin
        )
        return await _build_player_report(
            account_id,
            retriever,
            start_time,
            end_time,
            last_count,
            last_unit,
            filters,
            stats,
            mode,
            strategy,
        )
    except StatsAPIError as exc:
        if exc.status == 404:
            raise HTTPException(status_code=404, detail=str(exc))
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@app.get("/api/history/{account_id}", response_model=HistoryReport)
async def snapshot_history(
    account_id: str,
    filters: List[str] = Query([]),
    max_steps: Optional[int] = Query(None, ge=1),
    retriever: WindowedStatsRetriever = Depends(get_retriever),
) -> HistoryReport:
    try:
        steps = await retriever.walk_snapshot_history(
            account_id,
            stop_time=settings.history_stop,
            filters=filters,
            delay=settings.history_step_delay,
            max_steps=max_steps or settings.history_max_steps,
        )
    except StatsAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return HistoryReport(
        account_id=account_id,
        stop_time=settings.history_stop,
        steps=[
            HistoryStepModel(
                end_time=step.end_time,
                end_time_formatted=format_time(step.end_time),
                stat_count=len(step.stats),
                latest_modified=step.latest_modified or None,
                differences=step.differences,
            )
            for step in steps
        ],
    )


@app.get("/api/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "debug_mode": settings.debug_mode,
        "retrieval_strategy": settings.retrieval_strategy,
        "history_origin": settings.history_origin,
    }
