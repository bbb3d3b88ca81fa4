from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

# Chapter 1 Season 1 (2017-10-25 UTC); nothing is recorded upstream before it.
DEFAULT_HISTORY_ORIGIN = 1508889600
# Chapter 5 Season 1 (2023-12-08 UTC); older snapshots are too sparse to walk.
DEFAULT_HISTORY_STOP = 1701993600


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _list_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    access_token: str
    debug_mode: bool
    stats_api_url: str
    account_api_url: str
    request_timeout: int
    history_origin: int
    retrieval_strategy: str
    history_stop: int
    history_step_delay: float
    history_max_steps: int
    log_level: str
    cors_origins: List[str]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            access_token=os.getenv("STATS_ACCESS_TOKEN", ""),
            debug_mode=_bool_env("DEBUG_MODE"),
            stats_api_url=os.getenv(
                "STATS_API_URL",
                "https://statsproxy-public-service-live.ol.epicgames.com/statsproxy/api/statsv2",
            ),
            account_api_url=os.getenv(
                "ACCOUNT_API_URL",
                "https://account-public-service-prod.ol.epicgames.com/account/api/public/account",
            ),
            request_timeout=_int_env("STATS_REQUEST_TIMEOUT", 30),
            history_origin=_int_env("STATS_HISTORY_ORIGIN", DEFAULT_HISTORY_ORIGIN),
            retrieval_strategy=os.getenv("STATS_RETRIEVAL_STRATEGY", "triple")
            .strip()
            .lower(),
            history_stop=_int_env("STATS_HISTORY_STOP", DEFAULT_HISTORY_STOP),
            history_step_delay=float(os.getenv("STATS_HISTORY_STEP_DELAY", "5")),
            history_max_steps=_int_env("STATS_HISTORY_MAX_STEPS", 50),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            cors_origins=_list_env("CORS_ORIGINS")
            or ["http://localhost:3000", "http://localhost:3001"],
        )
