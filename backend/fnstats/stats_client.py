from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import aiohttp

from fnstats.raw_ops import Snapshot

logger = logging.getLogger(__name__)


class StatsAPIError(RuntimeError):
    def __init__(
        self, message: str, status: Optional[int] = None, url: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class StatsConfigError(ValueError):
    pass


def _build_auth_headers(access_token: str) -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def _window_params(window: Mapping[str, int]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    start_time = window.get("start_time")
    end_time = window.get("end_time")
    if start_time is not None:
        params["startTime"] = str(int(start_time))
    if end_time is not None:
        params["endTime"] = str(int(end_time))
    return params


class AsyncStatsClient:
    """Thin aiohttp client for the stats proxy and account lookup endpoints.

    Authentication happens elsewhere; this client only presents the bearer
    token it is given. Errors are raised as :class:`StatsAPIError` and never
    retried here.
    """

    def __init__(
        self,
        access_token: str,
        stats_url: str,
        account_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = 30,
        debug_mode: bool = False,
    ) -> None:
        if not access_token and not debug_mode:
            raise StatsConfigError(
                "STATS_ACCESS_TOKEN is required when debug_mode is False."
            )
        self.access_token = access_token
        self.stats_url = stats_url.rstrip("/")
        self.account_url = account_url.rstrip("/")
        self.session = session
        self._own_session = session is None
        self.timeout = timeout

    async def __aenter__(self) -> "AsyncStatsClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def fetch_snapshot(
        self, account_id: str, window: Mapping[str, int]
    ) -> Snapshot:
        url = f"{self.stats_url}/account/{quote(account_id, safe='')}"
        payload = await self.get(url, params=_window_params(window))
        stats = payload.get("stats") if isinstance(payload, dict) else None
        if not isinstance(stats, dict):
            stats = {}
        return Snapshot(
            stats=stats,
            start_time=window.get("start_time"),
            end_time=window.get("end_time"),
        )

    async def lookup_account_id(self, display_name: str) -> str:
        url = f"{self.account_url}/displayName/{quote(display_name, safe='')}"
        payload = await self.get(url)
        account_id = payload.get("id") if isinstance(payload, dict) else None
        if not account_id:
            raise StatsAPIError(
                f"Stats API error: no account found for {display_name}",
                status=404,
                url=url,
            )
        return str(account_id)

    async def get(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        if self.session is None:
            self.session = aiohttp.ClientSession()

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        logger.debug(f"GET {url} params={params}")
        try:
            async with self.session.get(
                url,
                headers=_build_auth_headers(self.access_token),
                params=params,
                timeout=timeout,
            ) as response:
                if response.status >= 400:
                    detail = await self._extract_error_detail(response)
                    raise StatsAPIError(
                        f"Stats API error: {response.status} - {detail}",
                        status=response.status,
                        url=url,
                    )
                text = await response.text()
        except asyncio.TimeoutError as exc:
            raise StatsAPIError(
                f"Stats API error: timeout after {self.timeout}s", url=url
            ) from exc
        except aiohttp.ClientError as exc:
            raise StatsAPIError(f"Stats API error: {exc}", url=url) from exc

        try:
            return json.loads(text)
        except ValueError as exc:
            raise StatsAPIError(
                f"Non-JSON response from Stats API: {exc}", url=url
            ) from exc

    async def _extract_error_detail(self, response: aiohttp.ClientResponse) -> str:
        text = (await response.text()).strip()
        try:
            payload = json.loads(text)
        except ValueError:
            return text or "No response body"

        if isinstance(payload, dict):
            if "errorMessage" in payload:
                return str(payload["errorMessage"])
            if "errorCode" in payload:
                return str(payload["errorCode"])
            if "error" in payload:
                return str(payload["error"])
            if "message" in payload:
                return str(payload["message"])
            return json.dumps(payload)

        return text or "No response body"

    async def close(self) -> None:
        if self._own_session and self.session:
            await self.session.close()
            self.session = None
