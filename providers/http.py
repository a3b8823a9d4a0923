import asyncio
import time
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from .base import UpstreamClient
from aggregation.errors import UpstreamError
from aggregation.logging_config import audit_log


class RateLimiter:
    """Simple in-memory rate limiter for per-process request limiting."""

    def __init__(self, max_requests: int, time_window: int):
        self.max_requests = max_requests
        self.time_window = time_window
        self.requests: List[float] = []
        self.lock = asyncio.Lock()

    async def acquire(self):
        """Acquire a rate limit token, waiting if necessary."""
        async with self.lock:
            while True:
                now = time.monotonic()
                # Remove old requests outside the time window
                self.requests = [
                    req_time
                    for req_time in self.requests
                    if now - req_time < self.time_window
                ]

                if len(self.requests) < self.max_requests:
                    self.requests.append(now)
                    return

                # Wait until the oldest request expires
                sleep_time = self.time_window - (now - self.requests[0]) + 0.1
                audit_log(stage="rate_limit", action="waiting", sleep_time=sleep_time)
                await asyncio.sleep(sleep_time)


class HttpUpstreamClient(UpstreamClient):
    """requests-backed client: one GET per call, no retries.

    The blocking request runs in a worker thread so the event loop keeps
    serving other queries while it waits.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        config: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = config.get("timeout", 10.0)
        self.rate_limiter = RateLimiter(
            max_requests=config.get("rate_limit_requests", 10),
            time_window=config.get("rate_limit_window", 60),
        )

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=0)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update(
            {"User-Agent": config.get("user_agent", "college-sports-gateway/1.0")}
        )
        if headers:
            self.session.headers.update(headers)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a single GET request and decode the JSON body."""
        url = self.url_for(path)
        await self.rate_limiter.acquire()

        start_time = time.monotonic()
        audit_log(stage="upstream_request", provider=self.name, method="GET", url=url, params=params)

        try:
            response = await asyncio.to_thread(
                self.session.get, url, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            audit_log(level="WARNING", stage="upstream_error", provider=self.name, url=url, error=str(e))
            raise UpstreamError(
                f"{self.name} request failed: {e}", provider=self.name, url=url
            ) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        audit_log(
            stage="upstream_response",
            provider=self.name,
            status_code=response.status_code,
            latency_ms=round(latency_ms, 2),
            url=url,
        )

        if not 200 <= response.status_code < 300:
            audit_log(
                level="WARNING",
                stage="upstream_error",
                provider=self.name,
                status_code=response.status_code,
                url=url,
            )
            raise UpstreamError(
                f"{self.name} returned status {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{self.name} returned a body that is not JSON",
                provider=self.name,
                status_code=response.status_code,
                url=url,
            ) from e

    def close(self) -> None:
        self.session.close()
