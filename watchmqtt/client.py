import math
import re
import time

import httpx

from watchmqtt.logging_config import get_logger
from watchmqtt.models import HealthData, PageResult

logger = get_logger(__name__)

CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")
HEALTH_PATH = "/api/v1/db/health"


class ApiError(Exception):
    """A request to the data or health API failed.

    status_code is None for transport failures (DNS, refused, timeout).
    """

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def parse_total_count(header: str | None, fallback: int) -> int:
    """Recover the total from a ``start-end/total`` Content-Range header.

    Falls back to ``fallback`` (the number of returned rows) when the header is
    missing or unparsable, which under-counts once the total exceeds a page.
    """
    if header:
        m = CONTENT_RANGE_TOTAL.search(header.strip())
        if m:
            return int(m.group(1))
    return fallback


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / page_size)


class _HttpApi:
    def __init__(self, base_url: str, timeout: float = 30.0,
                 transport: httpx.BaseTransport | None = None):
        self._base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self):
        self._http.close()
        logger.debug("Closed HTTP client for %s", self._base_url)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _get(self, path: str, params=None, headers: dict | None = None) -> httpx.Response:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s | params=%s", url, params)
        start = time.monotonic()
        try:
            response = self._http.get(path, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("GET %s failed: HTTP %d", url, status)
            raise ApiError(f"Request failed with status code {status}", url, status) from e
        except httpx.TransportError as e:
            logger.warning("GET %s failed: %s", url, e)
            raise ApiError(f"Network error: {e}", url) from e
        except httpx.HTTPError as e:
            # undecodable body, redirect loop
            logger.warning("GET %s failed: %s", url, e)
            raise ApiError(f"Invalid response: {e}", url) from e
        logger.debug("GET %s OK: %.2fs", url, time.monotonic() - start)
        return response

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise ApiError("Response is not valid JSON", str(response.url), response.status_code) from e


class ApiClient(_HttpApi):
    """PostgREST-style data API (events, sessions, clients, subscriptions)."""

    def get_rows(self, path: str, params=None, count: bool = False) -> tuple[list[dict], str | None]:
        headers = {"Prefer": "count=exact"} if count else None
        response = self._get(path, params=params, headers=headers)
        data = self._json(response)
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise ApiError("Expected a JSON array of rows", str(response.url), response.status_code)
        logger.debug("%s returned %d rows", path, len(data))
        return data, response.headers.get("content-range")

    def fetch_page(self, path: str, params, page: int, page_size: int) -> PageResult:
        rows, content_range = self.get_rows(path, params=params, count=True)
        total = parse_total_count(content_range, len(rows))
        return PageResult(
            rows=rows,
            total_items=total,
            total_pages=total_pages(total, page_size),
            page=page,
            page_size=page_size,
        )


class HealthClient(_HttpApi):
    """Database / Prometheus health endpoint."""

    def get_health(self, datname: str = "watchmqtt") -> HealthData:
        response = self._get(HEALTH_PATH, params={"datname": datname})
        data = self._json(response)
        if not isinstance(data, dict):
            raise ApiError("Expected a JSON object", str(response.url), response.status_code)
        return HealthData.from_dict(data, datname=datname)
