"""
weather_service.py — OpenWeather One Call 3.0 alert feed client.

Fetches the ``alerts`` block of the One Call response for a coordinate and
turns it into typed WeatherAdvisory objects for the reconciler.

OpenWeather API Reference:
    https://openweathermap.org/api/one-call-3#hist_parameter

Relevant response shape:

    {
      "lat": 28.7041, "lon": 77.1025, ...,
      "alerts": [
        {
          "sender_name": "India Meteorological Department",
          "event": "Flood Warning",
          "start": 1718000000,          # unix seconds, UTC
          "end": 1718086400,
          "description": "...",
          "tags": ["Flood", "Rain"]
        }
      ]
    }

A response without an ``alerts`` key means "no active advisories", not an
error.

Error Handling Strategy
========================
    Every failure becomes an UpstreamFetchError with a FetchStatus:

    network_error — DNS, connection refused, reset
    timeout       — no response within WEATHER_FETCH_TIMEOUT (10 s)
    api_error     — non-2xx status (401 bad key, 429 quota, 5xx)
    malformed     — body is not a JSON object, or ``alerts`` is not a list

    A single bad entry (no event, unparseable start) is logged and skipped;
    the other advisories in the same response are still returned.

    No retries here: the next scheduled pass is the retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

SERVICE_NAME = "openweather"


class FetchStatus(str, Enum):
    """Failure class of a feed fetch."""
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    MALFORMED = "malformed"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class WeatherAdvisory:
    """One entry of the feed's ``alerts`` array."""
    event: str
    start: datetime
    end: Optional[datetime] = None
    description: str = ""
    sender_name: str = ""
    tags: List[str] = field(default_factory=list)


def _epoch_to_utc(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def parse_advisories(payload: Any) -> List[WeatherAdvisory]:
    """
    Extract advisories from a One Call response body.

    Raises UpstreamFetchError(status=malformed) when the body is not an
    object or ``alerts`` is not a list. Entries lacking a usable
    ``event``/``start`` are skipped with a warning.
    """
    if not isinstance(payload, dict):
        raise UpstreamFetchError(
            SERVICE_NAME, "response body is not a JSON object",
            status=FetchStatus.MALFORMED.value,
        )

    raw_alerts = payload.get("alerts") or []
    if not isinstance(raw_alerts, list):
        raise UpstreamFetchError(
            SERVICE_NAME, "'alerts' is not a list",
            status=FetchStatus.MALFORMED.value,
        )

    advisories: List[WeatherAdvisory] = []
    for index, entry in enumerate(raw_alerts):
        try:
            event = entry["event"]
            if not isinstance(event, str) or not event.strip():
                raise ValueError("empty event")
            tags = entry.get("tags") or []
            advisories.append(WeatherAdvisory(
                event=event,
                start=_epoch_to_utc(entry["start"]),
                end=_epoch_to_utc(entry["end"]) if entry.get("end") is not None else None,
                description=entry.get("description") or "",
                sender_name=entry.get("sender_name") or "",
                tags=[str(t) for t in tags] if isinstance(tags, list) else [str(tags)],
            ))
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            logger.warning(
                "Skipping malformed OpenWeather alert entry #%d: %s: %s",
                index, type(e).__name__, e,
                extra={"source": SERVICE_NAME},
            )

    return advisories


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class OpenWeatherClient:
    """
    Async client for the One Call alert feed.

    Usage:
        client = OpenWeatherClient(api_key="...")
        advisories = await client.fetch_advisories(28.7041, 77.1025)
        await client.close()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        units: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.timeout = timeout if timeout is not None else settings.WEATHER_FETCH_TIMEOUT
        self.units = units or settings.OPENWEATHER_UNITS
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def fetch_advisories(self, latitude: float, longitude: float) -> List[WeatherAdvisory]:
        """
        Fetch active advisories for a coordinate.

        Raises UpstreamFetchError on any transport, status or body problem.
        """
        params: Dict[str, Any] = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "units": self.units,
            "exclude": "minutely,hourly,daily",
        }
        client = await self._get_client()

        try:
            response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamFetchError(
                SERVICE_NAME, f"timed out after {self.timeout:.0f}s",
                status=FetchStatus.TIMEOUT.value,
            ) from e
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(
                SERVICE_NAME, f"HTTP {e.response.status_code}",
                status=FetchStatus.API_ERROR.value,
                http_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(
                SERVICE_NAME, str(e) or type(e).__name__,
                status=FetchStatus.NETWORK_ERROR.value,
            ) from e
        except ValueError as e:
            raise UpstreamFetchError(
                SERVICE_NAME, "response is not valid JSON",
                status=FetchStatus.MALFORMED.value,
            ) from e

        advisories = parse_advisories(payload)
        logger.debug(
            "Fetched %d advisories for lat=%.4f, lon=%.4f",
            len(advisories), latitude, longitude,
        )
        return advisories
