# ============================================================================
# PROBE FETCHER
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Health - Stats fetcher interface and default implementation
# PURPOSE: One bounded GET against Envoy's stats endpoint
# CREATED: 12 OCT 2026
# ============================================================================
"""
Probe Fetcher

A StatsFetcher performs exactly one bounded-timeout fetch of Envoy's
stats and returns the status code and body, or raises. The Watcher owns
one fetcher, chosen at construction time:

- HttpStatsFetcher: production implementation (httpx)
- tests supply their own StatsFetcher subclasses

There is no setter; swapping the fetcher of a Watcher that is already
serving probes is not supported.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from core.config import DEFAULT_STATS_URL
from core.errors import FetchError


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one successful round trip to the stats endpoint."""
    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Only a 200 counts as healthy."""
        return self.status_code == 200


class StatsFetcher(ABC):
    """Base class for ways of fetching Envoy stats."""

    @abstractmethod
    async def fetch(self, timeout: float) -> ProbeResult:
        """
        Fetch stats once.

        Args:
            timeout: Upper bound for the whole round trip, in seconds

        Returns:
            ProbeResult with the status code and full body

        Raises:
            FetchError: if the request could not be built, sent, or read
        """


class HttpStatsFetcher(StatsFetcher):
    """
    Fetch stats from Envoy's admin listener over HTTP.

    A shared AsyncClient may be supplied (the app closes it on shutdown);
    otherwise a short-lived client is created per fetch.
    """

    def __init__(
        self,
        url: str = DEFAULT_STATS_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._client = client

    async def fetch(self, timeout: float) -> ProbeResult:
        if self._client is not None:
            return await self._fetch(self._client, timeout)

        async with httpx.AsyncClient() as client:
            return await self._fetch(client, timeout)

    async def _fetch(self, client: httpx.AsyncClient, timeout: float) -> ProbeResult:
        try:
            request = client.build_request("GET", self.url, timeout=timeout)
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            # Only reachable with a broken stats URL
            raise FetchError(f"error creating request: {e}") from e

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            # Normal while Envoy is still starting
            raise FetchError(f"error fetching stats: {e}") from e

        try:
            body = await response.aread()
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise FetchError(f"error reading body: {e}") from e
        finally:
            await response.aclose()

        return ProbeResult(status_code=response.status_code, body=body)


__all__ = ["ProbeResult", "StatsFetcher", "HttpStatsFetcher"]
