# ============================================================================
# ENVOY WATCHER
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Health - Liveness/readiness state
# PURPOSE: Turn "can we fetch Envoy stats" into alive/ready booleans
# CREATED: 12 OCT 2026
# ============================================================================
"""
Envoy Watcher

Keeps an eye on a running Envoy (and only Envoy) and says whether it is
alive and ready.

At the moment "alive" and "ready" mean the same thing. Both is_alive()
and is_ready() exist so they can be monitored separately later without
changing callers.

State is a single boolean: did the most recent probe succeed? It starts
out False, so nothing is healthy until a probe says so. Concurrent probes
are not coalesced; whichever finishes last decides the state.
"""

import asyncio
import threading
from typing import Optional

from core.config import DEFAULT_PROBE_TIMEOUT
from core.logging import get_logger, ComponentType
from health.core import HttpStatsFetcher, StatsFetcher

logger = get_logger(__name__, ComponentType.WATCHER)


class EnvoyWatcher:
    """Liveness/readiness state for Envoy, safe under concurrent access."""

    def __init__(
        self,
        fetcher: Optional[StatsFetcher] = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ):
        self._lock = threading.Lock()
        self._fetcher = fetcher if fetcher is not None else HttpStatsFetcher()
        self._probe_timeout = probe_timeout
        self._last_succeeded = False

    @property
    def fetcher(self) -> StatsFetcher:
        return self._fetcher

    @property
    def probe_timeout(self) -> float:
        return self._probe_timeout

    @property
    def last_succeeded(self) -> bool:
        """Did the last completed probe succeed?"""
        with self._lock:
            return self._last_succeeded

    async def probe(self) -> bool:
        """
        Try once to fetch Envoy stats and record whether it worked.

        Failure is an expected outcome here, not an error: any exception
        or timeout is logged at DEBUG and recorded as "not succeeded".
        Only a 200 counts as success; the body is not looked at.

        Returns:
            The outcome just recorded
        """
        succeeded = False

        try:
            result = await asyncio.wait_for(
                self._fetcher.fetch(self._probe_timeout),
                timeout=self._probe_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug(
                f"could not fetch Envoy status: timed out after {self._probe_timeout}s"
            )
        except Exception as e:
            logger.debug(f"could not fetch Envoy status: {e}")
        else:
            succeeded = result.status_code == 200
            if not succeeded:
                logger.debug(f"Envoy stats returned status {result.status_code}")

        with self._lock:
            self._last_succeeded = succeeded

        return succeeded

    def is_alive(self) -> bool:
        """True iff Envoy should be considered alive."""
        with self._lock:
            return self._last_succeeded

    def is_ready(self) -> bool:
        """
        True iff Envoy should be considered ready.

        Currently ready whenever alive.
        """
        return self.is_alive()


__all__ = ["EnvoyWatcher"]
