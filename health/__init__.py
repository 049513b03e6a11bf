# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Health - Envoy watcher and probe endpoints
# PURPOSE: Kubernetes probes driven by active Envoy stats fetches
# CREATED: 12 OCT 2026
# ============================================================================
"""
Health Check Module

Architecture:
- StatsFetcher: one bounded fetch of Envoy stats (HttpStatsFetcher in production)
- EnvoyWatcher: last-probe-wins alive/ready state behind a lock
- health_router: /ambassador/v0/check_alive and /ambassador/v0/check_ready

Usage:
    from health import EnvoyWatcher, health_router

    app.state.watcher = EnvoyWatcher()
    app.include_router(health_router)
"""

from health.core import ProbeResult, StatsFetcher, HttpStatsFetcher
from health.watcher import EnvoyWatcher
from health.router import health_router, get_watcher, CHECK_ALIVE_PATH, CHECK_READY_PATH

__all__ = [
    # Fetchers
    "ProbeResult",
    "StatsFetcher",
    "HttpStatsFetcher",
    # State
    "EnvoyWatcher",
    # Router
    "health_router",
    "get_watcher",
    "CHECK_ALIVE_PATH",
    "CHECK_READY_PATH",
]
