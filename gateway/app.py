# ============================================================================
# HEALTH FRONT DOOR APPLICATION
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Gateway - FastAPI application factory
# PURPOSE: Wire probe endpoints and the diagd proxy into one app
# CREATED: 12 OCT 2026
# ============================================================================
"""
Health Front Door

One FastAPI app with two kinds of routes:
1. /ambassador/v0/check_alive and /ambassador/v0/check_ready, answered
   here from the EnvoyWatcher
2. everything else, reverse-proxied to diagd

The watcher and proxy are injected and kept on app.state, so several
independent apps (tests) never share health state.

FastAPI's own /docs, /redoc and /openapi.json are disabled; those paths
belong to diagd like any other.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from __version__ import __version__
from core.config import HealthGateConfig, get_config
from core.logging import get_logger, ComponentType
from gateway.proxy import DiagProxy, proxy_router
from health.core import HttpStatsFetcher
from health.router import health_router
from health.watcher import EnvoyWatcher

logger = get_logger(__name__, ComponentType.SERVER)


def create_app(
    watcher: EnvoyWatcher,
    diag_proxy: Optional[DiagProxy] = None,
    stats_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the front door app.

    Args:
        watcher: Source of alive/ready state
        diag_proxy: Proxy to diagd (default origin if omitted)
        stats_client: Shared client used by the watcher's HttpStatsFetcher,
            closed on shutdown along with the proxy's

    Returns:
        FastAPI application
    """
    diag_proxy = diag_proxy or DiagProxy()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Health front door starting")
        yield
        logger.info("Health front door stopping")
        await close_app(app)

    app = FastAPI(
        title="Ambassador Health Gate",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.watcher = watcher
    app.state.diag_proxy = diag_proxy
    app.state.stats_client = stats_client

    # Order matters: probes first, then the diagd catch-all
    app.include_router(health_router)
    app.include_router(proxy_router)

    return app


async def close_app(app: FastAPI) -> None:
    """
    Close the app's outbound clients.

    Safe to call more than once. The lifespan calls it on a clean stop; the
    entry point calls it again when the lifespan never got to run.
    """
    await app.state.diag_proxy.aclose()
    if app.state.stats_client is not None:
        await app.state.stats_client.aclose()


def build_app(config: Optional[HealthGateConfig] = None) -> FastAPI:
    """Build the production app from configuration."""
    config = config or get_config()

    stats_client = httpx.AsyncClient()
    watcher = EnvoyWatcher(
        fetcher=HttpStatsFetcher(url=config.stats_url, client=stats_client),
        probe_timeout=config.probe_timeout,
    )
    diag_proxy = DiagProxy(origin=config.diag_url, timeout=config.proxy_timeout)

    logger.info(
        f"Probing Envoy at {config.stats_url} (timeout {config.probe_timeout}s), "
        f"proxying to diagd at {config.diag_url}"
    )
    return create_app(watcher, diag_proxy=diag_proxy, stats_client=stats_client)


__all__ = ["create_app", "build_app", "close_app"]
