# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Health - FastAPI probe endpoints
# PURPOSE: Kubernetes liveness and readiness probes backed by EnvoyWatcher
# CREATED: 12 OCT 2026
# ============================================================================
"""
Health Check Router

Endpoints:
    GET /ambassador/v0/check_alive - Liveness probe
                   Returns 200 if Envoy answered its stats request, 503 if not.
                   Kubernetes uses this to restart dead containers.

    GET /ambassador/v0/check_ready - Readiness probe
                   Returns 200 if Envoy is ready, 503 if not.
                   Kubernetes uses this to route traffic.

Both probes are active: every call fetches Envoy stats before answering.
If a pod only configures the readiness probe and that probe did not talk
to Envoy itself, nothing would ever talk to Envoy, Envoy would never be
declared alive, and the pod would never become ready.

Both endpoints are plain text. Probes are normally GETs, but the paths
are owned by this router for every method; they never reach diagd.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from health.watcher import EnvoyWatcher

CHECK_ALIVE_PATH = "/ambassador/v0/check_alive"
CHECK_READY_PATH = "/ambassador/v0/check_ready"

ALIVE_MESSAGE = "Ambassador is alive and well\n"
NOT_ALIVE_MESSAGE = "Ambassador is not alive\n"
READY_MESSAGE = "Ambassador is ready and waiting\n"
NOT_READY_MESSAGE = "Ambassador is not ready\n"

# Probe paths answer whatever the method, like any other mux route
PROBE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

health_router = APIRouter(tags=["Health"])


def get_watcher(request: Request) -> EnvoyWatcher:
    """Resolve the EnvoyWatcher the app was built with."""
    return request.app.state.watcher


# ============================================================================
# LIVENESS PROBE
# ============================================================================

@health_router.api_route(CHECK_ALIVE_PATH, methods=PROBE_METHODS, response_class=PlainTextResponse)
async def check_alive(watcher: EnvoyWatcher = Depends(get_watcher)):
    """Kubernetes liveness probe."""
    await watcher.probe()

    if watcher.is_alive():
        return PlainTextResponse(ALIVE_MESSAGE)
    return PlainTextResponse(NOT_ALIVE_MESSAGE, status_code=503)


# ============================================================================
# READINESS PROBE
# ============================================================================

@health_router.api_route(CHECK_READY_PATH, methods=PROBE_METHODS, response_class=PlainTextResponse)
async def check_ready(watcher: EnvoyWatcher = Depends(get_watcher)):
    """Kubernetes readiness probe."""
    await watcher.probe()

    if watcher.is_ready():
        return PlainTextResponse(READY_MESSAGE)
    return PlainTextResponse(NOT_READY_MESSAGE, status_code=503)


__all__ = [
    "health_router",
    "get_watcher",
    "CHECK_ALIVE_PATH",
    "CHECK_READY_PATH",
]
