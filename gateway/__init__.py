# ============================================================================
# GATEWAY MODULE
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Gateway - HTTP front door
# PURPOSE: Probe endpoints plus pass-through proxy to diagd
# CREATED: 12 OCT 2026
# ============================================================================
"""
Gateway Module

The HTTP front door of the sidecar. Health probes are answered locally;
every other request is forwarded to diagd.
"""

from gateway.app import create_app, build_app, close_app
from gateway.proxy import DiagProxy, proxy_router, host_is_local, DIAG_IP_HEADER

__all__ = [
    "create_app",
    "build_app",
    "close_app",
    "DiagProxy",
    "proxy_router",
    "host_is_local",
    "DIAG_IP_HEADER",
]
