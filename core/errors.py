# ============================================================================
# ERROR TYPES
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Core - Exception hierarchy
# PURPOSE: Separate recoverable probe failures from process-fatal conditions
# CREATED: 12 OCT 2026
# ============================================================================
"""
Error Types

Two families:
- FetchError: one stats fetch failed. Always recovered inside
  Watcher.probe() and folded into "not healthy".
- FatalError: the process cannot continue. Raised out of the lifecycle
  controller; main() turns it into a non-zero exit code.
"""


class HealthGateError(Exception):
    """Base class for all health gate errors."""


class FetchError(HealthGateError):
    """Fetching Envoy stats failed (request, transport or body read)."""


class FatalError(HealthGateError):
    """Unrecoverable condition; the process should exit non-zero."""


class ListenError(FatalError):
    """The front door listener could not be bound."""

    def __init__(self, host: str, port: int, cause: OSError):
        super().__init__(f"could not listen on TCP {host}:{port}: {cause}")
        self.host = host
        self.port = port
        self.cause = cause


class ServeError(FatalError):
    """The HTTP server stopped without being asked to."""


class ShutdownError(FatalError):
    """Graceful shutdown failed or exceeded its time bound."""


__all__ = [
    "HealthGateError",
    "FetchError",
    "FatalError",
    "ListenError",
    "ServeError",
    "ShutdownError",
]
