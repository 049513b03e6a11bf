# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Core module initialization
# PURPOSE: Export configuration, logging and error types
# CREATED: 12 OCT 2026
# ============================================================================

from core.config import HealthGateConfig, get_config, reset_config
from core.errors import (
    HealthGateError,
    FetchError,
    FatalError,
    ListenError,
    ServeError,
    ShutdownError,
)
from core.logging import configure_logging, get_logger, log_context

__all__ = [
    # Config
    "HealthGateConfig",
    "get_config",
    "reset_config",
    # Errors
    "HealthGateError",
    "FetchError",
    "FatalError",
    "ListenError",
    "ServeError",
    "ShutdownError",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
