# ============================================================================
# HEALTH GATE CONFIGURATION
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Core - Configuration management
# PURPOSE: Environment-based configuration for the health sidecar
# CREATED: 12 OCT 2026
# ============================================================================
"""
Health Gate Configuration

Loads configuration from environment variables with defaults matching
the standard sidecar layout:
- Envoy admin/stats on localhost:8001
- diagd on 127.0.0.1:8004
- the health front door itself on 0.0.0.0:8877 (IPv4 only)
"""

import ipaddress
import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_LISTEN_PORT = 8877
DEFAULT_DIAG_URL = "http://127.0.0.1:8004/"
DEFAULT_STATS_URL = "http://localhost:8001/stats"

# Envoy should answer the stats request in well under 100ms
DEFAULT_PROBE_TIMEOUT = 2.0
DEFAULT_SHUTDOWN_TIMEOUT = 10.0
DEFAULT_PROXY_TIMEOUT = 60.0


@dataclass(frozen=True)
class HealthGateConfig:
    """Configuration for the health sidecar."""

    # Front door listener
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT

    # Upstreams
    diag_url: str = DEFAULT_DIAG_URL
    stats_url: str = DEFAULT_STATS_URL

    # Time bounds (seconds)
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    proxy_timeout: float = DEFAULT_PROXY_TIMEOUT

    # Logging
    log_level: str = "INFO"
    log_format: str = ""

    def __post_init__(self):
        try:
            ipaddress.IPv4Address(self.listen_host)
        except ValueError:
            raise ValueError(
                f"listen host must be an IPv4 address, got '{self.listen_host}'"
            ) from None
        if not 0 <= self.listen_port <= 65535:
            raise ValueError(f"listen port out of range: {self.listen_port}")
        for name in ("probe_timeout", "shutdown_timeout", "proxy_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @property
    def json_logs(self) -> bool:
        """True when structured JSON log output is requested."""
        return self.log_format.lower() == "json"

    @classmethod
    def from_env(cls) -> "HealthGateConfig":
        """Load configuration from environment variables."""
        return cls(
            listen_host=os.environ.get("HEALTHGATE_LISTEN_HOST", DEFAULT_LISTEN_HOST),
            listen_port=int(os.environ.get("HEALTHGATE_LISTEN_PORT", DEFAULT_LISTEN_PORT)),
            diag_url=os.environ.get("HEALTHGATE_DIAG_URL", DEFAULT_DIAG_URL),
            stats_url=os.environ.get("HEALTHGATE_STATS_URL", DEFAULT_STATS_URL),
            probe_timeout=float(os.environ.get("HEALTHGATE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT)),
            shutdown_timeout=float(
                os.environ.get("HEALTHGATE_SHUTDOWN_TIMEOUT", DEFAULT_SHUTDOWN_TIMEOUT)
            ),
            proxy_timeout=float(os.environ.get("HEALTHGATE_PROXY_TIMEOUT", DEFAULT_PROXY_TIMEOUT)),
            log_level=os.environ.get("HEALTHGATE_LOG_LEVEL", "INFO"),
            log_format=os.environ.get("HEALTHGATE_LOG_FORMAT", ""),
        )


# Singleton config instance
_config: Optional[HealthGateConfig] = None


def get_config() -> HealthGateConfig:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = HealthGateConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (tests, reloads)."""
    global _config
    _config = None


__all__ = ["HealthGateConfig", "get_config", "reset_config"]
