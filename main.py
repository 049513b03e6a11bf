# ============================================================================
# AMBASSADOR HEALTH GATE - MAIN ENTRY POINT
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Core - Process entry point
# PURPOSE: Wire config, logging, watcher, front door and signals together
# CREATED: 13 OCT 2026
# ============================================================================
"""
Ambassador Health Gate

Sidecar HTTP front door that:
1. Answers /ambassador/v0/check_alive and /ambassador/v0/check_ready by
   actively fetching Envoy's stats
2. Forwards every other request to diagd
3. Shuts down gracefully on SIGINT/SIGTERM, within a fixed bound

Usage:
    python main.py
    python main.py --port 8877 --log-level DEBUG

Environment Variables:
    HEALTHGATE_LISTEN_HOST: IPv4 address to bind (default 0.0.0.0)
    HEALTHGATE_LISTEN_PORT: Port to bind (default 8877)
    HEALTHGATE_DIAG_URL: diagd origin (default http://127.0.0.1:8004/)
    HEALTHGATE_STATS_URL: Envoy stats URL (default http://localhost:8001/stats)
    HEALTHGATE_PROBE_TIMEOUT: Seconds per Envoy probe (default 2)
    HEALTHGATE_SHUTDOWN_TIMEOUT: Seconds to drain on shutdown (default 10)
    HEALTHGATE_PROXY_TIMEOUT: Seconds per diagd request (default 60)
    HEALTHGATE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
    HEALTHGATE_LOG_FORMAT: "json" for structured output

Exit status is 0 after a clean shutdown and 1 on a fatal error (port
already bound, server died, shutdown exceeded its bound).
"""

import argparse
import asyncio
import dataclasses
import signal
import sys
from typing import List, Optional

from __version__ import __version__, BUILD_DATE
from core.config import HealthGateConfig
from core.errors import FatalError
from core.logging import configure_logging, get_logger, ComponentType
from gateway.app import build_app, close_app
from server.lifecycle import LifecycleController

logger = get_logger(__name__, ComponentType.SERVER)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="healthgate",
        description="Liveness/readiness front door for Envoy, proxying everything else to diagd",
    )
    parser.add_argument("--host", help="IPv4 address to listen on")
    parser.add_argument("--port", type=int, help="TCP port to listen on")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> HealthGateConfig:
    """Environment config with command-line overrides applied."""
    config = HealthGateConfig.from_env()
    overrides = {}
    if args.host:
        overrides["listen_host"] = args.host
    if args.port is not None:
        overrides["listen_port"] = args.port
    if args.log_level:
        overrides["log_level"] = args.log_level
    return dataclasses.replace(config, **overrides) if overrides else config


async def serve(config: HealthGateConfig) -> None:
    """Run the front door until SIGINT/SIGTERM."""
    app = build_app(config)
    controller = LifecycleController(
        app,
        host=config.listen_host,
        port=config.listen_port,
        shutdown_timeout=config.shutdown_timeout,
    )
    try:
        # Bind before anything else so a taken port fails fast
        controller.listen()

        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_shutdown, shutdown, sig)

        await controller.run(shutdown)
    finally:
        # Bind failures and an overrun drain skip the lifespan shutdown
        await close_app(app)


def _request_shutdown(shutdown: asyncio.Event, sig: signal.Signals) -> None:
    logger.info(f"Received {sig.name}, shutting down")
    shutdown.set()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as e:
        print(f"healthgate: invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(level=config.log_level, json_output=config.json_logs)

    logger.info(f"Starting Ambassador Health Gate v{__version__} (Build {BUILD_DATE})")

    try:
        asyncio.run(serve(config))
    except FatalError as e:
        logger.critical(f"Fatal: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
