# ============================================================================
# VERSION - AMBASSADOR HEALTH GATE
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# ============================================================================
"""
Version information for the Ambassador Health Gate.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch
__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-13"

EPOCH = 1
CODENAME = "Health Sidecar"
