# ============================================================================
# SERVER MODULE
# ============================================================================
# EPOCH: 1 - HEALTH SIDECAR
# STATUS: Server - Process lifecycle
# PURPOSE: Listener ownership and bounded graceful shutdown
# CREATED: 13 OCT 2026
# ============================================================================

from server.lifecycle import LifecycleController, FrontDoorServer

__all__ = ["LifecycleController", "FrontDoorServer"]
