"""
Device-side half of Registro Emocional: canvas state, local storage and
the sync strategy that talks to the API.
"""
from __future__ import annotations

from typing import Callable, Optional

import httpx

from registro.client.api import RemoteStore, RemoteStoreError
from registro.client.canvas import EmotionCanvas, CanvasError, PALETTE, bubble_size
from registro.client.connectivity import ProbeConnectivity, StaticConnectivity
from registro.client.service import PeriodicSync, StorageService, SyncStatus
from registro.client.storage import KeyValueStore, LocalStore
from registro.core.config import ClientSettings
from registro.core.logger import setup_logging


def build_service(client_settings: Optional[ClientSettings] = None) -> StorageService:
    """Wire the default device stack from REGISTRO_* settings and initialize it."""
    cfg = client_settings or ClientSettings()
    setup_logging(cfg.LOG_LEVEL)
    http = httpx.Client(base_url=cfg.API_URL, timeout=cfg.REQUEST_TIMEOUT)
    service = StorageService(
        local=LocalStore(KeyValueStore.from_url(cfg.LOCAL_DB_URL)),
        remote=RemoteStore(http, api_prefix=cfg.API_PREFIX),
        connectivity=ProbeConnectivity(http, timeout=cfg.PROBE_TIMEOUT),
    )
    return service.initialize()


def build_periodic_sync(
    service: StorageService,
    client_settings: Optional[ClientSettings] = None,
    on_status: Optional[Callable[[SyncStatus], None]] = None,
) -> PeriodicSync:
    """Background flusher ticking every REGISTRO_SYNC_INTERVAL_SECONDS. Not started."""
    cfg = client_settings or ClientSettings()
    return PeriodicSync(service, interval=cfg.SYNC_INTERVAL_SECONDS, on_status=on_status)


__all__ = [
    "build_periodic_sync",
    "build_service",
    "CanvasError",
    "EmotionCanvas",
    "KeyValueStore",
    "LocalStore",
    "PALETTE",
    "PeriodicSync",
    "ProbeConnectivity",
    "RemoteStore",
    "RemoteStoreError",
    "StaticConnectivity",
    "StorageService",
    "SyncStatus",
    "bubble_size",
]
