"""
StorageService — the device's local-first read/write strategy.

Construct one per process at startup, call initialize(), and pass it to
whatever needs it:

    service = StorageService(local, remote, connectivity)
    service.initialize()
    PeriodicSync(service, interval=30).start()

Writes always land locally before any network call. Reads prefer the
server when online and fall back to the local copy. Remote failures are
logged and swallowed; the queue keeps the data for the next flush.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Protocol, Union

from registro.client.api import RemoteStore, RemoteStoreError
from registro.client.storage import LocalStore

logger = logging.getLogger(__name__)


class Connectivity(Protocol):
    def is_connected(self) -> bool: ...


@dataclass
class SyncStatus:
    pendientes: int
    sincronizado: bool


class StorageService:
    def __init__(self, local: LocalStore, remote: RemoteStore, connectivity: Connectivity):
        self.local = local
        self.remote = remote
        self.connectivity = connectivity
        self._usuario_id: Optional[str] = None

    def initialize(self) -> "StorageService":
        self._usuario_id = self.local.load_identity()
        return self

    @property
    def usuario_id(self) -> str:
        if self._usuario_id is None:
            raise RuntimeError("StorageService.initialize() has not been called")
        return self._usuario_id

    # ------------------------------------------------------------------
    # Local operations
    # ------------------------------------------------------------------

    def write_local(self, fecha: Union[date, str], burbujas, conexiones) -> dict:
        return self.local.write_local(fecha, burbujas, conexiones)

    def read_local(self, fecha: Union[date, str]) -> Optional[dict]:
        return self.local.read_local(fecha)

    def clear_cache(self) -> int:
        return self.local.clear_cache()

    def sync_status(self) -> SyncStatus:
        pendientes = len(self.local.pending_keys())
        return SyncStatus(pendientes=pendientes, sincronizado=pendientes == 0)

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def flush_queue(self) -> bool:
        """
        Push every queued day to the server. Each key leaves the queue only
        after its own upsert succeeded; failed keys wait for the next flush.
        Returns False when offline or when any push failed.
        """
        if not self.connectivity.is_connected():
            logger.info("Offline, sync postponed")
            return False

        keys = self.local.pending_keys()
        if not keys:
            return True

        failed = 0
        for key in keys:
            datos = self.local.read_key(key)
            if datos is None:
                self.local.drop_pending(key)
                continue
            try:
                self.remote.push_snapshot(
                    self.usuario_id, datos["fecha"], datos["burbujas"], datos["conexiones"]
                )
            except RemoteStoreError as exc:
                failed += 1
                logger.warning("Sync of %s failed: %s", key, exc)
                continue
            self.local.acknowledge(key, datos.get("rev", 0))

        if failed:
            logger.warning("Sync finished with %d of %d day(s) pending", failed, len(keys))
            return False
        logger.info("Sync completed (%d day(s))", len(keys))
        return True

    # ------------------------------------------------------------------
    # Hybrid strategy
    # ------------------------------------------------------------------

    def save(self, fecha: Union[date, str], burbujas, conexiones) -> SyncStatus:
        self.local.write_local(fecha, burbujas, conexiones)
        if self.connectivity.is_connected():
            self.flush_queue()
        return self.sync_status()

    def load(self, fecha: Union[date, str]) -> Optional[dict]:
        """
        Server copy when online and it has data (it replaces the local
        copy); otherwise whatever is stored locally.
        """
        if self.connectivity.is_connected():
            remote = self._fetch_day(fecha)
            if remote and (remote.get("burbujas") or remote.get("conexiones")):
                return self.local.cache_remote(
                    fecha, remote.get("burbujas") or [], remote.get("conexiones") or []
                )
        return self.local.read_local(fecha)

    def _fetch_day(self, fecha) -> Optional[dict]:
        try:
            return self.remote.fetch_day(self.usuario_id, fecha)
        except RemoteStoreError as exc:
            logger.warning("Could not fetch %s from server: %s", fecha, exc)
            return None

    # ------------------------------------------------------------------
    # Server-only reads
    # ------------------------------------------------------------------

    def history(self) -> list:
        try:
            return self.remote.fetch_history(self.usuario_id)
        except RemoteStoreError as exc:
            logger.error("Error fetching history: %s", exc)
            return []

    def statistics(self, dias: int = 7) -> Optional[dict]:
        try:
            return self.remote.fetch_statistics(self.usuario_id, dias=dias)
        except RemoteStoreError as exc:
            logger.error("Error fetching statistics: %s", exc)
            return None

    def export(self) -> Optional[dict]:
        try:
            return self.remote.export_all(self.usuario_id)
        except RemoteStoreError as exc:
            logger.error("Error exporting data: %s", exc)
            return None


class PeriodicSync:
    """
    Background thread that flushes the queue every `interval` seconds and
    reports the resulting status. Runs independently of writes.
    """

    def __init__(
        self,
        service: StorageService,
        interval: float = 30.0,
        on_status: Optional[Callable[[SyncStatus], None]] = None,
    ):
        self.service = service
        self.interval = interval
        self.on_status = on_status
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> SyncStatus:
        try:
            self.service.flush_queue()
        except Exception:
            # Local storage failures end up here; the next tick tries again.
            logger.exception("Periodic sync failed")
        status = self.service.sync_status()
        if self.on_status is not None:
            self.on_status(status)
        return status

    def _run(self) -> None:
        logger.info("PeriodicSync started (every %ss)", self.interval)
        while not self._stop.wait(self.interval):
            self.tick()
        logger.info("PeriodicSync stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="registro-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
