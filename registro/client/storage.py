"""
Local-first persistence for the device.

Two layers:

KeyValueStore — a tiny JSON key/value table on a local SQLite file, the
                device's only storage medium. Errors from SQLAlchemy are
                not caught here: if local storage fails there is nothing
                below it to fall back to.
LocalStore    — day snapshots, the pending-sync queue and the device
                identity, laid out on top of the key/value table.

Key layout
----------
emociones_<ISO date>  -> {"fecha", "burbujas", "conexiones", "synced", "rev"}
cola_sinc             -> ["emociones_2026-02-20", ...]   (set semantics)
usuario_id            -> "user_<epoch ms>_<9 base36 chars>"

`rev` grows on every local write. A flush acknowledges a key with the rev
it actually pushed, so a write that lands mid-flush keeps its key queued.
"""
from __future__ import annotations

import json
import logging
import secrets
import string
import threading
import time
from datetime import date
from typing import Any, Iterable, Optional, Union

from sqlalchemy import String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DAY_PREFIX = "emociones_"
QUEUE_KEY = "cola_sinc"
IDENTITY_KEY = "usuario_id"

_BASE36 = string.digits + string.ascii_lowercase


class LocalBase(DeclarativeBase):
    pass


class KeyValue(LocalBase):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


def make_local_engine(url: str) -> Engine:
    """SQLite engine usable from the UI thread and the sync thread."""
    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class KeyValueStore:
    """JSON values by string key. Every call is its own transaction."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False)
        self._lock = threading.RLock()
        LocalBase.metadata.create_all(bind=engine)

    @classmethod
    def from_url(cls, url: str) -> "KeyValueStore":
        return cls(make_local_engine(url))

    def get(self, key: str) -> Any:
        with self._lock, self._sessions() as session:
            row = session.get(KeyValue, key)
            return json.loads(row.value) if row is not None else None

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock, self._sessions() as session:
            session.merge(KeyValue(key=key, value=payload))
            session.commit()

    def remove(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        with self._lock, self._sessions() as session:
            for row in session.scalars(select(KeyValue).where(KeyValue.key.in_(keys))):
                session.delete(row)
            session.commit()

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock, self._sessions() as session:
            stmt = select(KeyValue.key).order_by(KeyValue.key)
            if prefix:
                stmt = stmt.where(KeyValue.key.startswith(prefix, autoescape=True))
            return list(session.scalars(stmt))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def day_key(fecha: Union[date, str]) -> str:
    iso = fecha.isoformat() if isinstance(fecha, date) else str(fecha)
    return f"{DAY_PREFIX}{iso}"


def new_user_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


def _to_json_list(items: Optional[Iterable]) -> list:
    """Accept pydantic models or plain dicts."""
    out = []
    for item in items or []:
        out.append(item.model_dump(mode="json") if hasattr(item, "model_dump") else dict(item))
    return out


# ---------------------------------------------------------------------------
# LocalStore
# ---------------------------------------------------------------------------

class LocalStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        # Serializes queue read-modify-write between the UI and the sync thread.
        self._lock = threading.RLock()

    # --- identity ---

    def load_identity(self) -> str:
        """Return the device's user id, creating it on first use."""
        with self._lock:
            usuario_id = self.kv.get(IDENTITY_KEY)
            if not usuario_id:
                usuario_id = new_user_id()
                self.kv.set(IDENTITY_KEY, usuario_id)
                logger.info("Generated device identity %s", usuario_id)
            return usuario_id

    # --- snapshots ---

    def write_local(self, fecha: Union[date, str], burbujas, conexiones) -> dict:
        """Persist the day as unsynced and queue its key."""
        key = day_key(fecha)
        with self._lock:
            datos = self._store(key, fecha, burbujas, conexiones, synced=False)
            self._enqueue(key)
        return datos

    def cache_remote(self, fecha: Union[date, str], burbujas, conexiones) -> dict:
        """Overwrite the day with a copy fetched from the server; nothing to push back."""
        key = day_key(fecha)
        with self._lock:
            datos = self._store(key, fecha, burbujas, conexiones, synced=True)
            self._dequeue(key)
        return datos

    def read_local(self, fecha: Union[date, str]) -> Optional[dict]:
        return self.kv.get(day_key(fecha))

    def read_key(self, key: str) -> Optional[dict]:
        return self.kv.get(key)

    def clear_cache(self) -> int:
        """Drop every stored day. Identity and queue are kept."""
        with self._lock:
            keys = self.kv.keys(prefix=DAY_PREFIX)
            self.kv.multi_remove(keys)
        logger.info("Cleared %d cached day(s)", len(keys))
        return len(keys)

    def _store(self, key, fecha, burbujas, conexiones, synced: bool) -> dict:
        previous = self.kv.get(key) or {}
        datos = {
            "fecha": fecha.isoformat() if isinstance(fecha, date) else str(fecha),
            "burbujas": _to_json_list(burbujas),
            "conexiones": _to_json_list(conexiones),
            "synced": synced,
            "rev": previous.get("rev", 0) + 1,
        }
        self.kv.set(key, datos)
        return datos

    # --- queue ---

    def pending_keys(self) -> list[str]:
        """A copy of the queue; later writes do not affect it."""
        with self._lock:
            return list(self.kv.get(QUEUE_KEY) or [])

    def acknowledge(self, key: str, rev: int) -> bool:
        """
        Mark `key` synced and drop it from the live queue, but only if the
        stored snapshot is still the revision that was pushed.
        """
        with self._lock:
            datos = self.kv.get(key)
            if datos is None:
                self._dequeue(key)
                return False
            if datos.get("rev", 0) != rev:
                return False
            datos["synced"] = True
            self.kv.set(key, datos)
            self._dequeue(key)
            return True

    def drop_pending(self, key: str) -> None:
        with self._lock:
            self._dequeue(key)

    def _enqueue(self, key: str) -> None:
        cola = self.kv.get(QUEUE_KEY) or []
        if key not in cola:
            cola.append(key)
            self.kv.set(QUEUE_KEY, cola)

    def _dequeue(self, key: str) -> None:
        cola = self.kv.get(QUEUE_KEY) or []
        if key in cola:
            cola.remove(key)
            self.kv.set(QUEUE_KEY, cola)
