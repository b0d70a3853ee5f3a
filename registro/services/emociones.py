"""
Emotion snapshot service: per-day upsert, reads, history, delete, export.

Public API
----------
upsert_day(db, usuario_id, fecha, burbujas, conexiones) -> DailyEmotion
get_day(db, usuario_id, fecha)                         -> DailyEmotion | None
get_history(db, usuario_id, days)                      -> list[DailyEmotion]
delete_day(db, usuario_id, fecha)                      -> None
export_user(db, usuario_id)                            -> dict

db.commit() only happens in the write functions here, never in routers.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from registro.core.errors import SnapshotNotFoundError, SnapshotValidationError
from registro.models.emocion import DailyEmotion
from registro.schemas.emociones import Burbuja, Conexion

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------

def check_snapshot(burbujas: list[Burbuja], conexiones: list[Conexion]) -> None:
    """
    Names are unique within a day and every connection endpoint is a bubble
    of the same day. Raises SnapshotValidationError otherwise.
    """
    seen: set[str] = set()
    for b in burbujas:
        if b.nombre in seen:
            raise SnapshotValidationError(
                f"Emotion '{b.nombre}' appears more than once.", field="burbujas"
            )
        seen.add(b.nombre)

    ids = {b.id for b in burbujas}
    for c in conexiones:
        missing = [end for end in (c.origen, c.destino) if end not in ids]
        if missing:
            raise SnapshotValidationError(
                f"Connection {c.id} references unknown bubble(s) {missing}.",
                field="conexiones",
            )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def upsert_day(
    db: Session,
    usuario_id: str,
    fecha: date,
    burbujas: list[Burbuja],
    conexiones: list[Conexion],
) -> DailyEmotion:
    """Replace the arrays of an existing (user, day) or create it."""
    check_snapshot(burbujas, conexiones)
    burbujas_json = [b.model_dump(mode="json") for b in burbujas]
    conexiones_json = [c.model_dump(mode="json") for c in conexiones]

    existing = get_day(db, usuario_id, fecha)
    if existing is not None:
        return _replace(db, existing, burbujas_json, conexiones_json)

    record = DailyEmotion(
        usuario_id=usuario_id,
        fecha=fecha,
        burbujas=burbujas_json,
        conexiones=conexiones_json,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same day first; last writer wins.
        db.rollback()
        existing = get_day(db, usuario_id, fecha)
        if existing is None:
            raise
        logger.info("Concurrent create of %s/%s, updating instead", usuario_id, fecha)
        return _replace(db, existing, burbujas_json, conexiones_json)
    db.refresh(record)
    logger.info("Created snapshot %s/%s", usuario_id, fecha)
    return record


def _replace(db: Session, record: DailyEmotion, burbujas_json: list, conexiones_json: list) -> DailyEmotion:
    record.burbujas = burbujas_json
    record.conexiones = conexiones_json
    record.updated_at = _now()
    db.commit()
    db.refresh(record)
    logger.debug("Updated snapshot %s/%s", record.usuario_id, record.fecha)
    return record


def delete_day(db: Session, usuario_id: str, fecha: date) -> None:
    record = get_day(db, usuario_id, fecha)
    if record is None:
        raise SnapshotNotFoundError(usuario_id=usuario_id, fecha=fecha)
    db.delete(record)
    db.commit()
    logger.info("Deleted snapshot %s/%s", usuario_id, fecha)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_day(db: Session, usuario_id: str, fecha: date) -> Optional[DailyEmotion]:
    return (
        db.query(DailyEmotion)
        .filter(DailyEmotion.usuario_id == usuario_id, DailyEmotion.fecha == fecha)
        .first()
    )


def get_history(db: Session, usuario_id: str, days: int = 30) -> list[DailyEmotion]:
    """Snapshots from the last `days` days, newest first. No pagination."""
    since = _today() - timedelta(days=days)
    return (
        db.query(DailyEmotion)
        .filter(DailyEmotion.usuario_id == usuario_id, DailyEmotion.fecha >= since)
        .order_by(DailyEmotion.fecha.desc())
        .all()
    )


def export_user(db: Session, usuario_id: str) -> dict:
    """Every stored day for a user, oldest first, flattened for analysis."""
    records = (
        db.query(DailyEmotion)
        .filter(DailyEmotion.usuario_id == usuario_id)
        .order_by(DailyEmotion.fecha.asc())
        .all()
    )
    datos = [_export_day(r) for r in records]
    return {
        "usuario_id": usuario_id,
        "total_dias": len(datos),
        "datos": datos,
    }


def _export_day(record: DailyEmotion) -> dict:
    burbujas = record.burbujas or []
    conexiones = record.conexiones or []
    return {
        "fecha": str(record.fecha),
        "emociones": [
            {
                "nombre": b["nombre"],
                "frecuencia": b.get("count", 0),
                "registros": [
                    {
                        "hora": r["timestamp"],
                        "nota": r.get("nota"),
                        "intensidad": r.get("intensidad"),
                    }
                    for r in b.get("registros", [])
                ],
            }
            for b in burbujas
        ],
        "conexiones": conexiones,
        "metadata": {
            "total_emociones": sum(b.get("count", 0) for b in burbujas),
            "total_conexiones": len(conexiones),
        },
    }
