"""
Emotion snapshot router.

GET    /api/emociones/historial/{usuario_id}  — last N days, newest first
GET    /api/emociones/{usuario_id}/{fecha}    — one day (empty arrays if absent)
POST   /api/emociones                         — upsert one day
DELETE /api/emociones/{usuario_id}/{fecha}    — delete one day

The historial route is declared first so "historial" is never read as a
usuario_id.
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from registro.core.config import settings
from registro.db.base import get_db
from registro.models.emocion import DailyEmotion
from registro.schemas.common import ErrorResponse, MessageResponse
from registro.schemas.emociones import SnapshotRequest, SnapshotResponse
from registro.services.emociones import delete_day, get_day, get_history, upsert_day

router = APIRouter(prefix="/api/emociones", tags=["emociones"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _to_response(record: DailyEmotion) -> SnapshotResponse:
    return SnapshotResponse(
        id=record.id,
        usuario_id=record.usuario_id,
        fecha=str(record.fecha),
        burbujas=record.burbujas or [],
        conexiones=record.conexiones or [],
        created_at=record.created_at.isoformat() if record.created_at else None,
        updated_at=record.updated_at.isoformat() if record.updated_at else None,
    )


# ---------------------------------------------------------------------------
# GET /api/emociones/historial/{usuario_id}
# ---------------------------------------------------------------------------

@router.get(
    "/historial/{usuario_id}",
    response_model=list[SnapshotResponse],
    summary="Recent history for a user (newest first)",
)
def historial(usuario_id: str, db: Session = Depends(get_db)):
    """Return every snapshot from the last `HISTORY_DAYS` days, newest first."""
    records = get_history(db=db, usuario_id=usuario_id, days=settings.HISTORY_DAYS)
    return [_to_response(r) for r in records]


# ---------------------------------------------------------------------------
# GET /api/emociones/{usuario_id}/{fecha}
# ---------------------------------------------------------------------------

@router.get(
    "/{usuario_id}/{fecha}",
    response_model=SnapshotResponse,
    summary="One day of emotions",
    responses={200: {"description": "Stored day, or empty arrays if nothing was recorded."}},
)
def obtener_dia(
    usuario_id: str,
    fecha: date = Path(description="ISO date (YYYY-MM-DD).", examples=["2026-02-20"]),
    db: Session = Depends(get_db),
):
    record = get_day(db=db, usuario_id=usuario_id, fecha=fecha)
    if record is None:
        return SnapshotResponse()
    return _to_response(record)


# ---------------------------------------------------------------------------
# POST /api/emociones
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SnapshotResponse,
    summary="Create or replace a user's day",
    responses={
        200: {"description": "The stored record."},
        422: {"model": ErrorResponse, "description": "Invalid payload, duplicate emotion names or dangling connections."},
        503: {"model": ErrorResponse, "description": "Datastore unavailable."},
    },
)
def guardar_dia(payload: SnapshotRequest, db: Session = Depends(get_db)):
    """
    Upsert by (usuario_id, fecha). An existing day has its bubble and
    connection arrays replaced wholesale; nothing is merged.
    """
    record = upsert_day(
        db=db,
        usuario_id=payload.usuario_id,
        fecha=payload.fecha,
        burbujas=payload.burbujas,
        conexiones=payload.conexiones,
    )
    return _to_response(record)


# ---------------------------------------------------------------------------
# DELETE /api/emociones/{usuario_id}/{fecha}
# ---------------------------------------------------------------------------

@router.delete(
    "/{usuario_id}/{fecha}",
    response_model=MessageResponse,
    summary="Delete one day",
    responses={404: {"model": ErrorResponse, "description": "Nothing stored for that day."}},
)
def eliminar_dia(usuario_id: str, fecha: date, db: Session = Depends(get_db)):
    delete_day(db=db, usuario_id=usuario_id, fecha=fecha)
    return MessageResponse(mensaje="Datos eliminados correctamente")
