"""
Statistics and export router.

GET /api/estadisticas/{usuario_id}?dias=N — aggregate stats over a window
GET /api/exportar/{usuario_id}            — every stored day, oldest first
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from registro.core.config import settings
from registro.db.base import get_db
from registro.schemas.estadisticas import StatisticsResponse
from registro.schemas.exportar import ExportResponse
from registro.services.emociones import export_user
from registro.services.estadisticas import get_statistics

router = APIRouter(prefix="/api", tags=["estadisticas"])


@router.get(
    "/estadisticas/{usuario_id}",
    response_model=StatisticsResponse,
    summary="Aggregate emotion statistics",
)
def estadisticas(
    usuario_id: str,
    dias: Optional[int] = Query(
        default=None,
        ge=1,
        le=3650,
        description="Window size in days. Defaults to DEFAULT_STATS_DAYS.",
        examples=[7],
    ),
    db: Session = Depends(get_db),
):
    """
    Scan the user's snapshots inside the window and return:

    - **total_dias_registrados** — days with a snapshot.
    - **emociones_mas_frecuentes** — occurrences per emotion name.
    - **promedio_emociones_dia** — average occurrences per recorded day.
    - **conexiones_totales** — connections across the window.
    - **top_5_emociones** — most frequent emotions, descending.
    """
    result = get_statistics(db=db, usuario_id=usuario_id, dias=dias or settings.DEFAULT_STATS_DAYS)
    return result.to_dict()


@router.get(
    "/exportar/{usuario_id}",
    response_model=ExportResponse,
    summary="Export every stored day",
)
def exportar(usuario_id: str, db: Session = Depends(get_db)):
    return export_user(db=db, usuario_id=usuario_id)
