"""
Statistics service.

Recomputes everything from raw snapshots on each call; there is no
pre-aggregated rollup table.

Window: every snapshot with fecha >= today - dias.

Public API
----------
aggregate(snapshots, dias)           -> Statistics   (pure, no DB)
get_statistics(db, usuario_id, dias) -> Statistics
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy.orm import Session

from registro.models.emocion import DailyEmotion

TOP_N = 5


# ---------------------------------------------------------------------------
# Result types (plain dataclasses, no ORM)
# ---------------------------------------------------------------------------

@dataclass
class EmotionTally:
    nombre: str
    count: int
    color: str


@dataclass
class Statistics:
    total_dias_registrados: int
    emociones: dict[str, EmotionTally]   # insertion order = first seen
    promedio_emociones_dia: str          # one decimal, "0.0" with no days
    conexiones_totales: int
    dias_analizados: int
    top: list[EmotionTally] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_dias_registrados": self.total_dias_registrados,
            "emociones_mas_frecuentes": {
                name: {"count": t.count, "color": t.color}
                for name, t in self.emociones.items()
            },
            "promedio_emociones_dia": self.promedio_emociones_dia,
            "conexiones_totales": self.conexiones_totales,
            "dias_analizados": self.dias_analizados,
            "top_5_emociones": [
                {"nombre": t.nombre, "count": t.count, "color": t.color}
                for t in self.top
            ],
        }


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _average(total: int, days: int) -> str:
    if days == 0:
        return "0.0"
    raw = Decimal(total) / Decimal(days)
    return str(raw.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Core: pure aggregation
# ---------------------------------------------------------------------------

def aggregate(snapshots: Iterable, dias: int) -> Statistics:
    """
    Fold snapshots (anything with `burbujas` and `conexiones` lists of dicts)
    into per-name counts and a connection total.

    A name keeps the colour of its first occurrence. Ties in the top list
    keep first-seen order (sorted() is stable).
    """
    tallies: dict[str, EmotionTally] = {}
    total_emociones = 0
    total_conexiones = 0
    days = 0

    for snap in snapshots:
        days += 1
        for b in snap.burbujas or []:
            count = b.get("count", 0)
            tally = tallies.get(b["nombre"])
            if tally is None:
                tally = EmotionTally(nombre=b["nombre"], count=0, color=b.get("color", ""))
                tallies[b["nombre"]] = tally
            tally.count += count
            total_emociones += count
        total_conexiones += len(snap.conexiones or [])

    top = sorted(tallies.values(), key=lambda t: t.count, reverse=True)[:TOP_N]

    return Statistics(
        total_dias_registrados=days,
        emociones=tallies,
        promedio_emociones_dia=_average(total_emociones, days),
        conexiones_totales=total_conexiones,
        dias_analizados=dias,
        top=top,
    )


# ---------------------------------------------------------------------------
# Public: endpoint helper
# ---------------------------------------------------------------------------

def get_statistics(db: Session, usuario_id: str, dias: int = 7) -> Statistics:
    since = _today() - timedelta(days=dias)
    snapshots = (
        db.query(DailyEmotion)
        .filter(DailyEmotion.usuario_id == usuario_id, DailyEmotion.fecha >= since)
        .order_by(DailyEmotion.fecha.asc())
        .all()
    )
    return aggregate(snapshots, dias)
