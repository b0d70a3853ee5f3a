"""
Statistics schemas.

GET /api/estadisticas/{usuario_id}?dias=N → StatisticsResponse
"""
from pydantic import BaseModel, Field


class EmotionFrequency(BaseModel):
    count: int
    color: str


class TopEmotion(BaseModel):
    nombre: str
    count: int
    color: str


class StatisticsResponse(BaseModel):
    """Aggregates recomputed from raw snapshots on every call."""
    total_dias_registrados: int = Field(description="Snapshots found inside the window.")
    emociones_mas_frecuentes: dict[str, EmotionFrequency] = Field(
        description="Occurrences per emotion name across the window."
    )
    promedio_emociones_dia: str = Field(
        description="Average occurrences per recorded day, one decimal.",
        examples=["3.0"],
    )
    conexiones_totales: int
    dias_analizados: int = Field(description="Window size requested.")
    top_5_emociones: list[TopEmotion] = Field(description="Most frequent emotions, descending.")
