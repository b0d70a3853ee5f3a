"""
Full export schemas, shaped for offline analysis.

GET /api/exportar/{usuario_id} → ExportResponse
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from registro.schemas.emociones import Conexion


class ExportRecord(BaseModel):
    hora: datetime
    nota: Optional[str] = None
    intensidad: Optional[int] = None


class ExportEmotion(BaseModel):
    nombre: str
    frecuencia: int
    registros: list[ExportRecord]


class ExportMetadata(BaseModel):
    total_emociones: int
    total_conexiones: int


class ExportDay(BaseModel):
    fecha: str
    emociones: list[ExportEmotion]
    conexiones: list[Conexion]
    metadata: ExportMetadata


class ExportResponse(BaseModel):
    usuario_id: str
    total_dias: int
    datos: list[ExportDay]
