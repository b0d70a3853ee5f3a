"""
Emotion snapshot schemas.

These models are the wire format shared by the API and the device client.

POST /api/emociones                       → SnapshotRequest → SnapshotResponse
GET  /api/emociones/{usuario_id}/{fecha}  → SnapshotResponse
GET  /api/emociones/historial/{usuario_id} → list[SnapshotResponse]
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Registro(BaseModel):
    """One tap on a bubble."""
    timestamp: datetime
    nota: Optional[str] = Field(default=None, max_length=2_000)
    intensidad: Optional[int] = Field(default=None, ge=1, le=10)


class Burbuja(BaseModel):
    """An emotion touched during the day."""
    id: int
    nombre: Annotated[str, Field(min_length=1, max_length=64)]
    color: str = Field(default="#CCCCCC", max_length=32)
    count: int = Field(default=1, ge=0)
    x: float = Field(default=50.0, ge=0, le=100, description="Horizontal position, percent of canvas.")
    y: float = Field(default=50.0, ge=0, le=100, description="Vertical position, percent of canvas.")
    registros: list[Registro] = Field(default_factory=list)

    @field_validator("nombre", mode="before")
    @classmethod
    def strip_nombre(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class Conexion(BaseModel):
    """Directed link between two bubbles of the same snapshot."""
    id: int
    origen: int
    destino: int
    tipo: Optional[str] = Field(default=None, max_length=64)


class SnapshotRequest(BaseModel):
    """Upsert body: the full state of one user's day."""
    usuario_id: Annotated[str, Field(
        min_length=1,
        max_length=64,
        examples=["user_1718000000000_k3j9x0q2a"],
    )]
    fecha: date = Field(examples=["2026-02-20"])
    burbujas: list[Burbuja] = Field(default_factory=list)
    conexiones: list[Conexion] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """A stored day. Unknown days come back with id=None and empty arrays."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    usuario_id: Optional[str] = None
    fecha: Optional[str] = None
    burbujas: list[Burbuja] = Field(default_factory=list)
    conexiones: list[Conexion] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
