"""
Canvas state: the bubbles and connections of the day being edited.

Pure in-memory model. The UI layer calls these methods in response to taps
and then hands `burbujas` / `conexiones` to StorageService.save().

Invariants kept here:
- one bubble per emotion name (re-tapping increments count)
- count == len(registros) for bubbles created through add_emotion
- connection endpoints always exist; deleting a bubble drops its connections
"""
from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from typing import Optional

from registro.schemas.emociones import Burbuja, Conexion, Registro

PALETTE: list[tuple[str, str]] = [
    ("Alegría", "#FFD700"),
    ("Tristeza", "#4169E1"),
    ("Enfado", "#DC143C"),
    ("Miedo", "#9370DB"),
    ("Calma", "#98FB98"),
    ("Amor", "#FF69B4"),
    ("Ansiedad", "#FF6347"),
    ("Sorpresa", "#FFA500"),
    ("Vergüenza", "#DDA0DD"),
    ("Frustración", "#8B0000"),
]

MIN_SIZE = 60
SIZE_STEP = 15
MAX_SIZE = 150


class CanvasError(ValueError):
    """An operation referenced a bubble or record that does not exist."""


def bubble_size(count: int) -> int:
    """Rendered diameter for a bubble tapped `count` times."""
    return min(MIN_SIZE + count * SIZE_STEP, MAX_SIZE)


def palette_color(nombre: str) -> Optional[str]:
    for name, color in PALETTE:
        if name == nombre:
            return color
    return None


class EmotionCanvas:
    def __init__(
        self,
        burbujas: Optional[list[Burbuja]] = None,
        conexiones: Optional[list[Conexion]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.burbujas: list[Burbuja] = list(burbujas or [])
        self.conexiones: list[Conexion] = list(conexiones or [])
        self._rng = rng or random.Random()
        self._last_id = max(
            [b.id for b in self.burbujas] + [c.id for c in self.conexiones] + [0]
        )

    @classmethod
    def from_snapshot(cls, snapshot: Optional[dict], rng: Optional[random.Random] = None) -> "EmotionCanvas":
        if not snapshot:
            return cls(rng=rng)
        return cls(
            burbujas=[Burbuja.model_validate(b) for b in snapshot.get("burbujas") or []],
            conexiones=[Conexion.model_validate(c) for c in snapshot.get("conexiones") or []],
            rng=rng,
        )

    def to_snapshot(self) -> dict:
        return {
            "burbujas": [b.model_dump(mode="json") for b in self.burbujas],
            "conexiones": [c.model_dump(mode="json") for c in self.conexiones],
        }

    # --- ids ---

    def _next_id(self) -> int:
        """Millisecond clock, bumped when two ids land in the same ms."""
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id

    # --- lookups ---

    def find(self, bubble_id: int) -> Burbuja:
        for b in self.burbujas:
            if b.id == bubble_id:
                return b
        raise CanvasError(f"No bubble with id {bubble_id}")

    def find_by_name(self, nombre: str) -> Optional[Burbuja]:
        for b in self.burbujas:
            if b.nombre == nombre:
                return b
        return None

    # --- mutations ---

    def add_emotion(
        self,
        nombre: str,
        color: Optional[str] = None,
        position: Optional[tuple[float, float]] = None,
    ) -> Burbuja:
        """
        Record one tap of an emotion. An existing bubble with the same name
        gets count + 1 and a new record; otherwise a bubble is created at
        `position` or at a random spot in the middle of the canvas.
        """
        registro = Registro(timestamp=datetime.now(tz=timezone.utc))
        existing = self.find_by_name(nombre)
        if existing is not None:
            existing.count += 1
            existing.registros.append(registro)
            return existing

        if position is None:
            position = (self._rng.uniform(20, 80), self._rng.uniform(20, 80))
        burbuja = Burbuja(
            id=self._next_id(),
            nombre=nombre,
            color=color or palette_color(nombre) or "#CCCCCC",
            count=1,
            x=position[0],
            y=position[1],
            registros=[registro],
        )
        self.burbujas.append(burbuja)
        return burbuja

    def move(self, bubble_id: int, x: float, y: float) -> Burbuja:
        burbuja = self.find(bubble_id)
        burbuja.x = min(max(x, 0.0), 100.0)
        burbuja.y = min(max(y, 0.0), 100.0)
        return burbuja

    def connect(self, origen: int, destino: int, tipo: Optional[str] = None) -> Conexion:
        if origen == destino:
            raise CanvasError("A bubble cannot be connected to itself")
        self.find(origen)
        self.find(destino)
        conexion = Conexion(id=self._next_id(), origen=origen, destino=destino, tipo=tipo)
        self.conexiones.append(conexion)
        return conexion

    def delete_bubble(self, bubble_id: int) -> None:
        self.find(bubble_id)
        self.burbujas = [b for b in self.burbujas if b.id != bubble_id]
        self.conexiones = [
            c for c in self.conexiones if c.origen != bubble_id and c.destino != bubble_id
        ]

    def delete_connection(self, conexion_id: int) -> None:
        remaining = [c for c in self.conexiones if c.id != conexion_id]
        if len(remaining) == len(self.conexiones):
            raise CanvasError(f"No connection with id {conexion_id}")
        self.conexiones = remaining

    def _record(self, bubble_id: int, index: int) -> Registro:
        burbuja = self.find(bubble_id)
        if not 0 <= index < len(burbuja.registros):
            raise CanvasError(f"Bubble {bubble_id} has no record #{index}")
        return burbuja.registros[index]

    def set_note(self, bubble_id: int, index: int, nota: Optional[str]) -> Registro:
        registro = self._record(bubble_id, index)
        registro.nota = nota or None
        return registro

    def set_intensity(self, bubble_id: int, index: int, intensidad: Optional[int]) -> Registro:
        if intensidad is not None and not 1 <= intensidad <= 10:
            raise CanvasError("intensidad must be between 1 and 10")
        registro = self._record(bubble_id, index)
        registro.intensidad = intensidad
        return registro
