"""
DailyEmotion — one emotion snapshot per (usuario_id, fecha).

`burbujas` and `conexiones` are stored whole as JSON arrays. An upsert for
an existing pair replaces both arrays in place and bumps `updated_at`;
there is no merge with the previous contents.
"""
from datetime import datetime, date
from sqlalchemy import JSON, Integer, String, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from registro.db.base import Base


class DailyEmotion(Base):
    __tablename__ = "emociones"
    __table_args__ = (
        UniqueConstraint("usuario_id", "fecha", name="uq_emociones_usuario_fecha"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    usuario_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    fecha: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    burbujas: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    conexiones: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
