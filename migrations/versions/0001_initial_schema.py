"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

One row per (usuario_id, fecha). Bubble and connection arrays are stored
as JSON and replaced wholesale on every upsert.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "emociones",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("usuario_id", sa.String(64), nullable=False),
        sa.Column("fecha", sa.Date(), nullable=False),
        sa.Column("burbujas", sa.JSON(), nullable=False),
        sa.Column("conexiones", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_emociones_id", "emociones", ["id"])
    op.create_index("ix_emociones_usuario_id", "emociones", ["usuario_id"])
    op.create_index("ix_emociones_fecha", "emociones", ["fecha"])
    op.create_unique_constraint(
        "uq_emociones_usuario_fecha",
        "emociones",
        ["usuario_id", "fecha"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_emociones_usuario_fecha", "emociones", type_="unique")
    op.drop_index("ix_emociones_fecha", table_name="emociones")
    op.drop_index("ix_emociones_usuario_id", table_name="emociones")
    op.drop_index("ix_emociones_id", table_name="emociones")
    op.drop_table("emociones")
