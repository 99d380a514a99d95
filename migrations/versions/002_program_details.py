"""Program details — schedule, location, price, waiver and custom questions

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 12:00:00.000000

Changes:
  - programs: add start_date, end_date, registration_deadline, location, price, waiver_text
  - Create program_questions table (per-program registration questions)
  - registrations: add answers (JSON) and waiver_accepted_at
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── programs: schedule, location, price, waiver ───────────────────────────
    op.add_column("programs", sa.Column("start_date", sa.Date(), nullable=True))
    op.add_column("programs", sa.Column("end_date", sa.Date(), nullable=True))
    op.add_column("programs", sa.Column("registration_deadline", sa.Date(), nullable=True))
    op.add_column("programs", sa.Column("location", sa.String(255), nullable=True))
    op.add_column(
        "programs",
        sa.Column(
            "price",
            sa.Numeric(10, 2),
            nullable=False,
            server_default="0",
        ),
    )
    op.add_column("programs", sa.Column("waiver_text", sa.String(4000), nullable=True))

    # ── program_questions ─────────────────────────────────────────────────────
    op.create_table(
        "program_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "program_id",
            sa.Integer(),
            sa.ForeignKey("programs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="text"),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("options", sa.JSON(), nullable=True),
    )
    op.create_index("ix_program_questions_program_id", "program_questions", ["program_id"])

    # ── registrations: answers and waiver acceptance ──────────────────────────
    op.add_column("registrations", sa.Column("answers", sa.JSON(), nullable=True))
    op.add_column("registrations", sa.Column("waiver_accepted_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_column("registrations", "waiver_accepted_at")
    op.drop_column("registrations", "answers")
    op.drop_index("ix_program_questions_program_id", table_name="program_questions")
    op.drop_table("program_questions")
    op.drop_column("programs", "waiver_text")
    op.drop_column("programs", "price")
    op.drop_column("programs", "location")
    op.drop_column("programs", "registration_deadline")
    op.drop_column("programs", "end_date")
    op.drop_column("programs", "start_date")
