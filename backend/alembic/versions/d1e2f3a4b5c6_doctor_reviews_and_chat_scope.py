"""Doctor reviews, record uploader, per-user chat session ids.

Revision ID: d1e2f3a4b5c6
Revises: c0a1b2c3d4e5
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "d1e2f3a4b5c6"
down_revision = "c0a1b2c3d4e5"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("doctor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("patient_name", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_reviews_id", "reviews", ["id"])
    op.create_index("ix_reviews_doctor_id", "reviews", ["doctor_id"])

    with op.batch_alter_table("medical_records") as batch_op:
        batch_op.add_column(sa.Column("uploaded_by_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key("fk_medical_records_uploaded_by_id", "users", ["uploaded_by_id"], ["id"])

    with op.batch_alter_table("chat_sessions") as batch_op:
        batch_op.drop_index("ix_chat_sessions_session_id")
        batch_op.create_index("ix_chat_sessions_session_id", ["session_id"])
        batch_op.create_index("uq_chat_sessions_user_session", ["user_id", "session_id"], unique=True)


def downgrade() -> None:
    with op.batch_alter_table("chat_sessions") as batch_op:
        batch_op.drop_index("uq_chat_sessions_user_session")
        batch_op.drop_index("ix_chat_sessions_session_id")
        batch_op.create_index("ix_chat_sessions_session_id", ["session_id"], unique=True)

    with op.batch_alter_table("medical_records") as batch_op:
        batch_op.drop_constraint("fk_medical_records_uploaded_by_id", type_="foreignkey")
        batch_op.drop_column("uploaded_by_id")

    op.drop_index("ix_reviews_doctor_id", table_name="reviews")
    op.drop_index("ix_reviews_id", table_name="reviews")
    op.drop_table("reviews")
