"""add applications and stage_transitions tables

Revision ID: 20260301_pipeline_tables
Revises:
Create Date: 2026-03-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20260301_pipeline_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("silo_id", sa.String(length=64), nullable=False),
        sa.Column("product_category", sa.String(length=50), nullable=False),
        sa.Column("current_stage", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "current_stage IN ('received', 'requires_docs', 'in_review', 'startup_pipeline', "
            "'ready_for_signing', 'off_to_lender', 'offer', 'accepted', 'declined')",
            name="ck_applications_current_stage",
        ),
        sa.CheckConstraint("version >= 1", name="ck_applications_version_positive"),
    )
    op.create_index("ix_applications_silo_id", "applications", ["silo_id"])
    op.create_index("ix_applications_silo_stage", "applications", ["silo_id", "current_stage"])

    op.create_table(
        "stage_transitions",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True, nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("silo_id", sa.String(length=64), nullable=False),
        sa.Column("from_stage", sa.String(length=50), nullable=True),
        sa.Column("to_stage", sa.String(length=50), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.String(length=100), nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_stage_transitions_application_id", "stage_transitions", ["application_id", "id"]
    )
    op.create_index("ix_stage_transitions_silo_id", "stage_transitions", ["silo_id"])


def downgrade() -> None:
    op.drop_index("ix_stage_transitions_silo_id", table_name="stage_transitions")
    op.drop_index("ix_stage_transitions_application_id", table_name="stage_transitions")
    op.drop_table("stage_transitions")
    op.drop_index("ix_applications_silo_stage", table_name="applications")
    op.drop_index("ix_applications_silo_id", table_name="applications")
    op.drop_table("applications")
