"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("CREATE EXTENSION IF NOT EXISTS citext")

    op.create_table(
        "operators",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("brand_name", postgresql.CITEXT(), nullable=False, unique=True),
        sa.Column("source", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("operators_brand_name_idx", "operators", ["brand_name"])

    op.create_table(
        "domain_candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("operator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("operators.id", ondelete="CASCADE"), nullable=False),
        sa.Column("domain", postgresql.CITEXT(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Numeric(4, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("title", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("brand_match", sa.Boolean()),
        sa.Column("verified_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("verification", postgresql.JSONB()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("operator_id", "domain", name="domain_candidates_operator_domain_uidx"),
    )
    op.create_index("domain_candidates_confidence_idx", "domain_candidates", ["confidence"])
    op.create_index("domain_candidates_pending_idx", "domain_candidates", ["verified_at", "rejected_at"])

    op.create_table(
        "websites",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("operator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("operators.id", ondelete="CASCADE"), nullable=False),
        sa.Column("domain", postgresql.CITEXT(), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column("content_hash", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("operator_id", "domain", name="websites_operator_domain_uidx"),
    )
    op.create_index("websites_active_idx", "websites", ["is_active"])

    op.create_table(
        "job_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("job_name", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text()),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("processed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("details", postgresql.JSONB()),
        sa.Column("error", sa.Text()),
    )
    op.create_index("job_runs_name_status_idx", "job_runs", ["job_name", "status"])
    op.create_index("job_runs_started_at_idx", "job_runs", ["started_at"])


def downgrade():
    op.drop_index("job_runs_started_at_idx", table_name="job_runs")
    op.drop_index("job_runs_name_status_idx", table_name="job_runs")
    op.drop_table("job_runs")
    op.drop_index("websites_active_idx", table_name="websites")
    op.drop_table("websites")
    op.drop_index("domain_candidates_pending_idx", table_name="domain_candidates")
    op.drop_index("domain_candidates_confidence_idx", table_name="domain_candidates")
    op.drop_table("domain_candidates")
    op.drop_index("operators_brand_name_idx", table_name="operators")
    op.drop_table("operators")
