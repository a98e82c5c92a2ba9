"""create tenants, rbac, audit and disclosure form tables

Revision ID: 4f2a9c1e7b10
Revises:
Create Date: 2026-10-19 09:12:44.218301
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "4f2a9c1e7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONDocument = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.String(300), nullable=True),
    )

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("actor_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("event_metadata", JSONDocument, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_events_organization_id", "audit_events", ["organization_id"])

    op.create_table(
        "disclosure_form_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("disclosure_type", sa.String(40), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.Uuid(), nullable=True),
        sa.Column(
            "parent_template_id",
            sa.Uuid(),
            sa.ForeignKey("disclosure_form_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("language", sa.String(20), nullable=False, server_default="en"),
        sa.Column("fields", JSONDocument, nullable=False),
        sa.Column("sections", JSONDocument, nullable=False),
        sa.Column("validation_rules", JSONDocument, nullable=True),
        sa.Column("calculated_fields", JSONDocument, nullable=True),
        sa.Column("ui_schema", JSONDocument, nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "organization_id", "name", "version", name="uq_disclosure_form_templates_org_name_version"
        ),
        sa.CheckConstraint(
            "status IN ('DRAFT','PUBLISHED','ARCHIVED')",
            name="ck_disclosure_form_templates_status",
        ),
        sa.CheckConstraint(
            "disclosure_type IN ('COI','GIFT','OUTSIDE_EMPLOYMENT','ATTESTATION',"
            "'POLITICAL','CHARITABLE','TRAVEL','CUSTOM')",
            name="ck_disclosure_form_templates_type",
        ),
        sa.CheckConstraint("version >= 1", name="ck_disclosure_form_templates_version"),
    )
    op.create_index(
        "ix_disclosure_form_templates_org_type", "disclosure_form_templates", ["organization_id", "disclosure_type"]
    )
    op.create_index(
        "ix_disclosure_form_templates_org_status", "disclosure_form_templates", ["organization_id", "status"]
    )
    op.create_index(
        "ix_disclosure_form_templates_parent_template_id", "disclosure_form_templates", ["parent_template_id"]
    )

    op.create_table(
        "disclosure_submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "form_template_id",
            sa.Uuid(),
            sa.ForeignKey("disclosure_form_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("form_version", sa.Integer(), nullable=True),
        sa.Column("submitted_by_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_disclosure_submissions_form_template_id", "disclosure_submissions", ["form_template_id"]
    )

    op.create_table(
        "campaigns",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "disclosure_form_template_id",
            sa.Uuid(),
            sa.ForeignKey("disclosure_form_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('DRAFT','SCHEDULED','ACTIVE','PAUSED','COMPLETED','CANCELLED')",
            name="ck_campaigns_status",
        ),
    )
    op.create_index(
        "ix_campaigns_disclosure_form_template_id", "campaigns", ["disclosure_form_template_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_campaigns_disclosure_form_template_id", table_name="campaigns")
    op.drop_table("campaigns")
    op.drop_index("ix_disclosure_submissions_form_template_id", table_name="disclosure_submissions")
    op.drop_table("disclosure_submissions")
    op.drop_index("ix_disclosure_form_templates_parent_template_id", table_name="disclosure_form_templates")
    op.drop_index("ix_disclosure_form_templates_org_status", table_name="disclosure_form_templates")
    op.drop_index("ix_disclosure_form_templates_org_type", table_name="disclosure_form_templates")
    op.drop_table("disclosure_form_templates")
    op.drop_index("ix_audit_events_organization_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_index("ix_users_organization_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
