"""Create brandingconfig table

Revision ID: 0001_branding_config
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_branding_config"
down_revision = None
branch_labels = None
depends_on = None

DOMAIN_STATUSES = ("NONE", "PENDING", "ACTIVE", "FAILED")


def upgrade() -> None:
    op.create_table(
        "brandingconfig",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("brand_name", sa.String(100), nullable=True),
        sa.Column("header_text", sa.String(200), nullable=True),
        sa.Column("footer_text", sa.String(500), nullable=True),
        sa.Column("support_email", sa.String(255), nullable=True),
        sa.Column("privacy_policy_url", sa.String(500), nullable=True),
        sa.Column("terms_of_service_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=True),
        sa.Column("secondary_color", sa.String(7), nullable=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("favicon_url", sa.String(500), nullable=True),
        sa.Column("hide_branding", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("custom_domain", sa.String(255), nullable=True),
        sa.Column(
            "domain_status",
            sa.Enum(*DOMAIN_STATUSES, name="domain_status", native_enum=False, length=16),
            nullable=False,
            server_default="NONE",
        ),
        sa.Column("verification_host", sa.String(255), nullable=True),
        sa.Column("verification_value", sa.String(255), nullable=True),
        sa.Column("verification_record_type", sa.String(16), nullable=True),
        sa.Column("verification_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("domain_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("domain_last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_brandingconfig_id", "brandingconfig", ["id"])
    op.create_index("ix_brandingconfig_tenant_id", "brandingconfig", ["tenant_id"], unique=True)
    # 同一網域只能綁定一個租戶
    op.create_index("ix_brandingconfig_custom_domain", "brandingconfig", ["custom_domain"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_brandingconfig_custom_domain", table_name="brandingconfig")
    op.drop_index("ix_brandingconfig_tenant_id", table_name="brandingconfig")
    op.drop_index("ix_brandingconfig_id", table_name="brandingconfig")
    op.drop_table("brandingconfig")
