"""Add font_family and help_center_url to brandingconfig

Revision ID: 0002_branding_font_help_center
Revises: 0001_branding_config
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_branding_font_help_center"
down_revision = "0001_branding_config"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("brandingconfig", sa.Column("font_family", sa.String(200), nullable=True))
    op.add_column("brandingconfig", sa.Column("help_center_url", sa.String(500), nullable=True))


def downgrade() -> None:
    op.drop_column("brandingconfig", "help_center_url")
    op.drop_column("brandingconfig", "font_family")
