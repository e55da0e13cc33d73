"""create domains and subdomains tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "TXT", "SRV", "NS")
STATUSES = ("pending", "active", "failed", "inactive")


def upgrade() -> None:
    op.create_table(
        "domains",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("full_domain", sa.String(255), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "subdomains",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "domain_id",
            sa.BigInteger(),
            sa.ForeignKey("domains.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(63), nullable=False),
        sa.Column("record_type", sa.Enum(*RECORD_TYPES, name="dns_record_type"), nullable=False),
        sa.Column("target_value", sa.String(255), nullable=False),
        sa.Column("ttl", sa.Integer(), nullable=False, server_default="3600"),
        sa.Column("priority", sa.Integer(), nullable=True),
        sa.Column("port", sa.Integer(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="subdomain_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dns_created", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dns_propagated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dns_error", sa.Text(), nullable=True),
        sa.Column("last_checked", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("creation_retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("previous_target_value", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("ttl >= 60 AND ttl <= 86400", name="valid_ttl"),
    )

    op.create_index("ix_subdomains_domain_id", "subdomains", ["domain_id"])
    op.create_index("ix_subdomains_status", "subdomains", ["status"])
    op.create_index(
        "uq_subdomains_active_name",
        "subdomains",
        ["domain_id", "name"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index(
        "ix_subdomains_propagation_lookup",
        "subdomains",
        ["status", "retry_count"],
        postgresql_where=sa.text("is_active AND NOT dns_propagated"),
    )
    op.create_index(
        "ix_subdomains_retry_lookup",
        "subdomains",
        ["creation_retry_count"],
        postgresql_where=sa.text("is_active AND NOT dns_created AND status = 'failed'"),
    )


def downgrade() -> None:
    op.drop_index("ix_subdomains_retry_lookup", table_name="subdomains")
    op.drop_index("ix_subdomains_propagation_lookup", table_name="subdomains")
    op.drop_index("uq_subdomains_active_name", table_name="subdomains")
    op.drop_index("ix_subdomains_status", table_name="subdomains")
    op.drop_index("ix_subdomains_domain_id", table_name="subdomains")
    op.drop_table("subdomains")
    op.drop_table("domains")

    sa.Enum(name="subdomain_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="dns_record_type").drop(op.get_bind(), checkfirst=True)
