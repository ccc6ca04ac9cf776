"""Initial verification store schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "principal_kind_enum": ("USER", "COMPANY"),
    "verification_kind_enum": ("ACCOUNT", "KYB"),
    "verification_status_enum": (
        "UNVERIFIED", "PENDING", "ACTIVE", "VERIFIED", "REJECTED",
    ),
}


def enum_type(name: str, create_constraint: bool = False):
    # Shared PostgreSQL types are created once in upgrade(), never per table
    values = ENUMS[name]
    return sa.Enum(
        *values, name=name, create_constraint=create_constraint
    ).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "principals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("kind", enum_type("principal_kind_enum", True), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "verification_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "principal_id", sa.Integer(),
            sa.ForeignKey("principals.id"), nullable=False,
        ),
        sa.Column("kind", enum_type("verification_kind_enum", True), nullable=False),
        sa.Column("status", enum_type("verification_status_enum", True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("evidence_batch", sa.Integer(), nullable=False),
        sa.Column("submitted_batch", sa.Integer(), nullable=False),
        sa.Column("pending_since", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("principal_id", "kind", name="uq_record_principal_kind"),
    )
    op.create_index(
        "ix_verification_records_principal_id",
        "verification_records", ["principal_id"],
    )
    op.create_index(
        "ix_verification_records_status", "verification_records", ["status"],
    )
    op.create_index(
        "ix_verification_records_pending_since",
        "verification_records", ["pending_since"],
    )

    op.create_table(
        "history_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "record_id", sa.Integer(),
            sa.ForeignKey("verification_records.id"), nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("from_status", enum_type("verification_status_enum"), nullable=False),
        sa.Column("to_status", enum_type("verification_status_enum"), nullable=False),
        sa.Column("actor", sa.String(100), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("record_id", "sequence", name="uq_history_record_sequence"),
    )
    op.create_index("ix_history_entries_record_id", "history_entries", ["record_id"])

    op.create_table(
        "evidence_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "record_id", sa.Integer(),
            sa.ForeignKey("verification_records.id"), nullable=False,
        ),
        sa.Column("batch", sa.Integer(), nullable=False),
        sa.Column("document_ref", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_evidence_documents_record_id", "evidence_documents", ["record_id"],
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("history_sequence", sa.Integer(), nullable=False),
        sa.Column("principal_id", sa.Integer(), nullable=False),
        sa.Column("kind", enum_type("verification_kind_enum"), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("actor", sa.String(100), nullable=False),
        sa.Column("from_status", enum_type("verification_status_enum"), nullable=False),
        sa.Column("to_status", enum_type("verification_status_enum"), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "record_id", "history_sequence", name="uq_audit_record_sequence"
        ),
    )
    op.create_index("ix_audit_log_record_id", "audit_log", ["record_id"])
    op.create_index("ix_audit_log_principal_id", "audit_log", ["principal_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("evidence_documents")
    op.drop_table("history_entries")
    op.drop_table("verification_records")
    op.drop_table("principals")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUMS:
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
