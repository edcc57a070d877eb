"""initial schema

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-10-19 09:12:44.381207

"""

from alembic import op
import sqlalchemy as sa

revision = "3f9c2a7d1e04"
down_revision = None
branch_labels = None
depends_on = None

SUBMISSION_STATUSES = (
    "draft",
    "submitted",
    "under_review",
    "approved",
    "rejected",
    "forwarded",
    "completed",
)
DOCUMENT_CATEGORIES = (
    "formal_law",
    "circular",
    "implementation_policy",
    "work_instruction",
)
DOCUMENT_CLASSIFICATIONS = ("public", "limited_use", "restricted")
AUDIT_ACTIONS = (
    "submission_created",
    "submission_updated",
    "submission_submitted",
    "submission_status_changed",
    "submission_forwarded",
    "submission_deleted",
    "submission_expired",
    "document_uploaded",
    "document_deleted",
    "slot_booked",
    "slot_cancelled",
    "slot_created",
    "slot_deleted",
    "admin_login",
    "admin_logout",
    "uploader_login",
    "uploader_logout",
    "data_exported",
)
AUDIT_ACTOR_TYPES = ("applicant", "uploader", "admin", "system")


def upgrade() -> None:
    # --- Identity ---
    op.create_table(
        "admin_users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("admin_user_id", sa.UUID(), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["admin_user_id"], ["admin_users.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index(
        "ix_admin_sessions_expires_at", "admin_sessions", ["expires_at"]
    )

    # --- Submissions ---
    op.create_table(
        "submissions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("slug", sa.String(length=50), nullable=False),
        sa.Column("submitter_name", sa.String(length=255), nullable=False),
        sa.Column("submitter_email", sa.String(length=255), nullable=True),
        sa.Column("organization", sa.String(length=255), nullable=False),
        sa.Column("organization_department", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*SUBMISSION_STATUSES, name="submission_status"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retention_expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "slug ~ '^[a-z0-9]([a-z0-9-]*[a-z0-9])?$'", name="ck_submissions_slug"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_submissions_status", "submissions", ["status"])
    op.create_index("ix_submissions_created_at", "submissions", ["created_at"])

    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("submission_id", sa.UUID(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*DOCUMENT_CATEGORIES, name="document_category"),
            nullable=False,
        ),
        sa.Column(
            "classification",
            sa.Enum(*DOCUMENT_CLASSIFICATIONS, name="document_classification"),
            nullable=False,
        ),
        sa.Column("external_url", sa.String(length=2048), nullable=True),
        sa.Column("external_title", sa.String(length=500), nullable=True),
        sa.Column("filename", sa.String(length=500), nullable=True),
        sa.Column("original_filename", sa.String(length=500), nullable=True),
        sa.Column("file_path", sa.String(length=1000), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(external_url IS NOT NULL AND file_path IS NULL)"
            " OR (external_url IS NULL AND file_path IS NOT NULL)",
            name="ck_documents_link_or_file",
        ),
        sa.CheckConstraint(
            "category != 'formal_law' OR (classification = 'public'"
            " AND file_path IS NULL)",
            name="ck_documents_formal_law_public_link",
        ),
        sa.ForeignKeyConstraint(
            ["submission_id"], ["submissions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_submission_id", "documents", ["submission_id"])

    op.create_table(
        "uploader_sessions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("submission_id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["submission_id"], ["submissions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index(
        "ix_uploader_sessions_expires_at", "uploader_sessions", ["expires_at"]
    )
    op.create_index(
        "ix_uploader_sessions_submission_id", "uploader_sessions", ["submission_id"]
    )

    # --- Calendar ---
    op.create_table(
        "calendar_slots",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("slot_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("slot_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("booked_by_submission", sa.UUID(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("slot_end > slot_start", name="ck_calendar_slots_range"),
        sa.ForeignKeyConstraint(
            ["booked_by_submission"], ["submissions.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["admin_users.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_calendar_slots_start", "calendar_slots", ["slot_start"])
    op.create_index(
        "ix_calendar_slots_booked_by", "calendar_slots", ["booked_by_submission"]
    )

    # --- Rate limiting and audit ---
    op.create_table(
        "rate_limit_attempts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False),
        sa.Column("endpoint", sa.String(length=100), nullable=False),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rate_limit_attempts_lookup",
        "rate_limit_attempts",
        ["ip_address", "endpoint", "attempted_at"],
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("action", sa.Enum(*AUDIT_ACTIONS, name="audit_action"), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.UUID(), nullable=True),
        sa.Column(
            "actor_type",
            sa.Enum(*AUDIT_ACTOR_TYPES, name="audit_actor_type"),
            nullable=False,
        ),
        sa.Column("actor_id", sa.UUID(), nullable=True),
        sa.Column("actor_ip", sa.String(length=64), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_rate_limit_attempts_lookup", table_name="rate_limit_attempts")
    op.drop_table("rate_limit_attempts")
    op.drop_index("ix_calendar_slots_booked_by", table_name="calendar_slots")
    op.drop_index("ix_calendar_slots_start", table_name="calendar_slots")
    op.drop_table("calendar_slots")
    op.drop_index("ix_uploader_sessions_submission_id", table_name="uploader_sessions")
    op.drop_index("ix_uploader_sessions_expires_at", table_name="uploader_sessions")
    op.drop_table("uploader_sessions")
    op.drop_index("ix_documents_submission_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_submissions_created_at", table_name="submissions")
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_admin_sessions_expires_at", table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_table("admin_users")

    bind = op.get_bind()
    for name in (
        "audit_actor_type",
        "audit_action",
        "document_classification",
        "document_category",
        "submission_status",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
