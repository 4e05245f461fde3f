"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

Hey future me - this is the WHOLE schema in one go:

1. users / admins: two separate actor tables with identical columns
   (soft delete + audit stamps, unique email, optional spotify_id/google_id)
2. artists: soft delete + stamps, owner_id -> users.id (SET NULL), unique spotify_id,
   CHECK popularity 0..100 and followers_count >= 0
3. roles / permissions + pivots: guard scoped, holders are (model_type, model_id)
4. oauth_tokens: UNIQUE (tokenable_type, tokenable_id, provider), tokens stored as
   Fernet ciphertext in TEXT columns
5. temporary_files / media / notifications

Stamp columns (created_by etc.) are plain ints on purpose - whether they point at a user
or an admin depends on the table, so there is no FK.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _soft_delete_stamps() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("restored_by", sa.Integer(), nullable=True),
        sa.Column("restored_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _create_actor_table(table: str) -> None:
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=True),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("spotify_id", sa.String(255), nullable=True),
        sa.Column("google_id", sa.String(255), nullable=True),
        *_timestamps(),
        *_soft_delete_stamps(),
    )
    op.create_index(f"ix_{table}_email", table, ["email"], unique=True)
    op.create_index(f"ix_{table}_spotify_id", table, ["spotify_id"])
    op.create_index(f"ix_{table}_google_id", table, ["google_id"])
    op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def upgrade() -> None:
    """Create every table."""
    _create_actor_table("users")
    _create_actor_table("admins")

    op.create_table(
        "artists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("spotify_id", sa.String(64), nullable=True, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("popularity", sa.Integer(), nullable=True),
        sa.Column("followers_count", sa.Integer(), nullable=True),
        *_timestamps(),
        *_soft_delete_stamps(),
        sa.CheckConstraint(
            "popularity IS NULL OR (popularity >= 0 AND popularity <= 100)",
            name="ck_artists_popularity_range",
        ),
        sa.CheckConstraint(
            "followers_count IS NULL OR followers_count >= 0",
            name="ck_artists_followers_non_negative",
        ),
    )
    op.create_index("ix_artists_owner_id", "artists", ["owner_id"])
    op.create_index("ix_artists_name", "artists", ["name"])
    op.create_index("ix_artists_deleted_at", "artists", ["deleted_at"])

    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("guard_name", sa.String(32), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("name", "guard_name", name="uq_permissions_name_guard"),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("guard_name", sa.String(32), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("name", "guard_name", name="uq_roles_name_guard"),
    )
    op.create_table(
        "role_has_permissions",
        sa.Column(
            "permission_id",
            sa.Integer(),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "role_id",
            sa.Integer(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_table(
        "model_has_roles",
        sa.Column(
            "role_id",
            sa.Integer(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("model_type", sa.String(16), primary_key=True),
        sa.Column("model_id", sa.Integer(), primary_key=True),
    )
    op.create_index("ix_model_has_roles_model", "model_has_roles", ["model_type", "model_id"])
    op.create_table(
        "model_has_permissions",
        sa.Column(
            "permission_id",
            sa.Integer(),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("model_type", sa.String(16), primary_key=True),
        sa.Column("model_id", sa.Integer(), primary_key=True),
    )
    op.create_index(
        "ix_model_has_permissions_model", "model_has_permissions", ["model_type", "model_id"]
    )

    op.create_table(
        "oauth_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tokenable_type", sa.String(16), nullable=False),
        sa.Column("tokenable_id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("provider_user_id", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scopes", sa.JSON(), nullable=False),
        sa.Column("provider_data", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "tokenable_type", "tokenable_id", "provider", name="uq_oauth_tokens_owner_provider"
        ),
    )
    op.create_index("ix_oauth_tokens_expires", "oauth_tokens", ["expires_at"])
    op.create_index("ix_oauth_tokens_active", "oauth_tokens", ["is_active"])

    op.create_table(
        "temporary_files",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("folder", sa.String(36), nullable=False, unique=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(127), nullable=True),
        sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_temporary_files_expires_at", "temporary_files", ["expires_at"])

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("model_type", sa.String(32), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=False),
        sa.Column("collection_name", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(127), nullable=True),
        sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_media_owner_collection", "media", ["model_type", "model_id", "collection_name"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False, server_default="normal"),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("recipient_type", sa.String(16), nullable=True),
        sa.Column("recipient_id", sa.Integer(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index(
        "ix_notifications_recipient", "notifications", ["recipient_type", "recipient_id"]
    )


def downgrade() -> None:
    """Drop every table (reverse dependency order)."""
    op.drop_table("notifications")
    op.drop_table("media")
    op.drop_table("temporary_files")
    op.drop_table("oauth_tokens")
    op.drop_table("model_has_permissions")
    op.drop_table("model_has_roles")
    op.drop_table("role_has_permissions")
    op.drop_table("roles")
    op.drop_table("permissions")
    op.drop_table("artists")
    op.drop_table("admins")
    op.drop_table("users")
