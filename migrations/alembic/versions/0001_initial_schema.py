"""Initial schema - identity, tokens, folders, media, albums, sharing

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Creates every table of the Galera schema. Ownership edges cascade on delete
so that removing a user, album, folder or refresh token is a single DELETE.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

THUMBNAIL_FK = "fk_albums_thumbnail_link_media"


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    # SQLite cannot ALTER in a foreign key, but accepts forward references
    inline_thumbnail_fk = op.get_bind().dialect.name == "sqlite"

    # ==========================================================================
    # Identity
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "federated_identities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("provider_key", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "provider_key", "subject", name="uq_federated_identities_provider_subject"
        ),
    )
    op.create_index("ix_federated_identities_user_id", "federated_identities", ["user_id"])

    # ==========================================================================
    # Tokens
    # ==========================================================================
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    op.create_table(
        "access_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("refresh_token_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["refresh_token_id"], ["refresh_tokens.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index("ix_access_tokens_refresh_token_id", "access_tokens", ["refresh_token_id"])

    # ==========================================================================
    # Content index
    # ==========================================================================
    op.create_table(
        "folders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["folders.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_id"),
    )
    op.create_index("ix_folders_owner_id", "folders", ["owner_id"])
    op.create_index("ix_folders_parent_id", "folders", ["parent_id"])

    op.create_table(
        "media_contents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("content_hash", sa.String(128), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("owner_id", "content_hash", name="uq_media_contents_owner_hash"),
    )

    # ==========================================================================
    # Albums and media (albums.thumbnail_link <-> media.album_id is a cycle)
    # ==========================================================================
    album_constraints = [
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("link"),
    ]
    if inline_thumbnail_fk:
        album_constraints.append(
            sa.ForeignKeyConstraint(
                ["thumbnail_link"],
                ["media.external_id"],
                ondelete="SET NULL",
                name=THUMBNAIL_FK,
            )
        )
    op.create_table(
        "albums",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("link", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("thumbnail_link", sa.Uuid(), nullable=True),
        _created_at(),
        *album_constraints,
    )
    op.create_index("ix_albums_owner_id", "albums", ["owner_id"])

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.Uuid(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("folder_id", sa.Integer(), nullable=False),
        sa.Column("album_id", sa.Integer(), nullable=True),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("content_hash", sa.String(128), nullable=False),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("taken_at", sa.DateTime(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["content_id"], ["media_contents.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_id"),
        sa.UniqueConstraint("folder_id", "content_id", name="uq_media_folder_content"),
    )
    op.create_index("ix_media_owner_id", "media", ["owner_id"])
    op.create_index("ix_media_content_hash", "media", ["content_hash"])

    if not inline_thumbnail_fk:
        op.create_foreign_key(
            THUMBNAIL_FK,
            "albums",
            "media",
            ["thumbnail_link"],
            ["external_id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "favorite_media",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("media_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["media_id"], ["media.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("media_id", "user_id", name="uq_favorite_media_pair"),
    )
    op.create_index("ix_favorite_media_user_id", "favorite_media", ["user_id"])

    # ==========================================================================
    # Album graph
    # ==========================================================================
    op.create_table(
        "album_media",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("album_id", sa.Integer(), nullable=False),
        sa.Column("media_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["media_id"], ["media.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("album_id", "media_id", name="uq_album_media_pair"),
    )
    op.create_index("ix_album_media_media_id", "album_media", ["media_id"])

    op.create_table(
        "album_invites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("album_id", sa.Integer(), nullable=False),
        sa.Column("invited_user_id", sa.Integer(), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False),
        sa.Column("write_access", sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("album_id", "invited_user_id", name="uq_album_invites_album_user"),
    )
    op.create_index("ix_album_invites_invited_user_id", "album_invites", ["invited_user_id"])

    op.create_table(
        "album_share_links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(32), nullable=False),
        sa.Column("album_id", sa.Integer(), nullable=False),
        sa.Column("link", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_id"),
        sa.UniqueConstraint("link"),
    )
    op.create_index("ix_album_share_links_album_id", "album_share_links", ["album_id"])


def downgrade() -> None:
    op.drop_table("album_share_links")
    op.drop_table("album_invites")
    op.drop_table("album_media")
    op.drop_table("favorite_media")
    if op.get_bind().dialect.name != "sqlite":
        op.drop_constraint(THUMBNAIL_FK, "albums", type_="foreignkey")
    op.drop_table("media")
    op.drop_table("albums")
    op.drop_table("media_contents")
    op.drop_table("folders")
    op.drop_table("access_tokens")
    op.drop_table("refresh_tokens")
    op.drop_table("federated_identities")
    op.drop_table("users")
