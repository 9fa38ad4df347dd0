"""Initial schema: users, groups, playlists, rounds and submissions.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column[object]:
    return sa.Column("id", sa.Uuid(), nullable=False)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column[object]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "user",
        _id(),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_user"),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )
    op.create_table(
        "user_music_account",
        _id(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        _timestamp("expires_at", nullable=True),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_user_music_account"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user.id"],
            name="fk_user_music_account_user_id_user",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "user_id", "platform", name="uq_user_music_account_user_id_platform"
        ),
    )
    op.create_index(
        "ix_user_music_account_expires_at", "user_music_account", ["expires_at"]
    )
    op.create_table(
        "user_music_preferences",
        _id(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("preferred_platform", sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_user_music_preferences"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user.id"],
            name="fk_user_music_preferences_user_id_user",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", name="uq_user_music_preferences_user_id"),
    )
    op.create_table(
        "user_email_alias",
        _id(),
        sa.Column("alias_email", sa.String(length=320), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_user_email_alias"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["user.id"],
            name="fk_user_email_alias_user_id_user",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("alias_email", name="uq_user_email_alias_alias_email"),
    )
    op.create_index("ix_user_email_alias_user_id", "user_email_alias", ["user_id"])

    op.create_table(
        "group",
        _id(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("admin_user_id", sa.Uuid(), nullable=False),
        sa.Column("invite_code", sa.String(length=8), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_group"),
        sa.ForeignKeyConstraint(
            ["admin_user_id"], ["user.id"], name="fk_group_admin_user_id_user"
        ),
        sa.UniqueConstraint("invite_code", name="uq_group_invite_code"),
    )
    op.create_index("ix_group_admin_user_id", "group", ["admin_user_id"])
    op.create_table(
        "group_member",
        _id(),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        _timestamp("joined_at"),
        sa.PrimaryKeyConstraint("id", name="pk_group_member"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["group.id"], name="fk_group_member_group_id_group", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["user.id"], name="fk_group_member_user_id_user", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member_group_id_user_id"),
    )
    op.create_index("ix_group_member_user_id", "group_member", ["user_id"])
    op.create_table(
        "group_playlist",
        _id(),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("platform_playlist_id", sa.String(length=255), nullable=False),
        sa.Column("playlist_url", sa.String(length=500), nullable=True),
        sa.Column("playlist_name", sa.String(length=255), nullable=False),
        sa.Column("owner_user_id", sa.Uuid(), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False),
        _timestamp("last_updated", nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_group_playlist"),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["group.id"],
            name="fk_group_playlist_group_id_group",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["owner_user_id"], ["user.id"], name="fk_group_playlist_owner_user_id_user"
        ),
    )
    op.create_index(
        "uq_group_playlist_active",
        "group_playlist",
        ["group_id", "platform"],
        unique=True,
        sqlite_where=sa.text("state = 'active'"),
        postgresql_where=sa.text("state = 'active'"),
    )
    op.create_index("ix_group_playlist_owner_user_id", "group_playlist", ["owner_user_id"])

    op.create_table(
        "song",
        _id(),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("artist", sa.String(length=500), nullable=False),
        sa.Column("album", sa.String(length=500), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("platform_ids", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_song"),
    )
    op.create_table(
        "daily_round",
        _id(),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        _timestamp("deadline_at"),
        sa.Column("status", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_daily_round"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["group.id"], name="fk_daily_round_group_id_group", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("group_id", "date", name="uq_daily_round_group_id_date"),
    )
    op.create_index("ix_daily_round_date", "daily_round", ["date", "status"])
    op.create_table(
        "submission",
        _id(),
        sa.Column("round_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("song_id", sa.Uuid(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        _timestamp("submitted_at"),
        sa.PrimaryKeyConstraint("id", name="pk_submission"),
        sa.ForeignKeyConstraint(
            ["round_id"],
            ["daily_round.id"],
            name="fk_submission_round_id_daily_round",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["user.id"], name="fk_submission_user_id_user", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["song_id"], ["song.id"], name="fk_submission_song_id_song"),
        sa.UniqueConstraint("round_id", "user_id", name="uq_submission_round_id_user_id"),
    )
    op.create_index("ix_submission_user_id", "submission", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_submission_user_id", table_name="submission")
    op.drop_table("submission")
    op.drop_index("ix_daily_round_date", table_name="daily_round")
    op.drop_table("daily_round")
    op.drop_table("song")
    op.drop_index("ix_group_playlist_owner_user_id", table_name="group_playlist")
    op.drop_index("uq_group_playlist_active", table_name="group_playlist")
    op.drop_table("group_playlist")
    op.drop_index("ix_group_member_user_id", table_name="group_member")
    op.drop_table("group_member")
    op.drop_index("ix_group_admin_user_id", table_name="group")
    op.drop_table("group")
    op.drop_index("ix_user_email_alias_user_id", table_name="user_email_alias")
    op.drop_table("user_email_alias")
    op.drop_table("user_music_preferences")
    op.drop_index("ix_user_music_account_expires_at", table_name="user_music_account")
    op.drop_table("user_music_account")
    op.drop_table("user")
