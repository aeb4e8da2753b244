"""users, games, leaderboards

Revision ID: 3b8d1f2a9c4e
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b8d1f2a9c4e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("profile_picture", sa.String(512), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
    )

    op.create_table(
        "games",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "owner_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "template_kind",
            sa.String(40),
            nullable=False,
            server_default="spell-the-word",
            comment="тип игры (формат content)",
        ),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("thumbnail_asset", sa.String(512), nullable=False),
        sa.Column(
            "content",
            sa.JSON(),
            nullable=False,
            comment="score_per_item, time_limit, items[{text, image_asset, audio_asset, hint}]",
        ),
        sa.Column("total_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint("name", name="uq_games_name"),
    )

    op.create_table(
        "leaderboards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "game_id",
            sa.String(36),
            sa.ForeignKey("games.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "participant_key",
            sa.String(40),
            nullable=False,
            comment="id пользователя строкой или 'guest'",
        ),
        sa.Column("player_name", sa.String(50), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("max_score", sa.Integer(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint("game_id", "participant_key", name="uq_leaderboard_game_participant"),
    )

    op.create_index("ix_games_owner_id", "games", ["owner_id"])
    op.create_index("ix_games_template_kind", "games", ["template_kind"])
    op.create_index("ix_leaderboards_game_id", "leaderboards", ["game_id"])
    # под сортировку топа
    op.create_index(
        "ix_leaderboards_game_score",
        "leaderboards",
        ["game_id", sa.text("score DESC"), "time_taken"],
    )


def downgrade() -> None:
    op.drop_index("ix_leaderboards_game_score", table_name="leaderboards")
    op.drop_index("ix_leaderboards_game_id", table_name="leaderboards")
    op.drop_index("ix_games_template_kind", table_name="games")
    op.drop_index("ix_games_owner_id", table_name="games")
    op.drop_table("leaderboards")
    op.drop_table("games")
    op.drop_table("users")
