from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, Float, String, Text, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.models.base import Base
from app.models.user import User


SPELL_THE_WORD = "spell-the-word"
GUEST_PARTICIPANT = "guest"
GAME_NAME_CONSTRAINT = "uq_games_name"


class Game(Base):
    __tablename__ = "games"

    # uuid4 строкой, генерируется сервисом до загрузки файлов
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # игру удаляет только сервис, вместе с её файлами
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    template_kind: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=SPELL_THE_WORD,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    thumbnail_asset: Mapped[str] = mapped_column(String(512), nullable=False)

    # {score_per_item, time_limit, items: [{text, image_asset, audio_asset, hint}, ...]}
    content: Mapped[dict] = mapped_column(JSON, nullable=False)

    total_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    leaderboard: Mapped[List["LeaderboardEntry"]] = relationship(
        back_populates="game",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (UniqueConstraint("name", name=GAME_NAME_CONSTRAINT),)


class LeaderboardEntry(Base):
    __tablename__ = "leaderboards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    game_id: Mapped[str] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    # str(user_id) или "guest": в unique-индексе NULL-ы не равны друг другу
    participant_key: Mapped[str] = mapped_column(String(40), nullable=False)

    player_name: Mapped[str] = mapped_column(String(50), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False)
    accuracy: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    game: Mapped["Game"] = relationship(back_populates="leaderboard")
    user: Mapped[Optional["User"]] = relationship()

    __table_args__ = (
        UniqueConstraint("game_id", "participant_key", name="uq_leaderboard_game_participant"),
    )


def participant_key(user_id: int | None) -> str:
    return GUEST_PARTICIPANT if user_id is None else str(user_id)
