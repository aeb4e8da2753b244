from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.models.game import GAME_NAME_CONSTRAINT, Game, LeaderboardEntry, participant_key
from app.models.user import User


logger = logging.getLogger(__name__)

NAME_TAKEN = "Game name is already used"


class GameRepository(Protocol):
    """Всё, что сервисам нужно от хранилища. В тестах подменяется in-memory."""

    async def find_game_by_id(self, game_id: str) -> Optional[Game]: ...

    async def find_game_by_name(self, name: str) -> Optional[Game]: ...

    async def create_game(self, game: Game) -> Game: ...

    async def update_game(self, game: Game, changes: Mapping[str, Any]) -> Game: ...

    async def delete_game(self, game: Game) -> None: ...

    async def upsert_leaderboard_entry(
        self, game_id: str, user_id: Optional[int], fields: Mapping[str, Any]
    ) -> Tuple[int, bool]:
        """Возвращает (id строки, была ли она записана)."""
        ...

    async def query_top_leaderboard_entries(self, game_id: str, limit: int) -> List[Dict[str, Any]]: ...

    async def increment_total_played(self, game_id: str) -> None: ...


def build_leaderboard_upsert(game_id: str, user_id: Optional[int], fields: Mapping[str, Any]):
    """INSERT ... ON CONFLICT DO UPDATE ... WHERE old.score < new.score RETURNING id.

    Решение "лучше ли новый результат" принимает сама БД в одном запросе,
    так что две параллельные отправки не затрут друг друга.
    """
    stmt = pg_insert(LeaderboardEntry).values(
        game_id=game_id,
        user_id=user_id,
        participant_key=participant_key(user_id),
        **fields,
    )
    replaced = {name: stmt.excluded[name] for name in fields}
    stmt = stmt.on_conflict_do_update(
        index_elements=["game_id", "participant_key"],
        set_=replaced,
        where=LeaderboardEntry.score < stmt.excluded.score,
    )
    return stmt.returning(LeaderboardEntry.id)


def is_name_conflict(error: IntegrityError) -> bool:
    """Нарушен именно unique на games.name, а не FK или другой constraint."""
    return GAME_NAME_CONSTRAINT in str(error.orig)


class SqlGameRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_game_by_id(self, game_id: str) -> Optional[Game]:
        return await self.session.get(Game, game_id)

    async def find_game_by_name(self, name: str) -> Optional[Game]:
        return await self.session.scalar(select(Game).where(Game.name == name))

    async def _commit(self) -> None:
        # unique по games.name: последний рубеж против гонки при проверке имени
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if not is_name_conflict(e):
                raise
            logger.warning("Integrity error on game write: %s", e.orig)
            raise ConflictError(NAME_TAKEN) from e

    async def create_game(self, game: Game) -> Game:
        self.session.add(game)
        await self._commit()
        await self.session.refresh(game)
        return game

    async def update_game(self, game: Game, changes: Mapping[str, Any]) -> Game:
        for key, value in changes.items():
            setattr(game, key, value)
        await self._commit()
        await self.session.refresh(game)
        return game

    async def delete_game(self, game: Game) -> None:
        await self.session.execute(delete(Game).where(Game.id == game.id))
        await self.session.commit()

    async def upsert_leaderboard_entry(
        self, game_id: str, user_id: Optional[int], fields: Mapping[str, Any]
    ) -> Tuple[int, bool]:
        row_id = await self.session.scalar(build_leaderboard_upsert(game_id, user_id, fields))
        updated = row_id is not None
        if row_id is None:
            # конфликт, но старый результат не хуже: строку не трогали
            row_id = await self.session.scalar(
                select(LeaderboardEntry.id).where(
                    LeaderboardEntry.game_id == game_id,
                    LeaderboardEntry.participant_key == participant_key(user_id),
                )
            )
        await self.session.commit()
        return row_id, updated

    async def query_top_leaderboard_entries(self, game_id: str, limit: int) -> List[Dict[str, Any]]:
        rows = await self.session.execute(
            select(LeaderboardEntry, User)
            .outerjoin(User, LeaderboardEntry.user_id == User.id)
            .where(LeaderboardEntry.game_id == game_id)
            .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.time_taken.asc())
            .limit(limit)
        )
        return [entry_to_dict(entry, user) for entry, user in rows.all()]

    async def increment_total_played(self, game_id: str) -> None:
        await self.session.execute(
            update(Game)
            .where(Game.id == game_id)
            .values(total_played=Game.total_played + 1)
        )
        await self.session.commit()


def entry_to_dict(entry: LeaderboardEntry, user: Optional[User]) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "player_name": entry.player_name,
        "score": entry.score,
        "max_score": entry.max_score,
        "time_taken": entry.time_taken,
        "accuracy": entry.accuracy,
        "created_at": entry.created_at,
        "user": (
            {"id": user.id, "username": user.username, "profile_picture": user.profile_picture}
            if user is not None
            else None
        ),
    }
