from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from app.core.errors import ConflictError
from app.models.game import Game, LeaderboardEntry, participant_key
from app.models.user import User, ROLE_SUPER_ADMIN
from app.services.access import Requester
from app.services.repository import NAME_TAKEN, entry_to_dict
from app.services.storage import UploadedAsset, build_asset_key


class InMemoryGameRepository:
    def __init__(self) -> None:
        self.games: Dict[str, Game] = {}
        self.entries: Dict[Tuple[str, str], LeaderboardEntry] = {}
        self.users: Dict[int, User] = {}
        self._next_entry_id = 1

    def add_user(self, user_id: int, username: str, profile_picture: Optional[str] = None) -> User:
        user = User(id=user_id, username=username, hashed_password="x", profile_picture=profile_picture)
        self.users[user_id] = user
        return user

    async def find_game_by_id(self, game_id: str) -> Optional[Game]:
        return self.games.get(game_id)

    async def find_game_by_name(self, name: str) -> Optional[Game]:
        return next((g for g in self.games.values() if g.name == name), None)

    async def create_game(self, game: Game) -> Game:
        if await self.find_game_by_name(game.name):
            raise ConflictError(NAME_TAKEN)
        game.created_at = game.created_at or datetime(2024, 1, 1)
        self.games[game.id] = game
        return game

    async def update_game(self, game: Game, changes: Mapping[str, Any]) -> Game:
        for key, value in changes.items():
            setattr(game, key, value)
        return game

    async def delete_game(self, game: Game) -> None:
        self.games.pop(game.id, None)
        for key in [k for k in self.entries if k[0] == game.id]:
            del self.entries[key]

    async def upsert_leaderboard_entry(
        self, game_id: str, user_id: Optional[int], fields: Mapping[str, Any]
    ) -> Tuple[int, bool]:
        key = (game_id, participant_key(user_id))
        existing = self.entries.get(key)
        if existing is not None and existing.score >= fields["score"]:
            return existing.id, False

        if existing is None:
            existing = LeaderboardEntry(
                id=self._next_entry_id,
                game_id=game_id,
                user_id=user_id,
                participant_key=key[1],
            )
            self._next_entry_id += 1
            self.entries[key] = existing
        for name, value in fields.items():
            setattr(existing, name, value)
        return existing.id, True

    async def query_top_leaderboard_entries(self, game_id: str, limit: int) -> List[Dict[str, Any]]:
        rows = [e for (gid, _), e in self.entries.items() if gid == game_id]
        rows.sort(key=lambda e: (-e.score, e.time_taken))
        return [
            entry_to_dict(e, self.users.get(e.user_id) if e.user_id is not None else None)
            for e in rows[:limit]
        ]

    async def increment_total_played(self, game_id: str) -> None:
        self.games[game_id].total_played += 1


class MemoryAssetStore:
    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    async def store(self, namespace: str, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
        key = build_asset_key(namespace, filename)
        self.files[key] = data
        return key

    async def delete(self, reference: str) -> None:
        self.deleted.append(reference)
        self.files.pop(reference, None)


def _upload(name: str, data: bytes = b"data", content_type: str = "image/png") -> UploadedAsset:
    return UploadedAsset(filename=name, data=data, content_type=content_type)


@pytest.fixture
def upload():
    return _upload


@pytest.fixture
def repo() -> InMemoryGameRepository:
    return InMemoryGameRepository()


@pytest.fixture
def store() -> MemoryAssetStore:
    return MemoryAssetStore()


@pytest.fixture
def owner() -> Requester:
    return Requester(user_id=1)


@pytest.fixture
def stranger() -> Requester:
    return Requester(user_id=2)


@pytest.fixture
def admin() -> Requester:
    return Requester(user_id=99, role=ROLE_SUPER_ADMIN)
