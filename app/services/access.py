from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.core.errors import ForbiddenError
from app.models.game import Game
from app.models.user import ROLE_SUPER_ADMIN, ROLE_USER


@dataclass(frozen=True)
class Requester:
    """То, что сервисам нужно знать о пользователе из auth-слоя."""
    user_id: Optional[int] = None
    role: str = ROLE_USER

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


def can_manage(game: Game, requester: Optional[Requester]) -> bool:
    if requester is None:
        return False
    return requester.is_super_admin or (
        requester.user_id is not None and game.owner_id == requester.user_id
    )


def ensure_can_manage(game: Game, requester: Optional[Requester], action: str = "access") -> None:
    if not can_manage(game, requester):
        raise ForbiddenError(f"User cannot {action} this game")
