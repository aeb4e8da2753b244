from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from app.core.errors import ForbiddenError, NotFoundError
from app.models.game import Game
from app.services.access import Requester, can_manage


T = TypeVar("T")


def shuffle(values: Sequence[T], rng: random.Random) -> List[T]:
    """Fisher–Yates по копии; исходная последовательность не трогается."""
    out = list(values)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def check_play_access(game: Game, *, is_public: bool, requester: Optional[Requester]) -> None:
    if is_public and not game.published:
        raise NotFoundError("Game not found")
    if not is_public and not can_manage(game, requester):
        raise ForbiddenError("User cannot get this game data")


def build_play_view(game: Game, rng: random.Random) -> Dict[str, Any]:
    """Версия игры для игрока: самого слова в ответе нет, только буквы вперемешку.

    Перемешиваем заново на каждый запрос, ничего не кэшируем.
    """
    content = game.content or {}
    items = [
        {
            "index": index,
            "length": len(item["text"]),
            "shuffled_characters": shuffle(item["text"], rng),
            "hint": item.get("hint"),
            "image": item.get("image_asset"),
            "audio": item.get("audio_asset"),
        }
        for index, item in enumerate(content.get("items") or [])
    ]
    return {
        "id": game.id,
        "name": game.name,
        "description": game.description,
        "thumbnail": game.thumbnail_asset,
        "score_per_item": content.get("score_per_item"),
        "time_limit": content.get("time_limit"),
        "items": items,
        "published": game.published,
    }
