from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.services.repository import GameRepository


DEFAULT_LIMIT = 10
MAX_LIMIT = 100

SUBMITTED = "Score submitted successfully"
EXISTING_IS_BETTER = "Existing score is better"


@dataclass(frozen=True)
class Attempt:
    player_name: str
    score: int
    max_score: int
    time_taken: int
    accuracy: float


async def submit(
    repo: GameRepository,
    game_id: str,
    participant_id: Optional[int],
    attempt: Attempt,
) -> Dict[str, Any]:
    """Сохраняет результат, только если он строго лучше уже сохранённого.

    participant_id=None -> общий "гостевой" слот игры.
    """
    fields = {
        "player_name": attempt.player_name,
        "score": attempt.score,
        "max_score": attempt.max_score,
        "time_taken": attempt.time_taken,
        "accuracy": attempt.accuracy,
        "created_at": datetime.utcnow(),
    }
    row_id, updated = await repo.upsert_leaderboard_entry(game_id, participant_id, fields)
    return {
        "id": row_id,
        "updated": updated,
        "message": SUBMITTED if updated else EXISTING_IS_BETTER,
    }


async def top_n(repo: GameRepository, game_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    limit = max(1, min(limit, MAX_LIMIT))
    return await repo.query_top_leaderboard_entries(game_id, limit)
