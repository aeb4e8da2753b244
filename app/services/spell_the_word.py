# app/services/spell_the_word.py
from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Dict, List, Optional, Sequence

from app.core.errors import ConflictError, NotFoundError
from app.models.game import Game, SPELL_THE_WORD
from app.schemas.spell_the_word import SpellTheWordCreate, SpellTheWordUpdate
from app.services import assets, leaderboard
from app.services.access import Requester, ensure_can_manage
from app.services.content_builder import build_content, merge_content, validate_items
from app.services.evaluator import Answer, evaluate
from app.services.play_view import build_play_view, check_play_access
from app.services.repository import GameRepository, NAME_TAKEN
from app.services.storage import AssetStore, UploadedAsset


logger = logging.getLogger(__name__)

_system_rng = random.SystemRandom()


async def get_game(repo: GameRepository, game_id: str) -> Game:
    """Игра нужного типа или NotFoundError."""
    game = await repo.find_game_by_id(game_id)
    if not game or game.template_kind != SPELL_THE_WORD:
        raise NotFoundError("Game not found")
    return game


async def _ensure_name_free(repo: GameRepository, name: str, game_id: Optional[str] = None) -> None:
    # check-then-act: при гонке двух созданий дубль поймает unique в БД
    other = await repo.find_game_by_name(name)
    if other and other.id != game_id:
        raise ConflictError(NAME_TAKEN)


async def create_game(
    repo: GameRepository,
    store: AssetStore,
    *,
    data: SpellTheWordCreate,
    owner_id: int,
    thumbnail: UploadedAsset,
    images: Sequence[UploadedAsset],
    audio: Optional[Sequence[UploadedAsset]] = None,
) -> Game:
    await _ensure_name_free(repo, data.name)

    audio = audio or []
    validate_items(
        data.items,
        image_count=len(images),
        audio_count=len(audio),
        require_image=True,
    )

    # файлы сразу кладём под id будущей игры
    game_id = str(uuid.uuid4())
    namespace = assets.game_namespace(SPELL_THE_WORD, game_id)

    thumbnail_ref = await assets.store(store, namespace, thumbnail)
    image_refs = await assets.store_many(store, namespace, list(images))
    audio_refs = await assets.store_many(store, namespace, list(audio))

    content = build_content(
        data.items,
        image_refs,
        audio_refs,
        score_per_item=data.score_per_item,
        time_limit=data.time_limit,
    )

    game = Game(
        id=game_id,
        owner_id=owner_id,
        template_kind=SPELL_THE_WORD,
        name=data.name,
        description=data.description,
        published=data.published_immediately,
        thumbnail_asset=thumbnail_ref,
        content=content,
        total_played=0,
    )
    game = await repo.create_game(game)
    logger.info("Game %s created by user %s (%d words)", game.id, owner_id, len(content["items"]))
    return game


async def get_detail(repo: GameRepository, game_id: str, requester: Requester) -> Dict[str, Any]:
    game = await get_game(repo, game_id)
    ensure_can_manage(game, requester, "access")

    content = game.content or {}
    return {
        "id": game.id,
        "name": game.name,
        "description": game.description,
        "thumbnail": game.thumbnail_asset,
        "published": game.published,
        "created_at": game.created_at,
        "total_played": game.total_played,
        "score_per_item": content.get("score_per_item"),
        "time_limit": content.get("time_limit"),
        "items": [
            {
                "text": item["text"],
                "image": item.get("image_asset"),
                "audio": item.get("audio_asset"),
                "hint": item.get("hint"),
            }
            for item in content.get("items") or []
        ],
    }


async def update_game(
    repo: GameRepository,
    store: AssetStore,
    *,
    game_id: str,
    data: SpellTheWordUpdate,
    requester: Requester,
    thumbnail: Optional[UploadedAsset] = None,
    images: Optional[Sequence[UploadedAsset]] = None,
    audio: Optional[Sequence[UploadedAsset]] = None,
) -> Game:
    game = await get_game(repo, game_id)
    ensure_can_manage(game, requester, "access")

    if data.name:
        await _ensure_name_free(repo, data.name, game_id)

    images = images or []
    audio = audio or []
    old_refs = assets.collect_references(game.thumbnail_asset, game.content)

    validate_items(
        data.items or [],
        image_count=len(images),
        audio_count=len(audio),
        require_image=False,
        existing=old_refs,
    )

    namespace = assets.game_namespace(SPELL_THE_WORD, game_id)
    thumbnail_ref = game.thumbnail_asset
    if thumbnail is not None:
        thumbnail_ref = await assets.store(store, namespace, thumbnail)
    image_refs = await assets.store_many(store, namespace, list(images))
    audio_refs = await assets.store_many(store, namespace, list(audio))

    content = merge_content(
        game.content,
        data.items,
        image_refs,
        audio_refs,
        old_refs,
        score_per_item=data.score_per_item,
        time_limit=data.time_limit,
    )

    changes: Dict[str, Any] = {"thumbnail_asset": thumbnail_ref, "content": content}
    if data.name is not None:
        changes["name"] = data.name
    if data.description is not None:
        changes["description"] = data.description
    if data.published is not None:
        changes["published"] = data.published

    game = await repo.update_game(game, changes)

    new_refs = assets.collect_references(thumbnail_ref, content)
    await assets.reconcile(store, old_refs, new_refs)

    logger.info("Game %s updated", game_id)
    return game


async def delete_game(
    repo: GameRepository,
    store: AssetStore,
    *,
    game_id: str,
    requester: Requester,
) -> Dict[str, str]:
    game = await get_game(repo, game_id)
    ensure_can_manage(game, requester, "delete")

    refs = assets.collect_references(game.thumbnail_asset, game.content)
    # сначала запись (leaderboard уходит каскадом), потом файлы
    await repo.delete_game(game)
    await assets.purge(store, refs)

    logger.info("Game %s deleted, %d assets removed", game_id, len(refs))
    return {"id": game_id}


async def get_play(
    repo: GameRepository,
    game_id: str,
    *,
    is_public: bool,
    requester: Optional[Requester] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    game = await get_game(repo, game_id)
    check_play_access(game, is_public=is_public, requester=requester)
    return build_play_view(game, rng or _system_rng)


async def check_answers(repo: GameRepository, game_id: str, answers: Sequence[Answer]) -> Dict[str, Any]:
    game = await get_game(repo, game_id)
    result = evaluate(game.content or {}, answers)
    return {"game_id": game_id, **result.to_dict()}


async def submit_score(
    repo: GameRepository,
    game_id: str,
    participant_id: Optional[int],
    attempt: leaderboard.Attempt,
) -> Dict[str, Any]:
    await get_game(repo, game_id)
    result = await leaderboard.submit(repo, game_id, participant_id, attempt)
    await repo.increment_total_played(game_id)
    return result


async def get_leaderboard(repo: GameRepository, game_id: str, limit: int = leaderboard.DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    await get_game(repo, game_id)
    return await leaderboard.top_n(repo, game_id, limit)
