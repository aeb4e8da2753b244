from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.errors import ValidationError
from app.core.security import get_optional_requester, get_requester
from app.schemas.spell_the_word import (
    MAX_AUDIO_SIZE,
    MAX_IMAGE_SIZE,
    EvaluateIn,
    EvaluateOut,
    GameCreated,
    GameDetailOut,
    LeaderboardEntryOut,
    PlayViewOut,
    SpellTheWordCreate,
    SpellTheWordUpdate,
    SubmitScoreIn,
    SubmitScoreOut,
)
from app.services import spell_the_word as service
from app.services.access import Requester
from app.services.evaluator import Answer
from app.services.leaderboard import Attempt
from app.services.repository import GameRepository, SqlGameRepository
from app.services.storage import AssetStore, UploadedAsset, get_asset_store


router = APIRouter(prefix="/api/game/game-type/spell-the-word", tags=["spell-the-word"])

M = TypeVar("M", bound=BaseModel)


def get_repo(session: AsyncSession = Depends(get_session)) -> GameRepository:
    return SqlGameRepository(session)


def _parse_form(model: Type[M], fields: Dict[str, Any]) -> M:
    """multipart -> pydantic. items приходит JSON-строкой."""
    raw = {k: v for k, v in fields.items() if v is not None}
    if "items" in raw:
        try:
            raw["items"] = json.loads(raw["items"])
        except json.JSONDecodeError:
            raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "items must be a JSON array")
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )


async def _read(upload: UploadFile, max_size: int) -> UploadedAsset:
    data = await upload.read()
    if len(data) > max_size:
        raise ValidationError(f'File "{upload.filename}" is too large')
    return UploadedAsset(
        filename=upload.filename or "file",
        data=data,
        content_type=upload.content_type,
    )


async def _read_all(uploads: Optional[List[UploadFile]], max_size: int) -> List[UploadedAsset]:
    return [await _read(u, max_size) for u in uploads or []]


@router.post("", response_model=GameCreated, status_code=status.HTTP_201_CREATED)
async def create_spell_the_word(
    name: str = Form(...),
    items: str = Form(...),
    description: Optional[str] = Form(None),
    published_immediately: Optional[str] = Form(None),
    score_per_item: Optional[str] = Form(None),
    time_limit: Optional[str] = Form(None),
    thumbnail: UploadFile = File(...),
    image_uploads: List[UploadFile] = File(...),
    audio_uploads: Optional[List[UploadFile]] = File(None),
    requester: Requester = Depends(get_requester),
    repo: GameRepository = Depends(get_repo),
    store: AssetStore = Depends(get_asset_store),
):
    data = _parse_form(SpellTheWordCreate, {
        "name": name,
        "items": items,
        "description": description,
        "published_immediately": published_immediately,
        "score_per_item": score_per_item,
        "time_limit": time_limit,
    })
    game = await service.create_game(
        repo,
        store,
        data=data,
        owner_id=requester.user_id,
        thumbnail=await _read(thumbnail, MAX_IMAGE_SIZE),
        images=await _read_all(image_uploads, MAX_IMAGE_SIZE),
        audio=await _read_all(audio_uploads, MAX_AUDIO_SIZE),
    )
    return GameCreated(id=game.id)


@router.get("/{game_id}", response_model=GameDetailOut)
async def get_spell_the_word(
    game_id: str,
    requester: Requester = Depends(get_requester),
    repo: GameRepository = Depends(get_repo),
):
    return await service.get_detail(repo, game_id, requester)


@router.patch("/{game_id}", response_model=GameCreated)
async def update_spell_the_word(
    game_id: str,
    name: Optional[str] = Form(None),
    items: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    score_per_item: Optional[str] = Form(None),
    time_limit: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    image_uploads: Optional[List[UploadFile]] = File(None),
    audio_uploads: Optional[List[UploadFile]] = File(None),
    requester: Requester = Depends(get_requester),
    repo: GameRepository = Depends(get_repo),
    store: AssetStore = Depends(get_asset_store),
):
    data = _parse_form(SpellTheWordUpdate, {
        "name": name,
        "items": items,
        "description": description,
        "published": published,
        "score_per_item": score_per_item,
        "time_limit": time_limit,
    })
    game = await service.update_game(
        repo,
        store,
        game_id=game_id,
        data=data,
        requester=requester,
        thumbnail=await _read(thumbnail, MAX_IMAGE_SIZE) if thumbnail is not None else None,
        images=await _read_all(image_uploads, MAX_IMAGE_SIZE),
        audio=await _read_all(audio_uploads, MAX_AUDIO_SIZE),
    )
    return GameCreated(id=game.id)


@router.delete("/{game_id}", response_model=GameCreated)
async def delete_spell_the_word(
    game_id: str,
    requester: Requester = Depends(get_requester),
    repo: GameRepository = Depends(get_repo),
    store: AssetStore = Depends(get_asset_store),
):
    return await service.delete_game(repo, store, game_id=game_id, requester=requester)


@router.get("/{game_id}/play/public", response_model=PlayViewOut)
async def play_public(game_id: str, repo: GameRepository = Depends(get_repo)):
    return await service.get_play(repo, game_id, is_public=True)


@router.get("/{game_id}/play/private", response_model=PlayViewOut)
async def play_private(
    game_id: str,
    requester: Requester = Depends(get_requester),
    repo: GameRepository = Depends(get_repo),
):
    return await service.get_play(repo, game_id, is_public=False, requester=requester)


@router.post("/{game_id}/check", response_model=EvaluateOut)
async def check_answers(game_id: str, body: EvaluateIn, repo: GameRepository = Depends(get_repo)):
    answers = [Answer(item_index=a.item_index, text=a.text) for a in body.answers]
    return await service.check_answers(repo, game_id, answers)


@router.post("/{game_id}/submit-score", response_model=SubmitScoreOut)
async def submit_score(
    game_id: str,
    body: SubmitScoreIn,
    requester: Optional[Requester] = Depends(get_optional_requester),
    repo: GameRepository = Depends(get_repo),
):
    attempt = Attempt(**body.model_dump())
    participant_id = requester.user_id if requester else None
    return await service.submit_score(repo, game_id, participant_id, attempt)


@router.get("/{game_id}/leaderboard", response_model=List[LeaderboardEntryOut])
async def get_leaderboard(
    game_id: str,
    limit: int = Query(10, ge=1, le=100),
    repo: GameRepository = Depends(get_repo),
):
    return await service.get_leaderboard(repo, game_id, limit)
