from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, Field, StringConstraints


DEFAULT_SCORE_PER_ITEM = 100
DEFAULT_TIME_LIMIT = 30
MAX_ITEMS = 50
MAX_IMAGE_SIZE = 2 * 1024 * 1024
MAX_AUDIO_SIZE = 5 * 1024 * 1024

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=256)]
WordText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=64)]
Hint = Annotated[str, StringConstraints(strip_whitespace=True, max_length=256)]
UploadIndex = Annotated[int, Field(ge=0, le=MAX_ITEMS)]


class ItemCreateIn(BaseModel):
    text: WordText
    image_index: Optional[UploadIndex] = None  # индекс в image_uploads
    audio_index: Optional[UploadIndex] = None  # индекс в audio_uploads
    hint: Optional[Hint] = None


class ItemUpdateIn(BaseModel):
    text: WordText
    # число -> новый файл из массива, строка -> уже сохранённый путь
    image_index: Optional[Union[UploadIndex, str]] = None
    audio_index: Optional[Union[UploadIndex, str]] = None
    hint: Optional[Hint] = None


class SpellTheWordCreate(BaseModel):
    """Текстовые поля multipart-формы создания (файлы идут отдельно)."""
    name: Name
    description: Optional[Description] = None
    published_immediately: bool = False
    score_per_item: int = Field(default=DEFAULT_SCORE_PER_ITEM, ge=1, le=1000)
    time_limit: int = Field(default=DEFAULT_TIME_LIMIT, ge=10, le=300)
    items: List[ItemCreateIn] = Field(min_length=1, max_length=MAX_ITEMS)


class SpellTheWordUpdate(BaseModel):
    name: Optional[Name] = None
    description: Optional[Description] = None
    published: Optional[bool] = None
    score_per_item: Optional[int] = Field(default=None, ge=1, le=1000)
    time_limit: Optional[int] = Field(default=None, ge=10, le=300)
    items: Optional[List[ItemUpdateIn]] = Field(default=None, min_length=1, max_length=MAX_ITEMS)


class AnswerIn(BaseModel):
    item_index: int = Field(ge=0)
    text: WordText


class EvaluateIn(BaseModel):
    answers: List[AnswerIn] = Field(min_length=1)


class SubmitScoreIn(BaseModel):
    player_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
    score: int = Field(ge=0)
    max_score: int = Field(ge=0)
    time_taken: int = Field(ge=0)
    accuracy: float = Field(ge=0, le=100)


class GameCreated(BaseModel):
    id: str


class SubmitScoreOut(BaseModel):
    id: int
    updated: bool
    message: str


class PlayItemOut(BaseModel):
    index: int
    length: int
    shuffled_characters: List[str]
    hint: Optional[str]
    image: Optional[str]
    audio: Optional[str]


class PlayViewOut(BaseModel):
    id: str
    name: str
    description: Optional[str]
    thumbnail: str
    score_per_item: int
    time_limit: int
    items: List[PlayItemOut]
    published: bool


class ItemResultOut(BaseModel):
    item_index: int
    text: str
    is_correct: bool
    correct_answer: str
    error: Optional[str] = None


class EvaluateOut(BaseModel):
    game_id: str
    total: int
    correct: int
    incorrect: int
    score: int
    max_score: int
    percentage: float
    results: List[ItemResultOut]


class LeaderboardUserOut(BaseModel):
    id: int
    username: str
    profile_picture: Optional[str]


class LeaderboardEntryOut(BaseModel):
    id: int
    player_name: str
    score: int
    max_score: int
    time_taken: int
    accuracy: float
    created_at: datetime
    user: Optional[LeaderboardUserOut]


class ItemDetailOut(BaseModel):
    text: str
    image: Optional[str]
    audio: Optional[str]
    hint: Optional[str]


class GameDetailOut(BaseModel):
    id: str
    name: str
    description: Optional[str]
    thumbnail: str
    published: bool
    created_at: datetime
    total_played: int
    score_per_item: int
    time_limit: int
    items: List[ItemDetailOut]
