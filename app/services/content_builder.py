"""Сборка canonical content для spell-the-word.

Только чистые функции: загрузка файлов происходит снаружи, сюда приходят
уже готовые списки reference-ов в том же порядке, что и файлы в запросе.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from app.core.errors import ValidationError
from app.schemas.spell_the_word import DEFAULT_SCORE_PER_ITEM, DEFAULT_TIME_LIMIT, ItemCreateIn, ItemUpdateIn


WORD_PATTERN = re.compile(r"^[A-Za-z]+$")

Item = Union[ItemCreateIn, ItemUpdateIn]
AssetRef = Union[int, str, None]


def normalize_text(text: str) -> str:
    return text.strip().lower()


def validate_text(text: str) -> None:
    if not WORD_PATTERN.match(text.strip()):
        raise ValidationError(f'Word "{text}" should only contain letters')


def _check_refs(refs: Sequence[AssetRef], count: int, existing: Optional[Set[str]], kind: str) -> None:
    indices = [r for r in refs if isinstance(r, int)]
    # каждый файл ровно одному слову: количество совпадает и индексы не повторяются
    if len(indices) != count or len(set(indices)) != count:
        raise ValidationError(f"All uploaded {kind} files must be used")
    for r in indices:
        if r >= count:
            raise ValidationError(f"Upload index {r} is out of range")
    for r in refs:
        if isinstance(r, str) and (existing is None or r not in existing):
            raise ValidationError(f'Unknown asset reference "{r}"')


def validate_items(
    items: Sequence[Item],
    *,
    image_count: int,
    audio_count: int,
    require_image: bool,
    existing: Optional[Set[str]] = None,
) -> None:
    """Фаза 1, до любой загрузки файлов.

    Проверяет текст слов, что каждый загруженный файл использован ровно
    одним словом (сравнение строгое, не <=) и что строковые ссылки
    указывают на файлы, уже принадлежащие игре.
    """
    for item in items:
        validate_text(item.text)

    if require_image and any(i.image_index is None for i in items):
        raise ValidationError("Each word must have an image")

    _check_refs([i.image_index for i in items], image_count, existing, "image")
    _check_refs([i.audio_index for i in items], audio_count, existing, "audio")


def resolve_reference(
    ref: AssetRef,
    uploaded: Sequence[str],
    existing: Optional[Set[str]] = None,
) -> Optional[str]:
    """Фаза 2: индекс -> путь свежезагруженного файла, строка -> как есть.

    Строка допустима только при обновлении (``existing`` не None) и только
    если это уже принадлежащий игре файл.
    """
    if ref is None:
        return None
    if isinstance(ref, int):
        if ref >= len(uploaded):
            raise ValidationError(f"Upload index {ref} is out of range")
        return uploaded[ref]
    if existing is None or ref not in existing:
        raise ValidationError(f'Unknown asset reference "{ref}"')
    return ref


def build_items(
    items: Sequence[Item],
    images: Sequence[str],
    audio: Sequence[str],
    existing: Optional[Set[str]] = None,
) -> List[Dict[str, Any]]:
    return [
        {
            "text": normalize_text(item.text),
            "image_asset": resolve_reference(item.image_index, images, existing),
            "audio_asset": resolve_reference(item.audio_index, audio, existing),
            "hint": item.hint or None,
        }
        for item in items
    ]


def build_content(
    items: Sequence[ItemCreateIn],
    images: Sequence[str],
    audio: Sequence[str],
    *,
    score_per_item: int,
    time_limit: int,
) -> Dict[str, Any]:
    return {
        "score_per_item": score_per_item,
        "time_limit": time_limit,
        "items": build_items(items, images, audio),
    }


def merge_content(
    old: Optional[Dict[str, Any]],
    items: Optional[Sequence[ItemUpdateIn]],
    images: Sequence[str],
    audio: Sequence[str],
    existing: Set[str],
    *,
    score_per_item: Optional[int] = None,
    time_limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Content после правки: непереданные поля берём из старой записи.

    Список слов заменяется целиком, частичная правка слов не поддерживается.
    """
    old = old or {}
    if score_per_item is None:
        score_per_item = old.get("score_per_item", DEFAULT_SCORE_PER_ITEM)
    if time_limit is None:
        time_limit = old.get("time_limit", DEFAULT_TIME_LIMIT)

    if items is None:
        new_items = [dict(i) for i in old.get("items") or []]
    else:
        new_items = build_items(items, images, audio, existing)

    return {
        "score_per_item": score_per_item,
        "time_limit": time_limit,
        "items": new_items,
    }
