from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from app.services.storage import AssetStore, UploadedAsset


logger = logging.getLogger(__name__)


def game_namespace(template_kind: str, game_id: str) -> str:
    return f"game/{template_kind}/{game_id}"


def collect_references(thumbnail: Optional[str], content: Optional[Dict[str, Any]]) -> Set[str]:
    """Все asset-ссылки записи: thumbnail + image/audio каждого слова."""
    refs: Set[str] = set()
    if thumbnail:
        refs.add(thumbnail)
    for item in (content or {}).get("items") or []:
        for key in ("image_asset", "audio_asset"):
            if item.get(key):
                refs.add(item[key])
    return refs


def assets_to_delete(old: Iterable[str], new: Iterable[str]) -> Set[str]:
    """Чистая политика GC: всё, что было и пропало после правки."""
    return set(old) - set(new)


async def store(store: AssetStore, namespace: str, upload: UploadedAsset) -> str:
    return await store.store(namespace, upload.filename, upload.data, upload.content_type)


async def store_many(store_: AssetStore, namespace: str, uploads: Optional[List[UploadedAsset]]) -> List[str]:
    # строго по очереди: i-й reference соответствует i-му файлу
    refs: List[str] = []
    for upload in uploads or []:
        refs.append(await store(store_, namespace, upload))
    return refs


async def reconcile(store_: AssetStore, old: Iterable[str], new: Iterable[str]) -> Set[str]:
    to_delete = assets_to_delete(old, new)
    for ref in sorted(to_delete):
        await store_.delete(ref)
    if to_delete:
        logger.info("Removed %d unused assets", len(to_delete))
    return to_delete


async def purge(store_: AssetStore, refs: Iterable[str]) -> None:
    for ref in sorted(set(refs)):
        await store_.delete(ref)
