from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from app.services import assets
from app.services.storage import HttpAssetStore, LocalAssetStore, build_asset_key


def test_build_asset_key_is_namespaced_and_slugified() -> None:
    key = build_asset_key("game/spell-the-word/abc/", "My Cat Photo.PNG")
    prefix, name = key.rsplit("/", 1)

    assert prefix == "game/spell-the-word/abc"
    assert name.endswith("-my-cat-photo.png")


def test_collect_references_covers_thumbnail_images_and_audio() -> None:
    content = {
        "items": [
            {"text": "cat", "image_asset": "img/cat", "audio_asset": "aud/cat"},
            {"text": "dog", "image_asset": "img/dog", "audio_asset": None},
        ]
    }
    assert assets.collect_references("thumb", content) == {"thumb", "img/cat", "aud/cat", "img/dog"}
    assert assets.collect_references(None, None) == set()


def test_assets_to_delete_is_a_set_difference() -> None:
    old = {"thumb", "img/0", "img/1"}
    new = {"thumb", "img/1", "img/2"}
    assert assets.assets_to_delete(old, new) == {"img/0"}
    assert assets.assets_to_delete(old, old) == set()


def test_store_many_keeps_upload_order(store, upload) -> None:
    refs = asyncio.run(
        assets.store_many(store, "game/x/1", [upload("a.png", b"A"), upload("b.png", b"B")])
    )

    assert [store.files[r] for r in refs] == [b"A", b"B"]
    assert all(r.startswith("game/x/1/") for r in refs)


def test_reconcile_deletes_only_dropped_references(store) -> None:
    store.files.update({"keep": b"1", "drop": b"2", "new": b"3"})

    deleted = asyncio.run(assets.reconcile(store, {"keep", "drop"}, {"keep", "new"}))

    assert deleted == {"drop"}
    assert store.deleted == ["drop"]
    assert set(store.files) == {"keep", "new"}


def test_purge_deletes_everything(store) -> None:
    store.files.update({"a": b"1", "b": b"2"})
    asyncio.run(assets.purge(store, ["a", "b", "a"]))
    assert store.files == {}
    assert sorted(store.deleted) == ["a", "b"]


def test_local_asset_store_writes_and_deletes(tmp_path: Path) -> None:
    local = LocalAssetStore(tmp_path)

    ref = asyncio.run(local.store("game/spell-the-word/g1", "cat.png", b"meow"))
    assert (tmp_path / ref).read_bytes() == b"meow"

    asyncio.run(local.delete(ref))
    assert not (tmp_path / ref).exists()

    # повторное удаление не падает
    asyncio.run(local.delete(ref))


def test_local_asset_store_refuses_paths_outside_root(tmp_path: Path) -> None:
    local = LocalAssetStore(tmp_path / "root")
    with pytest.raises(ValueError):
        asyncio.run(local.delete("../../etc/passwd"))


def test_http_asset_store_puts_and_deletes() -> None:
    calls: list[tuple[str, str, bytes]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path, request.content))
        if request.method == "DELETE" and request.url.path.endswith("missing.png"):
            return httpx.Response(404)
        return httpx.Response(200)

    remote = HttpAssetStore("http://storage/assets/", transport=httpx.MockTransport(handler))

    ref = asyncio.run(remote.store("game/spell-the-word/g1", "cat.png", b"meow", "image/png"))
    asyncio.run(remote.delete(ref))
    asyncio.run(remote.delete("game/spell-the-word/g1/missing.png"))

    assert calls[0] == ("PUT", f"/assets/{ref}", b"meow")
    assert calls[1][:2] == ("DELETE", f"/assets/{ref}")
    assert len(calls) == 3


def test_http_asset_store_raises_on_server_error() -> None:
    remote = HttpAssetStore(
        "http://storage/assets",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(remote.store("game/x/1", "a.png", b"A"))
