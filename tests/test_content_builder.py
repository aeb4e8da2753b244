import pytest

from app.core.errors import ValidationError
from app.schemas.spell_the_word import ItemCreateIn, ItemUpdateIn
from app.services.content_builder import (
    build_content,
    merge_content,
    normalize_text,
    resolve_reference,
    validate_items,
)


def _items(*rows):
    return [ItemCreateIn(text=t, image_index=i, audio_index=a) for t, i, a in rows]


def test_normalize_text_trims_and_lowercases() -> None:
    assert normalize_text("  CaT ") == "cat"


@pytest.mark.parametrize("text", ["c4t", "ice cream", "naïve", "dog!", "", "x-ray"])
def test_validate_items_rejects_non_alphabetic_text(text: str) -> None:
    items = [ItemCreateIn(text=text, image_index=0)]
    with pytest.raises(ValidationError) as exc:
        validate_items(items, image_count=1, audio_count=0, require_image=True)
    assert "should only contain letters" in exc.value.message


def test_validate_items_accepts_matching_counts() -> None:
    items = _items(("cat", 0, 0), ("dog", 1, None))
    validate_items(items, image_count=2, audio_count=1, require_image=True)


def test_validate_items_requires_image_for_every_word_on_create() -> None:
    items = _items(("cat", 0, None), ("dog", None, None))
    with pytest.raises(ValidationError, match="Each word must have an image"):
        validate_items(items, image_count=1, audio_count=0, require_image=True)


def test_validate_items_fails_when_an_upload_is_left_unused() -> None:
    items = _items(("cat", 0, None))
    with pytest.raises(ValidationError, match="All uploaded image files must be used"):
        validate_items(items, image_count=2, audio_count=0, require_image=True)


def test_validate_items_fails_when_audio_array_is_missing() -> None:
    items = _items(("cat", 0, 0))
    with pytest.raises(ValidationError, match="All uploaded audio files must be used"):
        validate_items(items, image_count=1, audio_count=0, require_image=True)


def test_validate_items_rejects_reused_index() -> None:
    items = _items(("cat", 0, None), ("dog", 0, None))
    with pytest.raises(ValidationError, match="must be used"):
        validate_items(items, image_count=2, audio_count=0, require_image=True)


def test_validate_items_rejects_index_past_the_uploads() -> None:
    items = _items(("cat", 0, None), ("dog", 2, None))
    with pytest.raises(ValidationError):
        validate_items(items, image_count=2, audio_count=0, require_image=True)


def test_validate_items_only_allows_known_literal_references() -> None:
    items = [ItemUpdateIn(text="cat", image_index="game/spell-the-word/g/a.png")]
    validate_items(
        items,
        image_count=0,
        audio_count=0,
        require_image=False,
        existing={"game/spell-the-word/g/a.png"},
    )
    with pytest.raises(ValidationError, match="Unknown asset reference"):
        validate_items(items, image_count=0, audio_count=0, require_image=False, existing={"other"})


def test_resolve_reference_maps_indices_and_passes_literals() -> None:
    uploaded = ["new/0.png", "new/1.png"]
    assert resolve_reference(1, uploaded) == "new/1.png"
    assert resolve_reference(None, uploaded) is None
    assert resolve_reference("old/x.png", uploaded, {"old/x.png"}) == "old/x.png"
    with pytest.raises(ValidationError):
        resolve_reference("old/x.png", uploaded)


def test_build_content_resolves_through_upload_arrays() -> None:
    items = [
        ItemCreateIn(text=" Cat ", image_index=1, hint="meows"),
        ItemCreateIn(text="DOG", image_index=0, audio_index=0),
    ]
    content = build_content(items, ["img/a", "img/b"], ["aud/a"], score_per_item=50, time_limit=60)

    assert content == {
        "score_per_item": 50,
        "time_limit": 60,
        "items": [
            {"text": "cat", "image_asset": "img/b", "audio_asset": None, "hint": "meows"},
            {"text": "dog", "image_asset": "img/a", "audio_asset": "aud/a", "hint": None},
        ],
    }


def test_merge_content_falls_back_to_previous_values() -> None:
    old = {
        "score_per_item": 10,
        "time_limit": 45,
        "items": [{"text": "cat", "image_asset": "a", "audio_asset": None, "hint": None}],
    }

    merged = merge_content(old, None, [], [], {"a"}, time_limit=90)

    assert merged["score_per_item"] == 10
    assert merged["time_limit"] == 90
    assert merged["items"] == old["items"]
    assert merged["items"][0] is not old["items"][0]


def test_merge_content_replaces_the_whole_item_list() -> None:
    old = {
        "score_per_item": 10,
        "time_limit": 45,
        "items": [
            {"text": "cat", "image_asset": "a", "audio_asset": None, "hint": None},
            {"text": "dog", "image_asset": "b", "audio_asset": None, "hint": None},
        ],
    }
    items = [ItemUpdateIn(text="Bird", image_index=0), ItemUpdateIn(text="dog", image_index="b")]

    merged = merge_content(old, items, ["c"], [], {"a", "b"})

    assert [i["text"] for i in merged["items"]] == ["bird", "dog"]
    assert [i["image_asset"] for i in merged["items"]] == ["c", "b"]


def test_merge_content_uses_defaults_without_previous_content() -> None:
    merged = merge_content(None, None, [], [], set())
    assert merged == {"score_per_item": 100, "time_limit": 30, "items": []}
