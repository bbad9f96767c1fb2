import pytest

import database
from errors import NotFound, ValidationError


@pytest.fixture
def manga(ctx):
    return ctx.works.create({"title": "My Manga", "type": "manga"})


def stored_count(store, work_id):
    for collection in (database.MANGA, database.NOVELS):
        doc = store.find_one(collection, {"id": work_id})
        if doc:
            return doc["chapters_count"]
    raise AssertionError(f"work {work_id} not stored")


def test_add_then_delete_chapter(ctx, store, manga):
    ctx.chapters.upsert(manga.id, "1", "Ch1", ["p1.png"])

    assert stored_count(store, manga.id) == 1
    doc = store.find_one(database.CHAPTERS, {"chapterId": "1"})
    assert doc["normalizedTitle"] == "my-manga"
    assert doc["pages"] == ["p1.png"]
    assert doc["content"] is None

    ctx.chapters.delete(manga.id, "1")
    assert stored_count(store, manga.id) == 0

    with pytest.raises(NotFound):
        ctx.chapters.delete(manga.id, "1")


def test_upsert_existing_replaces_fields_keeps_count(ctx, store, manga):
    ctx.chapters.upsert(manga.id, "1", "Draft", ["a.png"])
    ctx.chapters.upsert(manga.id, "2", "Second", ["b.png"])

    ctx.chapters.upsert(manga.id, "1", "Final", ["a1.png", "a2.png"], "notes")

    assert stored_count(store, manga.id) == 2
    assert store.count(database.CHAPTERS) == 2
    assert ctx.chapters.get("my-manga", "1") == {
        "title": "Final",
        "pages": ["a1.png", "a2.png"],
        "content": "notes",
    }


def test_count_lands_on_novel_collection(ctx, store):
    ctx.works.create({"title": "Filler", "type": "manga"})
    novel = ctx.works.create({"title": "Quiet  Harbor", "type": "novel"})

    ctx.chapters.upsert(novel.id, "prologue", "Prologue", content="It rained.")

    assert stored_count(store, novel.id) == 1
    assert stored_count(store, 1) == 0
    assert ctx.chapters.list_for_work(novel.id) == {
        "prologue": {"title": "Prologue", "pages": [], "content": "It rained."},
    }


def test_list_for_work_maps_by_chapter_id(ctx, manga):
    ctx.chapters.upsert(manga.id, "2", "Two", ["2.png"])
    ctx.chapters.upsert(manga.id, "1", "One", [{"src": "1.png", "width": 800}])

    chapters = ctx.chapters.list_for_work(manga.id)

    assert set(chapters) == {"1", "2"}
    assert chapters["1"]["pages"] == [{"src": "1.png", "width": 800}]


def test_unknown_work(ctx):
    with pytest.raises(NotFound):
        ctx.chapters.list_for_work(42)
    with pytest.raises(NotFound):
        ctx.chapters.upsert(42, "1", "Nope")
    with pytest.raises(NotFound):
        ctx.chapters.delete(42, "1")


def test_count_tracks_title_shared_chapters(ctx, store, manga):
    # Chapters written under the same slug by anything else still count
    store.insert(database.CHAPTERS, {"normalizedTitle": "my-manga", "chapterId": "extra", "title": "Imported"})

    ctx.chapters.upsert(manga.id, "1", "Ch1")

    assert stored_count(store, manga.id) == 2


def test_deleting_work_keeps_its_chapters(ctx, store, manga):
    ctx.chapters.upsert(manga.id, "1", "Ch1")

    ctx.works.delete(manga.id)

    assert store.count(database.CHAPTERS, {"normalizedTitle": "my-manga"}) == 1
    assert ctx.chapters.get("my-manga", "1")["title"] == "Ch1"


def test_renamed_work_no_longer_sees_old_chapters(ctx, store, manga):
    ctx.chapters.upsert(manga.id, "1", "Ch1")

    ctx.works.update(manga.id, {"title": "My Manga Remastered"})

    assert ctx.chapters.list_for_work(manga.id) == {}
    ctx.chapters.upsert(manga.id, "1", "New Ch1")
    assert stored_count(store, manga.id) == 1
    assert store.count(database.CHAPTERS) == 2


def test_get_missing_chapter(ctx):
    with pytest.raises(NotFound):
        ctx.chapters.get("nothing-here", "1")


def test_empty_chapter_id_is_rejected(ctx, store, manga):
    with pytest.raises(ValidationError):
        ctx.chapters.upsert(manga.id, "", "Nameless")

    assert store.count(database.CHAPTERS) == 0
    assert stored_count(store, manga.id) == 0
