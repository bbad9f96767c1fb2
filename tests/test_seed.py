import json
import os

import pytest

import database
from errors import ValidationError
from seed import flatten_chapters, seed_store

REPO_DATA = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")


def write(tmp_path, name, payload):
    (tmp_path / name).write_text(json.dumps(payload), encoding="utf-8")


def test_flatten_chapters():
    nested = {"my-manga": {"1": {"title": "One"}, "2": {"title": "Two", "pages": ["a.png"]}}}

    records = flatten_chapters(nested)

    assert {"normalizedTitle": "my-manga", "chapterId": "2", "title": "Two", "pages": ["a.png"]} in records
    assert len(records) == 2


def test_seeds_empty_collections(store, tmp_path):
    write(tmp_path, "manga.json", [{"id": 1, "title": "M", "type": "manga"}])
    write(tmp_path, "novels.json", [{"id": 2, "title": "N", "type": "novel"}])
    write(tmp_path, "chapters.json", {"m": {"1": {"title": "c1"}}})
    write(tmp_path, "ads-config.json", {"enabled": False})

    seeded = seed_store(store, str(tmp_path))

    assert seeded[database.MANGA] == 1
    assert seeded[database.NOVELS] == 1
    assert seeded[database.USERS] == 0
    assert seeded[database.CHAPTERS] == 1
    assert store.find_one(database.ADS_CONFIG, {})["enabled"] is False


def test_existing_data_is_left_alone(store, tmp_path):
    store.insert(database.MANGA, {"id": 9, "title": "Kept"})
    write(tmp_path, "manga.json", [{"id": 1, "title": "Sample"}])

    seeded = seed_store(store, str(tmp_path))

    assert database.MANGA not in seeded
    assert [d["title"] for d in store.find(database.MANGA)] == ["Kept"]


def test_missing_files_and_empty_config(store, tmp_path):
    write(tmp_path, "ads-config.json", {})

    seed_store(store, str(tmp_path))

    assert store.count(database.ADS_CONFIG) == 0
    assert store.count(database.CHAPTERS) == 0


def test_bundled_sample_data_is_consistent(ctx, store):
    seed_store(store, REPO_DATA)
    ctx.works.sync_ids()

    for work in ctx.aggregate.rebuild():
        chapters = ctx.chapters.list_for_work(work["id"])
        assert len(chapters) == work["chapters_count"]


@pytest.mark.parametrize(
    "filename, payload",
    [
        ("manga.json", [{"id": 5, "name": "no title"}]),
        ("novels.json", [{"id": "five", "title": "Bad id"}]),
        ("users.json", [{"name": "no id"}]),
        ("chapters.json", {"m": {"1": {"pages": "not-a-list"}}}),
    ],
)
def test_malformed_seed_file_fails_before_writing(store, tmp_path, filename, payload):
    write(tmp_path, "manga.json", [{"id": 1, "title": "Fine", "type": "manga"}])
    write(tmp_path, filename, payload)

    with pytest.raises(ValidationError) as excinfo:
        seed_store(store, str(tmp_path))

    assert filename in excinfo.value.message
    for collection in (database.MANGA, database.NOVELS, database.USERS, database.CHAPTERS):
        assert store.count(collection) == 0
