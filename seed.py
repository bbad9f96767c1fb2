"""
Startup seeding from JSON files.

Each collection is filled from its file only when it is empty, so restarts
never duplicate or overwrite data. Missing files count as empty.

    manga.json / novels.json / users.json   arrays of documents
    chapters.json                           {normalizedTitle: {chapterId: {...}}}
    ads-config.json                         one object
"""
import json
import os
from typing import Any, Dict, List

from pydantic import ValidationError as SchemaError

import database
from database import Store
from errors import ValidationError
from logging_setup import get_logger
from schemas import AdsConfig, Chapter, Manga, Novel, User
from works import from_document

log = get_logger("rovel.seed")

ARRAY_FILES = [
    (database.MANGA, "manga.json", lambda doc: from_document(Manga, doc)),
    (database.NOVELS, "novels.json", lambda doc: from_document(Novel, doc)),
    (database.USERS, "users.json", User.model_validate),
]


def _load(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def flatten_chapters(nested: Dict[str, Dict[str, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    records = []
    for normalized_title, chapters in nested.items():
        for chapter_id, data in chapters.items():
            records.append({"normalizedTitle": normalized_title, "chapterId": chapter_id, **data})
    return records


def _validated(filename: str, docs: List[Any], validate) -> List[Dict[str, Any]]:
    out = []
    for index, doc in enumerate(docs):
        try:
            out.append(validate(dict(doc)).model_dump())
        except (SchemaError, TypeError, ValueError) as e:
            raise ValidationError(f"{filename} entry {index} is invalid: {e}")
    return out


def seed_store(store: Store, data_dir: str) -> Dict[str, int]:
    """
    Returns how many documents went into each collection.

    Every file is validated before anything is written, so a bad file fails
    startup with ValidationError and leaves the store untouched.
    """
    pending: Dict[str, List[Dict[str, Any]]] = {}

    for collection, filename, validate in ARRAY_FILES:
        if store.count(collection):
            continue
        docs = _load(os.path.join(data_dir, filename), [])
        pending[collection] = _validated(filename, docs, validate)

    if not store.count(database.CHAPTERS):
        nested = _load(os.path.join(data_dir, "chapters.json"), {})
        pending[database.CHAPTERS] = _validated("chapters.json", flatten_chapters(nested), Chapter.model_validate)

    if not store.count(database.ADS_CONFIG):
        config = _load(os.path.join(data_dir, "ads-config.json"), {})
        if config:
            pending[database.ADS_CONFIG] = _validated("ads-config.json", [config], AdsConfig.model_validate)

    seeded = {collection: store.insert_many(collection, docs) for collection, docs in pending.items()}
    for collection, count in seeded.items():
        if count:
            log.info("%s collection initialized with %d sample document(s)", collection, count)
    return seeded
