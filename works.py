"""
Work registry: id assignment and lookup across the manga and novels collections.

Both collections share one integer id space. A unique index only covers a
single collection, so every id is also reserved in the workIds collection
before the work is inserted; two creates racing for the same id, whatever
their types, leave exactly one winner. Lookups always try manga first, so if
the same id ever ended up in both, the manga record wins.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError

import database
from database import Store, serialize
from errors import DuplicateKey, NotFound, ValidationError
from logging_setup import get_logger
from schemas import WORK_TYPES, Manga, Novel, Work

log = get_logger("rovel.works")

WorkModel = Work

# Search order for every id lookup
VARIANTS = (Manga, Novel)
MODEL_BY_TYPE = {"manga": Manga, "novel": Novel}

# Fields a patch may never overwrite
PROTECTED_FIELDS = ("id", "_id")


def from_document(model, doc: Dict[str, Any]) -> WorkModel:
    # The collection decides the variant, whatever `type` the stored document carries
    data = serialize(doc)
    data["type"] = model.model_fields["type"].default
    return model.model_validate(data)


class WorkRegistry:
    def __init__(self, store: Store, id_attempts: int = 3):
        self.store = store
        self.id_attempts = max(1, id_attempts)

    def resolve_by_id(self, work_id: int) -> Optional[WorkModel]:
        for model in VARIANTS:
            doc = self.store.find_one(model.collection, {"id": work_id})
            if doc:
                return from_document(model, doc)
        return None

    def get(self, work_id: int) -> WorkModel:
        work = self.resolve_by_id(work_id)
        if work is None:
            raise NotFound("Content not found")
        return work

    def next_id(self) -> int:
        # workIds also holds ids whose insert is still in flight
        highest = max(
            self.store.max_value(database.MANGA, "id"),
            self.store.max_value(database.NOVELS, "id"),
            self.store.max_value(database.WORK_IDS, "id"),
            0,
        )
        return highest + 1

    def sync_ids(self) -> int:
        """Reserve the ids of works that were written without the registry (seed data, imports)."""
        synced = 0
        for model in VARIANTS:
            for doc in self.store.find(model.collection):
                if doc.get("id") is None:
                    continue
                self.store.upsert(database.WORK_IDS, {"id": doc["id"]}, {"id": doc["id"], "collection": model.collection})
                synced += 1
        return synced

    def create(self, payload: Dict[str, Any]) -> WorkModel:
        work_type = payload.get("type")
        if work_type not in WORK_TYPES:
            raise ValidationError(f"type must be one of {', '.join(WORK_TYPES)}, got {work_type!r}")
        model = MODEL_BY_TYPE[work_type]
        created_at = datetime.now(timezone.utc)

        for attempt in range(1, self.id_attempts + 1):
            data = {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}
            data.update(id=self.next_id(), created_at=created_at)
            try:
                work = model.model_validate(data)
            except SchemaError as e:
                raise ValidationError(str(e))
            try:
                self.store.insert(database.WORK_IDS, {"id": work.id, "collection": work.collection})
            except DuplicateKey:
                if attempt == self.id_attempts:
                    raise
                log.warning("id %s taken by a concurrent create, retrying (%s/%s)", work.id, attempt, self.id_attempts)
                continue
            try:
                self.store.insert(work.collection, work.model_dump())
            except DuplicateKey:
                self.store.delete_one(database.WORK_IDS, {"id": work.id})
                raise
            log.info("Created %s %s (%r)", work.type, work.id, work.title)
            return work
        raise DuplicateKey("Could not assign a work id")

    def update(self, work_id: int, patch: Dict[str, Any]) -> None:
        fields = {k: v for k, v in patch.items() if k not in PROTECTED_FIELDS}
        for model in VARIANTS:
            doc = self.store.find_one(model.collection, {"id": work_id})
            if not doc:
                continue
            # Reject patches that would leave a document the readers can't load
            try:
                from_document(model, {**doc, **fields})
            except SchemaError as e:
                raise ValidationError(str(e))
            if self.store.update_one(model.collection, {"id": work_id}, fields):
                return
        raise NotFound("Content not found")

    def delete(self, work_id: int) -> None:
        # Chapters stay where they are; nothing cascades
        for model in VARIANTS:
            if self.store.delete_one(model.collection, {"id": work_id}):
                self.store.delete_one(database.WORK_IDS, {"id": work_id})
                log.info("Deleted %s %s", model.collection, work_id)
                return
        raise NotFound("Content not found")

    def set_chapters_count(self, work: WorkModel, count: int) -> None:
        self.store.update_one(work.collection, {"id": work.id}, {"chapters_count": count})
        work.chapters_count = count
