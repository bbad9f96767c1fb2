"""
Chapter ledger.

Chapters are keyed by (normalizedTitle, chapterId), where normalizedTitle is
derived from the owning work's current title on every call. Renaming a work
leaves its old chapters under the old key.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaError

import database
from database import Store
from errors import NotFound, ValidationError
from logging_setup import get_logger
from schemas import Chapter
from works import WorkModel, WorkRegistry

log = get_logger("rovel.chapters")


def chapter_body(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": doc.get("title"),
        "pages": doc.get("pages") or [],
        "content": doc.get("content") or None,
    }


class ChapterLedger:
    def __init__(self, store: Store, works: WorkRegistry):
        self.store = store
        self.works = works

    def list_for_work(self, work_id: int) -> Dict[str, Dict[str, Any]]:
        work = self.works.get(work_id)
        docs = self.store.find(database.CHAPTERS, {"normalizedTitle": work.normalized_title})
        return {str(doc["chapterId"]): chapter_body(doc) for doc in docs}

    def get(self, normalized_title: str, chapter_id: str) -> Dict[str, Any]:
        doc = self.store.find_one(database.CHAPTERS, {"normalizedTitle": normalized_title, "chapterId": chapter_id})
        if not doc:
            raise NotFound("Chapter not found")
        return chapter_body(doc)

    def upsert(
        self,
        work_id: int,
        chapter_id: str,
        title: str,
        pages: Optional[List[Union[str, Dict[str, Any]]]] = None,
        content: Optional[str] = None,
    ) -> WorkModel:
        chapter_id = str(chapter_id)
        if not chapter_id:
            raise ValidationError("chapterId is required")
        work = self.works.get(work_id)
        key = {"normalizedTitle": work.normalized_title, "chapterId": chapter_id}

        if self.store.find_one(database.CHAPTERS, key):
            self.store.update_one(database.CHAPTERS, key, {"title": title, "pages": pages, "content": content})
        else:
            try:
                chapter = Chapter(title=title, pages=pages or [], content=content or None, **key)
            except SchemaError as e:
                raise ValidationError(str(e))
            self.store.insert(database.CHAPTERS, chapter)
            log.info("Added chapter %s to %r", chapter.chapterId, chapter.normalizedTitle)

        self.recount(work)
        return work

    def delete(self, work_id: int, chapter_id: str) -> WorkModel:
        work = self.works.get(work_id)
        key = {"normalizedTitle": work.normalized_title, "chapterId": str(chapter_id)}
        if not self.store.delete_one(database.CHAPTERS, key):
            raise NotFound("Chapter not found")
        self.recount(work)
        return work

    def recount(self, work: WorkModel) -> int:
        count = self.store.count(database.CHAPTERS, {"normalizedTitle": work.normalized_title})
        self.works.set_chapters_count(work, count)
        return count
