"""
Per-process state handed to request handlers.

Built once at startup (or by tests) and stored on app.state; handlers get it
through the `get_context` dependency in main.py.
"""
from dataclasses import dataclass, field

import settings
from ads import AdGate
from catalog import AggregateView
from chapters import ChapterLedger
from database import Store
from works import WorkRegistry


@dataclass
class AppContext:
    store: Store
    works: WorkRegistry = field(init=False)
    chapters: ChapterLedger = field(init=False)
    aggregate: AggregateView = field(init=False)
    ad_gate: AdGate = field(init=False)
    id_attempts: int = 3

    def __post_init__(self):
        self.works = WorkRegistry(self.store, id_attempts=self.id_attempts)
        self.chapters = ChapterLedger(self.store, self.works)
        self.aggregate = AggregateView(self.store)
        self.ad_gate = AdGate(self.store)


def build_context(store: Store) -> AppContext:
    return AppContext(store=store, id_attempts=settings.work_id_attempts())
