"""Aggregate view: every work, manga first, rebuilt after each write."""
from typing import Any, Dict, List

import database
from database import Store, serialize


class AggregateView:
    def __init__(self, store: Store):
        self.store = store
        self._works: List[Dict[str, Any]] = []

    @property
    def works(self) -> List[Dict[str, Any]]:
        return self._works

    def rebuild(self) -> List[Dict[str, Any]]:
        manga = [serialize(d) for d in self.store.find(database.MANGA)]
        novels = [serialize(d) for d in self.store.find(database.NOVELS)]
        # Replaced whole; concurrent rebuilds simply overwrite each other
        self._works = manga + novels
        return self._works
