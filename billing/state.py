"""
billing/state.py

Optimistic local state for list pages.

The page works on an in-memory copy of the records. Each action mutates the
copy first, then issues the store request. When the request fails (StoreError,
or a ValidationError raised while building it) the copy is restored to exactly what
it was before the action and the error is re-raised, so the page can render the
unchanged list together with the message.

Records are plain dicts keyed by "id"; optimistic inserts get a temporary id
("temp_<n>") that is replaced by the stored record on success.
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Callable, Dict, Iterable, List, Mapping

from .exceptions import BillingError

_temp_ids = itertools.count(1)


class OptimisticCollection:
    """In-memory list of records with optimistic add/update/remove."""

    def __init__(self, records: Iterable[Mapping[str, Any]] = (), key: str = "id"):
        self.key = key
        self._records: List[Dict[str, Any]] = [dict(r) for r in records]

    @property
    def records(self) -> List[Dict[str, Any]]:
        """Snapshot of the current records."""
        return copy.deepcopy(self._records)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self.records)

    def _index_of(self, record_id) -> int:
        for index, record in enumerate(self._records):
            if record.get(self.key) == record_id:
                return index
        raise KeyError(record_id)

    def _apply(self, mutate: Callable[[], None], persist: Callable[[], Any]):
        previous = copy.deepcopy(self._records)
        mutate()
        try:
            return persist()
        except BillingError:
            self._records = previous
            raise

    def add(self, record: Mapping[str, Any], persist: Callable[[], Mapping[str, Any]]) -> Dict[str, Any]:
        """Append `record` under a temporary id, then persist; the stored record replaces it."""
        temp_id = f"temp_{next(_temp_ids)}"
        optimistic = dict(record)
        optimistic[self.key] = temp_id

        saved = self._apply(lambda: self._records.append(optimistic), persist)

        saved = dict(saved)
        self._records[self._index_of(temp_id)] = saved
        return saved

    def update(self, record_id, changes: Mapping[str, Any], persist: Callable[[], Any]) -> Dict[str, Any]:
        """Merge `changes` into one record, then persist."""
        index = self._index_of(record_id)

        def mutate():
            self._records[index] = {**self._records[index], **changes}

        self._apply(mutate, persist)
        return dict(self._records[index])

    def update_where(
        self,
        predicate: Callable[[Mapping[str, Any]], bool],
        changes: Mapping[str, Any],
        persist: Callable[[], Any],
    ):
        """Merge `changes` into every matching record with one persist call (bulk update)."""

        def mutate():
            self._records = [
                {**record, **changes} if predicate(record) else record for record in self._records
            ]

        return self._apply(mutate, persist)

    def remove(self, record_id, persist: Callable[[], Any]) -> None:
        """Drop one record, then persist."""
        index = self._index_of(record_id)
        self._apply(lambda: self._records.pop(index), persist)
