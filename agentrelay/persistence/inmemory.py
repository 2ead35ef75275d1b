"""In-memory implementation of the task and execution stores."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Generic, List, Optional, TypeVar, Union

from ..contracts import AsyncTask, WorkflowExecution

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Union[AsyncTask, WorkflowExecution])


class _InMemoryStore(Generic[RecordT]):
    """Keep records in local memory, keyed by ``id``.

    Data is not persisted across process restarts. When ``max_records`` is
    set, the oldest terminal records are evicted once the bound is exceeded;
    records that are still in flight are never evicted.
    """

    def __init__(self, max_records: Optional[int] = None) -> None:
        self._records: "OrderedDict[str, RecordT]" = OrderedDict()
        self._max_records = max_records

    def add(self, record: RecordT) -> None:
        if record.id in self._records:
            raise ValueError(f"Record {record.id} already exists")
        self._records[record.id] = record
        self._evict()

    def get(self, record_id: str) -> Optional[RecordT]:
        return self._records.get(record_id)

    def save(self, record: RecordT) -> None:
        if record.id not in self._records:
            raise KeyError(record.id)
        self._records[record.id] = record

    def list(self) -> List[RecordT]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def _evict(self) -> None:
        if self._max_records is None:
            return
        overflow = len(self._records) - self._max_records
        if overflow <= 0:
            return
        for record_id in [rid for rid, rec in self._records.items() if rec.is_terminal]:
            if overflow <= 0:
                break
            del self._records[record_id]
            overflow -= 1
            logger.debug(f"Evicted terminal record {record_id}")
        if overflow > 0:
            logger.warning(
                f"Store holds {len(self._records)} records, "
                f"{overflow} over the limit of {self._max_records}; all remaining are in flight"
            )


class InMemoryTaskStore(_InMemoryStore[AsyncTask]):
    """Task store backed by an ordered dict."""


class InMemoryExecutionStore(_InMemoryStore[WorkflowExecution]):
    """Execution store backed by an ordered dict."""
