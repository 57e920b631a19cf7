"""
Date-Keyed Record Reconciler
============================
Finds-or-creates the single row a database holds for a calendar day and
merges a partial patch into it.

    1. Query the database for a row whose date falls in [day, day + 1).
    2. Found → update only the keys in the patch; everything else on
       the row keeps its value.
    3. Not found → create the row with a synthesised title and the date,
       then the patch on top.

Every call re-queries Notion; nothing is cached between calls. There is
no lock around steps 1–3, so two concurrent requests for the same new
day can both create a row. That race is known and accepted: the lookup
takes the first row when it finds more than one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Mapping, Optional, Union

from healthsync.db.notion import NotionCollection, NotionRecord, NotionStore
from healthsync.db.properties import FieldPatch, date_value, sparse_patch, title

logger = logging.getLogger(__name__)

# A patch, or a function building one from the row already stored (None if new)
PatchSource = Union[Mapping[str, dict], Callable[[Optional[NotionRecord]], FieldPatch]]


@dataclass
class RecordHandle:
    id: str
    created: bool
    record: NotionRecord


class DateKeyedReconciler:
    """Upserts one row per (database, day)."""

    def __init__(self, store: NotionStore, client_ip: str = "-") -> None:
        self._store = store
        self._client_ip = client_ip

    async def find_by_date(self, collection: NotionCollection, day: date) -> Optional[NotionRecord]:
        record = await self._store.find_one_by_date_range(
            collection, day, day + timedelta(days=1)
        )
        logger.info(
            "[%s] Queried %s records for %s: %s",
            self._client_ip, collection.name, day.isoformat(),
            record.id if record else "none",
        )
        return record

    async def upsert_by_date(
        self, collection: NotionCollection, day: date, patch: PatchSource
    ) -> RecordHandle:
        """Merge ``patch`` into the row for ``day``, creating it if needed.

        Store failures propagate as ``NotionStoreError``.
        """
        existing = await self.find_by_date(collection, day)
        fields = dict(patch(existing) if callable(patch) else patch)

        if existing is not None:
            if not fields:
                return RecordHandle(id=existing.id, created=False, record=existing)
            record = await self._store.update(existing.id, fields)
            logger.info(
                "[%s] Updated %s record %s for %s (%d fields)",
                self._client_ip, collection.name, existing.id, day.isoformat(), len(fields),
            )
            return RecordHandle(id=record.id, created=False, record=record)

        properties = sparse_patch({
            collection.title_property: title(collection.title_for(day)),
            collection.date_property: date_value(day),
        })
        properties.update(fields)
        record = await self._store.create(collection, properties)
        logger.info(
            "[%s] Created %s record %s for %s",
            self._client_ip, collection.name, record.id, day.isoformat(),
        )
        return RecordHandle(id=record.id, created=True, record=record)
