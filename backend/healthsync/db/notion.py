"""
Notion Store
============
Thin adapter around ``notion_client.AsyncClient`` exposing the three
operations the sync services need:

- find_one_by_date_range(): first page whose date property falls in
  ``[start, end)``
- create(): new page in a target database
- update(): patch properties of an existing page

A store (and the Notion client under it) is built per request through
``get_notion_store`` so nothing survives between webhooks. Every Notion
failure surfaces as ``NotionStoreError``. There is no retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, AsyncIterator, Awaitable, Optional

import httpx
from fastapi import Depends
from notion_client import AsyncClient
from notion_client.errors import APIResponseError, HTTPResponseError, NotionClientErrorBase

from healthsync.config import Settings, get_settings
from healthsync.db.properties import DATE_PROPERTY, TITLE_PROPERTY, FieldPatch, WORKOUT_PROPS
from healthsync.errors import NotionStoreError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotionCollection:
    """One target database and how its rows are keyed by date."""

    name: str
    database_id: str
    date_property: str = DATE_PROPERTY
    title_property: str = TITLE_PROPERTY
    # Title synthesised when a row is created for a date
    title_template: str = "{date}打卡"

    def title_for(self, day: date) -> str:
        return self.title_template.format(date=day.isoformat())


@dataclass(frozen=True)
class NotionCollections:
    health: NotionCollection
    habit_trace: NotionCollection
    sleep: NotionCollection
    workout: NotionCollection

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotionCollections":
        return cls(
            health=NotionCollection(
                name="health",
                database_id=settings.notion_health_database_id,
                title_template="{date}记录",
            ),
            habit_trace=NotionCollection(
                name="habit",
                database_id=settings.notion_habit_trace_database_id,
            ),
            sleep=NotionCollection(
                name="sleep",
                database_id=settings.notion_sleep_database_id,
                title_template="睡眠记录 {date}",
            ),
            workout=NotionCollection(
                name="workout",
                database_id=settings.notion_workout_database_id,
                date_property=WORKOUT_PROPS["date"],
            ),
        )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class NotionRecord:
    id: str
    properties: dict[str, Any] = field(default_factory=dict)
    url: Optional[str] = None

    @classmethod
    def from_page(cls, page: dict) -> "NotionRecord":
        return cls(
            id=page["id"],
            properties=page.get("properties") or {},
            url=page.get("url"),
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class NotionStore:
    """Date-window lookups and page writes against Notion databases."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        # database_id -> data_source_id, scoped to this store instance
        self._data_sources: dict[str, str] = {}

    async def find_one_by_date_range(
        self, collection: NotionCollection, start: date, end: date
    ) -> Optional[NotionRecord]:
        """Return the first page with ``start <= date < end``, or None."""
        data_source_id = await self._data_source_id(collection)
        response = await self._call(
            f"query {collection.name}",
            self._client.data_sources.query(
                data_source_id=data_source_id,
                filter={
                    "and": [
                        {
                            "property": collection.date_property,
                            "date": {"on_or_after": start.isoformat()},
                        },
                        {
                            "property": collection.date_property,
                            "date": {"before": end.isoformat()},
                        },
                    ]
                },
                # Two, so a duplicate row for the same day can be reported
                page_size=2,
            ),
        )
        results = response.get("results") or []
        if len(results) > 1:
            logger.warning(
                "Found %d %s records for %s; using the first (%s)",
                len(results), collection.name, start.isoformat(), results[0]["id"],
            )
        return NotionRecord.from_page(results[0]) if results else None

    async def create(self, collection: NotionCollection, properties: FieldPatch) -> NotionRecord:
        page = await self._call(
            f"create {collection.name}",
            self._client.pages.create(
                parent={"database_id": collection.database_id},
                properties=properties,
            ),
        )
        return NotionRecord.from_page(page)

    async def update(self, record_id: str, properties: FieldPatch) -> NotionRecord:
        page = await self._call(
            f"update {record_id}",
            self._client.pages.update(page_id=record_id, properties=properties),
        )
        return NotionRecord.from_page(page)

    async def _data_source_id(self, collection: NotionCollection) -> str:
        cached = self._data_sources.get(collection.database_id)
        if cached:
            return cached

        database = await self._call(
            f"retrieve {collection.name} database",
            self._client.databases.retrieve(database_id=collection.database_id),
        )
        data_sources = database.get("data_sources") or []
        if not data_sources:
            raise NotionStoreError(
                f"Notion database {collection.database_id} ({collection.name}) has no data source"
            )
        data_source_id = data_sources[0]["id"]
        self._data_sources[collection.database_id] = data_source_id
        return data_source_id

    @staticmethod
    async def _call(action: str, request: Awaitable[Any]) -> Any:
        """Await a Notion request, translating client errors into NotionStoreError."""
        try:
            return await request
        except APIResponseError as exc:
            raise NotionStoreError(
                f"Notion {action} failed: {exc}",
                status_code=exc.status,
                notion_code=getattr(exc.code, "value", exc.code),
            ) from exc
        except HTTPResponseError as exc:
            raise NotionStoreError(
                f"Notion {action} failed: {exc}", status_code=exc.status
            ) from exc
        except (NotionClientErrorBase, httpx.HTTPError) as exc:
            raise NotionStoreError(f"Notion {action} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_collections(settings: Settings = Depends(get_settings)) -> NotionCollections:
    return NotionCollections.from_settings(settings)


async def get_notion_store(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[NotionStore]:
    """Yield a store backed by a Notion client that lives for one request."""
    async with AsyncClient(
        auth=settings.notion_token,
        timeout_ms=int(settings.notion_timeout_seconds * 1000),
        # One attempt per write; a failure is reported, not replayed
        retry=False,
    ) as client:
        yield NotionStore(client)
