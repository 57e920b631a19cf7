"""
Shared fixtures: an in-memory stand-in for NotionStore plus settings and
collections pointing at four fake database ids.
"""

from __future__ import annotations

import copy
import itertools
from datetime import date
from typing import Optional

import pytest

from healthsync.config import Settings
from healthsync.db.notion import NotionCollection, NotionCollections, NotionRecord
from healthsync.db.properties import FieldPatch
from healthsync.errors import NotionStoreError

SECRET = "s3cret-token"


class FakeNotionStore:
    """Keeps pages in a dict and records every call made to it.

    ``fail_creates`` holds collection names whose creates raise;
    ``fail_updates`` holds page ids whose updates raise.
    """

    def __init__(self) -> None:
        self.pages: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_creates: set[str] = set()
        self.fail_updates: set[str] = set()
        self._ids = itertools.count(1)

    # --- NotionStore interface ---

    async def find_one_by_date_range(
        self, collection: NotionCollection, start: date, end: date
    ) -> Optional[NotionRecord]:
        self.calls.append(("query", collection.name, start))
        for page_id, page in self.pages.items():
            if page["database_id"] != collection.database_id:
                continue
            raw = ((page["properties"].get(collection.date_property) or {}).get("date") or {}).get("start")
            if raw and start <= date.fromisoformat(raw[:10]) < end:
                return NotionRecord(id=page_id, properties=copy.deepcopy(page["properties"]))
        return None

    async def create(self, collection: NotionCollection, properties: FieldPatch) -> NotionRecord:
        self.calls.append(("create", collection.name, copy.deepcopy(properties)))
        if collection.name in self.fail_creates:
            raise NotionStoreError(f"Notion create {collection.name} failed", status_code=502)
        return self.seed(collection, properties)

    async def update(self, record_id: str, properties: FieldPatch) -> NotionRecord:
        self.calls.append(("update", record_id, copy.deepcopy(properties)))
        if record_id in self.fail_updates:
            raise NotionStoreError(f"Notion update {record_id} failed", status_code=409)
        page = self.pages[record_id]
        page["properties"].update(copy.deepcopy(properties))
        return NotionRecord(id=record_id, properties=copy.deepcopy(page["properties"]))

    # --- test helpers ---

    def seed(self, collection: NotionCollection, properties: FieldPatch) -> NotionRecord:
        page_id = f"{collection.name}-{next(self._ids)}"
        self.pages[page_id] = {
            "database_id": collection.database_id,
            "properties": copy.deepcopy(properties),
        }
        return NotionRecord(id=page_id, properties=copy.deepcopy(properties))

    def records(self, collection: NotionCollection) -> dict[str, dict]:
        return {
            page_id: page["properties"]
            for page_id, page in self.pages.items()
            if page["database_id"] == collection.database_id
        }

    def writes(self, kind: str, target: Optional[str] = None) -> list[tuple]:
        return [
            call for call in self.calls
            if call[0] == kind and (target is None or call[1] == target)
        ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        notion_token="secret_notion",
        notion_health_database_id="db-health",
        notion_workout_database_id="db-workout",
        notion_habit_trace_database_id="db-habit",
        notion_sleep_database_id="db-sleep",
        secret_token=SECRET,
        ip_whitelist="",
    )


@pytest.fixture
def collections(settings: Settings) -> NotionCollections:
    return NotionCollections.from_settings(settings)


@pytest.fixture
def store() -> FakeNotionStore:
    return FakeNotionStore()
