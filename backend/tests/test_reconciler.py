"""
Tests for the Date-Keyed Record Reconciler
==========================================
Covers:
- Create on first write with synthesised title and date
- Idempotence: same date + patch twice → one row
- Merge: keys not in the patch keep their value
- Patch factories see the stored row (None on create)
- Half-open day window
- Store errors propagate

Run: pytest tests/test_reconciler.py -v
"""

from __future__ import annotations

from datetime import date

import pytest

from healthsync.db.properties import DATE_PROPERTY, TITLE_PROPERTY, date_value, number, read_text, rich_text
from healthsync.errors import NotionStoreError
from healthsync.services.reconciler import DateKeyedReconciler

_DAY = date(2025, 12, 23)


class TestUpsertByDate:

    @pytest.mark.asyncio
    async def test_creates_with_title_and_date(self, store, collections):
        reconciler = DateKeyedReconciler(store)

        handle = await reconciler.upsert_by_date(collections.habit_trace, _DAY, {"步数": number(9000)})

        assert handle.created is True
        props = store.records(collections.habit_trace)[handle.id]
        assert read_text(props, TITLE_PROPERTY) == "2025-12-23打卡"
        assert props[DATE_PROPERTY] == {"date": {"start": "2025-12-23"}}
        assert props["步数"] == {"number": 9000}

    @pytest.mark.asyncio
    async def test_title_template_per_collection(self, store, collections):
        reconciler = DateKeyedReconciler(store)

        health = await reconciler.upsert_by_date(collections.health, _DAY, {})
        sleep = await reconciler.upsert_by_date(collections.sleep, _DAY, {})

        assert read_text(health.record.properties, TITLE_PROPERTY) == "2025-12-23记录"
        assert read_text(sleep.record.properties, TITLE_PROPERTY) == "睡眠记录 2025-12-23"

    @pytest.mark.asyncio
    async def test_same_patch_twice_yields_one_record(self, store, collections):
        reconciler = DateKeyedReconciler(store)
        patch = {"步数": number(9000), "当日总结": rich_text("ok")}

        first = await reconciler.upsert_by_date(collections.habit_trace, _DAY, patch)
        second = await reconciler.upsert_by_date(collections.habit_trace, _DAY, patch)

        records = store.records(collections.habit_trace)
        assert len(records) == 1
        assert second.id == first.id
        assert second.created is False
        assert {k: v for k, v in records[first.id].items() if k in patch} == patch

    @pytest.mark.asyncio
    async def test_update_sends_only_patch_keys(self, store, collections):
        existing = store.seed(collections.habit_trace, {
            DATE_PROPERTY: date_value(_DAY),
            "睡眠评分(100分制)": number(85),
            "步数": number(3000),
        })
        reconciler = DateKeyedReconciler(store)

        handle = await reconciler.upsert_by_date(collections.habit_trace, _DAY, {"步数": number(9000)})

        assert handle.id == existing.id
        assert store.writes("update") == [("update", existing.id, {"步数": {"number": 9000}})]
        props = store.records(collections.habit_trace)[existing.id]
        assert props["睡眠评分(100分制)"] == {"number": 85}
        assert props["步数"] == {"number": 9000}

    @pytest.mark.asyncio
    async def test_empty_patch_on_existing_row_writes_nothing(self, store, collections):
        existing = store.seed(collections.health, {DATE_PROPERTY: date_value(_DAY)})
        reconciler = DateKeyedReconciler(store)

        handle = await reconciler.upsert_by_date(collections.health, _DAY, {})

        assert handle.id == existing.id
        assert store.writes("update") == []
        assert store.writes("create") == []

    @pytest.mark.asyncio
    async def test_patch_factory_receives_existing_row(self, store, collections):
        seen = []

        def factory(existing):
            seen.append(existing)
            return {"步数": number(1)}

        reconciler = DateKeyedReconciler(store)
        await reconciler.upsert_by_date(collections.habit_trace, _DAY, factory)
        await reconciler.upsert_by_date(collections.habit_trace, _DAY, factory)

        assert seen[0] is None
        assert seen[1] is not None
        assert seen[1].properties["步数"] == {"number": 1}


class TestDateWindow:

    @pytest.mark.asyncio
    async def test_next_day_row_not_matched(self, store, collections):
        store.seed(collections.health, {DATE_PROPERTY: date_value(date(2025, 12, 24))})
        reconciler = DateKeyedReconciler(store)

        assert await reconciler.find_by_date(collections.health, _DAY) is None

    @pytest.mark.asyncio
    async def test_timestamped_date_matched(self, store, collections):
        seeded = store.seed(collections.health, {DATE_PROPERTY: date_value("2025-12-23T21:56:37+08:00")})
        reconciler = DateKeyedReconciler(store)

        found = await reconciler.find_by_date(collections.health, _DAY)
        assert found.id == seeded.id

    @pytest.mark.asyncio
    async def test_workout_collection_uses_its_own_date_property(self, store, collections):
        reconciler = DateKeyedReconciler(store)

        handle = await reconciler.upsert_by_date(collections.workout, _DAY, {})

        assert "日期" in handle.record.properties
        assert DATE_PROPERTY not in handle.record.properties


class TestErrors:

    @pytest.mark.asyncio
    async def test_create_failure_propagates(self, store, collections):
        store.fail_creates.add("habit")
        reconciler = DateKeyedReconciler(store)

        with pytest.raises(NotionStoreError):
            await reconciler.upsert_by_date(collections.habit_trace, _DAY, {"步数": number(1)})
