"""
Tests for the Firestore record store against a fake async client.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core.exceptions import DeadlineExceeded, PermissionDenied, RetryError, ServiceUnavailable

from core.exceptions import StoreError, TransientIOError
from record_store.firestore import FirestoreRecordStore
from record_store.models import ExportWindow, HealthCategory

from tests.conftest import at


def make_doc(doc_id, data):
    doc = MagicMock()
    doc.id = doc_id
    doc.to_dict.return_value = data
    return doc


class FakeQuery:
    """Chainable query recording its filters."""

    def __init__(self, docs=(), error=None):
        self.docs = list(docs)
        self.error = error
        self.filters = []
        self.order = None

    def where(self, filter):
        self.filters.append((filter.field_path, filter.op_string, filter.value))
        return self

    def order_by(self, field_path):
        self.order = field_path
        return self

    async def _stream(self):
        if self.error:
            raise self.error
        for doc in self.docs:
            yield doc

    def stream(self):
        return self._stream()


class FakeClient:
    def __init__(self, queries):
        self.queries = queries

    def collection(self, name):
        return self.queries.setdefault(name, FakeQuery())


class TestFirestoreRecordStore:
    """Tests for FirestoreRecordStore."""

    @pytest.mark.asyncio
    async def test_range_query_per_collection(self):
        client = FakeClient({})
        store = FirestoreRecordStore(client)
        window = ExportWindow.for_day(date(2024, 1, 1))

        await store.get_records_for_export(window.start, window.end)

        assert set(client.queries) == {c.table_name for c in HealthCategory}
        for name, query in client.queries.items():
            field = "date" if name == "sleep_entries" else "timestamp"
            assert query.filters == [
                (field, ">=", window.start),
                (field, "<", window.end),
            ]
            assert query.order == field

    @pytest.mark.asyncio
    async def test_documents_include_id(self):
        food = FakeQuery([
            make_doc("f1", {"userId": "alice", "calories": 100.0, "timestamp": at(8)}),
            make_doc("f2", {"userId": "bob", "calories": 200.0, "timestamp": at(9)}),
        ])
        store = FirestoreRecordStore(FakeClient({"food_entries": food}))
        window = ExportWindow.for_day(date(2024, 1, 1))

        batch = await store.get_records_for_export(window.start, window.end)

        assert [r["id"] for r in batch[HealthCategory.FOOD]] == ["f1", "f2"]
        assert batch[HealthCategory.FOOD][0]["userId"] == "alice"
        assert batch[HealthCategory.MOOD] == []

    @pytest.mark.asyncio
    async def test_unavailable_is_transient(self):
        failing = FakeQuery(error=ServiceUnavailable("backend unavailable"))
        store = FirestoreRecordStore(FakeClient({"sleep_entries": failing}))
        window = ExportWindow.for_day(date(2024, 1, 1))

        with pytest.raises(TransientIOError):
            await store.get_records_for_export(window.start, window.end)

    @pytest.mark.asyncio
    async def test_permission_denied_is_permanent(self):
        failing = FakeQuery(error=PermissionDenied("missing role"))
        store = FirestoreRecordStore(FakeClient({"water_entries": failing}))
        window = ExportWindow.for_day(date(2024, 1, 1))

        with pytest.raises(StoreError) as exc_info:
            await store.get_records_for_export(window.start, window.end)

        assert isinstance(exc_info.value.cause, PermissionDenied)

    @pytest.mark.asyncio
    async def test_sleep_timestamp_taken_from_date(self):
        sleep = FakeQuery([
            make_doc("s1", {"userId": "bob", "duration": 7.5, "date": at(6, 30)}),
            make_doc("s2", {"userId": "carol", "duration": 6.0, "date": at(7), "timestamp": at(7, 5)}),
        ])
        store = FirestoreRecordStore(FakeClient({"sleep_entries": sleep}))
        window = ExportWindow.for_day(date(2024, 1, 1))

        batch = await store.get_records_for_export(window.start, window.end)

        records = batch[HealthCategory.SLEEP]
        assert records[0]["timestamp"] == at(6, 30)
        assert records[1]["timestamp"] == at(7, 5)

    @pytest.mark.asyncio
    async def test_retry_deadline_is_transient(self):
        exhausted = RetryError("Deadline of 60.0s exceeded", DeadlineExceeded("timeout"))
        store = FirestoreRecordStore(FakeClient({"food_entries": FakeQuery(error=exhausted)}))
        window = ExportWindow.for_day(date(2024, 1, 1))

        with pytest.raises(TransientIOError) as exc_info:
            await store.get_records_for_export(window.start, window.end)

        assert exc_info.value.cause is exhausted

    @pytest.mark.asyncio
    async def test_close_releases_channel(self):
        client = FakeClient({})
        client._firestore_api = MagicMock()
        client._firestore_api.transport.close = AsyncMock()
        store = FirestoreRecordStore(client)

        await store.close()

        client._firestore_api.transport.close.assert_awaited_once()
