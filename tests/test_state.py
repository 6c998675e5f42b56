"""OptimisticCollection: local mutation first, exact revert when the store request fails."""

import pytest

from billing.exceptions import ReferentialIntegrityError, StoreError, ValidationError
from billing.state import OptimisticCollection


@pytest.fixture
def collection():
    return OptimisticCollection(
        [
            {"id": 1, "name_en": "Sev", "category": "Namkeen", "rate": 10},
            {"id": 2, "name_en": "Papad", "category": "Fryums", "rate": 20},
            {"id": 3, "name_en": "Gathiya", "category": "Namkeen", "rate": 30},
        ]
    )


def failing(exc):
    def persist():
        raise exc

    return persist


class TestAdd:

    def test_success_replaces_temporary_record(self, collection):
        seen = {}

        def persist():
            seen["during"] = [r["id"] for r in collection.records]
            return {"id": 4, "name_en": "Chakri", "category": "Others", "rate": 15}

        saved = collection.add({"name_en": "Chakri", "category": "Others", "rate": 15}, persist)

        assert seen["during"][-1].startswith("temp_")
        assert saved["id"] == 4
        assert [r["id"] for r in collection.records] == [1, 2, 3, 4]

    def test_failure_restores_previous_list(self, collection):
        before = collection.records

        with pytest.raises(StoreError):
            collection.add({"name_en": "Chakri"}, failing(StoreError()))

        assert collection.records == before

    def test_validation_failure_also_restores(self, collection):
        before = collection.records

        with pytest.raises(ValidationError):
            collection.add({"name_en": ""}, failing(ValidationError("name_en is required.")))

        assert collection.records == before


class TestUpdateAndRemove:

    def test_update(self, collection):
        updated = collection.update(2, {"rate": 25}, lambda: None)

        assert updated["rate"] == 25
        assert collection.records[1]["rate"] == 25

    def test_update_failure_reverts(self, collection):
        before = collection.records

        with pytest.raises(StoreError):
            collection.update(2, {"rate": 25}, failing(StoreError()))

        assert collection.records == before

    def test_remove_failure_reverts(self, collection):
        before = collection.records

        with pytest.raises(ReferentialIntegrityError):
            collection.remove(1, failing(ReferentialIntegrityError()))

        assert collection.records == before

    def test_remove(self, collection):
        collection.remove(1, lambda: None)
        assert [r["id"] for r in collection] == [2, 3]

    def test_unknown_id(self, collection):
        with pytest.raises(KeyError):
            collection.remove(99, lambda: None)


class TestBulkUpdate:

    def test_update_where_uses_one_persist_call(self, collection):
        calls = []

        result = collection.update_where(
            lambda r: r["category"] == "Namkeen",
            {"rate": 50},
            lambda: calls.append("bulk") or 2,
        )

        assert result == 2
        assert calls == ["bulk"]
        assert [r["rate"] for r in collection.records] == [50, 20, 50]

    def test_update_where_failure_reverts(self, collection):
        before = collection.records

        with pytest.raises(StoreError):
            collection.update_where(lambda r: True, {"rate": 0}, failing(StoreError()))

        assert collection.records == before


def test_records_is_a_copy(collection):
    snapshot = collection.records
    snapshot[0]["rate"] = 999
    assert collection.records[0]["rate"] == 10
    assert len(collection) == 3
