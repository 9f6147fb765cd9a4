import pytest

from criteria_analyzer.checklist import ChecklistRecord
from criteria_analyzer.errors import IndexOutOfRange
from criteria_analyzer.store import ResultStore


def _store_with(*names: str) -> ResultStore:
    store = ResultStore()
    for name in names:
        store.append(ChecklistRecord(software_name=name, sequence_number="99"))
    return store


def test_append_assigns_next_sequence_number() -> None:
    store = _store_with("a", "b", "c")
    assert [record.sequence_number for record in store.records] == ["1", "2", "3"]


def test_delete_renumbers_remaining_records() -> None:
    store = _store_with("a", "b", "c")
    removed = store.delete(1)
    assert removed.software_name == "b"
    assert [(record.sequence_number, record.software_name) for record in store.records] == [("1", "a"), ("2", "c")]


def test_update_keeps_supplied_sequence_number_until_next_structural_change() -> None:
    store = _store_with("a", "b")
    store.update(0, ChecklistRecord(sequence_number="7", software_name="edited", criteria={"1-1": "O"}))
    assert store.get(0).sequence_number == "7"
    assert store.get(0).criteria["1-1"] == "O"

    store.delete(1)
    assert store.get(0).sequence_number == "1"


def test_insert_blank_returns_editable_index() -> None:
    store = _store_with("a")
    index, record = store.insert_blank()
    assert index == 1
    assert record.sequence_number == "2"
    assert record.software_name == ""


def test_out_of_range_index_is_rejected() -> None:
    store = _store_with("a")
    with pytest.raises(IndexOutOfRange):
        store.delete(1)
    with pytest.raises(IndexOutOfRange):
        store.update(-1, ChecklistRecord())
    with pytest.raises(IndexOutOfRange):
        ResultStore().get(0)


def test_records_are_copies() -> None:
    store = _store_with("a")
    snapshot = store.records
    snapshot[0].software_name = "mutated"
    assert store.get(0).software_name == "a"
