from __future__ import annotations

from criteria_analyzer.checklist import ChecklistRecord
from criteria_analyzer.errors import IndexOutOfRange


class ResultStore:
    """Ordered checklist records whose sequence numbers always read 1..N.

    Sequence numbers are display labels, not identities: every structural change renumbers.
    """

    def __init__(self) -> None:
        self._records: list[ChecklistRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[ChecklistRecord]:
        return [record.model_copy(deep=True) for record in self._records]

    def get(self, index: int) -> ChecklistRecord:
        self._check_index(index)
        return self._records[index].model_copy(deep=True)

    def append(self, record: ChecklistRecord) -> ChecklistRecord:
        stored = record.model_copy(deep=True, update={"sequence_number": str(len(self._records) + 1)})
        self._records.append(stored)
        return stored.model_copy(deep=True)

    def update(self, index: int, record: ChecklistRecord) -> ChecklistRecord:
        self._check_index(index)
        stored = record.model_copy(deep=True)
        self._records[index] = stored
        return stored.model_copy(deep=True)

    def delete(self, index: int) -> ChecklistRecord:
        self._check_index(index)
        removed = self._records.pop(index)
        self._renumber()
        return removed

    def insert_blank(self) -> tuple[int, ChecklistRecord]:
        """Append an empty record; the caller opens the returned index for editing."""
        stored = self.append(ChecklistRecord())
        return len(self._records) - 1, stored

    def clear(self) -> None:
        self._records.clear()

    def _renumber(self) -> None:
        for position, record in enumerate(self._records, start=1):
            record.sequence_number = str(position)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._records):
            raise IndexOutOfRange(index, len(self._records))
