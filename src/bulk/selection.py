"""
Operator selection of records for a bulk action
"""
from typing import Iterable, List


class SelectionSet:
    """Mutable set of selected record IDs, kept in selection order"""

    def __init__(self, record_ids: Iterable[str] = ()):
        self._ids = dict.fromkeys(str(record_id) for record_id in record_ids)

    def select(self, record_id: str) -> None:
        self._ids[str(record_id)] = None

    def deselect(self, record_id: str) -> None:
        self._ids.pop(str(record_id), None)

    def toggle(self, record_id: str) -> bool:
        """Flip one checkbox; returns whether the record is now selected"""
        if record_id in self:
            self.deselect(record_id)
            return False
        self.select(record_id)
        return True

    def select_all(self, record_ids: Iterable[str]) -> None:
        """Add every ID, e.g. all records of the current filtered view"""
        for record_id in record_ids:
            self.select(record_id)

    def clear(self) -> None:
        self._ids.clear()

    def ids(self) -> List[str]:
        return list(self._ids)

    def ordered_by(self, record_ids: Iterable[str]) -> List[str]:
        """Selected IDs in the order they appear in record_ids (e.g. a filtered view)"""
        return [str(record_id) for record_id in record_ids if str(record_id) in self._ids]

    def __contains__(self, record_id: object) -> bool:
        return str(record_id) in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(list(self._ids))
