from .errors import NothingToUndo


class UndoStack:
    """LIFO of MoveRecords, one per applied move. Undo pops, nothing else removes."""

    def __init__(self):
        self._records = []

    def push(self, record):
        self._records.append(record)

    def pop(self):
        if not self._records:
            raise NothingToUndo("no move to undo")
        return self._records.pop()

    def peek(self):
        return self._records[-1] if self._records else None

    def is_empty(self):
        return not self._records

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def to_list(self):
        return [r.to_dict() for r in self._records]
