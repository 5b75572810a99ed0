"""Per-document mutual exclusion inside one process.

Locks are created on demand and dropped when no thread holds or waits for
them, so the registry only contains documents with in-flight commits.
"""

import threading
import uuid
from contextlib import contextmanager

from app.services.derivation_errors import DerivationTimeout


class _Slot:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class DocumentLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[uuid.UUID, _Slot] = {}

    def _checkout(self, document_id: uuid.UUID) -> _Slot:
        with self._guard:
            slot = self._slots.get(document_id)
            if slot is None:
                slot = _Slot()
                self._slots[document_id] = slot
            slot.refs += 1
            return slot

    def _release(self, document_id: uuid.UUID, slot: _Slot) -> None:
        with self._guard:
            slot.refs -= 1
            if slot.refs == 0:
                self._slots.pop(document_id, None)

    @contextmanager
    def hold(self, document_id: uuid.UUID, timeout: float | None = None):
        slot = self._checkout(document_id)
        try:
            acquired = slot.lock.acquire(
                timeout=-1 if timeout is None else max(timeout, 0)
            )
            if not acquired:
                raise DerivationTimeout(
                    f"Timed out waiting for lock on document {document_id}",
                    details={"document_id": str(document_id)},
                )
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            self._release(document_id, slot)

    def active_count(self) -> int:
        with self._guard:
            return len(self._slots)


document_locks = DocumentLockRegistry()
