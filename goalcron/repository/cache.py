"""Snapshot cache owned by a single repository instance."""

import time
from typing import Callable, Generic, List, Optional, TypeVar

from goalcron.models.constants import DEFAULT_CACHE_TTL_SECONDS
from goalcron.models.task import Task, TaskLabel

T = TypeVar("T")


class _Slot(Generic[T]):
    def __init__(self):
        self.value: Optional[List[T]] = None
        self.expires_at: float = 0.0

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0


class SnapshotCache:
    """Full task and label snapshots, each with its own expiry.

    Every ``clear()`` advances ``generation``. A fetch records the generation
    before it starts and passes it to ``set_tasks``/``set_labels``; if a
    mutation cleared the cache in the meantime the snapshot is not stored.

    Args:
        ttl_seconds: How long a stored snapshot stays valid
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._generation = 0
        self._tasks: _Slot[Task] = _Slot()
        self._labels: _Slot[TaskLabel] = _Slot()

    @property
    def generation(self) -> int:
        return self._generation

    def _read(self, slot: _Slot[T]) -> Optional[List[T]]:
        if slot.value is None or slot.expires_at <= self._clock():
            return None
        return list(slot.value)

    def _write(self, slot: _Slot[T], value: List[T], generation: Optional[int]) -> bool:
        if generation is not None and generation != self._generation:
            return False
        slot.value = list(value)
        slot.expires_at = self._clock() + self.ttl_seconds
        return True

    def get_tasks(self) -> Optional[List[Task]]:
        return self._read(self._tasks)

    def set_tasks(self, tasks: List[Task], generation: Optional[int] = None) -> bool:
        """Store a task snapshot.

        Args:
            tasks: Full task snapshot
            generation: Value of ``generation`` when the fetch started, or None
                to store unconditionally

        Returns:
            False if the snapshot was dropped because the cache was cleared
            after the fetch started
        """
        return self._write(self._tasks, tasks, generation)

    def get_labels(self) -> Optional[List[TaskLabel]]:
        return self._read(self._labels)

    def set_labels(self, labels: List[TaskLabel], generation: Optional[int] = None) -> bool:
        return self._write(self._labels, labels, generation)

    def clear(self) -> None:
        """Drop both snapshots."""
        self._generation += 1
        self._tasks.clear()
        self._labels.clear()
