"""
Sandbox id allocation for callers that run many sandboxes at once.

Sandbox itself never allocates ids; a pool manager can share one
BoxIdAllocator between its workers so that live sandboxes never collide.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List

from boxrun.config.defaults import ALLOCATOR_DEFAULTS
from boxrun.exceptions import BoxIdExhaustedError

logger = logging.getLogger(__name__)


class BoxIdAllocator:
    """Thread-safe free list over the ids [first, first + count)."""

    def __init__(self, first: int = ALLOCATOR_DEFAULTS.first_id, count: int = ALLOCATOR_DEFAULTS.count):
        if first < 0 or count <= 0:
            raise ValueError("Id range must be non-negative and non-empty")
        self.first = first
        self.count = count
        self._free: List[int] = list(range(first, first + count))
        self._lock = threading.Lock()

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._free)

    def acquire(self) -> int:
        """Take the lowest free id."""
        with self._lock:
            if not self._free:
                raise BoxIdExhaustedError(self.first, self.count)
            return self._free.pop(0)

    def release(self, box_id: int) -> None:
        with self._lock:
            if not self.first <= box_id < self.first + self.count:
                raise ValueError(f"Sandbox id {box_id} is outside this allocator's range")
            if box_id in self._free:
                raise ValueError(f"Sandbox id {box_id} is not allocated")
            self._free.append(box_id)
            self._free.sort()

    @contextmanager
    def box_id(self) -> Iterator[int]:
        """Hold an id for the duration of a with block."""
        box_id = self.acquire()
        try:
            yield box_id
        finally:
            self.release(box_id)
