"""FIFO of pending resource paths with a per-run seen set."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List, Optional, Set


class Frontier:
    """Pending paths; each path is admitted at most once per run."""

    def __init__(self, seeds: Iterable[str] = ()) -> None:
        self._pending: Deque[str] = deque()
        self._seen: Set[str] = set()
        for path in seeds:
            self.enqueue(path)

    def enqueue(self, path: str) -> bool:
        """Queue ``path`` unless it was admitted before; True if newly added."""
        if path in self._seen:
            return False
        self._seen.add(path)
        self._pending.append(path)
        return True

    def dequeue(self) -> Optional[str]:
        if self._pending:
            return self._pending.popleft()
        return None

    def take(self, limit: int) -> List[str]:
        """Dequeue up to ``limit`` paths, oldest first."""
        batch: List[str] = []
        while len(batch) < limit:
            path = self.dequeue()
            if path is None:
                break
            batch.append(path)
        return batch

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    def __contains__(self, path: object) -> bool:
        return path in self._seen

    def __len__(self) -> int:
        return len(self._pending)
