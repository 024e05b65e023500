"""Bounded feed of published simulation events, polled by the API.

The engine thread appends while HTTP handlers read copies, so every access
goes through one lock.  Entries arrive in non-decreasing tick order; tick
queries walk back from the newest entry and stop at the first older one.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from itertools import islice


@dataclass(frozen=True, slots=True)
class FeedEntry:
    tick: int
    category: str
    message: str
    entity_ids: tuple[int, ...] = ()
    kind: str = ""  # event class name, e.g. "WallBreached"


class EventLog:
    __slots__ = ("_entries", "_lock", "_dropped")

    def __init__(self, capacity: int = 5000) -> None:
        self._entries: deque[FeedEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._dropped = 0

    def append(self, entry: FeedEntry) -> None:
        with self._lock:
            if len(self._entries) == self._entries.maxlen:
                self._dropped += 1
            self._entries.append(entry)

    def since_tick(self, tick: int) -> list[FeedEntry]:
        """Entries recorded at *tick* or later, oldest first."""
        with self._lock:
            newer: list[FeedEntry] = []
            for entry in reversed(self._entries):
                if entry.tick < tick:
                    break
                newer.append(entry)
        newer.reverse()
        return newer

    def latest(self, count: int = 50) -> list[FeedEntry]:
        """The *count* most recent entries, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            recent = list(islice(reversed(self._entries), count))
        recent.reverse()
        return recent

    def involving(self, entity_id: int, count: int = 50) -> list[FeedEntry]:
        with self._lock:
            matches = [e for e in reversed(self._entries) if entity_id in e.entity_ids]
        return matches[:count][::-1]

    @property
    def dropped(self) -> int:
        """Entries evicted because the feed was full."""
        return self._dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._dropped = 0
