"""
In-memory gallery of captured frames.

Captures live only for the lifetime of the process.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from models.state import CaptureEvent


class InMemoryGallery:
    def __init__(self, max_items: Optional[int] = 50):
        self._items: Deque[CaptureEvent] = deque(maxlen=max_items)

    def add(self, event: CaptureEvent) -> None:
        self._items.append(event)
        logging.info(f"Capture added to gallery ({len(self._items)} total)")

    def items(self) -> List[CaptureEvent]:
        return list(self._items)

    def get(self, index: int) -> CaptureEvent:
        """Raises IndexError for unknown indices."""
        if index < 0:
            raise IndexError(index)
        return self._items[index]

    def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        return count

    def __len__(self) -> int:
        return len(self._items)
