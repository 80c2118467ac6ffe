"""
Music Queue Module

The authoritative play queue: an ordered list of QueueItem with a cursor,
plus the pre-shuffle order used to undo a shuffle.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import List, Optional, Sequence, TypeVar

from models.queue_item import QueueItem

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _shuffle_until_changed(items: List[T]) -> None:
    """Shuffle in place; for two or more items the result never equals the input order"""
    count = len(items)
    if count < 2:
        return

    identity = list(range(count))
    order = list(identity)
    while order == identity:
        random.shuffle(order)

    original = list(items)
    items[:] = [original[i] for i in order]


class MusicQueue:
    """
    Music Queue

    Invariants:
    - 0 <= index < length whenever the queue is not empty (index is 0 when empty)
    - The cursor follows its item across moves, inserts and shuffles
    - Out-of-range calls are silent no-ops; lookups return None when nothing matches

    Usage example:
        queue = MusicQueue()
        queue.set_items(items)
        queue.shuffle(keep_current_first=True)
        queue.increment_index()
        item = queue.current_item()
        queue.unshuffle()
    """

    def __init__(self, items: Optional[Sequence[QueueItem]] = None):
        self._items: List[QueueItem] = list(items or [])
        self._unshuffled: List[QueueItem] = []
        self._index = 0
        self._lock = threading.RLock()

    @property
    def index(self) -> int:
        return self._index

    @property
    def length(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> List[QueueItem]:
        """Snapshot of the queue order"""
        with self._lock:
            return list(self._items)

    @property
    def is_shuffled(self) -> bool:
        return bool(self._unshuffled)

    def set_items(self, items: Sequence[QueueItem]) -> None:
        """Replace the contents and reset the cursor to 0"""
        with self._lock:
            self._items = list(items)
            self._unshuffled = []
            self._index = 0

    def clear(self) -> None:
        self.set_items([])

    def increment_index(self) -> None:
        with self._lock:
            if self._index + 1 >= len(self._items):
                self._index = 0
            else:
                self._index += 1

    def decrement_index(self) -> None:
        with self._lock:
            if self._index <= 0:
                self._index = max(len(self._items) - 1, 0)
            else:
                self._index -= 1

    def current_item(self) -> Optional[QueueItem]:
        return self.item_at(self._index)

    def item_at(self, index: int) -> Optional[QueueItem]:
        with self._lock:
            if 0 <= index < len(self._items):
                return self._items[index]
            return None

    def item_by_media_id(self, media_id: str) -> Optional[QueueItem]:
        with self._lock:
            for item in self._items:
                if item.media_id == media_id:
                    return item
            return None

    def index_of_queue_id(self, queue_id: int) -> Optional[int]:
        with self._lock:
            for i, item in enumerate(self._items):
                if item.queue_id == queue_id:
                    return i
            return None

    def set_item_by_queue_id(self, queue_id: int) -> bool:
        """Point the cursor at the item with this queue id; False if absent"""
        with self._lock:
            index = self.index_of_queue_id(queue_id)
            if index is None:
                return False
            self._index = index
            return True

    def next_queue_id(self) -> int:
        """A queue id not used by any item in the queue"""
        with self._lock:
            pool = self._items + self._unshuffled
            if not pool:
                return 0
            return max(item.queue_id for item in pool) + 1

    def move_item(self, media_id: str, to_position: int) -> bool:
        """
        Move an item to a new position.

        Returns:
            False (and nothing changes) when the item is unknown, the target is out of
            bounds, or the target is the item's current position
        """
        with self._lock:
            item = self.item_by_media_id(media_id)
            if item is None or not 0 <= to_position < len(self._items):
                return False

            from_position = self._position_of(item)
            if from_position == to_position:
                return False

            current = self.current_item()
            del self._items[from_position]
            self._items.insert(to_position, item)
            self._restore_cursor(current)
            return True

    def remove_item(self, position: int) -> Optional[QueueItem]:
        """
        Remove the item at a position.

        When the removed item was the cursor item the cursor keeps its index and
        now names the item that shifted into the slot (the first item if the
        removed one was last). Callers must re-validate what is current.

        Returns:
            The removed item, or None for an out-of-range position
        """
        with self._lock:
            if not 0 <= position < len(self._items):
                return None

            removed_current = position == self._index
            current = self.current_item()

            removed = self._items.pop(position)
            self._unshuffled = [i for i in self._unshuffled if i is not removed]

            if not self._items:
                self._index = 0
            elif removed_current:
                if self._index >= len(self._items):
                    self._index = 0
            else:
                self._restore_cursor(current)
            return removed

    def insert_next(self, item: QueueItem) -> None:
        """Insert after the cursor (an empty queue becomes a single-item queue at cursor 0)"""
        with self._lock:
            if not self._items:
                self._items = [item]
                self._index = 0
            else:
                self._items.insert(self._index + 1, item)
            if self._unshuffled:
                self._unshuffled.append(item)

    def insert_last(self, item: QueueItem) -> None:
        with self._lock:
            self._items.append(item)
            if self._unshuffled:
                self._unshuffled.append(item)

    def shuffle(self, keep_current_first: bool) -> bool:
        """
        Shuffle the queue, saving the current order for unshuffle().

        Args:
            keep_current_first: Pin the cursor item at index 0 and point the cursor there

        Returns:
            False when the queue has one item or none
        """
        with self._lock:
            if len(self._items) <= 1:
                return False

            current = self.current_item()
            baseline = list(self._items)

            if keep_current_first:
                pool = [i for i in self._items if i is not current]
                _shuffle_until_changed(pool)
                self._items = [current] + pool
                self._index = 0
            else:
                _shuffle_until_changed(self._items)
                self._restore_cursor(current)

            self._unshuffled = baseline
            logger.debug("Queue shuffled (%d items, keep_current_first=%s)", len(self._items), keep_current_first)
            return True

    def unshuffle(self) -> bool:
        """Restore the pre-shuffle order; False when there is nothing to restore"""
        with self._lock:
            if not self._unshuffled:
                return False

            current = self.current_item()
            self._items = self._unshuffled
            self._unshuffled = []

            if current is None or not self.set_item_by_queue_id(current.queue_id):
                self._index = 0
            return True

    @staticmethod
    def shuffle_list(items: List[T], keep_first: bool) -> None:
        """Shuffle a free-standing list in place, optionally pinning the first element"""
        if len(items) <= 1:
            return
        if keep_first:
            rest = items[1:]
            _shuffle_until_changed(rest)
            items[1:] = rest
        else:
            _shuffle_until_changed(items)

    def _position_of(self, item: QueueItem) -> Optional[int]:
        for i, candidate in enumerate(self._items):
            if candidate is item:
                return i
        return None

    def _restore_cursor(self, current: Optional[QueueItem]) -> None:
        if current is None:
            self._index = 0
            return
        position = self._position_of(current)
        self._index = position if position is not None else 0
