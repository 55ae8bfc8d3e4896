from __future__ import annotations

import threading
from typing import Iterable


class ReactionMessageIndex:
    """Message ids that have at least one reaction-role binding.

    Derived from the ``reaction_roles`` table. A stale entry only costs one
    extra lookup; a missing entry would silently drop role changes, so callers
    must add the id before the binding becomes visible to reaction events.
    """

    def __init__(self, message_ids: Iterable[int] = ()):
        self._lock = threading.Lock()
        self._message_ids: set[int] = {int(m) for m in message_ids}

    def has_bindings(self, message_id: int) -> bool:
        return int(message_id) in self._message_ids

    def mark(self, message_id: int) -> None:
        with self._lock:
            self._message_ids.add(int(message_id))

    def unmark(self, message_id: int) -> None:
        with self._lock:
            self._message_ids.discard(int(message_id))

    def replace(self, message_ids: Iterable[int]) -> None:
        fresh = {int(m) for m in message_ids}
        with self._lock:
            self._message_ids = fresh
