"""Per-user turn serialization."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Set

logger = logging.getLogger(__name__)


class UserTurnLocks:
    """Keyed, non-blocking mutex guarding one agent turn per user.

    The lock is advisory and process-local. It carries no durable state: a
    crash mid-turn simply drops it, and the next turn re-derives everything
    from storage. Deployments with several worker processes need a shared
    store behind the same interface.
    """

    def __init__(self) -> None:
        self._held: Set[str] = set()
        self._guard = Lock()

    @contextmanager
    def acquire(self, user_id: object) -> Iterator[bool]:
        """Yield True while holding the user's lock, or False immediately if it is busy."""
        key = str(user_id)
        with self._guard:
            busy = key in self._held
            if not busy:
                self._held.add(key)

        if busy:
            logger.debug("Turn lock busy for %s", key)
            yield False
            return

        try:
            yield True
        finally:
            with self._guard:
                self._held.discard(key)

    def is_locked(self, user_id: object) -> bool:
        with self._guard:
            return str(user_id) in self._held


turn_locks = UserTurnLocks()
