import logging
import time
from collections import OrderedDict
from typing import Callable, Tuple

from ..models import SessionState

logger = logging.getLogger(__name__)


class SessionRegistry:
    """In-memory session map with LRU eviction and idle expiry.

    Entries live for the process lifetime unless they are evicted because the
    registry is over capacity or they have been idle longer than the TTL.
    """

    def __init__(
        self,
        factory: Callable[[str], SessionState],
        max_entries: int,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[SessionState, float]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries

    def get_or_create(self, session_id: str) -> SessionState:
        """Return the SessionState for session_id, creating it on first use."""
        now = self._clock()
        entry = self._entries.get(session_id)
        if entry is not None:
            state, last_access = entry
            if self._ttl > 0 and now - last_access > self._ttl:
                logger.debug("Session %s expired after %.0fs idle", session_id, now - last_access)
                del self._entries[session_id]
            else:
                self._entries[session_id] = (state, now)
                self._entries.move_to_end(session_id)
                return state

        logger.info("Starting new chat for session: %s", session_id)
        state = self._factory(session_id)
        self._entries[session_id] = (state, now)
        self._evict_overflow()
        return state

    def _evict_overflow(self) -> None:
        while self._max_entries > 0 and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted least recently used session %s", evicted)
