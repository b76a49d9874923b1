# Per-session command history
from collections import OrderedDict, deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List


class SessionHistoryStore:
    """Bounded per-session history.

    Each session keeps its most recent `capacity` entries (oldest evicted
    first). Sessions themselves are kept in LRU order and the least recently
    used one is dropped once more than `max_sessions` are tracked.
    """

    def __init__(self, capacity: int = 10, max_sessions: int = 1000):
        self.capacity = capacity
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, Deque[Dict[str, Any]]]" = OrderedDict()

    def add(self, session_id: str, entry: Dict[str, Any]) -> None:
        history = self._sessions.get(session_id)
        if history is None:
            history = deque(maxlen=self.capacity)
            self._sessions[session_id] = history
        self._sessions.move_to_end(session_id)

        history.append({**entry, "timestamp": datetime.now(timezone.utc).isoformat()})

        while len(self._sessions) > self.max_sessions:
            self._sessions.popitem(last=False)

    def recent(self, session_id: str, n: int = 3) -> List[Dict[str, Any]]:
        history = self._sessions.get(session_id)
        if not history or n <= 0:
            return []
        return list(history)[-n:]

    def get(self, session_id: str) -> List[Dict[str, Any]]:
        return list(self._sessions.get(session_id, ()))

    def __len__(self) -> int:
        return len(self._sessions)
