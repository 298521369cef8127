import threading
from typing import Dict, List, Set


class SessionBinder:
    """Tracks live connections and the room channels they are bound to.

    Keeps both directions: connection -> room codes (consulted on
    disconnect) and room code -> connections (used for fan-out).
    """

    def __init__(self):
        self._sid_to_rooms: Dict[str, Set[str]] = {}
        self._room_to_sids: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._sid_to_rooms)

    def connect(self, sid: str) -> None:
        with self._lock:
            self._sid_to_rooms.setdefault(sid, set())

    def bind(self, sid: str, code: str) -> None:
        with self._lock:
            self._sid_to_rooms.setdefault(sid, set()).add(code)
            self._room_to_sids.setdefault(code, set()).add(sid)

    def unbind(self, sid: str, code: str) -> None:
        with self._lock:
            self._sid_to_rooms.get(sid, set()).discard(code)
            members = self._room_to_sids.get(code)
            if members is not None:
                members.discard(sid)
                if not members:
                    del self._room_to_sids[code]

    def release(self, sid: str) -> List[str]:
        """Forget a terminated connection; return the rooms it was bound to."""
        with self._lock:
            codes = self._sid_to_rooms.pop(sid, set())
            for code in codes:
                members = self._room_to_sids.get(code)
                if members is not None:
                    members.discard(sid)
                    if not members:
                        del self._room_to_sids[code]
            return sorted(codes)

    def drop_room(self, code: str) -> None:
        with self._lock:
            for sid in self._room_to_sids.pop(code, set()):
                self._sid_to_rooms.get(sid, set()).discard(code)

    def rooms_for(self, sid: str) -> List[str]:
        with self._lock:
            return sorted(self._sid_to_rooms.get(sid, set()))

    def subscribers(self, code: str) -> List[str]:
        with self._lock:
            return list(self._room_to_sids.get(code, set()))
