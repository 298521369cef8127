import threading
import time
from typing import Callable, Dict, List, Optional

from reveal.errors import RoomFull, RoomNotFound
from reveal.models import Room, clean_display_name, generate_room_code, normalize_room_code, to_ms


class RoomRegistry:
    """In-memory room table keyed by room code.

    All access goes through these methods. ``lock`` is re-entrant and is
    shared with the state machine so a whole command (mutation plus its
    broadcasts) runs as one step.
    """

    def __init__(self, clock: Callable[[], float] = time.time, history_limit: int = 20):
        self._rooms: Dict[str, Room] = {}
        self.clock = clock
        self.history_limit = history_limit
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code) -> bool:
        return normalize_room_code(code) in self._rooms

    def codes(self) -> List[str]:
        with self.lock:
            return list(self._rooms)

    def create_room(self, conn_id: str, display_name=None) -> Room:
        with self.lock:
            now = self.clock()
            code = generate_room_code(self._rooms, now=now)
            room = Room(code, now, history_limit=self.history_limit)
            room.add_player(conn_id, clean_display_name(display_name, 'Host'), 'host', now)
            self._rooms[code] = room
            return room

    def join_room(self, code, conn_id: str, display_name=None) -> Room:
        with self.lock:
            room = self.lookup(code)
            if room is None:
                raise RoomNotFound()
            if conn_id in room.players:
                return room
            if room.is_full:
                raise RoomFull()
            room.add_player(conn_id, clean_display_name(display_name, 'Guest'), 'guest', self.clock())
            return room

    def lookup(self, code) -> Optional[Room]:
        return self._rooms.get(normalize_room_code(code))

    def delete(self, code) -> bool:
        with self.lock:
            room = self._rooms.pop(normalize_room_code(code), None)
            if room is None:
                return False
            room.cancel_pending_reveal()
            return True

    def snapshot(self, code) -> Optional[dict]:
        with self.lock:
            room = self.lookup(code)
            return room.to_dict() if room else None

    def expired(self, timeout: float, now: Optional[float] = None) -> List[str]:
        now = self.clock() if now is None else now
        with self.lock:
            return [code for code, room in self._rooms.items() if now - room.last_activity > timeout]

    def stats(self) -> List[dict]:
        with self.lock:
            return [
                {
                    'roomCode': code,
                    'playerCount': len(room.players),
                    'gameCount': room.game_count,
                    'createdAt': to_ms(room.created_at),
                    'lastActivity': to_ms(room.last_activity),
                }
                for code, room in self._rooms.items()
            ]
