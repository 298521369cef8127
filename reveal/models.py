import random
import time
import uuid
from typing import Dict, List, Optional

ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 4
MAX_CODE_ATTEMPTS = 100
MAX_NAME_LENGTH = 32
ROOM_CAPACITY = 2


def to_ms(ts: float) -> int:
    return int(ts * 1000)


def normalize_room_code(code) -> str:
    return str(code or '').strip().upper()


def clean_display_name(name, default: str) -> str:
    cleaned = str(name or '').strip()[:MAX_NAME_LENGTH]
    return cleaned or default


def _base36(n: int) -> str:
    digits = '0123456789abcdefghijklmnopqrstuvwxyz'
    out = ''
    while n:
        n, rem = divmod(n, 36)
        out = digits[rem] + out
    return out or '0'


def generate_room_code(taken, length=ROOM_CODE_LENGTH, now=None) -> str:
    """Generate a short room code not present in ``taken``.

    Gives up after MAX_CODE_ATTEMPTS random draws and derives a code from
    the current time instead, stepping forward a millisecond at a time
    until the derived code is free.
    """
    for _ in range(MAX_CODE_ATTEMPTS):
        code = ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))
        if code not in taken:
            return code
    stamp = to_ms(time.time() if now is None else now)
    code = _base36(stamp).upper()[-length:]
    while code in taken:
        stamp += 1
        code = _base36(stamp).upper()[-length:]
    return code


class Player:
    def __init__(self, conn_id: str, name: str, role: str, joined_at: float):
        self.conn_id = conn_id
        self.name = name
        self.role = role
        self.joined_at = joined_at
        self.secret = ''
        self.ready = False

    @property
    def has_secret(self) -> bool:
        return len(self.secret) > 0

    def to_dict(self):
        # Never includes the secret itself
        return {
            'id': self.conn_id,
            'name': self.name,
            'role': self.role,
            'ready': self.ready,
            'hasSecret': self.has_secret,
            'joinedAt': to_ms(self.joined_at),
        }


class PendingReveal:
    """Handle for a scheduled countdown; observed by the task when it wakes."""

    def __init__(self, room_code: str, seconds: int, started_at: float):
        self.token = uuid.uuid4().hex
        self.room_code = room_code
        self.seconds = seconds
        self.started_at = started_at
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Room:
    def __init__(self, code: str, created_at: float, history_limit: int = 20):
        self.code = code
        self.players: Dict[str, Player] = {}
        self.created_at = created_at
        self.last_activity = created_at
        self.game_count = 0
        self.history: List[dict] = []
        self.history_limit = history_limit
        self.pending_reveal: Optional[PendingReveal] = None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= ROOM_CAPACITY

    @property
    def is_empty(self) -> bool:
        return not self.players

    def touch(self, now: float) -> None:
        self.last_activity = now

    def add_player(self, conn_id: str, name: str, role: str, now: float) -> Player:
        player = Player(conn_id, name, role, now)
        self.players[conn_id] = player
        self.touch(now)
        return player

    def remove_player(self, conn_id: str) -> Optional[Player]:
        return self.players.pop(conn_id, None)

    def reveal_ready(self) -> bool:
        if len(self.players) != ROOM_CAPACITY:
            return False
        return all(p.ready and p.has_secret for p in self.players.values())

    def cancel_pending_reveal(self) -> None:
        if self.pending_reveal is not None:
            self.pending_reveal.cancel()
            self.pending_reveal = None

    def record_reveal(self, now: float) -> List[dict]:
        """Build the reveal payload, log it and reset readiness for the next round."""
        payload = [{'name': p.name, 'secret': p.secret} for p in self.players.values()]
        self.history.append({'timestamp': to_ms(now), 'players': payload})
        if len(self.history) > self.history_limit:
            del self.history[:-self.history_limit]
        self.game_count += 1
        for p in self.players.values():
            p.ready = False
        return payload

    def to_dict(self):
        return {
            'roomCode': self.code,
            'players': [p.to_dict() for p in self.players.values()],
            'createdAt': to_ms(self.created_at),
            'gameCount': self.game_count,
        }

    def stats(self, history_items: int = 5):
        return {
            'createdAt': to_ms(self.created_at),
            'gameCount': self.game_count,
            'totalPlayers': len(self.players),
            'history': self.history[-history_items:],
        }
