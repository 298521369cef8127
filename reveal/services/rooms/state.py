import logging
import time
from typing import Callable, List, Optional, Tuple

from reveal.errors import NeedTwoPlayers, NotInRoom, RoomFull, RoomNotFound, SecretsMissing
from reveal.models import ROOM_CAPACITY, PendingReveal, Room, normalize_room_code

from .broadcast import BroadcastGateway
from .registry import RoomRegistry
from .sessions import SessionBinder


class RoomService:
    """Room state machine: membership, secrets, readiness and the reveal.

    Every command runs under the registry lock and broadcasts while still
    holding it, so clients of a room see snapshots in command order. The
    countdown is the only deferred step: it runs on ``start_task`` and
    re-checks the room when it wakes up.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        binder: SessionBinder,
        gateway: BroadcastGateway,
        start_task: Callable,
        sleep: Callable[[float], None],
        countdown_seconds: int = 3,
        logger=None,
    ):
        self.registry = registry
        self.binder = binder
        self.gateway = gateway
        self.countdown_seconds = countdown_seconds
        self.start_task = start_task
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)
        self.started_at = time.time()
        self.counters = {
            'roomsCreated': 0,
            'roomsJoined': 0,
            'secretsShared': 0,
            'gamesCompleted': 0,
        }

    def _log(self, tag: str, code: Optional[str], sid: Optional[str] = None, **details) -> None:
        extra = ''.join(f" {k}={v}" for k, v in details.items())
        self.logger.info(f"[{tag}] room={code or '-'} sid={(sid or '-')[:8]}{extra}")

    def _member_room(self, code, sid: str) -> Room:
        room = self.registry.lookup(code)
        if room is None or sid not in room.players:
            raise NotInRoom()
        return room

    # ---- membership ----

    def create_room(self, sid: str, display_name=None) -> Tuple[str, dict]:
        with self.registry.lock:
            self._leave_all(sid)
            room = self.registry.create_room(sid, display_name)
            self.binder.bind(sid, room.code)
            self.counters['roomsCreated'] += 1
            self._log('room-created', room.code, sid, name=room.players[sid].name)
            snapshot = room.to_dict()
            self.gateway.broadcast_snapshot(room.code)
            return room.code, snapshot

    def join_room(self, sid: str, code, display_name=None) -> Tuple[str, dict]:
        code = normalize_room_code(code)
        with self.registry.lock:
            target = self.registry.lookup(code)
            if target is None:
                raise RoomNotFound()
            if sid in target.players:
                self.binder.bind(sid, target.code)
                return target.code, target.to_dict()
            if target.is_full:
                raise RoomFull()
            self._leave_all(sid, keep=code)
            room = self.registry.join_room(code, sid, display_name)
            self.binder.bind(sid, room.code)
            self.counters['roomsJoined'] += 1
            self._log('player-joined', room.code, sid, name=room.players[sid].name)
            snapshot = room.to_dict()
            self.gateway.broadcast_snapshot(room.code)
            return room.code, snapshot

    def leave(self, code, sid: str) -> bool:
        code = normalize_room_code(code)
        self.binder.unbind(sid, code)
        with self.registry.lock:
            return self._remove_member(code, sid)

    def disconnect(self, sid: str) -> List[str]:
        """Treat a dropped connection as an explicit leave of every room it is in."""
        with self.registry.lock:
            codes = set(self.binder.release(sid))
            codes.update(c for c in self.registry.codes() if sid in self.registry.lookup(c).players)
            left = []
            for code in sorted(codes):
                if self._remove_member(code, sid, notify=True):
                    left.append(code)
            self._log('client-disconnected', None, sid, rooms=','.join(left) or '-')
            return left

    def _leave_all(self, sid: str, keep: Optional[str] = None) -> None:
        for code in self.binder.rooms_for(sid):
            if code != keep:
                self.leave(code, sid)

    def _remove_member(self, code: str, sid: str, notify: bool = False) -> bool:
        room = self.registry.lookup(code)
        if room is None or room.remove_player(sid) is None:
            return False
        self._log('player-left', code, sid, remaining=len(room.players))
        if room.is_empty:
            self.registry.delete(code)
            self.binder.drop_room(code)
            self._log('room-deleted', code, sid)
            return True
        if len(room.players) < ROOM_CAPACITY:
            room.cancel_pending_reveal()
        room.touch(self.registry.clock())
        self.gateway.broadcast_snapshot(code)
        if notify:
            self.gateway.broadcast_disconnect(code, len(room.players))
        return True

    # ---- secrets and readiness ----

    def set_secret(self, code, sid: str, text) -> None:
        with self.registry.lock:
            room = self._member_room(code, sid)
            player = room.players[sid]
            player.secret = str(text or '').strip()
            # A changed secret always needs a fresh confirmation
            player.ready = False
            room.touch(self.registry.clock())
            if player.has_secret:
                self.counters['secretsShared'] += 1
            self._drop_stale_countdown(room)
            self._log('secret-set', room.code, sid, has_secret=player.has_secret)
            self.gateway.broadcast_snapshot(room.code)

    def set_ready(self, code, sid: str, ready) -> None:
        with self.registry.lock:
            room = self._member_room(code, sid)
            room.players[sid].ready = bool(ready)
            room.touch(self.registry.clock())
            self._drop_stale_countdown(room)
            self._log('ready-toggled', room.code, sid, ready=bool(ready))
            self.gateway.broadcast_snapshot(room.code)
            if room.reveal_ready() and room.pending_reveal is None:
                self._start_countdown(room, sid)

    # ---- countdown and reveal ----

    def _start_countdown(self, room: Room, sid: str) -> PendingReveal:
        handle = PendingReveal(room.code, self.countdown_seconds, self.registry.clock())
        room.pending_reveal = handle
        self._log('countdown-started', room.code, sid, seconds=handle.seconds)
        self.gateway.broadcast_countdown(room.code, handle.seconds)
        self.start_task(self._countdown_worker, handle)
        return handle

    def _drop_stale_countdown(self, room: Room) -> None:
        # An unready player or a cleared secret voids the countdown in flight
        if room.pending_reveal is not None and not room.reveal_ready():
            room.cancel_pending_reveal()
            self._log('countdown-abort', room.code, reason='not-ready')

    def _countdown_worker(self, handle: PendingReveal) -> None:
        try:
            if handle.seconds > 0:
                self.sleep(handle.seconds)
            with self.registry.lock:
                room = self.registry.lookup(handle.room_code)
                if room is None or handle.cancelled or room.pending_reveal is not handle:
                    self._log('countdown-abort', handle.room_code, reason='stale')
                    return
                room.pending_reveal = None
                if not room.reveal_ready():
                    self._log('countdown-abort', handle.room_code, reason='not-ready', count=len(room.players))
                    return
                self._reveal(room, 'game-revealed')
        except Exception:
            self.logger.exception(f"[countdown] failed room={handle.room_code}")

    def _reveal(self, room: Room, tag: str) -> List[dict]:
        payload = room.record_reveal(self.registry.clock())
        self.counters['gamesCompleted'] += 1
        self._log(tag, room.code, game_count=room.game_count)
        self.gateway.broadcast_reveal(room.code, payload)
        self.gateway.broadcast_snapshot(room.code)
        return payload

    def request_reveal(self, code) -> List[dict]:
        """Reveal right away for clients that missed the scheduled reveal."""
        with self.registry.lock:
            room = self.registry.lookup(code)
            if room is None:
                raise RoomNotFound()
            if len(room.players) != ROOM_CAPACITY:
                raise NeedTwoPlayers()
            if not all(p.has_secret for p in room.players.values()):
                raise SecretsMissing()
            return self._reveal(room, 'reveal-requested')

    # ---- housekeeping ----

    def reap(self, timeout: float) -> List[str]:
        with self.registry.lock:
            evicted = []
            for code in self.registry.expired(timeout):
                if self.registry.delete(code):
                    self.binder.drop_room(code)
                    evicted.append(code)
                    self._log('room-expired', code)
            return evicted

    def room_stats(self, code) -> dict:
        with self.registry.lock:
            room = self.registry.lookup(code)
            if room is None:
                raise RoomNotFound()
            return room.stats()

    def server_stats(self) -> dict:
        return {
            'totalRooms': len(self.registry),
            'activeConnections': self.binder.connection_count,
            'uptime': round(time.time() - self.started_at, 1),
            'counters': dict(self.counters),
            'roomsDetail': self.registry.stats(),
        }
