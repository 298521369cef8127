import logging

from .registry import RoomRegistry
from .sessions import SessionBinder


class BroadcastGateway:
    """Room-scoped fan-out to every connection bound to a room.

    Sends go out one connection at a time (``to=sid``) so a failure on one
    socket is logged and skipped; nothing is raised back to the caller.
    """

    def __init__(self, socketio, registry: RoomRegistry, binder: SessionBinder,
                 namespace: str = '/', logger=None):
        self.socketio = socketio
        self.registry = registry
        self.binder = binder
        self.namespace = namespace
        self.logger = logger or logging.getLogger(__name__)

    def _send(self, sid: str, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def publish(self, code: str, event: str, payload) -> int:
        delivered = 0
        for sid in self.binder.subscribers(code):
            try:
                self._send(sid, event, payload)
                delivered += 1
            except Exception as exc:
                self.logger.warning(f"[broadcast-fail] room={code} sid={sid[:8]} event={event} error={exc}")
        return delivered

    def broadcast_snapshot(self, code: str) -> None:
        snapshot = self.registry.snapshot(code)
        if snapshot is None:
            return
        self.publish(code, 'roomUpdate', snapshot)

    def broadcast_countdown(self, code: str, seconds: int) -> None:
        self.publish(code, 'startCountdown', seconds)

    def broadcast_reveal(self, code: str, payload) -> None:
        self.publish(code, 'reveal', payload)

    def broadcast_disconnect(self, code: str, remaining: int) -> None:
        self.publish(code, 'playerDisconnected', {
            'message': 'A player has disconnected',
            'remainingPlayers': remaining,
        })
