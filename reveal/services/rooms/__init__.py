"""Room domain services: registry, state machine, sessions, fan-out and reaping.

Socket handlers and HTTP routes import from here, keeping transport
concerns separated from the room lifecycle and reveal protocol.
"""
from .broadcast import BroadcastGateway
from .registry import RoomRegistry
from .sessions import SessionBinder
from .state import RoomService

__all__ = ['BroadcastGateway', 'RoomRegistry', 'RoomService', 'SessionBinder']
