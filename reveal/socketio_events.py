import functools
import time

from flask import current_app, request
from flask_socketio import emit

from reveal import get_room_service, socketio
from reveal.errors import InternalError, RoomError


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def acknowledged(handler):
    """Turn a handler's result into an ack dict; errors never escape."""

    @functools.wraps(handler)
    def wrapper(*args):
        try:
            result = handler(*args)
        except RoomError as exc:
            return exc.to_ack()
        except Exception:
            current_app.logger.exception(f"[handler-error] event={handler.__name__} sid={_get_sid()[:8]}")
            return InternalError().to_ack()
        ack = {'ok': True}
        ack.update(result or {})
        return ack

    return wrapper


def handle_connect(auth=None):
    sid = _get_sid()
    get_room_service().binder.connect(sid)
    current_app.logger.info(f"[client-connected] sid={sid[:8]}")
    emit('connected', {
        'id': sid,
        'timestamp': int(time.time() * 1000),
        'serverInfo': {
            'version': current_app.config.get('SERVER_VERSION', '2.0.0'),
            'features': ['realtime-sync', 'statistics', 'auto-cleanup'],
        },
    })


def handle_disconnect(*_reason):
    try:
        get_room_service().disconnect(_get_sid())
    except Exception:
        current_app.logger.exception(f"[disconnect-error] sid={_get_sid()[:8]}")


@acknowledged
def handle_create_room(display_name=None):
    code, snapshot = get_room_service().create_room(_get_sid(), display_name)
    return {'roomCode': code, 'snapshot': snapshot, 'roomId': code, 'summary': snapshot}


@acknowledged
def handle_join_room(room_code=None, display_name=None):
    code, snapshot = get_room_service().join_room(_get_sid(), room_code, display_name)
    return {'roomCode': code, 'snapshot': snapshot, 'roomId': code, 'summary': snapshot}


@acknowledged
def handle_set_secret(room_code=None, secret=None):
    get_room_service().set_secret(room_code, _get_sid(), secret)


@acknowledged
def handle_set_ready(room_code=None, ready=False):
    get_room_service().set_ready(room_code, _get_sid(), ready)


@acknowledged
def handle_request_reveal(room_code=None):
    get_room_service().request_reveal(room_code)


@acknowledged
def handle_leave_room(room_code=None):
    get_room_service().leave(room_code, _get_sid())


@acknowledged
def handle_get_room_stats(room_code=None):
    return {'stats': get_room_service().room_stats(room_code)}


@acknowledged
def handle_get_server_stats():
    return {'stats': get_room_service().server_stats()}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers.

    Event names and positional arguments follow the browser client; each
    command handler returns its ack to the client's callback.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createRoom', handle_create_room, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('setSecret', handle_set_secret, namespace=namespace)
    socketio.on_event('setReady', handle_set_ready, namespace=namespace)
    socketio.on_event('requestReveal', handle_request_reveal, namespace=namespace)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=namespace)
    socketio.on_event('getRoomStats', handle_get_room_stats, namespace=namespace)
    socketio.on_event('getServerStats', handle_get_server_stats, namespace=namespace)
