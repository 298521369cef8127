from flask import Blueprint, jsonify

from reveal import get_room_service
from reveal.errors import RoomError

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
def server_stats():
    """Room counts, connection counts and per-room activity for the whole server."""
    return jsonify({'ok': True, 'stats': get_room_service().server_stats()})


@rooms.route('/<string:room_code>', methods=['GET'])
def room_stats(room_code):
    try:
        stats = get_room_service().room_stats(room_code)
    except RoomError as exc:
        return jsonify(exc.to_ack()), 404
    return jsonify({'ok': True, 'roomCode': room_code.upper(), 'stats': stats})
