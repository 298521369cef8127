from datetime import datetime, timezone

from flask import Blueprint, jsonify

from reveal import get_room_service

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the secret reveal server!'})


@main.route('/health')
def health():
    service = get_room_service()
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'rooms': len(service.registry),
        'connectedClients': service.binder.connection_count,
    })
