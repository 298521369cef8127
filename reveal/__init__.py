from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def build_room_service(flask_app):
    """Create the registry, binder, gateway and state machine for one app."""
    from reveal.services.rooms import BroadcastGateway, RoomRegistry, RoomService, SessionBinder

    registry = RoomRegistry(history_limit=int(flask_app.config.get('HISTORY_LIMIT', 20)))
    binder = SessionBinder()
    gateway = BroadcastGateway(socketio, registry, binder, namespace='/', logger=flask_app.logger)
    return RoomService(
        registry,
        binder,
        gateway,
        countdown_seconds=int(flask_app.config.get('COUNTDOWN_SECONDS', 3)),
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
        logger=flask_app.logger,
    )


def get_room_service():
    return current_app.extensions['rooms']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins,
                      ping_timeout=60, ping_interval=25)

    service = build_room_service(flask_app)
    flask_app.extensions['rooms'] = service

    from reveal.main import main
    flask_app.register_blueprint(main)

    from reveal.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from reveal.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from reveal.services.rooms.reaper import start_background_tasks
    start_background_tasks(flask_app, socketio, service)

    return flask_app
