import os
import sys
import pytest

# Ensure the project root (containing the `reveal` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from reveal import create_app, socketio
from reveal.services.rooms import BroadcastGateway, RoomRegistry, RoomService, SessionBinder


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SERVER_VERSION = 'test'
    CORS_ORIGINS = '*'
    COUNTDOWN_SECONDS = 0
    ROOM_TIMEOUT_SEC = 30 * 60
    REAPER_INTERVAL_SEC = 5 * 60
    STATS_LOG_INTERVAL_SEC = 0
    HISTORY_LIMIT = 3


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingGateway(BroadcastGateway):
    """Gateway that records sends instead of emitting; sids in ``broken`` fail."""

    def __init__(self, registry, binder):
        super().__init__(None, registry, binder)
        self.sent = []
        self.broken = set()

    def _send(self, sid, event, payload):
        if sid in self.broken:
            raise ConnectionError('socket gone')
        self.sent.append((sid, event, payload))

    def events(self, name, sid=None):
        return [p for s, e, p in self.sent if e == name and (sid is None or s == sid)]


class ManualTasks:
    """Collects scheduled countdowns so tests decide when they fire."""

    def __init__(self):
        self.pending = []

    def __call__(self, fn, *args):
        self.pending.append((fn, args))

    def run_all(self):
        tasks, self.pending = self.pending, []
        for fn, args in tasks:
            fn(*args)
        return len(tasks)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def tasks():
    return ManualTasks()


@pytest.fixture()
def service(clock, tasks):
    registry = RoomRegistry(clock=clock, history_limit=3)
    binder = SessionBinder()
    gateway = RecordingGateway(registry, binder)
    svc = RoomService(registry, binder, gateway, countdown_seconds=3,
                      start_task=tasks, sleep=lambda _s: None)
    return svc


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        test_client.get_received()  # flush 'connected'
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
