import os
import sys
from datetime import datetime, timedelta
import pytest
from sqlalchemy.pool import StaticPool

# Ensure the backend root (containing the `vaultgate` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from vaultgate import create_app, db, socketio
from vaultgate.services.recording import RecordingStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    RECORDING_ENABLED = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DATA_PASSWORD = 'open-sesame'
    LEADERBOARD_LIMIT = 100
    SESSIONS_LIMIT = 1000
    CORS_ORIGINS = ['http://localhost:3000']
    LOG_LEVEL = 'DEBUG'


class FakeClock:
    """Stands in for the store's UTC clock; only moves when told to."""

    def __init__(self, start=datetime(2024, 5, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    recording_store = RecordingStore.from_url(
        'sqlite://',
        clock=clock,
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    recording_store.init_schema()
    yield recording_store
    recording_store.dispose()
