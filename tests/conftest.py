import os
import sys
import pytest

# Ensure the project root (containing the `tombola` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tombola import create_app, socketio
from tombola.coordinator import GameCoordinator
from tombola.deck import generate_deck
from tombola.models import GameState


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    DECK_PATH = None
    DECK_SEED = 1234
    PORT = 3000
    PUBLIC_URL = 'http://tombola.test:3000'
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = '*'


@pytest.fixture()
def config_class():
    return TestConfig


@pytest.fixture(scope='session')
def deck():
    return generate_deck(seed=42)


@pytest.fixture()
def state():
    return GameState()


@pytest.fixture()
def coordinator(deck):
    import random
    return GameCoordinator(deck, server_url='http://tombola.test:3000', rng=random.Random(7))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for Socket.IO test clients; all are disconnected at teardown."""
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


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()
