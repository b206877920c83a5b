import os
import sys
import pytest

# Ensure the project root (containing app.py and the engine modules) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app, db
from engine import PlayerInfo
from service import GameService
from store import MemoryStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    REVERT_STRATEGY = 'replay'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def service(store):
    return GameService(store)


@pytest.fixture()
def two_players():
    return [PlayerInfo(id=1, name='Ann', order=1), PlayerInfo(id=2, name='Bob', order=2)]


@pytest.fixture()
def three_players():
    return [
        PlayerInfo(id=1, name='Ann', order=1),
        PlayerInfo(id=2, name='Bob', order=2),
        PlayerInfo(id=3, name='Cat', order=3),
    ]
