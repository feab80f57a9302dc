import os
import sys
import pytest

# Ensure the backend root (containing the `app` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from app import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = 'DEBUG'
    LOCK_TIMEOUT_SEC = 5
    LEADERBOARD_LIMIT = 10
    USER_GAMES_LIMIT = 10
    ROOM_MESSAGES_LIMIT = 50
    QUICK_MATCH_ROOM_NAME = 'Quick Match'
    QUICK_MATCH_TAG = 'casual'


def _build_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        import app.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


def _build_api_app(config_class):
    # No context stays pushed: every request gets its own app context, so
    # flask_login does not reuse the previous request's user from `g`
    application = create_app(config_class)
    with application.app_context():
        import app.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _build_app(TestConfig)


@pytest.fixture()
def threaded_app(tmp_path):
    """App backed by a SQLite file so several threads can hold connections."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'rooms.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'check_same_thread': False, 'timeout': 15}}

    yield from _build_app(FileConfig)


@pytest.fixture()
def api_app():
    yield from _build_api_app(TestConfig)


@pytest.fixture()
def client(api_app):
    return api_app.test_client()


@pytest.fixture()
def make_user():
    """Create a user row directly and return its id."""
    from app.models import User

    def _make(username, password='password'):
        user = User(username=username)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id

    return _make


@pytest.fixture()
def start_game():
    """Seat two users in a fresh room; the second join starts the game."""
    from app.services.games import matchmaker

    def _start(player1_id, player2_id, name='Test Room'):
        room = matchmaker.create_room(player1_id, name)
        result = matchmaker.join(room.id, player2_id)
        return result.game

    return _start


@pytest.fixture()
def user_client(api_app):
    """Return a test client registered and logged in as ``username``."""
    def _login(username, password='password'):
        c = api_app.test_client()
        res = c.post('/register', json={'username': username, 'password': password})
        assert res.status_code == 201, res.get_json()
        c.user_id = res.get_json()['user']['id']
        return c

    return _login


@pytest.fixture()
def sio_client(api_app):
    test_client = socketio.test_client(
        api_app,
        flask_test_client=api_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
