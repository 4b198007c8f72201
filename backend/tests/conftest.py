import os
import sys
from contextlib import nullcontext

import pytest
from flask import has_app_context

# Ensure the backend root (containing the `quest` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quest import create_app, db, socketio
from quest import realtime


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    TERMINAL_ROOM = 49
    MIN_PLAYERS = 2
    MAX_PLAYERS_LIMIT = 4
    DEFAULT_MAX_PLAYERS = 4
    JOIN_CODE_LENGTH = 6
    CORRECT_ANSWER_POINTS = 100
    WRONG_ANSWER_PENALTY = 100
    WRONG_ANSWER_ROOMS_BACK = 2
    RECENT_MOVES_LIMIT = 10


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quest.models  # noqa: F401
        db.create_all()
    realtime.reset_presence()
    # Requests must each push their own app context; Flask-Login caches the
    # loaded user on it.
    yield application
    realtime.reset_presence()
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """Hold an app context for tests that call the services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def in_app(flask_app):
    """Reuse the held app context, or push one for a single helper call."""

    def _ctx():
        return nullcontext() if has_app_context() else flask_app.app_context()

    return _ctx


@pytest.fixture()
def make_user(in_app):
    from quest.models import User

    def _make(username, password='password'):
        with in_app():
            user = User(username=username, email=f'{username}@example.com')
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def add_question(in_app):
    from quest.models import Question

    def _add(room, answer='def', text=None, explanation='Because.', difficulty='easy', topic='basics'):
        with in_app():
            question = Question(
                question_text=text or f'Question for room {room}?',
                correct_answer=answer,
                explanation=explanation,
                difficulty=difficulty,
                topic=topic,
                room_position=room,
            )
            db.session.add(question)
            db.session.commit()
            return question.id

    return _add


@pytest.fixture()
def login_client(flask_app):
    """Return a Flask test client with a logged-in session for ``username``."""

    def _login(username, password='password'):
        test_client = flask_app.test_client()
        res = test_client.post('/api/auth/login', json={'username': username, 'password': password})
        assert res.status_code == 200, res.get_json()
        return test_client

    return _login


@pytest.fixture()
def sio_client(flask_app):
    clients = []

    def _connect(flask_test_client=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_test_client or flask_app.test_client(),
            namespace='/ws',
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def place_player(in_app):
    """Put a player on a given room without playing the turns to get there."""
    from quest.models import GamePlayer

    def _place(game_id, user_id, position):
        with in_app():
            player = GamePlayer.query.filter_by(game_id=game_id, user_id=user_id).first()
            player.position = position
            db.session.commit()

    return _place
