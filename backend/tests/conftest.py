import os
import sys
import pytest

# Ensure the backend root (containing the `livequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from livequiz import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    POLL_INTERVAL_SEC = 2.0
    MIN_TIME_LIMIT_SEC = 5


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import livequiz.models  # noqa: F401
        db.create_all()
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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def room(client):
    return client.post('/api/rooms', json={'name': 'Friday quiz'}).get_json()


@pytest.fixture()
def make_player(client, room):
    def _make(name):
        res = client.post('/api/rooms/join', json={'room_code': room['room_code'], 'name': name})
        assert res.status_code == 201
        return res.get_json()
    return _make


@pytest.fixture()
def make_activation(client, room):
    def _make(state='voting', **fields):
        res = client.post(f"/api/rooms/{room['room_code']}/activations", json=fields)
        assert res.status_code == 201, res.get_json()
        activation = res.get_json()
        for next_state in ('voting', 'closed'):
            if state == 'pending':
                break
            res = client.post(f"/api/activations/{activation['id']}/state", json={'poll_state': next_state})
            assert res.status_code == 200
            activation = res.get_json()
            if next_state == state:
                break
        return activation
    return _make


@pytest.fixture()
def poll(make_activation):
    return make_activation(
        type='poll',
        question='Best snack?',
        options=[{'id': 'p1', 'text': 'Popcorn'}, {'id': 'p2', 'text': 'Pretzels'}],
    )
