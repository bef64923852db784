import os
import sys
import pytest

# Ensure the backend root (containing the `emoteguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from emoteguess import create_app, db, socketio
from emoteguess.errors import ResolutionError
from emoteguess.services.game.types import Emote


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    HTTP_TIMEOUT_SEC = 1
    REVEAL_DELAY_SEC = 0
    CHAT_ENABLED = True
    CHAT_COMMAND_PREFIXES = ['!guess']
    CHAT_LOG_SIZE = 5
    ANNOUNCE_WINS = True
    LOCAL_GUESSER_NAME = 'You'
    COUNT_LOCAL_GUESSES = True
    LEADERBOARD_PER_CHANNEL = True
    LEADERBOARD_SIZE = 10


class KeepOrder:
    """rng stand-in: the Fisher-Yates pass swaps every element with itself."""

    def randint(self, a, b):
        return b


class FakeEmoteSource:
    def __init__(self, emotes=None):
        self.emotes = emotes if emotes is not None else [Emote('pog', 'a'), Emote('kappa', 'b')]
        self.calls = []

    def fetch_emotes(self, channel_id):
        self.calls.append(channel_id)
        return list(self.emotes)


class FakeResolver:
    def __init__(self, ids=None):
        self.ids = ids if ids is not None else {'xqc': '71092938', 'forsen': '22484632'}
        self.before_return = None

    def resolve_channel_id(self, login):
        if self.before_return:
            self.before_return(login)
        if login not in self.ids:
            raise ResolutionError('Could not resolve Twitch ID')
        return self.ids[login]


class FakeChat:
    def __init__(self):
        self.credentials = None
        self.channel = None
        self.connected = False
        self.sent = []
        self.history = []
        self.before_connect = None
        self.fail_with = None
        self._message_handlers = []
        self._drop_handlers = []

    @property
    def can_send(self):
        return self.connected and bool(self.credentials)

    def on_message(self, handler):
        self._message_handlers.append(handler)

    def on_drop(self, handler):
        self._drop_handlers.append(handler)

    def connect(self, channel):
        if self.before_connect:
            self.before_connect(channel)
        if self.fail_with is not None:
            raise self.fail_with
        self.disconnect()
        self.channel = channel
        self.connected = True
        self.history.append(('connect', channel))

    def disconnect(self):
        if self.connected:
            self.history.append(('disconnect', self.channel))
        self.connected = False
        self.channel = None

    def send(self, text):
        if not self.can_send:
            return False
        self.sent.append(text)
        return True

    def deliver(self, message):
        for handler in self._message_handlers:
            handler(message)

    def drop(self, reason='connection reset'):
        self.connected = False
        for handler in self._drop_handlers:
            handler(reason)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def fakes():
    return {
        'emote_source': FakeEmoteSource(),
        'resolver': FakeResolver(),
        'chat': FakeChat(),
    }


@pytest.fixture()
def flask_app(events, fakes):
    def record(event, payload):
        events.append((event, payload))
        socketio.emit(event, payload, namespace='/ws')

    application = create_app(TestConfig, emit=record, rng=KeepOrder(), **fakes)
    with application.app_context():
        # Ensure models are imported so tables are created
        import emoteguess.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def controller(flask_app):
    from emoteguess.services.game.controller import get_controller
    return get_controller()


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
def emitted(events):
    def _emitted(kind):
        return [payload for event, payload in events if event == kind]
    return _emitted
