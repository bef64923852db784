from flask_socketio import emit
from emoteguess import socketio
from emoteguess.errors import EmoteGuessError
from emoteguess.services.game.controller import get_controller


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})
    # Late joiners get the current round and leaderboard right away
    controller = get_controller()
    emit('state_update', controller.state())
    scope = controller.scope_for(controller.session)
    emit('leaderboard_updated', {'scope': scope, 'entries': controller.leaderboard(scope=scope)})


def handle_guess(data):
    text = (data or {}).get('text')
    verdict = get_controller().guess_local(text)
    emit('guess_result', verdict.to_dict())


def handle_skip(data=None):
    if not get_controller().skip():
        emit('error', {'message': 'No open round to skip'})


def handle_next(data=None):
    if get_controller().advance() is None:
        emit('error', {'message': 'Nothing loaded yet'})


def handle_clear_leaderboard(data=None):
    scope = (data or {}).get('scope')
    try:
        deleted = get_controller().clear_leaderboard(scope)
    except EmoteGuessError as exc:
        emit('error', {'message': str(exc)})
        return
    emit('leaderboard_cleared', {'deleted': deleted})


def handle_ping(data):
    emit('pong', data or {})


_HANDLERS = {
    'connect': handle_connect,
    'guess': handle_guess,
    'skip': handle_skip,
    'next': handle_next,
    'clear_leaderboard': handle_clear_leaderboard,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        for event, handler in _HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
