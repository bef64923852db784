import time
from typing import Set, Tuple

from emoteguess import socketio


_scheduled_advance_keys: Set[Tuple[str, int]] = set()


def schedule_advance(app, controller, token: str, position: int) -> None:
    """Advance past a revealed round after ``REVEAL_DELAY_SEC``.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - A negative delay leaves advancing to the player ("next")
    - Ensures a single timer per (session token, position)
    - Aborts if the session was replaced or already moved on
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    delay = float(app.config.get('REVEAL_DELAY_SEC', 2))
    if delay < 0:
        return

    key = (token, position)
    if key in _scheduled_advance_keys:
        app.logger.info(f"[timer-skip] session={token} position={position} already scheduled")
        return
    _scheduled_advance_keys.add(key)
    app.logger.info(f"[timer-set] session={token} position={position} delay={delay}s")

    def _worker(expected_token: str, expected_position: int, wait: float):
        if wait:
            time.sleep(wait)
        _scheduled_advance_keys.discard((expected_token, expected_position))
        with app.app_context():
            advanced = controller.advance_if_current(expected_token, expected_position)
            if not advanced:
                app.logger.info(f"[timer-abort] session={expected_token} position={expected_position} moved on")

    if app.config.get('TESTING'):
        _worker(token, position, delay)
    else:
        socketio.start_background_task(_worker, token, position, delay)
