from .types import Round


def try_lock(round_: Round) -> bool:
    """Flip ``round_.locked`` from False to True.

    Returns False without touching the round when it is already locked.
    Check and set happen under the round's own lock, so two racing guesses
    (local input and chat, or two chat messages) can never both win.
    """
    with round_._lock:
        if round_.locked:
            return False
        round_.locked = True
        return True


def reset(round_: Round) -> None:
    # Only the sequencer calls this, when it opens a round.
    with round_._lock:
        round_.locked = False
        round_.winner = None
