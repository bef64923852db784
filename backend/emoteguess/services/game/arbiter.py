from typing import Optional

from . import guard
from .normalizer import normalize, same_name
from .types import (
    ACCEPTED, ALREADY_WON, EMPTY_GUESS, MISMATCH, NO_ACTIVE_ROUND,
    GuessAttempt, Round, Verdict,
)


def submit(attempt: GuessAttempt, round_: Optional[Round]) -> Verdict:
    """Decide whether ``attempt`` wins ``round_``.

    On acceptance the round is already locked and its winner recorded; the
    caller then updates the leaderboard, the score, and asks for the next
    round, in that order.
    """
    if round_ is None:
        return Verdict(False, NO_ACTIVE_ROUND)
    guess = normalize(attempt.raw_text)
    if not guess:
        return Verdict(False, EMPTY_GUESS)
    if not same_name(guess, round_.emote.name):
        return Verdict(False, MISMATCH)
    if not guard.try_lock(round_):
        return Verdict(False, ALREADY_WON)
    round_.winner = attempt.guesser_id
    return ACCEPTED


def force_lock(round_: Optional[Round]) -> bool:
    """Skip: lock the round with no winner."""
    if round_ is None:
        return False
    return guard.try_lock(round_)
