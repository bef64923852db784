"""Emote ordering and round progression.

A Session is replaced wholesale on every load; within one Session the
position only moves forward and never passes ``len(sequence)``.
"""

import random
from typing import Iterable, List, Optional, Union

from emoteguess.errors import EmptyInputError
from . import guard
from .types import Emote, Round, Session, SequenceExhausted


def shuffle(items: List, rng: Optional[random.Random] = None) -> List:
    """Backward Fisher-Yates, in place. Every permutation is equally likely."""
    rng = rng or random
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def _open_round(session: Session) -> Round:
    round_ = Round(emote=session.sequence[session.position], index=session.position)
    guard.reset(round_)
    session.round = round_
    return round_


def load(emotes: Iterable, scope: Optional[str] = None, rng: Optional[random.Random] = None) -> Session:
    valid = [e for e in (emotes or []) if isinstance(e, Emote) and e.is_valid()]
    if not valid:
        raise EmptyInputError('No valid emotes found')
    session = Session(sequence=shuffle(valid, rng), channel_scope=scope)
    _open_round(session)
    return session


def advance(session: Session) -> Union[Round, SequenceExhausted]:
    if session.position < session.total:
        session.position += 1
    if session.position >= session.total:
        session.round = None
        session.finished = True
        return SequenceExhausted(final_score=session.score, total=session.total)
    return _open_round(session)


def current(session: Optional[Session]) -> Optional[Round]:
    if session is None or session.finished:
        return None
    return session.round
