import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

LOCAL = 'local'
CHAT = 'chat'

# Rejection reasons
NO_ACTIVE_ROUND = 'no_active_round'
EMPTY_GUESS = 'empty_guess'
MISMATCH = 'mismatch'
ALREADY_WON = 'already_won'


@dataclass(frozen=True)
class Emote:
    name: str
    url: str

    def is_valid(self) -> bool:
        return all(isinstance(v, str) and v.strip() for v in (self.name, self.url))

    def to_dict(self):
        return {'name': self.name, 'url': self.url}


@dataclass(eq=False)
class Round:
    emote: Emote
    index: int = 0
    locked: bool = False
    winner: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def to_dict(self, reveal: bool = False):
        """Serialize for clients. The name stays hidden until the round is locked."""
        return {
            'index': self.index,
            'url': self.emote.url,
            'name': self.emote.name if (reveal or self.locked) else None,
            'locked': self.locked,
            'winner': self.winner,
            'started_at': self.started_at,
        }


@dataclass(frozen=True)
class GuessAttempt:
    guesser_id: str
    raw_text: str
    source: str = LOCAL


@dataclass
class Session:
    sequence: List[Emote]
    position: int = 0
    score: int = 0
    channel_scope: Optional[str] = None
    round: Optional[Round] = None
    finished: bool = False
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def total(self) -> int:
        return len(self.sequence)

    def to_dict(self):
        return {
            'token': self.token,
            'channel': self.channel_scope,
            'position': self.position,
            'total': self.total,
            'score': self.score,
            'finished': self.finished,
            'round': self.round.to_dict() if self.round else None,
        }


@dataclass(frozen=True)
class SequenceExhausted:
    final_score: int
    total: int


@dataclass(frozen=True)
class Verdict:
    accepted: bool
    reason: Optional[str] = None

    def to_dict(self):
        return {'accepted': self.accepted, 'reason': self.reason}


ACCEPTED = Verdict(True)
