import logging
import time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from emoteguess import db
from emoteguess.errors import PersistenceError
from emoteguess.models import LeaderboardEntry

GLOBAL_SCOPE = 'global'

log = logging.getLogger(__name__)


def scope_key(scope: Optional[str]) -> str:
    return (scope or '').strip().lower() or GLOBAL_SCOPE


class Ledger:
    """Durable tally of first-correct guesses, partitioned by scope.

    Ranking: wins descending, ties broken by guesser id ascending.
    """

    def __init__(self, logger=None):
        self.logger = logger or log

    def record_win(self, guesser_id: str, scope: Optional[str] = None, now: Optional[float] = None) -> bool:
        """Count one win. Returns False (and logs) if the store is unavailable."""
        key = scope_key(scope)
        try:
            entry = LeaderboardEntry.query.filter_by(scope=key, guesser_id=guesser_id).first()
            if entry is None:
                entry = LeaderboardEntry(scope=key, guesser_id=guesser_id, wins=0)
            entry.wins = (entry.wins or 0) + 1
            entry.last_win_at = now if now is not None else time.time()
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.logger.warning(f"[ledger-write-failed] scope={key} guesser={guesser_id} error={exc}")
            return False
        self.logger.info(f"[ledger] scope={key} guesser={guesser_id} wins={entry.wins}")
        return True

    def top_n(self, scope: Optional[str] = None, n: int = 10) -> List[LeaderboardEntry]:
        if n is None or n <= 0:
            return []
        key = scope_key(scope)
        try:
            return (
                LeaderboardEntry.query.filter_by(scope=key)
                .order_by(LeaderboardEntry.wins.desc(), LeaderboardEntry.guesser_id.asc())
                .limit(n)
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.logger.warning(f"[ledger-read-failed] scope={key} error={exc}")
            return []

    def clear(self, scope: Optional[str] = None) -> int:
        key = scope_key(scope)
        try:
            deleted = LeaderboardEntry.query.filter_by(scope=key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.logger.error(f"[ledger-clear-failed] scope={key} error={exc}")
            raise PersistenceError('Could not clear the leaderboard') from exc
        self.logger.info(f"[ledger-clear] scope={key} deleted={deleted}")
        return deleted
