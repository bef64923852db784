from emoteguess import db
import json
import time


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    __table_args__ = (
        db.UniqueConstraint('scope', 'guesser_id', name='uq_leaderboard_scope_guesser'),
    )
    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(64), nullable=False, index=True)  # 'global' or a channel login
    guesser_id = db.Column(db.String(64), nullable=False)
    wins = db.Column(db.Integer, nullable=False, default=0)
    last_win_at = db.Column(db.Float, nullable=True)

    def to_dict(self):
        return {
            'scope': self.scope,
            'guesser_id': self.guesser_id,
            'wins': self.wins,
            'last_win_at': self.last_win_at,
        }


class StoreBlob(db.Model):
    __tablename__ = 'store_blob'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.Text, nullable=False)  # JSON-encoded
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    @property
    def data(self):
        return json.loads(self.value)

    @data.setter
    def data(self, obj):
        self.value = json.dumps(obj)
        self.updated_at = time.time()
