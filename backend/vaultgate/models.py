from vaultgate import db
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() if value else None


class Player(db.Model):
    __tablename__ = 'players'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    # Best-ever aggregates, only ever raised by completed sessions
    score = db.Column(db.Integer, default=0, nullable=False)
    vaults_opened = db.Column(db.Integer, default=0, nullable=False)
    win_status = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.Index('idx_players_email', 'email', unique=True),
        db.Index('idx_players_score', score.desc()),
    )


class GameSession(db.Model):
    __tablename__ = 'game_sessions'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    # Snapshot of the player's identity when the session started
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    vaults_opened = db.Column(db.Integer, default=0, nullable=False)
    win_status = db.Column(db.Boolean, default=False, nullable=False)
    game_started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    game_completed_at = db.Column(db.DateTime, nullable=True)  # NULL while the session is open
    duration_seconds = db.Column(db.Integer, nullable=True)

    __table_args__ = (
        db.Index('idx_sessions_created', game_started_at.desc()),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'name': self.name,
            'email': self.email,
            'score': self.score,
            'vaults_opened': self.vaults_opened,
            'win_status': self.win_status,
            'game_started_at': _isoformat(self.game_started_at),
            'game_completed_at': _isoformat(self.game_completed_at),
            'duration_seconds': self.duration_seconds,
        }
