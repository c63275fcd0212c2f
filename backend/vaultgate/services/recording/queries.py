"""Read-only aggregate queries over players and game sessions."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from vaultgate.models import GameSession, Player
from .store import RecordingStore

logger = logging.getLogger(__name__)

players = Player.__table__
game_sessions = GameSession.__table__


def leaderboard(store: RecordingStore, limit: int = 100) -> List[Dict[str, Any]]:
    """Players with a positive best score, best first, most recently active on ties."""
    stmt = (
        select(
            players.c.name,
            players.c.email,
            players.c.score,
            players.c.vaults_opened,
            players.c.win_status,
            players.c.created_at,
            players.c.updated_at,
        )
        .where(players.c.score > 0)
        .order_by(players.c.score.desc(), players.c.updated_at.desc())
        .limit(limit)
    )
    with store.connect('leaderboard') as conn:
        return [dict(row) for row in conn.execute(stmt).mappings()]


def all_sessions(store: RecordingStore, limit: int = 1000) -> List[Dict[str, Any]]:
    stmt = (
        select(
            game_sessions.c.id,
            game_sessions.c.name,
            game_sessions.c.email,
            game_sessions.c.score,
            game_sessions.c.vaults_opened,
            game_sessions.c.win_status,
            game_sessions.c.game_started_at,
            game_sessions.c.game_completed_at,
            game_sessions.c.duration_seconds,
        )
        .where(game_sessions.c.game_completed_at.is_not(None))
        .order_by(game_sessions.c.game_completed_at.desc())
        .limit(limit)
    )
    with store.connect('all_sessions') as conn:
        return [dict(row) for row in conn.execute(stmt).mappings()]


def player_stats(store: RecordingStore, email: str) -> Optional[Dict[str, Any]]:
    """Aggregate one player over all of their sessions. None if the email is unknown."""
    stmt = (
        select(
            players.c.name,
            players.c.email,
            players.c.score.label('best_score'),
            players.c.vaults_opened.label('max_vaults'),
            players.c.win_status,
            func.count(game_sessions.c.id).label('total_games'),
            func.avg(game_sessions.c.score).label('avg_score'),
            func.avg(game_sessions.c.duration_seconds).label('avg_duration'),
        )
        .select_from(players.outerjoin(game_sessions, players.c.id == game_sessions.c.player_id))
        .where(players.c.email == email)
        .group_by(
            players.c.id,
            players.c.name,
            players.c.email,
            players.c.score,
            players.c.vaults_opened,
            players.c.win_status,
        )
    )
    with store.connect('player_stats') as conn:
        row = conn.execute(stmt).mappings().first()
    if row is None:
        return None
    stats = dict(row)
    # Postgres AVG yields Decimal
    for key in ('avg_score', 'avg_duration'):
        if isinstance(stats[key], Decimal):
            stats[key] = float(stats[key])
    return stats


def summary_counts(store: RecordingStore) -> Dict[str, int]:
    stmt = select(
        select(func.count()).select_from(players).scalar_subquery().label('total_players'),
        select(func.count()).select_from(game_sessions).scalar_subquery().label('total_sessions'),
        select(func.count())
        .select_from(game_sessions)
        .where(game_sessions.c.game_completed_at.is_not(None))
        .scalar_subquery()
        .label('completed_sessions'),
        select(func.count())
        .select_from(game_sessions)
        .where(game_sessions.c.win_status.is_(True))
        .scalar_subquery()
        .label('winning_sessions'),
    )
    with store.connect('summary_counts') as conn:
        return dict(conn.execute(stmt).mappings().one())


def health_check(store: RecordingStore) -> bool:
    """Liveness probe: True when a trivial round-trip succeeds."""
    try:
        with store.engine.connect() as conn:
            conn.execute(text('SELECT 1'))
        return True
    except SQLAlchemyError as exc:
        logger.error(f"[health_check] database unreachable: {exc}")
        return False
