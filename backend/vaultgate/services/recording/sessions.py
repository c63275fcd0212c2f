import logging
from typing import Optional

from sqlalchemy import case, insert, select, update

from vaultgate.models import GameSession, Player
from .players import upsert_player
from .store import RecordingStore

logger = logging.getLogger(__name__)

players = Player.__table__
game_sessions = GameSession.__table__


def start_session(store: RecordingStore, name: str, email: str) -> int:
    """Open a new game session for ``email``, registering the player if needed."""
    with store.connect('start_session') as conn:
        now = store.clock()
        player_id = upsert_player(conn, name, email, now)
        result = conn.execute(
            insert(game_sessions).values(
                player_id=player_id,
                name=name,
                email=email,
                score=0,
                vaults_opened=0,
                win_status=False,
                game_started_at=now,
            )
        )
        session_id = result.inserted_primary_key[0]
    logger.info(f"[start_session] session={session_id} player={player_id}")
    return session_id


def complete_session(
    store: RecordingStore,
    email: str,
    score: int,
    vaults_opened: int,
    won: bool,
    session_id: Optional[int] = None,
) -> Optional[int]:
    """Finalize the latest open session for ``email`` and raise the player's bests.

    When ``session_id`` is given only that session is eligible. Returns the
    completed session id, or None when there was nothing open to complete.
    """
    with store.connect('complete_session') as conn:
        query = select(
            game_sessions.c.id,
            game_sessions.c.player_id,
            game_sessions.c.game_started_at,
        ).where(
            game_sessions.c.email == email,
            game_sessions.c.game_completed_at.is_(None),
        )
        if session_id is not None:
            query = query.where(game_sessions.c.id == session_id)
        row = conn.execute(
            query.order_by(game_sessions.c.game_started_at.desc(), game_sessions.c.id.desc()).limit(1)
        ).first()
        if row is None:
            logger.info(f"[complete_session] no open session for email={email!r}")
            return None

        now = store.clock()
        duration = max(0, int((now - row.game_started_at).total_seconds()))
        # Re-check openness so a session is never finalized twice
        result = conn.execute(
            update(game_sessions)
            .where(game_sessions.c.id == row.id, game_sessions.c.game_completed_at.is_(None))
            .values(
                score=score,
                vaults_opened=vaults_opened,
                win_status=bool(won),
                game_completed_at=now,
                duration_seconds=duration,
            )
        )
        if result.rowcount == 0:
            logger.info(f"[complete_session] session={row.id} was completed concurrently")
            return None

        aggregates = {
            'score': case((players.c.score < score, score), else_=players.c.score),
            'vaults_opened': case((players.c.vaults_opened < vaults_opened, vaults_opened), else_=players.c.vaults_opened),
            'updated_at': now,
        }
        if won:
            aggregates['win_status'] = True
        conn.execute(update(players).where(players.c.id == row.player_id).values(**aggregates))

    logger.info(
        f"[complete_session] session={row.id} player={row.player_id} score={score} "
        f"vaults={vaults_opened} won={bool(won)} duration={duration}s"
    )
    return row.id
