import logging
from datetime import datetime

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from vaultgate.models import Player
from .errors import PlayerLookupError
from .store import RecordingStore

logger = logging.getLogger(__name__)

players = Player.__table__

# Dialects that can express "insert unless the email exists" as one statement
_CONFLICT_INSERTS = {
    'postgresql': pg_insert,
    'sqlite': sqlite_insert,
}


def register_player(store: RecordingStore, name: str, email: str) -> int:
    """Return the id of the player with ``email``, creating it if unseen.

    An existing player is left untouched, including its name.
    """
    with store.connect('register_player') as conn:
        return upsert_player(conn, name, email, store.clock())


def upsert_player(conn: Connection, name: str, email: str, now: datetime) -> int:
    values = {
        'name': name,
        'email': email,
        'score': 0,
        'vaults_opened': 0,
        'win_status': False,
        'created_at': now,
        'updated_at': now,
    }
    dialect_insert = _CONFLICT_INSERTS.get(conn.dialect.name)
    if dialect_insert is not None:
        stmt = (
            dialect_insert(players)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[players.c.email])
            .returning(players.c.id)
        )
        player_id = conn.execute(stmt).scalar()
        if player_id is not None:
            logger.info(f"[register_player] created player={player_id}")
            return player_id
    else:
        player_id = _lookup(conn, email)
        if player_id is not None:
            return player_id
        try:
            with conn.begin_nested():
                player_id = conn.execute(insert(players).values(**values)).inserted_primary_key[0]
            logger.info(f"[register_player] created player={player_id}")
            return player_id
        except IntegrityError:
            # Lost the race to a concurrent registration for the same email
            pass

    player_id = _lookup(conn, email)
    if player_id is None:
        raise PlayerLookupError(email)
    return player_id


def _lookup(conn: Connection, email: str):
    return conn.execute(select(players.c.id).where(players.c.email == email)).scalar()
