import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional
from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from vaultgate import db
from vaultgate.models import GameSession, Player, utcnow
from .errors import RecordingError, SchemaInitError

logger = logging.getLogger(__name__)

RECORDING_TABLES = [Player.__table__, GameSession.__table__]


class RecordingStore:
    """Explicit handle on the recording database.

    Wraps a SQLAlchemy engine (and therefore its connection pool). Create one
    at startup, pass it to the registry/recorder/query functions, and call
    ``dispose()`` at shutdown.
    """

    def __init__(self, engine: Engine, clock: Optional[Callable[[], datetime]] = None):
        self.engine = engine
        self.clock = clock or utcnow

    @classmethod
    def from_url(cls, url: str, clock: Optional[Callable[[], datetime]] = None, **engine_options) -> 'RecordingStore':
        return cls(create_engine(url, **engine_options), clock=clock)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def init_schema(self) -> None:
        """Create the recording tables and their indexes when missing. Never drops."""
        try:
            db.metadata.create_all(self.engine, tables=RECORDING_TABLES, checkfirst=True)
            # create_all skips the indexes of tables that already existed
            for table in RECORDING_TABLES:
                for index in table.indexes:
                    index.create(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.error(f"[schema] initialization failed: {exc}")
            raise SchemaInitError(f"could not initialize recording schema: {exc}") from exc
        logger.info(f"[schema] tables ready on {self.dialect}")

    @contextmanager
    def connect(self, operation: str) -> Iterator[Connection]:
        """Check out one pooled connection for a single logical operation.

        The connection goes back to the pool on every exit path. Database
        errors are logged under ``operation`` and re-raised as RecordingError.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error(f"[{operation}] database error: {exc}")
            raise RecordingError(f"{operation} failed") from exc

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info('[shutdown] recording pool disposed')
