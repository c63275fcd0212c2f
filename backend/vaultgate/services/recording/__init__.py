"""Session recording: players, game sessions and the queries over them.

Every operation takes an explicit RecordingStore as its first argument and
checks out exactly one pooled connection for its duration.
"""
from .errors import PlayerLookupError, RecordingError, SchemaInitError
from .store import RecordingStore
from .players import register_player
from .sessions import complete_session, start_session
from .queries import all_sessions, health_check, leaderboard, player_stats, summary_counts

__all__ = [
    'RecordingStore',
    'RecordingError',
    'SchemaInitError',
    'PlayerLookupError',
    'register_player',
    'start_session',
    'complete_session',
    'leaderboard',
    'all_sessions',
    'player_stats',
    'summary_counts',
    'health_check',
]
