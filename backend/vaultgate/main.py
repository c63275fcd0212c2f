from flask import Blueprint, request, jsonify, current_app
import hmac
from datetime import datetime
from vaultgate import get_store
from vaultgate.services.recording import (
    RecordingError,
    all_sessions,
    health_check,
    leaderboard,
    summary_counts,
)

main = Blueprint('main', __name__)


def serialize_rows(rows):
    return [
        {key: value.isoformat() if isinstance(value, datetime) else value for key, value in row.items()}
        for row in rows
    ]


def _limit_arg(default: int) -> int:
    try:
        limit = int(request.args.get('limit', default))
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, default))


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the VaultGate server!'})


@main.route('/health')
def health():
    store = get_store()
    connected = store is not None and health_check(store)
    return jsonify({'status': 'ok', 'database': 'connected' if connected else 'disconnected'})


@main.route('/api/leaderboard')
def get_leaderboard():
    store = get_store()
    if store is None:
        return jsonify({'error': 'Session recording is disabled'}), 503
    rows = leaderboard(store, _limit_arg(current_app.config.get('LEADERBOARD_LIMIT', 100)))
    return jsonify(serialize_rows(rows))


@main.route('/api/data')
def get_data():
    """Leaderboard, completed sessions and counts, behind a shared password."""
    expected = current_app.config.get('DATA_PASSWORD')
    supplied = request.args.get('password', '')
    if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
        return jsonify({'error': 'Unauthorized'}), 401
    store = get_store()
    if store is None:
        return jsonify({'error': 'Session recording is disabled'}), 503
    cfg = current_app.config
    return jsonify({
        'leaderboard': serialize_rows(leaderboard(store, cfg.get('LEADERBOARD_LIMIT', 100))),
        'sessions': serialize_rows(all_sessions(store, cfg.get('SESSIONS_LIMIT', 1000))),
        'stats': summary_counts(store),
    })


@main.errorhandler(RecordingError)
def handle_recording_error(exc):
    current_app.logger.error(f"[api] {exc}")
    return jsonify({'error': 'Database error'}), 500
