from flask import Blueprint, jsonify, request, current_app
from vaultgate import db, get_store
from vaultgate.models import GameSession
from vaultgate.services.recording import (
    RecordingError,
    complete_session,
    player_stats,
    start_session,
)

sessions = Blueprint('sessions', __name__)

_TRUE_STRINGS = {'true', '1', 'yes'}
_FALSE_STRINGS = {'false', '0', 'no', ''}


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _text(value):
    if value is None:
        return ''
    return value.strip() if isinstance(value, str) else None


def _non_negative_int(value):
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def _flag(value):
    """JSON booleans and the usual string spellings; None for anything else."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


@sessions.before_request
def require_recording():
    if get_store() is None:
        return jsonify({'error': 'Session recording is disabled'}), 503


@sessions.route('/start', methods=['POST'])
def start():
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    name = _text(data.get('name'))
    email = _text(data.get('email'))
    if not all([name, email]):
        return jsonify({'error': 'Name and email are required'}), 400

    session_id = start_session(get_store(), name, email)
    return jsonify({'session_id': session_id}), 201


@sessions.route('/complete', methods=['POST'])
def complete():
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    email = _text(data.get('email'))
    score = _non_negative_int(data.get('score', 0))
    vaults_opened = _non_negative_int(data.get('vaultsOpened', 0))
    won = _flag(data.get('won'))
    if not email:
        return jsonify({'error': 'Email is required'}), 400
    if score is None or vaults_opened is None:
        return jsonify({'error': 'score and vaultsOpened must be non-negative integers'}), 400
    if won is None:
        return jsonify({'error': 'won must be a boolean'}), 400
    session_id = data.get('session_id')
    if session_id is not None:
        session_id = _non_negative_int(session_id)
        if session_id is None:
            return jsonify({'error': 'session_id must be an integer'}), 400

    completed_id = complete_session(
        get_store(),
        email,
        score,
        vaults_opened,
        won,
        session_id=session_id,
    )
    if completed_id is None:
        return jsonify({'session_id': None, 'message': 'No open session to complete'})
    return jsonify({'session_id': completed_id})


@sessions.route('/<int:session_id>', methods=['GET'])
def get_session(session_id):
    game_session = db.session.get(GameSession, session_id)
    if game_session is None:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify(game_session.to_dict())


@sessions.route('/players/<string:email>/stats', methods=['GET'])
def get_player_stats(email):
    stats = player_stats(get_store(), email.strip())
    if stats is None:
        return jsonify({'error': 'Player not found'}), 404
    return jsonify(stats)


@sessions.errorhandler(RecordingError)
def handle_recording_error(exc):
    current_app.logger.error(f"[api] {exc}")
    return jsonify({'error': 'Database error'}), 500
