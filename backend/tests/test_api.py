import pytest

from conftest import TestConfig
from vaultgate import create_app, get_store
from vaultgate.models import Player
from vaultgate.services.recording import SchemaInitError


class DisabledConfig(TestConfig):
    RECORDING_ENABLED = False


def _start(client, name='Ada', email='a@x.com'):
    res = client.post('/api/sessions/start', json={'name': name, 'email': email})
    assert res.status_code == 201
    return res.get_json()['session_id']


def test_health_reports_connected(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok', 'database': 'connected'}


def test_health_reports_disconnected_without_database():
    application = create_app(DisabledConfig)
    with application.app_context():
        assert get_store() is None
        res = application.test_client().get('/health')
    assert res.get_json() == {'status': 'ok', 'database': 'disconnected'}


def test_recording_endpoints_unavailable_without_database():
    application = create_app(DisabledConfig)
    client = application.test_client()
    res = client.post('/api/sessions/start', json={'name': 'Ada', 'email': 'a@x.com'})
    assert res.status_code == 503
    assert client.get('/api/leaderboard').status_code == 503


def test_startup_aborts_when_schema_cannot_be_created(tmp_path):
    class BrokenConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'missing' / 'vault.db'}"

    with pytest.raises(SchemaInitError):
        create_app(BrokenConfig)


def test_start_and_complete_session(client):
    session_id = _start(client)

    res = client.post('/api/sessions/complete', json={
        'email': 'a@x.com', 'score': 500, 'vaultsOpened': 3, 'won': True,
    })
    assert res.status_code == 200
    assert res.get_json()['session_id'] == session_id

    game_session = client.get(f'/api/sessions/{session_id}').get_json()
    assert game_session['score'] == 500
    assert game_session['vaults_opened'] == 3
    assert game_session['win_status'] is True
    assert game_session['duration_seconds'] >= 0
    assert game_session['game_completed_at'] is not None

    player = Player.query.filter_by(email='a@x.com').first()
    assert (player.score, player.vaults_opened, player.win_status) == (500, 3, True)


def test_complete_with_session_id(client):
    first = _start(client)
    second = _start(client)
    res = client.post('/api/sessions/complete', json={
        'email': 'a@x.com', 'score': 10, 'vaultsOpened': 1, 'won': False, 'session_id': first,
    })
    assert res.get_json()['session_id'] == first
    assert client.get(f'/api/sessions/{second}').get_json()['game_completed_at'] is None


def test_complete_without_open_session_is_not_an_error(client):
    res = client.post('/api/sessions/complete', json={'email': 'ghost@x.com', 'score': 10})
    assert res.status_code == 200
    assert res.get_json()['session_id'] is None


@pytest.mark.parametrize('payload', [
    {'email': 'a@x.com'},
    {'name': 'Ada'},
    {'name': '   ', 'email': 'a@x.com'},
    {'name': 123, 'email': 'a@x.com'},
    {'name': 'Ada', 'email': ['a@x.com']},
])
def test_start_requires_name_and_email(client, payload):
    res = client.post('/api/sessions/start', json=payload)
    assert res.status_code == 400


@pytest.mark.parametrize('payload', [
    {'score': 10},
    {'email': 'a@x.com', 'score': -1},
    {'email': 'a@x.com', 'score': 'lots'},
    {'email': 'a@x.com', 'vaultsOpened': True},
    {'email': 'a@x.com', 'session_id': 'abc'},
    {'email': 42, 'score': 10},
    {'email': 'a@x.com', 'won': 'maybe'},
    {'email': 'a@x.com', 'won': 1},
])
def test_complete_rejects_bad_payloads(client, payload):
    res = client.post('/api/sessions/complete', json=payload)
    assert res.status_code == 400


@pytest.mark.parametrize('path', ['/api/sessions/start', '/api/sessions/complete'])
def test_non_object_body_is_rejected(client, path):
    res = client.post(path, json=['a@x.com'])
    assert res.status_code == 400


def test_won_string_false_is_not_a_win(client):
    session_id = _start(client)
    res = client.post('/api/sessions/complete', json={
        'email': 'a@x.com', 'score': 50, 'vaultsOpened': 1, 'won': 'false',
    })
    assert res.status_code == 200
    assert client.get(f'/api/sessions/{session_id}').get_json()['win_status'] is False
    assert Player.query.filter_by(email='a@x.com').first().win_status is False


def test_unknown_session_is_404(client):
    assert client.get('/api/sessions/9999').status_code == 404


def test_player_stats(client):
    _start(client)
    client.post('/api/sessions/complete', json={'email': 'a@x.com', 'score': 200, 'vaultsOpened': 2, 'won': False})
    res = client.get('/api/sessions/players/a@x.com/stats')
    assert res.status_code == 200
    stats = res.get_json()
    assert stats['best_score'] == 200
    assert stats['total_games'] == 1
    assert client.get('/api/sessions/players/ghost@x.com/stats').status_code == 404


def test_leaderboard_endpoint(client):
    for name, email, score in [('Ada', 'a@x.com', 100), ('Bob', 'b@x.com', 0), ('Cy', 'c@x.com', 400)]:
        _start(client, name, email)
        client.post('/api/sessions/complete', json={'email': email, 'score': score, 'vaultsOpened': 1})
    board = client.get('/api/leaderboard').get_json()
    assert [row['name'] for row in board] == ['Cy', 'Ada']
    assert isinstance(board[0]['updated_at'], str)
    assert len(client.get('/api/leaderboard?limit=1').get_json()) == 1


def test_data_endpoint_requires_password(client):
    assert client.get('/api/data').status_code == 401
    assert client.get('/api/data?password=wrong').status_code == 401


def test_data_endpoint_disabled_without_configured_password():
    class NoPasswordConfig(TestConfig):
        DATA_PASSWORD = None

    application = create_app(NoPasswordConfig)
    assert application.test_client().get('/api/data?password=').status_code == 401


def test_data_endpoint(client):
    _start(client, 'Ada', 'a@x.com')
    client.post('/api/sessions/complete', json={'email': 'a@x.com', 'score': 300, 'vaultsOpened': 2, 'won': True})
    _start(client, 'Bob', 'b@x.com')

    res = client.get(f'/api/data?password={TestConfig.DATA_PASSWORD}')
    assert res.status_code == 200
    data = res.get_json()
    assert [row['email'] for row in data['leaderboard']] == ['a@x.com']
    assert len(data['sessions']) == 1
    assert data['stats'] == {
        'total_players': 2,
        'total_sessions': 2,
        'completed_sessions': 1,
        'winning_sessions': 1,
    }
