import pytest

from app import SqlStore
from errors import DuplicateTurnError, PersistenceError
import history


def create(client, variant='501', players=None):
    res = client.post('/api/new_game', json={'variant': variant, 'players': players or ['Ann', 'Bob']})
    assert res.status_code == 201
    data = res.get_json()
    return data['game_id'], [p['id'] for p in data['players_created']]


def test_create_game_and_state(client):
    game_id, (ann, bob) = create(client)
    res = client.get(f'/api/game_state/{game_id}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['variant'] == '501'
    assert state['current_player_id'] == ann
    assert [p['remaining'] for p in state['progress']] == [501, 501]
    assert state['game']['status'] == 'active'


def test_create_game_validation(client):
    res = client.post('/api/new_game', json={'variant': 'cricket', 'players': ['Ann']})
    assert res.status_code == 400
    assert res.get_json()['type'] == 'ValidationError'
    res = client.post('/api/new_game', json={'variant': '501', 'players': []})
    assert res.status_code == 400


def test_unknown_game(client):
    res = client.get('/api/game_state/999')
    assert res.status_code == 404


def test_submit_turn_and_duplicate(client):
    game_id, (ann, bob) = create(client)
    payload = {'player_id': ann, 'turn_number': 1, 'darts': ['T20', 'T20', {'value': 20, 'multiplier': 3}]}
    res = client.post(f'/api/games/{game_id}/turns', json=payload)
    assert res.status_code == 201
    data = res.get_json()
    assert data['turn']['darts'] == ['T20', 'T20', 'T20']
    assert data['turn']['result'] == 321
    assert data['duplicate'] is False

    res = client.post(f'/api/games/{game_id}/turns', json=payload)
    assert res.status_code == 200
    assert res.get_json()['duplicate'] is True

    turns = client.get(f'/api/games/{game_id}/turns').get_json()
    assert len(turns) == 1


def test_invalid_darts_rejected(client):
    game_id, (ann, bob) = create(client)
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 1, 'darts': ['T25']})
    assert res.status_code == 400
    assert res.get_json()['type'] == 'InvalidDartError'
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': bob, 'turn_number': 1, 'darts': ['S1']})
    assert res.status_code == 400
    res = client.post(f'/api/games/{game_id}/turns', json={'darts': ['S1']})
    assert res.status_code == 400


def test_bust_and_checkout_flow(client):
    game_id, (ann,) = create(client, variant='301', players=['Ann'])
    visits = [['T20', 'T20', 'T20'], ['T20', 'T20', 'T20'], ['T20', 'T20', 'S20']]
    for number, darts in enumerate(visits, start=1):
        res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': number, 'darts': darts})
        assert res.status_code == 201
    data = res.get_json()
    assert data['turn']['bust'] is True
    assert data['turn']['scores'] == [0]
    assert data['state']['progress'][0]['remaining'] == 121

    preview = client.post(f'/api/games/{game_id}/preview', json={'player_id': ann, 'darts': ['T20', 'T11']})
    assert preview.get_json()['remaining'] == 28

    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 4, 'darts': ['T20', 'T11', 'D14']})
    data = res.get_json()
    assert data['turn']['checkout'] is True
    assert data['winner_id'] == ann
    phase = client.get(f'/api/games/{game_id}/phase').get_json()
    assert phase == {'phase': 'finished', 'winner_id': ann}


def test_revert_and_edit(client):
    game_id, (ann, bob) = create(client)
    first = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 1, 'darts': ['T20']}).get_json()['turn']
    client.post(f'/api/games/{game_id}/turns', json={'player_id': bob, 'turn_number': 1, 'darts': ['S5']})

    res = client.patch(f"/api/games/{game_id}/turns/{first['id']}", json={'darts': ['T19']})
    assert res.status_code == 200
    edited = res.get_json()['turns'][0]
    assert edited['edited'] is True
    assert edited['result'] == 444

    res = client.post(f'/api/games/{game_id}/revert', json={'turn_id': first['id']})
    assert res.status_code == 200
    data = res.get_json()
    assert data['removed'] == 1
    assert data['state']['current_player_id'] == bob
    assert len(client.get(f'/api/games/{game_id}/turns').get_json()) == 1

    res = client.post(f'/api/games/{game_id}/revert', json={'turn_id': 12345})
    assert res.status_code == 404


def test_pause_resume_delete(client):
    game_id, (ann, bob) = create(client)
    assert client.post(f'/api/games/{game_id}/pause').get_json()['status'] == 'paused'
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 1, 'darts': ['S1']})
    assert res.status_code == 409
    assert client.post(f'/api/games/{game_id}/resume').get_json()['status'] == 'active'
    assert client.delete(f'/api/games/{game_id}').status_code == 200
    assert client.get(f'/api/game_state/{game_id}').status_code == 404


def test_killer_state_exposes_phase_and_claims(client):
    game_id, (ann, bob) = create(client, variant='killer_5')
    client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 1, 'darts': ['D5']})
    state = client.get(f'/api/game_state/{game_id}').get_json()
    assert state['phase'] == 'claiming'
    assert state['claimed_numbers'] == {'5': ann}
    assert state['max_lives'] == 5
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': bob, 'turn_number': 1, 'darts': ['S5']})
    assert res.status_code == 400
    assert res.get_json()['type'] == 'NumberAlreadyClaimedError'


def test_checkout_route(client):
    assert client.get('/api/checkout/170').get_json()['suggestions'] == [['T20', 'T20', 'Bull']]
    assert client.get('/api/checkout/171').get_json()['suggestions'] == []


def test_persistence_error_maps_to_503(client, flask_app, monkeypatch):
    game_id, (ann, bob) = create(client)

    def broken(self, turn, state):
        raise PersistenceError('database is locked')

    monkeypatch.setattr(SqlStore, 'append_turn', broken)
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'turn_number': 1, 'darts': ['S1']})
    assert res.status_code == 503
    assert res.get_json()['retryable'] is True


def test_store_rejects_duplicate_turn_row(flask_app):
    service = flask_app.extensions['darts_service']
    state = service.create_game('501', ['Ann', 'Bob'])
    ann = state.players[0].id
    _, turn = history.record_turn(service.load(state.game_id).engine, state, ann, 1, ['S1'])
    store = SqlStore()
    store.append_turn(turn, state)
    with pytest.raises(DuplicateTurnError) as excinfo:
        store.append_turn(turn, state)
    assert excinfo.value.turn_number == 1
    assert len(store.load_turns(state.game_id)) == 1


def test_turn_number_required(client):
    game_id, (ann, bob) = create(client)
    res = client.post(f'/api/games/{game_id}/turns', json={'player_id': ann, 'darts': ['T20']})
    assert res.status_code == 400
    assert client.get(f'/api/games/{game_id}/turns').get_json() == []


def test_duplicate_row_on_stale_read_resyncs(client, monkeypatch):
    game_id, (ann, bob) = create(client)
    payload = {'player_id': ann, 'turn_number': 1, 'darts': ['T20', 'T20', 'T20']}
    first = client.post(f'/api/games/{game_id}/turns', json=payload).get_json()['turn']

    # Another writer got there first: the next read of the log misses the turn.
    real_load_turns = SqlStore.load_turns
    stale = {'reads': 1}

    def load_turns_once_stale(self, gid):
        if stale['reads']:
            stale['reads'] -= 1
            return []
        return real_load_turns(self, gid)

    monkeypatch.setattr(SqlStore, 'load_turns', load_turns_once_stale)
    res = client.post(f'/api/games/{game_id}/turns', json=payload)
    assert res.status_code == 200
    data = res.get_json()
    assert data['duplicate'] is True
    assert data['turn']['id'] == first['id']
    assert data['state']['progress'][0]['remaining'] == 321
    assert len(client.get(f'/api/games/{game_id}/turns').get_json()) == 1


def test_unhashable_player_kind_rejected(client):
    res = client.post('/api/new_game', json={'variant': '501', 'players': [{'name': 'Ann', 'kind': ['primary']}]})
    assert res.status_code == 400
