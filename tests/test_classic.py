import pytest

from classic import ClassicEngine, settle
from dart import parse_darts
from engine import STATUS_COMPLETED
from errors import GameNotActiveError, TurnOrderError


def visit(*labels):
    return parse_darts(list(labels))


def test_settle_scores_a_normal_visit():
    assert settle(501, visit('T20', 'T20', 'T20')) == (321, False, False)


def test_bust_below_zero_keeps_score():
    assert settle(121, visit('T20', 'T20', 'T1')) == (121, True, False)


def test_bust_on_one_keeps_score():
    assert settle(122, visit('T20', 'T20', 'S1')) == (122, True, False)


def test_checkout_reaches_zero():
    assert settle(40, visit('D20')) == (0, False, True)


def test_double_out_requires_finishing_double():
    assert settle(40, visit('T10', 'S10'), double_out=True) == (40, True, False)
    assert settle(40, visit('S20', 'D10'), double_out=True) == (0, False, True)
    assert settle(50, visit('Bull', 'Miss'), double_out=True) == (0, False, True)


def test_play_advances_turn_order(two_players):
    engine = ClassicEngine(501)
    state = engine.initial_state(1, two_players)
    state, outcome = engine.play(state, 1, ['T20', 'T20', 'T20'], turn_number=1)
    assert outcome.scores == [60, 60, 60]
    assert outcome.result == 321
    assert state.current_player.id == 2
    assert state.turn_number == 1
    state, _ = engine.play(state, 2, ['S1'], turn_number=1)
    assert state.current_player.id == 1
    assert state.turn_number == 2


def test_bust_records_zero_and_passes_turn(two_players):
    engine = ClassicEngine(301)
    state = engine.initial_state(1, two_players)
    state.progress[1].remaining = 121
    state, outcome = engine.play(state, 1, ['T20', 'T20', 'T1'])
    assert outcome.bust
    assert outcome.scores == [0]
    assert state.progress[1].remaining == 121
    assert state.current_player.id == 2


def test_checkout_completes_game(two_players):
    engine = ClassicEngine(501)
    state = engine.initial_state(1, two_players)
    state.progress[1].remaining = 40
    new_state, outcome = engine.play(state, 1, ['D20'])
    assert new_state.status == STATUS_COMPLETED
    assert new_state.winner_id == 1
    assert outcome.details['checkout'] is True
    # original state untouched
    assert state.progress[1].remaining == 40
    with pytest.raises(GameNotActiveError):
        engine.play(new_state, 2, ['S1'])


def test_wrong_player_or_turn_rejected(two_players):
    engine = ClassicEngine(501)
    state = engine.initial_state(1, two_players)
    with pytest.raises(TurnOrderError):
        engine.play(state, 2, ['S1'])
    with pytest.raises(TurnOrderError):
        engine.play(state, 1, ['S1'], turn_number=3)
    with pytest.raises(TurnOrderError):
        engine.play(state, 99, ['S1'])


def test_preview_shows_running_total_and_bust(two_players):
    engine = ClassicEngine(501)
    state = engine.initial_state(1, two_players)
    state.progress[1].remaining = 100
    preview = engine.preview(state, 1, ['T20'])
    assert preview['remaining'] == 40
    assert preview['running_total'] == 60
    assert preview['suggestions'] == [['D20']]
    busted = engine.preview(state, 1, ['T20', 'T20'])
    assert busted['bust'] is True
    assert busted['remaining'] == 100
    assert state.progress[1].remaining == 100
