import pytest

from checkout import BOGEY_NUMBERS, MAX_SUGGESTIONS, is_checkout_path, suggest_checkout
from dart import Dart


def test_maximum_checkout():
    assert suggest_checkout(170) == [['T20', 'T20', 'Bull']]


def test_single_double_finish():
    assert suggest_checkout(40) == [['D20']]
    assert suggest_checkout(2) == [['D1']]


def test_fifty_offers_bull_first():
    paths = suggest_checkout(50)
    assert paths[0] == ['Bull']
    assert len(paths) == 2


def test_hand_verified_totals():
    assert suggest_checkout(113)[0] == ['T20', 'S13', 'D20']
    assert suggest_checkout(115)[0] == ['T20', 'S15', 'D20']


def test_odd_total_sets_up_a_double():
    assert suggest_checkout(3) == [['S1', 'D1']]
    assert suggest_checkout(41) == [['S1', 'D20']]


@pytest.mark.parametrize('remaining', [None, '40', 40.0, True, -5, 0, 1, 171, 501])
def test_no_checkout_outside_range(remaining):
    assert suggest_checkout(remaining) == []


def test_every_finishable_total_gets_valid_paths():
    for remaining in range(2, 171):
        if remaining in BOGEY_NUMBERS:
            continue
        paths = suggest_checkout(remaining)
        assert paths, remaining
        assert len(paths) <= MAX_SUGGESTIONS
        assert len({tuple(p) for p in paths}) == len(paths)
        for path in paths:
            assert is_checkout_path(path, remaining), (remaining, path)


@pytest.mark.parametrize('remaining', sorted(BOGEY_NUMBERS))
def test_bogey_numbers_get_a_setup_path(remaining):
    paths = suggest_checkout(remaining)
    assert len(paths) == 1
    path = paths[0]
    assert len(path) == 3
    assert not is_checkout_path(path, remaining)
    left = remaining - sum(Dart.parse(label).points for label in path)
    assert suggest_checkout(left) and len(suggest_checkout(left)[0]) == 1


def test_results_are_independent_copies():
    first = suggest_checkout(100)
    first[0].append('Miss')
    assert 'Miss' not in suggest_checkout(100)[0]
