import pytest

from dart import BULLSEYE, SINGLE_BULL, Dart, parse_darts
from errors import InvalidDartError


def test_points_and_labels():
    assert Dart(20, 3).points == 60
    assert Dart(20, 3).label == 'T20'
    assert Dart(16, 2).label == 'D16'
    assert Dart(SINGLE_BULL, 1).label == '25'
    assert Dart(BULLSEYE, 1).label == 'Bull'
    assert Dart(0, 0).label == 'Miss'
    assert Dart(0, 0).points == 0


@pytest.mark.parametrize('value,multiplier', [(21, 1), (25, 2), (50, 2), (0, 1), (5, 0), (5, 4), (-1, 1)])
def test_illegal_darts_rejected(value, multiplier):
    with pytest.raises(InvalidDartError):
        Dart(value, multiplier)


def test_parse_labels():
    assert Dart.parse('t20') == Dart(20, 3)
    assert Dart.parse('S1') == Dart(1, 1)
    assert Dart.parse('25') == Dart(25, 1)
    assert Dart.parse('Bull') == Dart(50, 1)
    assert Dart.parse('DBULL') == Dart(50, 1)
    assert Dart.parse('SBULL') == Dart(25, 1)
    assert Dart.parse('miss').is_miss


@pytest.mark.parametrize('label', ['T21', 'X5', '', 'D', 'S0', '50'])
def test_parse_rejects_bad_labels(label):
    with pytest.raises(InvalidDartError):
        Dart.parse(label)


def test_coerce_accepts_wire_shapes():
    assert Dart.coerce({'value': 19, 'multiplier': 3}) == Dart(19, 3)
    assert Dart.coerce([25, 1]) == Dart(25, 1)
    assert Dart.coerce('D8') == Dart(8, 2)
    with pytest.raises(InvalidDartError):
        Dart.coerce({'value': 'twenty', 'multiplier': 1})
    with pytest.raises(InvalidDartError):
        Dart.coerce(20)


def test_finishers():
    assert Dart(20, 2).is_finisher
    assert Dart(50, 1).is_finisher
    assert not Dart(25, 1).is_finisher
    assert not Dart(20, 3).is_finisher


def test_parse_darts_limits_visit():
    assert parse_darts(['T20', 'T20']) == (Dart(20, 3), Dart(20, 3))
    assert parse_darts([]) == ()
    with pytest.raises(InvalidDartError):
        parse_darts(['S1', 'S1', 'S1', 'S1'])
    with pytest.raises(InvalidDartError):
        parse_darts('T20')
