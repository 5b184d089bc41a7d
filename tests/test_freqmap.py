import pytest

from torrentwire.freqmap import FreqMap


@pytest.fixture
def fm():
    fmap = FreqMap()
    fmap.add(5)
    fmap.add(5)
    fmap.add(7)
    return fmap


def test_add_counts(fm):
    assert fm[5] == 2
    assert fm[7] == 1
    assert len(fm) == 2


def test_max_and_min(fm):
    assert fm.max() == 5
    assert fm.min() == 7


def test_remove_decrements_and_drops(fm):
    fm.remove(5)
    assert fm[5] == 1
    fm.remove(7)
    assert 7 not in fm


def test_remove_absent_is_ignored(fm):
    fm.remove(99)
    assert dict(fm) == {5: 2, 7: 1}


def test_init_key(fm):
    fm.init_key(9)
    fm.init_key(5)
    assert fm[9] == 0
    assert fm[5] == 2
    assert fm.min() == 9


def test_empty_extremes_are_zero():
    empty = FreqMap()
    assert empty.max() == 0
    assert empty.min() == 0


def test_pick_random_matches_count(fm):
    fm.add(8)
    for _ in range(20):
        assert fm.pick_random(1) in {7, 8}
    assert fm.pick_random(2) == 5


def test_pick_random_without_match(fm):
    with pytest.raises(ValueError):
        fm.pick_random(42)