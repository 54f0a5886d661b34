import pytest

from SerReader.selection import select_slices, SliceSelection
from SerReader.errors import InvalidRangeError, InvalidIncrementError


def test_default_selection():
    sel = select_slices(7)
    assert sel == SliceSelection(start=1, end=7, increment=1)
    assert sel.indices() == [1, 2, 3, 4, 5, 6, 7]
    assert len(sel) == 7


def test_last_element_with_negative_indices():
    sel = select_slices(12, start=-1, end=-1, increment=1)
    assert sel.indices() == [12]


def test_negative_start_counts_from_end():
    sel = select_slices(10, start=-3, end=None)
    assert (sel.start, sel.end) == (8, 10)
    assert sel.indices() == [8, 9, 10]


def test_increment_steps_inside_range():
    sel = select_slices(10, start=2, end=9, increment=3)
    assert sel.indices() == [2, 5, 8]
    assert len(sel) == 3


def test_increment_larger_than_range():
    assert select_slices(10, start=4, end=6, increment=100).indices() == [4]


def test_zero_increment_yields_start_only():
    sel = select_slices(10, start=2, end=10, increment=0)
    assert sel.indices() == [2]
    assert len(sel) == 1


@pytest.mark.parametrize("start, end", [
    (5, 3),
    (0, 3),
    (1, 11),
    (11, 11),
    (-11, 3),
    (2, -12),
])
def test_invalid_range(start, end):
    with pytest.raises(InvalidRangeError):
        select_slices(10, start=start, end=end)


def test_empty_file_has_no_valid_range():
    with pytest.raises(InvalidRangeError):
        select_slices(0)


def test_negative_increment():
    with pytest.raises(InvalidIncrementError):
        select_slices(10, start=1, end=5, increment=-1)


def test_range_checked_before_increment():
    with pytest.raises(InvalidRangeError):
        select_slices(10, start=5, end=3, increment=-1)
