# -*- coding: utf-8 -*-
"""
Created on Tue Oct  6 08:55:09 2026

@author: p-sik

Selection of a sub-range of slices.

Indices are 1-based and inclusive. Negative start/end count from the end of
the valid elements: -1 is the last slice, -2 the one before it.
"""
from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidRangeError, InvalidIncrementError


@dataclass(frozen=True)
class SliceSelection:
    start: int
    end: int
    increment: int

    def indices(self):
        """Ascending 1-based indices; a zero increment yields only ``start``."""
        if self.increment == 0:
            return [self.start]
        return list(range(self.start, self.end + 1, self.increment))

    def __len__(self):
        if self.increment == 0:
            return 1
        return (self.end - self.start) // self.increment + 1


def select_slices(valid_elements, start=None, end=None, increment=None):
    """
    Resolve a requested slice range against the number of valid elements.

    Parameters
    ----------
    valid_elements : int
        Number of elements recorded in the file.
    start, end : int or None
        First and last slice (1-based, inclusive). Negative values are
        counted from the end. None selects the first/last slice.
    increment : int or None
        Step between slices, default 1. Zero selects ``start`` only.

    Returns
    -------
    SliceSelection

    Raises
    ------
    InvalidRangeError
        If start or end fall outside ``[1, valid_elements]`` after
        normalization, or start > end.
    InvalidIncrementError
        If increment is negative.
    """
    valid_elements = int(valid_elements)
    start = 1 if start is None else int(start)
    end = valid_elements if end is None else int(end)
    increment = 1 if increment is None else int(increment)

    if start < 0:
        start += valid_elements + 1
    if end < 0:
        end += valid_elements + 1

    if (start < 1 or start > valid_elements or end < 1
            or end > valid_elements or start > end):
        raise InvalidRangeError(
            f"Wrong or misinterpreted start and end: start {start}, "
            f"end {end} (valid elements: {valid_elements}).")
    if increment < 0:
        raise InvalidIncrementError("Negative increment is not allowed.")

    return SliceSelection(start=start, end=end, increment=increment)
