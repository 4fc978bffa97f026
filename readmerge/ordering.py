"""Total order over position records, the key of every merge-join."""

from enum import Enum


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def compare_positions(x, y) -> Ordering:
    """
    Compare two position records by column, then by insertion index.

    Both tie-break branches test the same pair of insertion indices in opposite
    directions, so compare_positions(x, y) always mirrors compare_positions(y, x).
    """
    if x.column > y.column:
        return Ordering.GREATER
    if x.column < y.column:
        return Ordering.LESS
    if x.insertion > y.insertion:
        return Ordering.GREATER
    if x.insertion < y.insertion:
        return Ordering.LESS
    return Ordering.EQUAL
