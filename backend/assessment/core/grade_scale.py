"""
Percentage to letter/numeric grade conversion.

Thresholds are inclusive lower bounds on the attempt percentage:

    >= 86  A  5
    >= 71  B  4
    >= 56  C  3
    >= 41  D  2
    >= 31  E  2
    else   F  2

The 5-point numeric scale collapses D, E and F into 2. That asymmetry is
the institution's grading rule and is kept as-is.
"""
from decimal import Decimal
from typing import List, Optional, Tuple, Union

Number = Union[Decimal, float, int]

# (lower bound, letter, numeric), highest band first
GRADE_BANDS: List[Tuple[Decimal, str, int]] = [
    (Decimal("86"), "A", 5),
    (Decimal("71"), "B", 4),
    (Decimal("56"), "C", 3),
    (Decimal("41"), "D", 2),
    (Decimal("31"), "E", 2),
]
FAILING_LETTER = "F"
FAILING_NUMERIC = 2


def _band(percentage: Number) -> Tuple[str, int]:
    value = Decimal(str(percentage))
    for lower_bound, letter, numeric in GRADE_BANDS:
        if value >= lower_bound:
            return letter, numeric
    return FAILING_LETTER, FAILING_NUMERIC


def letter_grade(percentage: Optional[Number]) -> Optional[str]:
    """
    Map a percentage to a letter grade (A-F).

    Returns None when there is no percentage (attempt with no gradable points).
    """
    if percentage is None:
        return None
    return _band(percentage)[0]


def numeric_grade(percentage: Optional[Number]) -> Optional[int]:
    """Map a percentage to the 5-point numeric grade (5, 4, 3 or 2)."""
    if percentage is None:
        return None
    return _band(percentage)[1]
