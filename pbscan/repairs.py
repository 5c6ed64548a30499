"""
Repairs for candidate plays that fail validation.

Each repair is a pure function ``NumberSet -> NumberSet`` that returns the
input unchanged when it does not apply. They only target the most common
OCR slip on printed two-digit numbers: the two digits read in swapped order.
"""

from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from pbscan.models import NumberSet
from pbscan.number_validator import (
    POWERBALL_MAX,
    POWERBALL_MIN,
    WHITE_BALL_MAX,
    WHITE_BALL_MIN,
)

Repair = Callable[[NumberSet], NumberSet]


def transpose_digits(number: int) -> int:
    """Swap the two printed digits of a number (7 is printed as 07 -> 70)."""
    return int(f"{number:02d}"[::-1])


def _white_in_range(number: int) -> bool:
    return WHITE_BALL_MIN <= number <= WHITE_BALL_MAX


def repair_white_ball_range(candidate: NumberSet) -> NumberSet:
    """Replace an out-of-range white ball by its transposition when that is a free, valid number."""
    whites: List[int] = list(candidate.white_balls)
    changed = False
    for i, number in enumerate(whites):
        if _white_in_range(number):
            continue
        swapped = transpose_digits(number)
        if _white_in_range(swapped) and swapped not in whites:
            whites[i] = swapped
            changed = True
    return replace(candidate, white_balls=tuple(whites)) if changed else candidate


def repair_powerball_range(candidate: NumberSet) -> NumberSet:
    if POWERBALL_MIN <= candidate.powerball <= POWERBALL_MAX:
        return candidate
    swapped = transpose_digits(candidate.powerball)
    if POWERBALL_MIN <= swapped <= POWERBALL_MAX:
        return replace(candidate, powerball=swapped)
    return candidate


def repair_duplicate_white_balls(candidate: NumberSet) -> NumberSet:
    """Transpose the later copy of a repeated white ball if that makes it unique."""
    whites: List[int] = list(candidate.white_balls)
    changed = False
    for i in range(1, len(whites)):
        if whites[i] not in whites[:i]:
            continue
        swapped = transpose_digits(whites[i])
        if _white_in_range(swapped) and swapped not in whites:
            whites[i] = swapped
            changed = True
    return replace(candidate, white_balls=tuple(whites)) if changed else candidate


DEFAULT_REPAIRS: Sequence[Repair] = (
    repair_white_ball_range,
    repair_powerball_range,
    repair_duplicate_white_balls,
)


def repair_candidate(candidate: NumberSet, repairs: Sequence[Repair] = DEFAULT_REPAIRS) -> NumberSet:
    for repair in repairs:
        candidate = repair(candidate)
    return candidate


def validate_or_repair(candidate: Optional[NumberSet], apply_repairs: bool = True) -> Optional[NumberSet]:
    """
    Validation gate for one candidate.

    Valid candidates pass through untouched. Invalid ones are repaired (when
    enabled) and kept only if the repaired play is valid.
    """
    return select_candidate([candidate], apply_repairs)


def select_candidate(candidates: Sequence[Optional[NumberSet]], apply_repairs: bool = True) -> Optional[NumberSet]:
    """
    Validation gate for several readings of the same line.

    The first candidate that is already valid wins. Repairs are only tried
    once no reading is valid as read, again in order.
    """
    readings = [c for c in candidates if c is not None and len(c.white_balls) == 5]
    for candidate in readings:
        if candidate.is_valid:
            return candidate
    if not apply_repairs:
        return None

    for candidate in readings:
        repaired = repair_candidate(candidate)
        if repaired.is_valid:
            return repaired
    return None
