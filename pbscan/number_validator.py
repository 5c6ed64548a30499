"""
Powerball number validation rules.
"""

from typing import List, Optional, Sequence

WHITE_BALL_MIN = 1
WHITE_BALL_MAX = 69
WHITE_BALL_COUNT = 5
POWERBALL_MIN = 1
POWERBALL_MAX = 26
VALID_MULTIPLIERS = (2, 3, 4, 5, 10)


def is_valid(white_balls: Sequence[int], powerball: int) -> bool:
    """
    Check range and uniqueness invariants of one play.

    Args:
        white_balls: The five white ball numbers
        powerball: The powerball number

    Returns:
        True when every white ball is in 1-69, the five are distinct and
        the powerball is in 1-26
    """
    if len(white_balls) != WHITE_BALL_COUNT:
        return False
    if any(n < WHITE_BALL_MIN or n > WHITE_BALL_MAX for n in white_balls):
        return False
    if not POWERBALL_MIN <= powerball <= POWERBALL_MAX:
        return False
    return len(set(white_balls)) == WHITE_BALL_COUNT


def validation_errors(white_balls: Sequence[int], powerball: Optional[int]) -> List[str]:
    """Human readable reasons a play is invalid (empty list when valid)."""
    errors = []

    if len(white_balls) != WHITE_BALL_COUNT:
        errors.append(f"Must have exactly {WHITE_BALL_COUNT} white ball numbers")

    for i, num in enumerate(white_balls):
        if not isinstance(num, int) or num < WHITE_BALL_MIN or num > WHITE_BALL_MAX:
            errors.append(f"White ball {i + 1} ({num}) must be between {WHITE_BALL_MIN}-{WHITE_BALL_MAX}")

    if len(set(white_balls)) != len(white_balls):
        errors.append("White balls cannot have duplicates")

    if not isinstance(powerball, int) or powerball < POWERBALL_MIN or powerball > POWERBALL_MAX:
        errors.append(f"Powerball ({powerball}) must be between {POWERBALL_MIN}-{POWERBALL_MAX}")

    return errors


def is_valid_multiplier(multiplier: Optional[int]) -> bool:
    """A missing multiplier is valid; otherwise it must be a Power Play value."""
    return multiplier is None or multiplier in VALID_MULTIPLIERS
