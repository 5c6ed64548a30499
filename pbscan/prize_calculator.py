"""
Powerball prize table and prize evaluation.
"""

from dataclasses import replace
from typing import Optional, Tuple

from loguru import logger

from pbscan.models import NumberSet, PrizeTier
from pbscan.number_validator import is_valid_multiplier

# Official Powerball prize structure; the jackpot amount varies per draw.
PRIZE_TIERS: Tuple[PrizeTier, ...] = (
    PrizeTier('Jackpot', '5 white balls + Powerball', 0.0, 5, True, multiplier_applies=False, is_jackpot=True),
    PrizeTier('$1 Million', '5 white balls', 1000000.0, 5, False, multiplier_applies=False),
    PrizeTier('$50,000', '4 white balls + Powerball', 50000.0, 4, True),
    PrizeTier('$100', '4 white balls', 100.0, 4, False),
    PrizeTier('$100', '3 white balls + Powerball', 100.0, 3, True),
    PrizeTier('$7', '3 white balls', 7.0, 3, False),
    PrizeTier('$7', '2 white balls + Powerball', 7.0, 2, True),
    PrizeTier('$4', '1 white ball + Powerball', 4.0, 1, True),
    PrizeTier('$4', 'Powerball only', 4.0, 0, True),
)


def count_matches(user: NumberSet, winning: NumberSet) -> Tuple[int, bool]:
    """White balls in common (by value, not position) and whether the powerball matches."""
    white_matches = len(set(user.white_balls) & set(winning.white_balls))
    return white_matches, user.powerball == winning.powerball


def find_prize_tier(white_matches: int, powerball_match: bool) -> Optional[PrizeTier]:
    for tier in PRIZE_TIERS:
        if tier.white_matches == white_matches and tier.powerball_match == powerball_match:
            return tier
    return None


def calculate_prize_amount(main_matches: int, powerball_match: bool) -> Tuple[float, str]:
    """
    Calculate Powerball base prize amount based on matches.

    Args:
        main_matches: Number of main number matches (0-5)
        powerball_match: Whether the Powerball number matched

    Returns:
        Tuple of (prize_amount, prize_description)
    """
    tier = find_prize_tier(main_matches, powerball_match)
    if tier is None:
        return 0.0, "No Prize"
    return tier.base_amount, tier.name


def evaluate(
    user: NumberSet,
    winning: NumberSet,
    multiplier: Optional[int] = None,
    jackpot_amount: Optional[float] = None,
) -> Optional[PrizeTier]:
    """
    Score one play against the winning numbers.

    Args:
        user: The player's numbers; ``has_power_play`` tells whether the
            play was entered in Power Play
        winning: The official winning numbers
        multiplier: Power Play multiplier drawn for this draw, if any
        jackpot_amount: Advertised jackpot, used as the jackpot tier amount

    Returns:
        The matched tier with ``multiplier`` and ``final_amount`` filled in,
        or None when the play wins nothing

    Raises:
        ValueError: when the multiplier is not a Power Play value
    """
    if not is_valid_multiplier(multiplier):
        raise ValueError(f"Invalid Power Play multiplier: {multiplier}")

    white_matches, powerball_match = count_matches(user, winning)
    tier = find_prize_tier(white_matches, powerball_match)
    if tier is None:
        return None

    if tier.is_jackpot:
        final_amount = float(jackpot_amount) if jackpot_amount else tier.base_amount
        return replace(tier, multiplier=None, final_amount=final_amount)

    applied = multiplier if (multiplier and user.has_power_play and tier.multiplier_applies) else None
    final_amount = tier.base_amount * applied if applied else tier.base_amount
    logger.debug(f"{white_matches} white + PB={powerball_match} -> {tier.name} x{applied or 1} = {final_amount}")
    return replace(tier, multiplier=applied, final_amount=final_amount)
