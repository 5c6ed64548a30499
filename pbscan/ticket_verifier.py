"""
Powerball Ticket Verification Module
Verifies confirmed ticket numbers against an official draw and attaches prizes.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from pbscan.models import Draw, NumberSet, Ticket
from pbscan.prize_calculator import count_matches, evaluate


class TicketVerifier:
    """
    Verifies Powerball plays against official results and calculates prizes.
    """

    def verify_play(self, number_set: NumberSet, draw: Draw) -> Dict[str, Any]:
        """
        Verify a single play against official results.

        Args:
            number_set: Player's play
            draw: Official draw

        Returns:
            Verification result with matches and prize information
        """
        winning = draw.winning_numbers
        main_matches, powerball_match = count_matches(number_set, winning)
        tier = evaluate(number_set, winning, draw.multiplier, draw.jackpot_amount)
        prize_amount = tier.final_amount if tier else 0.0

        return {
            'line': number_set.line or '?',
            'main_matches': main_matches,
            'powerball_match': powerball_match,
            'total_matches': main_matches + (1 if powerball_match else 0),
            'prize_tier': tier.name if tier else 'No Prize',
            'prize_amount': prize_amount,
            'multiplier': tier.multiplier if tier else None,
            'power_play_selected': number_set.has_power_play,
            'is_winner': tier is not None,
            'play_numbers': list(number_set.white_balls),
            'powerball': number_set.powerball,
            'winning_numbers': list(winning.white_balls),
            'winning_powerball': winning.powerball,
        }

    def verify_ticket(self, ticket: Ticket, draw: Draw) -> Ticket:
        """
        Attach the prize outcome to a ticket. A ticket is evaluated only once;
        later calls return it unchanged.
        """
        if ticket.evaluated:
            logger.debug(f"Ticket {ticket.id} already evaluated")
            return ticket

        if ticket.draw_date and ticket.draw_date != draw.draw_date:
            logger.warning(f"Ticket {ticket.id} is for {ticket.draw_date} but draw is {draw.draw_date}")

        tier = evaluate(ticket.numbers, draw.winning_numbers, draw.multiplier, draw.jackpot_amount)
        ticket.is_winner = tier is not None
        ticket.prize_tier = tier
        ticket.prize_amount = tier.final_amount if tier else 0.0
        ticket.evaluated = True
        return ticket

    def verify_plays(self, number_sets: Sequence[NumberSet], draw: Draw) -> Dict[str, Any]:
        """
        Verify every play of a ticket.

        Args:
            number_sets: Confirmed plays
            draw: Official draw

        Returns:
            Complete verification result
        """
        if not number_sets:
            return {
                'success': False,
                'error': 'No valid plays found on ticket',
                'verification_results': []
            }

        verification_results = [self.verify_play(ns, draw) for ns in number_sets]
        winners = [r for r in verification_results if r['is_winner']]
        total_prize_amount = sum(r['prize_amount'] for r in winners)

        final_result = {
            'success': True,
            'draw_date': draw.draw_date,
            'draw_source': draw.source,
            'official_numbers': list(draw.winning_numbers.white_balls),
            'official_powerball': draw.winning_numbers.powerball,
            'multiplier': draw.multiplier,
            'total_plays': len(number_sets),
            'total_winning_plays': len(winners),
            'total_prize_amount': total_prize_amount,
            'is_winning_ticket': bool(winners),
            'verification_results': verification_results,
            'processed_at': datetime.now().isoformat()
        }

        logger.info(f"Ticket verified: {len(winners)}/{len(number_sets)} winning plays, total prize: ${total_prize_amount}")
        return final_result

    def format_verification_summary(self, verification_result: Dict[str, Any]) -> str:
        """
        Format verification result into a human-readable summary.

        Args:
            verification_result: Result from verify_plays

        Returns:
            Formatted summary string
        """
        if not verification_result.get('success', False):
            return f"Verification failed: {verification_result.get('error', 'Unknown error')}"

        if not verification_result.get('is_winning_ticket', False):
            return "No winning numbers found on this ticket."

        total_prize = verification_result.get('total_prize_amount', 0)
        winning_plays = verification_result.get('total_winning_plays', 0)
        total_plays = verification_result.get('total_plays', 0)

        summary = "WINNING TICKET!\n"
        summary += f"Total Prize: ${total_prize:,.2f}\n"
        summary += f"Winning Plays: {winning_plays} out of {total_plays}\n"
        summary += f"Draw Date: {verification_result.get('draw_date', 'Unknown')}\n\n"

        for result in verification_result.get('verification_results', []):
            if not result.get('is_winner', False):
                continue
            summary += f"Line {result.get('line', '?')}: {result.get('main_matches', 0)} numbers"
            if result.get('powerball_match', False):
                summary += " + Powerball"
            if result.get('multiplier'):
                summary += f" (Power Play x{result['multiplier']})"
            summary += f" = ${result.get('prize_amount', 0):,.2f} ({result.get('prize_tier', 'Unknown')})\n"

        return summary


def create_ticket(number_set: NumberSet, draw_date: Optional[str] = None) -> Ticket:
    """Create a ticket for a play the user has confirmed."""
    return Ticket(id=uuid.uuid4().hex, numbers=number_set, draw_date=draw_date)


def create_ticket_verifier() -> TicketVerifier:
    """
    Factory function to create a ticket verifier instance.

    Returns:
        Configured TicketVerifier instance
    """
    return TicketVerifier()
