"""
Data model for scanned Powerball tickets.

NumberSet, WordBox and RecognitionResult flow through the extraction
pipeline; PrizeTier, Draw and Ticket are used when scoring a confirmed play.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from pbscan.number_validator import is_valid


@dataclass(frozen=True)
class NumberSet:
    """
    One ticket line: five white balls, one powerball and an optional Power Play.

    Instances may be unvalidated while a strategy is building them; only
    sets passing ``is_valid`` ever leave the extractor.
    """

    white_balls: Tuple[int, ...]
    powerball: int
    power_play: Optional[int] = None  # multiplier printed on the ticket, when known
    line: Optional[str] = None  # ticket line marker A-E, when known
    power_play_selected: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'white_balls', tuple(int(n) for n in self.white_balls))
        object.__setattr__(self, 'powerball', int(self.powerball))

    @property
    def has_power_play(self) -> bool:
        """Whether the play was entered in Power Play, with or without a known multiplier."""
        return self.power_play_selected or self.power_play is not None

    @property
    def is_valid(self) -> bool:
        return len(self.white_balls) == 5 and is_valid(self.white_balls, self.powerball)

    def signature(self) -> Tuple[FrozenSet[int], int]:
        """Identity used for de-duplication: white balls as a set plus powerball."""
        return frozenset(self.white_balls), self.powerball

    def to_dict(self) -> Dict[str, Any]:
        return {
            'line': self.line,
            'white_balls': list(self.white_balls),
            'powerball': self.powerball,
            'power_play': self.power_play,
            'power_play_selected': self.has_power_play,
        }

    def __str__(self) -> str:
        whites = ' '.join(f"{n:02d}" for n in self.white_balls)
        prefix = f"{self.line}. " if self.line else ''
        return f"{prefix}{whites} PB {self.powerball:02d}"


@dataclass(frozen=True)
class WordBox:
    """A recognised word and its bounding box in pixel coordinates."""

    text: str
    left: int
    top: int
    right: int
    bottom: int

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class RecognitionResult:
    """Output of one recognition call."""

    raw_text: str
    confidence: float
    words: Tuple[WordBox, ...] = ()
    engine: str = ''

    @property
    def lines(self) -> List[str]:
        return [line.strip() for line in self.raw_text.splitlines() if line.strip()]


@dataclass(frozen=True)
class ExtractionReport:
    """Number sets found by the extractor and the strategy that produced them."""

    number_sets: Tuple[NumberSet, ...]
    strategy: Optional[str]
    attempted: Tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.number_sets


@dataclass(frozen=True)
class PrizeTier:
    """
    One row of the prize table.

    ``multiplier`` and ``final_amount`` are only set on tiers returned by
    the prize evaluator; the static table leaves them empty.
    """

    name: str
    description: str
    base_amount: float
    white_matches: int
    powerball_match: bool
    multiplier_applies: bool = True
    is_jackpot: bool = False
    multiplier: Optional[int] = None
    final_amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'base_amount': self.base_amount,
            'multiplier': self.multiplier,
            'final_amount': self.final_amount,
            'match_pattern': {
                'white_balls': self.white_matches,
                'powerball': self.powerball_match,
            },
        }


@dataclass(frozen=True)
class Draw:
    """Official draw result as resolved by the draw gateway."""

    draw_date: str
    winning_numbers: NumberSet
    multiplier: Optional[int] = None
    jackpot_amount: float = 0.0
    source: str = 'unknown'

    @property
    def is_mock(self) -> bool:
        return self.source == 'mock'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'draw_date': self.draw_date,
            'winning_numbers': self.winning_numbers.to_dict(),
            'multiplier': self.multiplier,
            'jackpot_amount': self.jackpot_amount,
            'source': self.source,
        }


@dataclass
class Ticket:
    """
    A play confirmed by the user. The outcome fields are filled in once by
    the ticket verifier.
    """

    id: str
    numbers: NumberSet
    draw_date: Optional[str]
    is_winner: bool = False
    prize_tier: Optional[PrizeTier] = None
    prize_amount: Optional[float] = None
    evaluated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'numbers': self.numbers.to_dict(),
            'draw_date': self.draw_date,
            'is_winner': self.is_winner,
            'prize_tier': self.prize_tier.to_dict() if self.prize_tier else None,
            'prize_amount': self.prize_amount,
        }


@dataclass(frozen=True)
class ScanResult:
    """Everything one capture attempt produced."""

    number_sets: Tuple[NumberSet, ...]
    confidence: float
    raw_text: str
    strategy: Optional[str] = None
    draw_date: Optional[str] = None
    engine: str = ''
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number_sets': [ns.to_dict() for ns in self.number_sets],
            'total_plays': len(self.number_sets),
            'confidence': self.confidence,
            'strategy': self.strategy,
            'draw_date': self.draw_date,
            'engine': self.engine,
            'warnings': list(self.warnings),
            'raw_text_lines': [ln for ln in self.raw_text.splitlines() if ln.strip()],
        }


def dedupe_number_sets(number_sets: Sequence[NumberSet]) -> List[NumberSet]:
    """
    Drop repeated plays, keeping the first occurrence in its original position.

    Two sets are the same play when their white balls (as a set) and
    powerball are equal.
    """
    seen = set()
    unique = []
    for number_set in number_sets:
        key = number_set.signature()
        if key in seen:
            continue
        seen.add(key)
        unique.append(number_set)
    return unique
