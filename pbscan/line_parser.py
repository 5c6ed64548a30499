"""
Ticket Line Parsing Module
Turns one OCR line (e.g. "A. 20 30 37 55 61 21") into a candidate play.

Line parsers share one interface, ``try_extract(line) -> NumberSet | None``,
and are tried in a fixed order by ``parse_line``. Candidates they return are
unvalidated; ``parse_line`` runs them through the validation gate.
"""

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from pbscan.models import NumberSet
from pbscan.repairs import select_candidate

MARKERS: Tuple[str, ...] = ('A', 'B', 'C', 'D', 'E')

# Prefixes OCR produces for each printed line marker, most literal first.
MARKER_ALIASES = {
    'A': ('AA', 'A', r'4\.'),
    'B': ('BB', 'B', r'8\.', r'13\.'),
    'C': ('CC', 'C', 'G'),
    'D': ('DD', 'D', r'0\.', 'O'),
    'E': ('EE', 'E', 'F'),
}

_NOISE_PREFIX = r'^[^0-9A-Za-z]{0,3}'
_MARKER_START = re.compile(_NOISE_PREFIX + r'([A-E])(?:[.,:]\s*|\s+)(?=\S)')
_LEADING_MARKER = re.compile(_NOISE_PREFIX + r'[A-E](?![A-Za-z])[.,:]?')
_FIRST_DIGIT = re.compile(r'\d')
_DIGIT_RUN = re.compile(r'\d{3,}')
_NUMBER_TOKEN = re.compile(r'\d{1,2}')

# Letters OCR substitutes for digits inside a number.
_GLYPH_TABLE = str.maketrans({
    'O': '0', 'o': '0', 'Q': '0',
    'I': '1', 'l': '1', '|': '1',
    'Z': '2', 'S': '5', 'B': '8',
})
_GLYPH_TOKEN = re.compile(r'(?<![A-Za-z])[0-9OoQIl|ZSB]+(?![A-Za-z])')


def detect_marker(line: str) -> Optional[str]:
    """Return the line marker (A-E) a line starts with, if any."""
    match = _MARKER_START.match(line.strip())
    return match.group(1) if match else None


def find_marker_lines(text: str) -> List[Tuple[str, str]]:
    """All (marker, line) pairs of text lines that start with a line marker."""
    found = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        marker = detect_marker(line)
        if marker:
            found.append((marker, line))
    return found


def normalize_glyphs(text: str) -> str:
    """
    Map letter glyphs to digits inside numeric tokens ("2O" -> "20", "I9" -> "19").

    Tokens without any digit are left alone so words and markers survive.
    """
    def _fix(match):
        token = match.group(0)
        if not any(ch.isdigit() for ch in token):
            return token
        return token.translate(_GLYPH_TABLE)

    return _GLYPH_TOKEN.sub(_fix, text)


def strip_to_first_digit(text: str) -> str:
    match = _FIRST_DIGIT.search(text)
    return text[match.start():] if match else ''


def repair_merged_digits(text: str) -> str:
    """
    Insert spaces into runs of three or more digits.

    Runs are split left to right into two-digit groups; an odd run ends in
    a single digit: "0519364964" -> "05 19 36 49 64", "203037561" -> "20 30 37 56 1".
    """
    def _split(match):
        run = match.group(0)
        return ' '.join(run[i:i + 2] for i in range(0, len(run), 2))

    return _DIGIT_RUN.sub(_split, text)


def extract_numbers(text: str) -> List[int]:
    """All 1-2 digit numbers in a string, in order."""
    return [int(token) for token in _NUMBER_TOKEN.findall(text)]


def clean_line(line: str) -> str:
    """Marker prefix removed, glyphs normalised and everything before the first digit dropped."""
    without_marker = _LEADING_MARKER.sub('', line.strip(), count=1)
    return strip_to_first_digit(normalize_glyphs(without_marker))


class LineParser(ABC):
    """A named way of reading one play out of one line."""

    name = 'line'

    @abstractmethod
    def try_extract(self, line: str) -> Optional[NumberSet]:
        """Return a candidate (possibly invalid) or None when the line does not fit."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class TokenLineParser(LineParser):
    """First five numbers are white balls, the sixth is the powerball."""

    name = 'tokens'

    def try_extract(self, line: str) -> Optional[NumberSet]:
        numbers = extract_numbers(repair_merged_digits(clean_line(line)))
        if len(numbers) < 6:
            return None
        return NumberSet(white_balls=tuple(numbers[:5]), powerball=numbers[5], line=detect_marker(line))


class DigitsOnlyLineParser(LineParser):
    """
    Segment the bare digit string of a line: five two-digit white balls and a
    one or two digit powerball. Any other digit count is rejected.
    """

    name = 'digits_only'

    def try_extract(self, line: str) -> Optional[NumberSet]:
        digits = re.sub(r'\D', '', clean_line(line))
        if len(digits) not in (11, 12):
            return None

        groups = [digits[i:i + 2] for i in range(0, 10, 2)] + [digits[10:]]
        if any(int(group) == 0 for group in groups):
            return None

        return NumberSet(
            white_balls=tuple(int(g) for g in groups[:5]),
            powerball=int(groups[5]),
            line=detect_marker(line),
        )


class MarkerPattern(LineParser):
    """
    Fixed layout for one line marker alias: either six separated groups or
    five merged two-digit groups followed by the powerball.
    """

    _SEPARATED = r'(\d{1,2})' + r'[\s.,]+(\d{1,2})' * 5 + r'(?!\d)'
    _MERGED = r'(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})[\s.,]*(\d{1,2})(?!\d)'

    def __init__(self, marker: str, alias: str, layout: str):
        if layout not in ('separated', 'merged'):
            raise ValueError(f"Unknown layout: {layout}")
        self.marker = marker
        self.alias = alias
        self.layout = layout
        self.name = f"{marker}:{alias}:{layout}"
        groups = self._SEPARATED if layout == 'separated' else self._MERGED
        self._regex = re.compile(_NOISE_PREFIX + f"(?:{alias})" + r'[.,:]?\s*' + groups)

    def try_extract(self, line: str) -> Optional[NumberSet]:
        raw = line.strip()
        match = self._regex.match(raw)
        if not match:
            # glyph mapping turns a B or O marker glued to digits into a digit
            normalized = normalize_glyphs(raw)
            match = self._regex.match(normalized) if normalized != raw else None
        if not match:
            return None
        numbers = [int(g) for g in match.groups()]
        return NumberSet(white_balls=tuple(numbers[:5]), powerball=numbers[5], line=self.marker)


def build_marker_patterns(markers: Sequence[str] = MARKERS) -> List[MarkerPattern]:
    """Patterns for every marker alias, separated layout before merged."""
    patterns = []
    for marker in markers:
        for alias in MARKER_ALIASES[marker]:
            for layout in ('separated', 'merged'):
                patterns.append(MarkerPattern(marker, alias, layout))
    return patterns


DEFAULT_LINE_PARSERS: Tuple[LineParser, ...] = (TokenLineParser(), DigitsOnlyLineParser())


def parse_line(
    line: str,
    apply_repairs: bool = True,
    parsers: Sequence[LineParser] = DEFAULT_LINE_PARSERS,
) -> Optional[NumberSet]:
    """
    Parse one ticket line into a valid play.

    Args:
        line: One line candidate
        apply_repairs: Whether invalid candidates may be repaired
        parsers: Line parsers to try, in order

    Returns:
        The first reading that is valid as read; failing that, the first
        one that is valid after repairs; otherwise None
    """
    candidates = []
    for parser in parsers:
        candidate = parser.try_extract(line)
        if candidate is None:
            continue
        if candidate.is_valid:
            logger.debug(f"Line '{line}' parsed by {parser.name}: {candidate}")
            return candidate
        logger.debug(f"Line '{line}' invalid as read by {parser.name}: {list(candidate.white_balls)} PB {candidate.powerball}")
        candidates.append(candidate)

    accepted = select_candidate(candidates, apply_repairs)
    if accepted is not None:
        logger.debug(f"Line '{line}' repaired to {accepted}")
    return accepted
