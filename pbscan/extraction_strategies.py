"""
Extraction strategies for recovering plays from OCR output.

Every strategy reads the whole recognition output (raw text plus optional
word boxes) and returns the plays it can find, in the order they appear on
the ticket. Strategies are ordered from strict to permissive by the
extractor; each one is usable and testable on its own.
"""

import re
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from loguru import logger

from pbscan.line_parser import (
    MARKERS,
    MarkerPattern,
    build_marker_patterns,
    extract_numbers,
    find_marker_lines,
    parse_line,
)
from pbscan.models import NumberSet, WordBox, dedupe_number_sets
from pbscan.repairs import select_candidate


class ExtractionStrategy(ABC):
    """Common interface of all extraction strategies."""

    name = 'strategy'

    @abstractmethod
    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        """Return the plays found, possibly empty."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class DirectPatternStrategy(ExtractionStrategy):
    """
    Strategy 1: per-marker regular expressions on each text line.

    Results are slotted by marker (A -> 0 ... E -> 4) so the output follows
    ticket order even when OCR emits the lines out of order. A second line
    claiming an occupied marker is kept after the slots rather than dropped.
    """

    name = 'direct_pattern'

    def __init__(self, apply_repairs: bool = True, patterns: Optional[Sequence[MarkerPattern]] = None):
        self.apply_repairs = apply_repairs
        self.patterns = list(patterns) if patterns is not None else build_marker_patterns()

    def _match_line(self, line: str) -> Optional[NumberSet]:
        candidates = []
        for pattern in self.patterns:
            candidate = pattern.try_extract(line)
            if candidate is None:
                continue
            if candidate.is_valid:
                logger.debug(f"Direct pattern {pattern.name} matched '{line}'")
                return candidate
            candidates.append(candidate)

        accepted = select_candidate(candidates, self.apply_repairs)
        if accepted is not None:
            logger.debug(f"Direct pattern repaired '{line}' to {accepted}")
        return accepted

    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        slots: List[Optional[NumberSet]] = [None] * len(MARKERS)
        overflow: List[NumberSet] = []

        for raw_line in raw_text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            accepted = self._match_line(line)
            if accepted is None:
                continue

            index = MARKERS.index(accepted.line)
            if slots[index] is None:
                slots[index] = accepted
            else:
                logger.debug(f"Marker {accepted.line} seen twice, keeping '{line}' as an extra candidate")
                overflow.append(accepted)

        return [play for play in slots if play is not None] + overflow


class WordBoxStrategy(ExtractionStrategy):
    """
    Strategy 2: rebuild ticket rows from word bounding boxes.

    Words are bucketed by the vertical midpoint of their box, each bucket is
    read left to right, and header/footer rows are discarded before the rows
    are handed to the line parser.
    """

    name = 'word_boxes'

    HEADER_PATTERN = re.compile(
        r'power\s*play|powerball|education|thank|draw|odds|cash\s*value|prize|printed|\bmon\s',
        re.IGNORECASE,
    )
    MARKER_PATTERN = re.compile(r'(^|\s)[A-E](\.|\s)')

    def __init__(self, row_bucket_px: int = 20, apply_repairs: bool = True):
        self.row_bucket_px = row_bucket_px
        self.apply_repairs = apply_repairs

    def build_rows(self, words: Sequence[WordBox]) -> List[str]:
        rows: Dict[int, List[WordBox]] = defaultdict(list)
        for word in words:
            if not word.text or not word.text.strip():
                continue
            rows[round(word.center_y / self.row_bucket_px)].append(word)

        lines = []
        for key in sorted(rows):
            row = sorted(rows[key], key=lambda w: w.left)
            text = ' '.join(w.text.strip() for w in row).strip()
            if text:
                lines.append(text)
        return lines

    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        if not words:
            return []

        candidates = [row for row in self.build_rows(words) if not self.HEADER_PATTERN.search(row)]
        prioritized = [row for row in candidates if self.MARKER_PATTERN.search(row)]
        rows_to_try = prioritized or candidates
        logger.debug(f"Word boxes produced {len(candidates)} data rows ({len(prioritized)} with markers)")

        plays = []
        for row in rows_to_try:
            play = parse_line(row, self.apply_repairs)
            if play is not None:
                plays.append(play)
        return dedupe_number_sets(plays)


class MarkerLineStrategy(ExtractionStrategy):
    """Strategy 3: text lines that start with a line marker."""

    name = 'marker_lines'

    def __init__(self, apply_repairs: bool = True):
        self.apply_repairs = apply_repairs

    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        plays = []
        for marker, line in find_marker_lines(raw_text):
            play = parse_line(line, self.apply_repairs)
            if play is not None:
                plays.append(play)
        return plays


class UnstructuredStrategy(ExtractionStrategy):
    """
    Strategy 5: sliding window over every number in the text.

    Only runs when the text has no marker lines at all. Windows of six
    consecutive numbers must be valid plays and look like lottery picks:
    white ball average at least ``min_average`` (small numbers usually come
    from odds and disclaimer text) and a spread greater than ``min_spread``.
    """

    name = 'unstructured'

    def __init__(self, max_results: int = 5, min_average: float = 10.0, min_spread: int = 10):
        self.max_results = max_results
        self.min_average = min_average
        self.min_spread = min_spread

    def is_plausible(self, white_balls: Sequence[int]) -> bool:
        average = sum(white_balls) / len(white_balls)
        if average < self.min_average:
            return False
        return max(white_balls) - min(white_balls) > self.min_spread

    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        if find_marker_lines(raw_text):
            return []

        numbers = extract_numbers(raw_text)
        if len(numbers) < 6:
            return []

        plays = []
        for i in range(len(numbers) - 5):
            window = numbers[i:i + 6]
            play = NumberSet(white_balls=tuple(window[:5]), powerball=window[5])
            if play.is_valid and self.is_plausible(play.white_balls):
                logger.debug(f"Plausible sequence at position {i}: {play}")
                plays.append(play)

        return dedupe_number_sets(plays)[:self.max_results]
