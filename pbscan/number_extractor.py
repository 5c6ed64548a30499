"""
Number Set Extractor
====================

Recovers validated plays from OCR text by running the extraction
strategies in priority order and stopping at the first one that finds
anything. Strategy failures are contained; the extractor never raises and
an empty result is the only failure signal.
"""

from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from pbscan.config import ExtractionSettings
from pbscan.extraction_strategies import (
    DirectPatternStrategy,
    ExtractionStrategy,
    MarkerLineStrategy,
    UnstructuredStrategy,
    WordBoxStrategy,
)
from pbscan.models import ExtractionReport, NumberSet, WordBox, dedupe_number_sets

STRATEGY_FACTORIES: Dict[str, Callable[[ExtractionSettings], ExtractionStrategy]] = {
    'direct_pattern': lambda s: DirectPatternStrategy(apply_repairs=s.apply_repairs),
    'word_boxes': lambda s: WordBoxStrategy(row_bucket_px=s.row_bucket_px, apply_repairs=s.apply_repairs),
    'marker_lines': lambda s: MarkerLineStrategy(apply_repairs=s.apply_repairs),
    'unstructured': lambda s: UnstructuredStrategy(
        max_results=s.fallback_max_results,
        min_average=s.fallback_min_average,
        min_spread=s.fallback_min_spread,
    ),
}


class NumberSetExtractor:
    """
    Runs a fixed, ordered cascade of extraction strategies.
    """

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None):
        """
        Args:
            strategies: Strategies in priority order. Defaults to the full
                cascade with default settings.
        """
        if strategies is None:
            strategies = build_strategies(ExtractionSettings())
        self.strategies = list(strategies)

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    def extract(self, raw_text: str, words: Sequence[WordBox] = ()) -> List[NumberSet]:
        """
        Extract every valid play from one recognition result.

        Args:
            raw_text: Raw OCR text
            words: Word boxes from the OCR engine (may be empty)

        Returns:
            Valid, de-duplicated plays in order of first appearance
        """
        return list(self.extract_detailed(raw_text, words).number_sets)

    def extract_detailed(self, raw_text: str, words: Sequence[WordBox] = ()) -> ExtractionReport:
        """Like ``extract`` but also reports which strategy succeeded and which were tried."""
        text = raw_text if isinstance(raw_text, str) else ''
        boxes = list(words or ())
        attempted = []

        for strategy in self.strategies:
            attempted.append(strategy.name)
            try:
                candidates = strategy.extract(text, boxes)
            except Exception as e:
                logger.warning(f"Extraction strategy '{strategy.name}' failed: {e}")
                continue

            plays = self._finalize(candidates)
            if plays:
                logger.info(f"Strategy '{strategy.name}' extracted {len(plays)} play(s)")
                return ExtractionReport(number_sets=tuple(plays), strategy=strategy.name, attempted=tuple(attempted))

            logger.debug(f"Strategy '{strategy.name}' found nothing")

        logger.info("No valid plays found by any extraction strategy")
        return ExtractionReport(number_sets=(), strategy=None, attempted=tuple(attempted))

    @staticmethod
    def _finalize(candidates: Sequence[NumberSet]) -> List[NumberSet]:
        valid = [play for play in candidates or () if isinstance(play, NumberSet) and play.is_valid]
        return dedupe_number_sets(valid)


def build_strategies(settings: ExtractionSettings) -> List[ExtractionStrategy]:
    return [STRATEGY_FACTORIES[name](settings) for name in settings.strategies]


def create_number_extractor(settings: Optional[ExtractionSettings] = None) -> NumberSetExtractor:
    """
    Factory function to create a number extractor from extraction settings.

    Returns:
        Configured NumberSetExtractor instance
    """
    return NumberSetExtractor(build_strategies(settings or ExtractionSettings()))
