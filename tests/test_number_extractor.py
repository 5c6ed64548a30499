"""
Tests for the extraction cascade
"""

from pbscan.config import ExtractionSettings
from pbscan.extraction_strategies import DirectPatternStrategy, ExtractionStrategy, MarkerLineStrategy
from pbscan.models import NumberSet, dedupe_number_sets
from pbscan.number_extractor import NumberSetExtractor, create_number_extractor

NOISY_TICKET = """POWERBALL
POWER PLAY
SAT AUG02 25
A. 20 30 37 55 61 21 QP
B. 05 19 36 49 64 20 QP
- C 1O 2O 3O 4O 5O 1
CASH VALUE
ODDS 1 IN 292 MILLION
"""


class RecordingStrategy(ExtractionStrategy):
    name = 'recording'

    def __init__(self, result=None):
        self.calls = []
        self.result = result or []

    def extract(self, raw_text, words=()):
        self.calls.append(raw_text)
        return list(self.result)


class BrokenStrategy(ExtractionStrategy):
    name = 'broken'

    def extract(self, raw_text, words=()):
        raise IndexError("unexpected shape")


class TestCascade:
    """Priority order and short-circuiting"""

    def test_separated_and_merged_lines(self):
        plays = NumberSetExtractor().extract("A. 20 30 37 55 61 21\nB 0519364964 20")

        assert [p.white_balls for p in plays] == [(20, 30, 37, 55, 61), (5, 19, 36, 49, 64)]
        assert [p.powerball for p in plays] == [21, 20]

    def test_digit_string_reading_is_not_lost_to_repairs(self):
        plays = NumberSetExtractor().extract("A. 2 0303755 6121")

        assert [(p.white_balls, p.powerball) for p in plays] == [((20, 30, 37, 55, 61), 21)]

    def test_first_successful_strategy_wins(self):
        later = RecordingStrategy([NumberSet((1, 2, 3, 4, 5), 6)])
        extractor = NumberSetExtractor([DirectPatternStrategy(), later])

        report = extractor.extract_detailed(NOISY_TICKET)

        assert report.strategy == 'direct_pattern'
        assert report.attempted == ('direct_pattern',)
        assert later.calls == []
        assert list(report.number_sets) == DirectPatternStrategy().extract(NOISY_TICKET)

    def test_noisy_ticket(self):
        report = NumberSetExtractor().extract_detailed(NOISY_TICKET)

        assert report.strategy == 'direct_pattern'
        assert [p.line for p in report.number_sets] == ['A', 'B', 'C']
        assert report.number_sets[2].white_balls == (10, 20, 30, 40, 50)
        assert report.number_sets[2].powerball == 1

    def test_falls_through_to_word_boxes(self, word_factory):
        words = [word_factory(str(n), 10 + i * 50, 60) for i, n in enumerate([20, 30, 37, 55, 61, 21])]

        report = NumberSetExtractor().extract_detailed("", words)

        assert report.strategy == 'word_boxes'
        assert report.attempted == ('direct_pattern', 'word_boxes')

    def test_unstructured_is_last_resort(self):
        report = NumberSetExtractor().extract_detailed("TICKET 20 30 37 55 61 21")

        assert report.strategy == 'unstructured'
        assert report.attempted == ('direct_pattern', 'word_boxes', 'marker_lines', 'unstructured')

    def test_odds_text_yields_nothing(self):
        report = NumberSetExtractor().extract_detailed("1 in 292 million odds")

        assert report.is_empty
        assert report.strategy is None


class TestFailureSemantics:
    """The extractor never raises"""

    def test_broken_strategy_is_contained(self):
        extractor = NumberSetExtractor([BrokenStrategy(), MarkerLineStrategy()])

        report = extractor.extract_detailed("A. 20 30 37 55 61 21")

        assert report.strategy == 'marker_lines'
        assert report.attempted == ('broken', 'marker_lines')

    def test_every_strategy_broken(self):
        assert NumberSetExtractor([BrokenStrategy()]).extract("A. 20 30 37 55 61 21") == []

    def test_non_text_input(self):
        assert NumberSetExtractor().extract(None) == []
        assert NumberSetExtractor().extract("") == []


class TestValidationAndDedup:
    """Gate and de-duplication on every strategy's output"""

    def test_invalid_candidates_never_surface(self):
        strategy = RecordingStrategy([
            NumberSet((20, 20, 37, 55, 61), 21),
            NumberSet((20, 30, 37, 55, 70), 21),
            NumberSet((20, 30, 37, 55, 61), 27),
            NumberSet((20, 30, 37, 55, 61), 21),
        ])

        plays = NumberSetExtractor([strategy]).extract("anything")

        assert plays == [NumberSet((20, 30, 37, 55, 61), 21)]

    def test_duplicates_compare_white_balls_as_a_set(self):
        strategy = RecordingStrategy([
            NumberSet((20, 30, 37, 55, 61), 21, line='A'),
            NumberSet((61, 55, 37, 30, 20), 21, line='C'),
            NumberSet((20, 30, 37, 55, 61), 22, line='D'),
        ])

        plays = NumberSetExtractor([strategy]).extract("anything")

        assert [p.line for p in plays] == ['A', 'D']

    def test_dedup_is_idempotent(self):
        plays = [
            NumberSet((1, 2, 3, 4, 5), 6),
            NumberSet((5, 4, 3, 2, 1), 6),
            NumberSet((10, 20, 30, 40, 50), 6),
            NumberSet((1, 2, 3, 4, 5), 6),
        ]

        once = dedupe_number_sets(plays)

        assert dedupe_number_sets(once) == once
        assert len(once) == 2

    def test_validity_invariant_on_noisy_input(self):
        text = NOISY_TICKET + "\nE 99 98 97 96 95 94\n12 12 12 12 12 12\n0000000000000"
        for play in NumberSetExtractor().extract(text):
            assert play.is_valid


def test_factory_uses_configured_strategies():
    extractor = create_number_extractor(ExtractionSettings(strategies=('marker_lines', 'unstructured')))
    assert extractor.strategy_names == ['marker_lines', 'unstructured']
