"""
Tests for TicketScanner, with the recognizer replaced by a canned one
"""

import asyncio
import threading
import time

import pytest
from PIL import Image

from pbscan.exceptions import RecognitionFailure, UnreadableImageError
from pbscan.image_preprocessor import ImagePreprocessor
from pbscan.models import RecognitionResult
from pbscan.number_extractor import create_number_extractor
from pbscan.ticket_processor import TicketScanner

TICKET_TEXT = """POWERBALL
SAT AUG02 25
A. 05 19 36 49 64 12
B. 01 02 03 04 05 06
CASH VALUE"""


class CannedRecognizer:
    def __init__(self, raw_text='', confidence=0.9, delay=0.0, error=None, date_text=''):
        self.raw_text = raw_text
        self.date_text = date_text
        self.text_reads = 0
        self.confidence = confidence
        self.delay = delay
        self.error = error
        self.images = []

    def recognize(self, image):
        self.images.append(image)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return RecognitionResult(raw_text=self.raw_text, confidence=self.confidence, engine='canned')

    def read_text(self, image):
        self.text_reads += 1
        if isinstance(self.date_text, Exception):
            raise self.date_text
        return self.date_text


class SlowRecognizer(CannedRecognizer):
    """Records how many recognize calls run at once."""

    def __init__(self, raw_text='', delay=0.3):
        super().__init__(raw_text, delay=delay)
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.shut_down = False

    def recognize(self, image):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            return super().recognize(image)
        finally:
            with self._lock:
                self.active -= 1

    def shutdown(self):
        self.shut_down = True


def make_scanner(recognizer, timeout_seconds=30.0, read_draw_date=True):
    return TicketScanner(ImagePreprocessor(), recognizer, create_number_extractor(), timeout_seconds, read_draw_date)


@pytest.fixture
def ticket_image():
    return Image.new('RGB', (20, 10), (255, 255, 255))


class TestProcessTicketImage:
    """Synchronous pipeline"""

    def test_plays_and_draw_date(self, ticket_image):
        recognizer = CannedRecognizer(TICKET_TEXT)

        result = make_scanner(recognizer).process_ticket_image(ticket_image)

        assert [str(ns) for ns in result.number_sets] == ['A. 05 19 36 49 64 PB 12', 'B. 01 02 03 04 05 PB 06']
        assert result.strategy == 'direct_pattern'
        assert result.draw_date == '2025-08-02'
        assert result.engine == 'canned'
        assert result.confidence == 0.9
        assert result.warnings == ()
        # the recognizer sees the enhanced image
        assert recognizer.images[0].mode == 'L'
        assert recognizer.images[0].size == (60, 30)

    def test_date_that_is_not_a_drawing_day(self, ticket_image):
        text = TICKET_TEXT.replace('SAT AUG02 25', 'FRI AUG01 25')

        result = make_scanner(CannedRecognizer(text)).process_ticket_image(ticket_image)

        assert result.draw_date == '2025-08-01'
        assert any('not a Powerball drawing day' in w for w in result.warnings)

    def test_draw_date_from_unrestricted_pass(self, ticket_image):
        recognizer = CannedRecognizer(TICKET_TEXT.replace('SAT AUG02 25', ''), date_text='POWERBALL\nSAT AUG 02 25\n')

        result = make_scanner(recognizer).process_ticket_image(ticket_image)

        assert result.draw_date == '2025-08-02'
        assert recognizer.text_reads == 1
        assert len(result.number_sets) == 2

    def test_date_pass_skipped_when_number_pass_has_the_date(self, ticket_image):
        recognizer = CannedRecognizer(TICKET_TEXT, date_text='SAT AUG 09 25')

        result = make_scanner(recognizer).process_ticket_image(ticket_image)

        assert result.draw_date == '2025-08-02'
        assert recognizer.text_reads == 0

    def test_date_pass_disabled(self, ticket_image):
        recognizer = CannedRecognizer('A. 05 19 36 49 64 12', date_text='SAT AUG 02 25')

        result = make_scanner(recognizer, read_draw_date=False).process_ticket_image(ticket_image)

        assert result.draw_date is None
        assert recognizer.text_reads == 0

    def test_failed_date_pass_keeps_the_plays(self, ticket_image):
        recognizer = CannedRecognizer('A. 05 19 36 49 64 12', date_text=RecognitionFailure('engine crashed'))

        result = make_scanner(recognizer).process_ticket_image(ticket_image)

        assert result.draw_date is None
        assert len(result.number_sets) == 1

    def test_nothing_found(self, ticket_image):
        result = make_scanner(CannedRecognizer('THANK YOU\nGOOD LUCK')).process_ticket_image(ticket_image)

        assert result.number_sets == ()
        assert result.strategy is None
        assert result.draw_date is None
        assert any('No valid plays found' in w for w in result.warnings)

    def test_unreadable_image(self):
        recognizer = CannedRecognizer(TICKET_TEXT)

        with pytest.raises(UnreadableImageError):
            make_scanner(recognizer).process_ticket_image(b'garbage')
        assert recognizer.images == []

    def test_recognition_failure_propagates(self, ticket_image):
        scanner = make_scanner(CannedRecognizer(error=RecognitionFailure('engine crashed')))

        with pytest.raises(RecognitionFailure):
            scanner.process_ticket_image(ticket_image)


class TestScan:
    """Async wrapper"""

    def test_scan(self, ticket_image):
        result = asyncio.run(make_scanner(CannedRecognizer(TICKET_TEXT)).scan(ticket_image))
        assert len(result.number_sets) == 2

    def test_timeout(self, ticket_image):
        scanner = make_scanner(CannedRecognizer(TICKET_TEXT, delay=0.5), timeout_seconds=0.05)

        with pytest.raises(RecognitionFailure, match='timed out'):
            asyncio.run(scanner.scan(ticket_image))

    def test_scan_after_timeout_waits_for_running_call(self, ticket_image):
        recognizer = SlowRecognizer(TICKET_TEXT)
        scanner = make_scanner(recognizer, timeout_seconds=0.05)

        async def scan_twice():
            for _ in range(2):
                with pytest.raises(RecognitionFailure):
                    await scanner.scan(ticket_image)

        asyncio.run(scan_twice())
        scanner.close()

        assert len(recognizer.images) == 2
        assert recognizer.max_active == 1

    def test_close_waits_for_running_call(self, ticket_image):
        recognizer = SlowRecognizer(TICKET_TEXT)
        scanner = make_scanner(recognizer, timeout_seconds=0.05)

        with pytest.raises(RecognitionFailure):
            asyncio.run(scanner.scan(ticket_image))
        scanner.close()

        assert recognizer.active == 0
        assert len(recognizer.images) == 1
        assert recognizer.shut_down
