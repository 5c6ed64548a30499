"""
Powerball Ticket Processing Module
Processes images of Powerball tickets into validated plays.

image bytes -> ImagePreprocessor -> TextRecognizer -> NumberSetExtractor -> ScanResult
"""

import asyncio
import concurrent.futures
from typing import Optional

from loguru import logger

from pbscan.config import Settings, load_settings
from pbscan.draw_dates import extract_draw_date, is_valid_drawing_date
from pbscan.exceptions import RecognitionFailure
from pbscan.image_preprocessor import ImageInput, ImagePreprocessor
from pbscan.models import ScanResult
from pbscan.number_extractor import NumberSetExtractor, create_number_extractor
from pbscan.ocr_engines import TextRecognizer, create_text_recognizer


class TicketScanner:
    """
    Runs one capture attempt through the whole pipeline.

    The collaborators are constructed by the caller and injected. The only
    state kept between calls is the worker running the current recognition.
    """

    def __init__(
        self,
        preprocessor: ImagePreprocessor,
        recognizer: TextRecognizer,
        extractor: NumberSetExtractor,
        timeout_seconds: float = 30.0,
        read_draw_date: bool = True,
    ):
        self.preprocessor = preprocessor
        self.recognizer = recognizer
        self.extractor = extractor
        self.timeout_seconds = timeout_seconds
        self.read_draw_date = read_draw_date
        # one worker: recognize calls on the shared engine never overlap
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="pbscan-ocr")
        self._worker: Optional[concurrent.futures.Future] = None

    def process_ticket_image(self, image_data: ImageInput) -> ScanResult:
        """
        Main method to process a ticket image and extract all plays.

        Args:
            image_data: Raw image bytes

        Returns:
            ScanResult; an empty ``number_sets`` means nothing valid was found

        Raises:
            RecognitionFailure: the image could not be decoded or recognized
        """
        enhanced = self.preprocessor.enhance(image_data)
        recognition = self.recognizer.recognize(enhanced)
        logger.info(
            f"Recognized {len(recognition.lines)} lines with {recognition.engine} "
            f"(confidence {recognition.confidence:.2f})"
        )

        report = self.extractor.extract_detailed(recognition.raw_text, recognition.words)

        warnings = []
        draw_date = extract_draw_date(recognition.lines)
        if draw_date is None and self.read_draw_date:
            draw_date = self._read_draw_date(enhanced)
        if draw_date and not is_valid_drawing_date(draw_date):
            warnings.append(f"Draw date {draw_date} is not a Powerball drawing day")
        if report.is_empty:
            warnings.append("No valid plays found; enter the numbers manually or scan again")

        return ScanResult(
            number_sets=report.number_sets,
            confidence=recognition.confidence,
            raw_text=recognition.raw_text,
            strategy=report.strategy,
            draw_date=draw_date,
            engine=recognition.engine,
            warnings=tuple(warnings),
        )

    def _read_draw_date(self, enhanced) -> Optional[str]:
        # the number pass is whitelisted to digits and markers, so month names never reach it
        try:
            text = self.recognizer.read_text(enhanced)
        except RecognitionFailure as e:
            logger.warning(f"Draw date pass failed: {e}")
            return None
        return extract_draw_date(text.splitlines())

    async def wait_idle(self) -> None:
        """Wait for a recognition call left running by an earlier timed-out scan."""
        worker = self._worker
        if worker is not None and not worker.done():
            logger.info("Waiting for the previous recognition call to finish")
            await asyncio.to_thread(concurrent.futures.wait, [worker])

    async def scan(self, image_data: ImageInput) -> ScanResult:
        """
        Non-blocking ``process_ticket_image``.

        Calls run one at a time on the scanner's own worker thread. A timeout
        stops the wait, not the engine, so the next scan first waits for the
        abandoned call to finish.

        Raises:
            RecognitionFailure: also raised when the attempt exceeds the timeout
        """
        await self.wait_idle()
        self._worker = self._executor.submit(self.process_ticket_image, image_data)
        try:
            return await asyncio.wait_for(asyncio.wrap_future(self._worker), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RecognitionFailure(f"Ticket scan timed out after {self.timeout_seconds}s") from e

    def close(self) -> None:
        """Wait for any in-flight recognition, then release the worker thread and the engines."""
        self._executor.shutdown(wait=True)
        self.recognizer.shutdown()


def create_ticket_scanner(settings: Optional[Settings] = None) -> TicketScanner:
    """
    Factory function to create a ticket scanner from settings.

    Returns:
        Configured TicketScanner instance
    """
    settings = settings or load_settings()
    return TicketScanner(
        preprocessor=ImagePreprocessor(settings.preprocessing),
        recognizer=create_text_recognizer(settings.ocr),
        extractor=create_number_extractor(settings.extraction),
        timeout_seconds=settings.ocr.timeout_seconds,
        read_draw_date=settings.ocr.read_draw_date,
    )
