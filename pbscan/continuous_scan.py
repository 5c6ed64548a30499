"""
Continuous scanning: poll frames until a confident result is found.

The loop owns the state shared across attempts (accumulated candidates,
progress); the scanner it drives stays stateless.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from loguru import logger

from pbscan.config import ScannerSettings
from pbscan.exceptions import RecognitionFailure
from pbscan.image_preprocessor import ImageInput
from pbscan.models import NumberSet, dedupe_number_sets
from pbscan.ticket_processor import TicketScanner

FrameSource = Callable[[], Union[Optional[ImageInput], Awaitable[Optional[ImageInput]]]]


@dataclass
class ScanSession:
    """Accumulated state of one continuous scanning run."""

    number_sets: List[NumberSet] = field(default_factory=list)
    attempts: int = 0
    failures: int = 0
    progress: int = 0
    best_confidence: float = 0.0
    draw_date: Optional[str] = None
    stop_reason: Optional[str] = None

    def add(self, number_sets) -> int:
        """Merge new candidates, returning how many were not seen before."""
        before = len(self.number_sets)
        self.number_sets = dedupe_number_sets(list(self.number_sets) + list(number_sets))
        return len(self.number_sets) - before


class ContinuousScanner:
    """
    Repeatedly captures a frame and scans it on a fixed interval.

    Stops when the stop event is set, a result reaches the confidence
    threshold, progress reaches 100 or ``max_attempts`` frames were tried.
    """

    def __init__(self, scanner: TicketScanner, settings: Optional[ScannerSettings] = None):
        self.scanner = scanner
        self.settings = settings or ScannerSettings()

    async def _next_frame(self, frame_source: FrameSource) -> Optional[ImageInput]:
        frame = frame_source()
        if inspect.isawaitable(frame):
            frame = await frame
        return frame

    async def _pause(self, stop_event: Optional[asyncio.Event]) -> None:
        interval = self.settings.interval_ms / 1000.0
        if stop_event is None:
            await asyncio.sleep(interval)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    async def run(self, frame_source: FrameSource, stop_event: Optional[asyncio.Event] = None) -> ScanSession:
        """
        Scan frames until a stop condition is met.

        Args:
            frame_source: Callable (sync or async) returning the next frame,
                or None when no frame is available yet
            stop_event: Set by the caller to cancel scanning

        Returns:
            The session with every distinct candidate found
        """
        session = ScanSession()

        while True:
            if stop_event is not None and stop_event.is_set():
                session.stop_reason = 'cancelled'
                break
            if session.attempts >= self.settings.max_attempts:
                session.stop_reason = 'max_attempts'
                break

            frame = await self._next_frame(frame_source)
            session.attempts += 1

            if frame is not None:
                try:
                    result = await self.scanner.scan(frame)
                except RecognitionFailure as e:
                    session.failures += 1
                    logger.warning(f"Frame {session.attempts} failed: {e}")
                    result = None

                if result is not None and result.number_sets:
                    new = session.add(result.number_sets)
                    session.progress = min(100, session.progress + self.settings.progress_step)
                    session.best_confidence = max(session.best_confidence, result.confidence)
                    session.draw_date = session.draw_date or result.draw_date
                    logger.debug(
                        f"Frame {session.attempts}: {len(result.number_sets)} plays ({new} new), "
                        f"confidence {result.confidence:.2f}, progress {session.progress}%"
                    )
                    if result.confidence >= self.settings.confidence_threshold:
                        session.stop_reason = 'confident'
                        break

            if session.progress >= 100:
                session.stop_reason = 'complete'
                break

            await self._pause(stop_event)

        logger.info(
            f"Continuous scan stopped ({session.stop_reason}) after {session.attempts} attempts "
            f"with {len(session.number_sets)} candidate plays"
        )
        return session
