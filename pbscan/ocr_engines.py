"""
Text recognition adapters.

Two interchangeable engines sit behind the same interface: Tesseract via
pytesseract (primary, fast) and EasyOCR (alternate, heavier, optional
install). ``TextRecognizer`` owns one instance of each and delegates to the
one selected by configuration.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytesseract
from PIL import Image
from loguru import logger

from pbscan.config import OCRSettings, resolve_engine_name
from pbscan.exceptions import RecognitionFailure
from pbscan.models import RecognitionResult, WordBox

# Digits, line markers and the separators printed on a ticket.
CHARACTER_WHITELIST = '0123456789ABCDE.,+-'

TESSERACT_LANGUAGES = {'en': 'eng'}


class OCREngine(ABC):
    """Lifecycle and recognition contract shared by every engine."""

    name = 'engine'

    def __init__(self, settings: Optional[OCRSettings] = None):
        self.settings = settings or OCRSettings()
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        """Load the engine. Calling it again once ready does nothing."""
        if self._ready:
            return
        try:
            self._load()
        except RecognitionFailure:
            raise
        except Exception as e:
            raise RecognitionFailure(f"Failed to initialize {self.name}: {e}") from e
        self._ready = True
        logger.info(f"OCR engine '{self.name}' initialized")

    def shutdown(self) -> None:
        if not self._ready:
            return
        self._unload()
        self._ready = False
        logger.info(f"OCR engine '{self.name}' shut down")

    def recognize(self, image: Image.Image) -> RecognitionResult:
        """
        Recognize text in a preprocessed image.

        Raises:
            RecognitionFailure: engine error, timeout or unsupported input
        """
        self.initialize()
        try:
            return self._recognize(image)
        except RecognitionFailure:
            raise
        except Exception as e:
            logger.error(f"OCR engine '{self.name}' failed: {e}")
            raise RecognitionFailure(f"{self.name} recognition failed: {e}") from e

    def read_text(self, image: Image.Image) -> str:
        """
        Plain text of an image without the ticket character whitelist, so
        month and weekday names and slashes come through.

        Raises:
            RecognitionFailure: engine error or timeout
        """
        self.initialize()
        try:
            return self._read_text(image)
        except RecognitionFailure:
            raise
        except Exception as e:
            raise RecognitionFailure(f"{self.name} text pass failed: {e}") from e

    @abstractmethod
    def _load(self) -> None:
        ...

    def _unload(self) -> None:
        pass

    @abstractmethod
    def _recognize(self, image: Image.Image) -> RecognitionResult:
        ...

    @abstractmethod
    def _read_text(self, image: Image.Image) -> str:
        ...


class TesseractEngine(OCREngine):
    """Tesseract through pytesseract, restricted to the ticket character set."""

    name = 'tesseract'

    def _load(self) -> None:
        if self.settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.settings.tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, FileNotFoundError) as e:
            raise RecognitionFailure(
                "Tesseract OCR executable not found. Install Tesseract or set TESSERACT_CMD to its path."
            ) from e
        logger.debug(f"Tesseract version {version}")

    @property
    def config(self) -> str:
        return (
            f"--psm {self.settings.tesseract_psm} "
            f"-c tessedit_char_whitelist={CHARACTER_WHITELIST} "
            f"-c preserve_interword_spaces=1"
        )

    @property
    def language(self) -> str:
        return '+'.join(TESSERACT_LANGUAGES.get(lang, lang) for lang in self.settings.languages)

    def _recognize(self, image: Image.Image) -> RecognitionResult:
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self.config,
                output_type=pytesseract.Output.DICT,
                timeout=self.settings.timeout_seconds,
            )
        except RuntimeError as e:
            # pytesseract reports a timeout as a bare RuntimeError
            raise RecognitionFailure(f"Tesseract failed or timed out: {e}") from e

        return self.parse_data(data)

    def _read_text(self, image: Image.Image) -> str:
        try:
            return pytesseract.image_to_string(
                image,
                lang=self.language,
                config=f"--psm {self.settings.tesseract_psm}",
                timeout=self.settings.timeout_seconds,
            )
        except RuntimeError as e:
            raise RecognitionFailure(f"Tesseract failed or timed out: {e}") from e

    def parse_data(self, data: Dict[str, list]) -> RecognitionResult:
        """Build a RecognitionResult from ``image_to_data`` dict output."""
        lines: Dict[tuple, List[str]] = {}
        words: List[WordBox] = []
        confidences: List[float] = []

        for i, text in enumerate(data.get('text', [])):
            text = (text or '').strip()
            conf = float(data['conf'][i])
            if not text or conf < 0:
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(text)

            left, top = int(data['left'][i]), int(data['top'][i])
            words.append(WordBox(
                text=text,
                left=left,
                top=top,
                right=left + int(data['width'][i]),
                bottom=top + int(data['height'][i]),
            ))
            confidences.append(conf)

        raw_text = '\n'.join(' '.join(parts) for parts in lines.values())
        confidence = float(np.mean(confidences)) / 100.0 if confidences else 0.0
        logger.debug(f"Tesseract read {len(words)} words on {len(lines)} lines (confidence {confidence:.2f})")
        return RecognitionResult(
            raw_text=raw_text,
            confidence=min(max(confidence, 0.0), 1.0),
            words=tuple(words),
            engine=self.name,
        )


class EasyOCREngine(OCREngine):
    """EasyOCR reader; the package is imported only when the engine is initialized."""

    name = 'easyocr'

    def __init__(self, settings: Optional[OCRSettings] = None):
        super().__init__(settings)
        self._reader = None

    def _load(self) -> None:
        try:
            import easyocr
        except ImportError as e:
            raise RecognitionFailure(
                "EasyOCR is not installed. Install the 'alternate' extra to use this engine."
            ) from e
        self._reader = easyocr.Reader(list(self.settings.languages), gpu=self.settings.gpu, verbose=False)

    def _unload(self) -> None:
        self._reader = None

    def _recognize(self, image: Image.Image) -> RecognitionResult:
        detections = self._reader.readtext(np.asarray(image), allowlist=CHARACTER_WHITELIST)
        return self.parse_detections(detections)

    def _read_text(self, image: Image.Image) -> str:
        return '\n'.join(self._reader.readtext(np.asarray(image), detail=0, paragraph=False))

    @staticmethod
    def parse_detections(detections: Sequence) -> RecognitionResult:
        """Build a RecognitionResult from ``readtext`` output: (bbox, text, confidence) triples."""
        words: List[WordBox] = []
        confidences: List[float] = []

        for bbox, text, conf in detections:
            text = (text or '').strip()
            if not text:
                continue
            xs = [point[0] for point in bbox]
            ys = [point[1] for point in bbox]
            words.append(WordBox(
                text=text,
                left=int(min(xs)),
                top=int(min(ys)),
                right=int(max(xs)),
                bottom=int(max(ys)),
            ))
            confidences.append(float(conf))

        raw_text = '\n'.join(' '.join(w.text for w in line) for line in group_words_into_lines(words))
        confidence = float(np.mean(confidences)) if confidences else 0.0
        return RecognitionResult(raw_text=raw_text, confidence=confidence, words=tuple(words), engine='easyocr')


def group_words_into_lines(words: Sequence[WordBox]) -> List[List[WordBox]]:
    """
    Cluster words into text lines by vertical position, each line sorted
    left to right. A word joins the current line when its midpoint lies
    within half a word height of the line's first word.
    """
    lines: List[List[WordBox]] = []
    for word in sorted(words, key=lambda w: (w.center_y, w.left)):
        if lines:
            anchor = lines[-1][0]
            tolerance = max(anchor.bottom - anchor.top, 1) / 2
            if abs(word.center_y - anchor.center_y) <= tolerance:
                lines[-1].append(word)
                continue
        lines.append([word])
    return [sorted(line, key=lambda w: w.left) for line in lines]


ENGINE_TYPES = {
    TesseractEngine.name: TesseractEngine,
    EasyOCREngine.name: EasyOCREngine,
}


class TextRecognizer:
    """
    Selects one of several interchangeable engines and delegates to it.

    Only one recognition call may be in flight at a time; switching
    engines while one is running is the caller's responsibility to avoid.
    """

    def __init__(self, engines: Dict[str, OCREngine], active: str):
        if not engines:
            raise ValueError("At least one OCR engine is required")
        self.engines = dict(engines)
        self._active = self._check_name(active)

    def _check_name(self, name: str) -> str:
        resolved = resolve_engine_name(name) if name not in self.engines else name
        if resolved not in self.engines:
            raise ValueError(f"OCR engine '{name}' is not available")
        return resolved

    @property
    def active_engine(self) -> OCREngine:
        return self.engines[self._active]

    @property
    def active_engine_name(self) -> str:
        return self._active

    def set_active_engine(self, name: str) -> None:
        """Switch engines, shutting down the previous one."""
        resolved = self._check_name(name)
        if resolved == self._active:
            return
        self.active_engine.shutdown()
        logger.info(f"Switching OCR engine from '{self._active}' to '{resolved}'")
        self._active = resolved

    def initialize(self) -> None:
        self.active_engine.initialize()

    def shutdown(self) -> None:
        for engine in self.engines.values():
            engine.shutdown()

    def is_ready(self) -> bool:
        return self.active_engine.is_ready()

    def recognize(self, image: Image.Image) -> RecognitionResult:
        return self.active_engine.recognize(image)

    def read_text(self, image: Image.Image) -> str:
        return self.active_engine.read_text(image)


def create_text_recognizer(settings: Optional[OCRSettings] = None) -> TextRecognizer:
    """
    Factory function to create a recognizer holding every known engine.

    Returns:
        TextRecognizer with the configured engine active
    """
    settings = settings or OCRSettings()
    engines = {name: engine_type(settings) for name, engine_type in ENGINE_TYPES.items()}
    return TextRecognizer(engines, settings.engine)
