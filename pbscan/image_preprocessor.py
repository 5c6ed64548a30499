"""
Image preprocessing module for lottery ticket OCR enhancement.
Grayscale, contrast curve and upscaling before text recognition.
"""

import io
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError
from loguru import logger

from pbscan.config import PreprocessingSettings
from pbscan.exceptions import UnreadableImageError

ImageInput = Union[bytes, bytearray, Image.Image]


class ImagePreprocessor:
    """Deterministic image normalisation for ticket photos."""

    def __init__(self, settings: Optional[PreprocessingSettings] = None):
        """Initialize the image preprocessor."""
        self.settings = settings or PreprocessingSettings()
        logger.debug(
            f"Image preprocessor initialized (mode={self.settings.contrast_mode}, scale={self.settings.scale})"
        )

    def load_image(self, image: ImageInput) -> Image.Image:
        """
        Decode image bytes into a PIL image.

        Raises:
            UnreadableImageError: when the bytes are empty or not a known image format
        """
        if isinstance(image, Image.Image):
            return image
        if not image:
            raise UnreadableImageError("Empty image data")
        try:
            loaded = Image.open(io.BytesIO(bytes(image)))
            loaded.load()
        except (UnidentifiedImageError, OSError) as e:
            raise UnreadableImageError(f"Cannot decode image: {e}") from e
        logger.debug(f"Original image size: {loaded.size}, mode: {loaded.mode}")
        return loaded

    def enhance(self, image: ImageInput) -> Image.Image:
        """
        Apply grayscale, contrast curve and upscaling.

        Args:
            image: Encoded image bytes or a PIL image

        Returns:
            New 8-bit grayscale PIL image
        """
        original = self.load_image(image)
        gray = self._to_grayscale(original)
        contrasted = self._apply_contrast(gray)
        enhanced = self._upscale(Image.fromarray(contrasted))
        logger.debug(f"Enhanced image from {original.size} to {enhanced.size}")
        return enhanced

    def _to_grayscale(self, image: Image.Image) -> np.ndarray:
        """Weighted luma conversion of the RGB channels."""
        rgb = np.asarray(image.convert('RGB'), dtype=np.float32)
        weights = np.asarray(self.settings.luma_weights, dtype=np.float32)
        return rgb @ weights

    def _apply_contrast(self, gray: np.ndarray) -> np.ndarray:
        low = self.settings.low_threshold
        high = self.settings.high_threshold

        if self.settings.contrast_mode == 'stretch':
            out = (gray - low) * (255.0 / (high - low))
        else:
            # mid tones are kept as they are
            out = gray.copy()
            out[gray > high] = 255.0
            out[gray < low] = 0.0

        return np.clip(np.rint(out), 0, 255).astype(np.uint8)

    def _upscale(self, image: Image.Image) -> Image.Image:
        width, height = image.size
        scale = self.settings.scale
        largest = max(width, height) * scale
        if largest > self.settings.max_dimension:
            scale = max(1.0, self.settings.max_dimension / max(width, height))
            logger.debug(f"Upscale factor capped at {scale:.2f} by max_dimension")

        if scale == 1.0:
            return image.copy()

        target = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
        return image.resize(target, Image.Resampling.LANCZOS)

    def to_bytes(self, image: Image.Image, format: str = 'PNG') -> bytes:
        """Convert PIL Image to bytes."""
        buffer = io.BytesIO()
        if format.upper() == 'JPEG':
            image.save(buffer, format='JPEG', quality=95, optimize=True)
        else:
            image.save(buffer, format=format)
        return buffer.getvalue()


def create_image_preprocessor(settings: Optional[PreprocessingSettings] = None) -> ImagePreprocessor:
    return ImagePreprocessor(settings)
