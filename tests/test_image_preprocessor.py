"""
Tests for ImagePreprocessor
"""

import io

import numpy as np
import pytest
from PIL import Image

from pbscan.config import PreprocessingSettings
from pbscan.exceptions import UnreadableImageError
from pbscan.image_preprocessor import ImagePreprocessor, create_image_preprocessor


def png_bytes(color, size=(10, 8)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


class TestContrast:
    """Contrast curves"""

    def test_threshold_keeps_mid_tones(self):
        preprocessor = ImagePreprocessor(PreprocessingSettings(low_threshold=100, high_threshold=160))

        out = preprocessor._apply_contrast(np.array([[50.0, 130.0, 200.0]]))

        assert out.tolist() == [[0, 130, 255]]
        assert out.dtype == np.uint8

    def test_stretch_maps_range_linearly(self):
        preprocessor = ImagePreprocessor(PreprocessingSettings(contrast_mode='stretch'))

        out = preprocessor._apply_contrast(np.array([[50.0, 130.0, 200.0]]))

        assert out.tolist() == [[0, 128, 255]]

    def test_luma_weights(self):
        preprocessor = create_image_preprocessor()

        gray = preprocessor._to_grayscale(Image.new('RGB', (2, 2), (255, 0, 0)))

        assert gray.shape == (2, 2)
        assert gray[0, 0] == pytest.approx(0.299 * 255, abs=0.01)


class TestEnhance:
    """Full enhancement"""

    def test_white_image_is_upscaled_grayscale(self):
        enhanced = ImagePreprocessor().enhance(png_bytes((255, 255, 255)))

        assert enhanced.mode == 'L'
        assert enhanced.size == (30, 24)
        assert np.asarray(enhanced).min() >= 250

    def test_dark_pixels_go_black(self):
        enhanced = ImagePreprocessor().enhance(Image.new('RGB', (10, 10), (40, 40, 40)))
        assert np.asarray(enhanced).max() <= 5

    def test_scale_is_capped_by_max_dimension(self):
        preprocessor = ImagePreprocessor(PreprocessingSettings(max_dimension=100))

        enhanced = preprocessor.enhance(png_bytes((255, 255, 255), size=(60, 20)))

        assert enhanced.size == (100, 33)

    def test_input_is_not_modified(self):
        original = Image.new('RGB', (10, 10), (255, 255, 255))
        ImagePreprocessor().enhance(original)
        assert original.size == (10, 10)
        assert original.mode == 'RGB'


class TestLoading:
    """Decoding and encoding"""

    def test_empty_bytes(self):
        with pytest.raises(UnreadableImageError):
            ImagePreprocessor().load_image(b'')

    def test_garbage_bytes(self):
        with pytest.raises(UnreadableImageError):
            ImagePreprocessor().enhance(b'not an image at all')

    def test_to_bytes_png(self):
        preprocessor = ImagePreprocessor()
        data = preprocessor.to_bytes(Image.new('L', (4, 4), 255))
        assert data.startswith(b'\x89PNG')
