"""
Configuration loading for pbscan.

Settings come from ``config/config.ini`` (configparser) with a few
environment overrides. Values are validated once here and handed to the
components as immutable dataclasses.
"""

import configparser
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from loguru import logger

from pbscan.exceptions import ConfigurationError

ENGINE_ALIASES = {
    'primary': 'tesseract',
    'tesseract': 'tesseract',
    'alternate': 'easyocr',
    'easyocr': 'easyocr',
}

STRATEGY_NAMES = ('direct_pattern', 'word_boxes', 'marker_lines', 'unstructured')


@dataclass(frozen=True)
class OCRSettings:
    engine: str = 'tesseract'
    tesseract_cmd: str = ''
    tesseract_psm: int = 6
    timeout_seconds: float = 30.0
    languages: Tuple[str, ...] = ('en',)
    gpu: bool = False
    # second, unrestricted pass that reads the printed draw date
    read_draw_date: bool = True


@dataclass(frozen=True)
class PreprocessingSettings:
    luma_weights: Tuple[float, float, float] = (0.299, 0.587, 0.114)
    low_threshold: int = 100
    high_threshold: int = 160
    contrast_mode: str = 'threshold'
    scale: float = 3.0
    max_dimension: int = 6000


@dataclass(frozen=True)
class ExtractionSettings:
    strategies: Tuple[str, ...] = STRATEGY_NAMES
    row_bucket_px: int = 20
    fallback_max_results: int = 5
    fallback_min_average: float = 10.0
    fallback_min_spread: int = 10
    apply_repairs: bool = True


@dataclass(frozen=True)
class ScannerSettings:
    interval_ms: int = 500
    confidence_threshold: float = 0.8
    max_attempts: int = 20
    progress_step: int = 5


@dataclass(frozen=True)
class GatewaySettings:
    timeout_seconds: float = 15.0
    primary_url: str = 'https://api.musl.com/v3/numbers'
    jackpot_url: str = 'https://api.musl.com/v3/grandprize'
    secondary_url: str = 'https://data.ny.gov/resource/d6yy-54nr.json'
    musl_api_key: Optional[str] = None


@dataclass(frozen=True)
class Settings:
    ocr: OCRSettings = OCRSettings()
    preprocessing: PreprocessingSettings = PreprocessingSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    scanner: ScannerSettings = ScannerSettings()
    gateway: GatewaySettings = GatewaySettings()
    source: Optional[str] = None


def resolve_engine_name(name: str) -> str:
    """Map a configured engine name (primary/alternate or concrete) to the engine id."""
    key = (name or '').strip().lower()
    if key not in ENGINE_ALIASES:
        raise ConfigurationError(
            f"Unknown OCR engine '{name}'. Expected one of: {', '.join(sorted(ENGINE_ALIASES))}"
        )
    return ENGINE_ALIASES[key]


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(',') if part.strip())


def _get(parser: configparser.ConfigParser, section: str, key: str, converter, default):
    if not parser.has_option(section, key):
        return default
    raw = parser.get(section, key)
    try:
        return converter(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for [{section}] {key}: {raw!r} ({e})") from e


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError("expected a boolean")


def _candidate_paths(config_path: Optional[str]):
    paths = []
    if config_path:
        paths.append(config_path)
    env_path = os.getenv('PBSCAN_CONFIG')
    if env_path:
        paths.append(env_path)
    paths.append(os.path.join(os.path.dirname(__file__), '..', 'config', 'config.ini'))
    paths.append(os.path.join(os.getcwd(), 'config', 'config.ini'))
    return paths


def _build_ocr(parser: configparser.ConfigParser) -> OCRSettings:
    defaults = OCRSettings()
    engine = os.getenv('OCR_ENGINE') or _get(parser, 'ocr', 'engine', str, 'primary')
    settings = OCRSettings(
        engine=resolve_engine_name(engine),
        tesseract_cmd=os.getenv('TESSERACT_CMD') or _get(parser, 'ocr', 'tesseract_cmd', str, defaults.tesseract_cmd),
        tesseract_psm=_get(parser, 'ocr', 'tesseract_psm', int, defaults.tesseract_psm),
        timeout_seconds=_get(parser, 'ocr', 'timeout_seconds', float, defaults.timeout_seconds),
        languages=_get(parser, 'ocr', 'languages', _split_list, defaults.languages),
        gpu=_get(parser, 'ocr', 'gpu', _to_bool, defaults.gpu),
        read_draw_date=_get(parser, 'ocr', 'read_draw_date', _to_bool, defaults.read_draw_date),
    )
    if settings.timeout_seconds <= 0:
        raise ConfigurationError("[ocr] timeout_seconds must be positive")
    return settings


def _build_preprocessing(parser: configparser.ConfigParser) -> PreprocessingSettings:
    defaults = PreprocessingSettings()

    def weights(value: str) -> Tuple[float, float, float]:
        parts = tuple(float(p) for p in _split_list(value))
        if len(parts) != 3:
            raise ValueError("expected three comma separated weights")
        return parts

    settings = PreprocessingSettings(
        luma_weights=_get(parser, 'preprocessing', 'luma_weights', weights, defaults.luma_weights),
        low_threshold=_get(parser, 'preprocessing', 'low_threshold', int, defaults.low_threshold),
        high_threshold=_get(parser, 'preprocessing', 'high_threshold', int, defaults.high_threshold),
        contrast_mode=_get(parser, 'preprocessing', 'contrast_mode', str, defaults.contrast_mode).strip().lower(),
        scale=_get(parser, 'preprocessing', 'scale', float, defaults.scale),
        max_dimension=_get(parser, 'preprocessing', 'max_dimension', int, defaults.max_dimension),
    )

    if any(w < 0 for w in settings.luma_weights) or abs(sum(settings.luma_weights) - 1.0) > 0.01:
        raise ConfigurationError("[preprocessing] luma_weights must be non-negative and sum to 1")
    if not 0 <= settings.low_threshold < settings.high_threshold <= 255:
        raise ConfigurationError("[preprocessing] thresholds must satisfy 0 <= low < high <= 255")
    if settings.contrast_mode not in ('threshold', 'stretch'):
        raise ConfigurationError("[preprocessing] contrast_mode must be 'threshold' or 'stretch'")
    if not 1.0 <= settings.scale <= 4.0:
        raise ConfigurationError("[preprocessing] scale must be between 1 and 4")
    if settings.max_dimension < 100:
        raise ConfigurationError("[preprocessing] max_dimension is too small")
    return settings


def _build_extraction(parser: configparser.ConfigParser) -> ExtractionSettings:
    defaults = ExtractionSettings()
    settings = ExtractionSettings(
        strategies=_get(parser, 'extraction', 'strategies', _split_list, defaults.strategies),
        row_bucket_px=_get(parser, 'extraction', 'row_bucket_px', int, defaults.row_bucket_px),
        fallback_max_results=_get(parser, 'extraction', 'fallback_max_results', int, defaults.fallback_max_results),
        fallback_min_average=_get(parser, 'extraction', 'fallback_min_average', float, defaults.fallback_min_average),
        fallback_min_spread=_get(parser, 'extraction', 'fallback_min_spread', int, defaults.fallback_min_spread),
        apply_repairs=_get(parser, 'extraction', 'apply_repairs', _to_bool, defaults.apply_repairs),
    )

    unknown = [name for name in settings.strategies if name not in STRATEGY_NAMES]
    if unknown:
        raise ConfigurationError(f"[extraction] unknown strategies: {', '.join(unknown)}")
    if not settings.strategies:
        raise ConfigurationError("[extraction] at least one strategy is required")
    if settings.row_bucket_px <= 0 or settings.fallback_max_results <= 0:
        raise ConfigurationError("[extraction] row_bucket_px and fallback_max_results must be positive")
    return settings


def _build_scanner(parser: configparser.ConfigParser) -> ScannerSettings:
    defaults = ScannerSettings()
    settings = ScannerSettings(
        interval_ms=_get(parser, 'scanner', 'interval_ms', int, defaults.interval_ms),
        confidence_threshold=_get(parser, 'scanner', 'confidence_threshold', float, defaults.confidence_threshold),
        max_attempts=_get(parser, 'scanner', 'max_attempts', int, defaults.max_attempts),
        progress_step=_get(parser, 'scanner', 'progress_step', int, defaults.progress_step),
    )
    if settings.interval_ms < 0 or settings.max_attempts <= 0 or settings.progress_step <= 0:
        raise ConfigurationError("[scanner] interval_ms, max_attempts and progress_step are out of range")
    if not 0.0 <= settings.confidence_threshold <= 1.0:
        raise ConfigurationError("[scanner] confidence_threshold must be between 0 and 1")
    return settings


def _build_gateway(parser: configparser.ConfigParser) -> GatewaySettings:
    defaults = GatewaySettings()
    return GatewaySettings(
        timeout_seconds=_get(parser, 'gateway', 'timeout_seconds', float, defaults.timeout_seconds),
        primary_url=_get(parser, 'gateway', 'primary_url', str, defaults.primary_url),
        jackpot_url=_get(parser, 'gateway', 'jackpot_url', str, defaults.jackpot_url),
        secondary_url=_get(parser, 'gateway', 'secondary_url', str, defaults.secondary_url),
        musl_api_key=os.getenv('MUSL_API_KEY') or None,
    )


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from the first config file found, falling back to defaults.

    Args:
        config_path: Explicit path to an INI file (optional)

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: when a value is present but invalid
    """
    parser = configparser.ConfigParser()
    paths_to_try = _candidate_paths(config_path)

    source = None
    for path in paths_to_try:
        if os.path.exists(path):
            parser.read(path)
            source = os.path.abspath(path)
            logger.info(f"Configuration loaded from: {source}")
            break

    if source is None:
        logger.warning(f"Config file not found. Tried paths: {paths_to_try}. Using defaults.")

    return Settings(
        ocr=_build_ocr(parser),
        preprocessing=_build_preprocessing(parser),
        extraction=_build_extraction(parser),
        scanner=_build_scanner(parser),
        gateway=_build_gateway(parser),
        source=source,
    )
