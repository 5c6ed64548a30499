"""
Exception types raised by the ticket scanning pipeline.
"""


class TicketScanError(Exception):
    """Base class for every error raised by pbscan."""


class ConfigurationError(TicketScanError):
    """Invalid or inconsistent configuration value."""


class RecognitionFailure(TicketScanError):
    """
    The text recognition engine could not process an image.

    Raised for engine errors, timeouts and unsupported input. It is a hard
    stop for one capture attempt; the caller decides whether to retry.
    """


class UnreadableImageError(RecognitionFailure):
    """The image bytes could not be decoded."""


class GatewayFailure(TicketScanError):
    """A remote draw-results source failed or returned unusable data."""
