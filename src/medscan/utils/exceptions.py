# ============================================================================
# src/medscan/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the medscan engine.

Registry misses are not exceptions: lookups return None once every
candidate format has been tried.
"""


class MedScanError(Exception):
    """Base exception for all medscan errors."""
    pass


class DecodeError(MedScanError):
    """Input bytes could not be decoded as an image or PDF page."""
    pass


class RecognitionError(MedScanError):
    """OCR engine unavailable, failed, or timed out."""

    def __init__(self, message: str, engine: str = "unknown"):
        super().__init__(message)
        self.engine = engine


class ConfigurationError(MedScanError):
    """Invalid configuration."""
    pass
