# ============================================================================
# src/medscan/utils/__init__.py
# ============================================================================
"""
Shared utilities: exceptions, logging setup, text normalization.
"""

from .exceptions import (
    MedScanError,
    DecodeError,
    RecognitionError,
    ConfigurationError,
)
