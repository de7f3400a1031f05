# ============================================================================
# src/medscan/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .ocr_config import ocr_settings, OCRSettings
from .lookup_config import lookup_settings, LookupSettings
from .logging_config import logging_settings, LoggingSettings
