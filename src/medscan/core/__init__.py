# ============================================================================
# src/medscan/core/__init__.py
# ============================================================================
"""
Core data types. The scan pipeline lives in ``core.scan_pipeline`` and is
re-exported from the top-level package.
"""

from .raster import RasterImage
