# ============================================================================
# src/medscan/enrichers/__init__.py
# ============================================================================
"""
Barcode enrichment: NDC and retail UPC registry lookups.
"""

from .ndc_lookup import (
    FDAMedicationData,
    NDCLookupClient,
    convert_fda_to_medication,
    convert_to_ndc_format,
    lookup_medication_by_ndc,
)
from .upc_lookup import (
    UPCProductData,
    UPCLookupClient,
    lookup_product_by_upc,
    upc_variants,
)

__all__ = [
    'FDAMedicationData',
    'NDCLookupClient',
    'convert_fda_to_medication',
    'convert_to_ndc_format',
    'lookup_medication_by_ndc',
    'UPCProductData',
    'UPCLookupClient',
    'lookup_product_by_upc',
    'upc_variants',
]
