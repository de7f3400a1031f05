# ============================================================================
# src/medscan/enrichers/upc_lookup.py
# ============================================================================
"""
Retail UPC Lookup

Over-the-counter products carry a retail UPC/EAN rather than an NDC.
OpenFoodFacts is tried first with every code variant, then UPCItemDB.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import re

from ..config import lookup_settings
from .registry_client import RegistryClient

MIN_UPC_DIGITS = 8


def upc_variants(upc: str) -> List[str]:
    """
    Code variants to try: as scanned, without the leading digit, and
    zero-padded to EAN-13 and GTIN-14. Fewer than 8 digits gives [].
    """
    digits = re.sub(r"\D", "", upc)
    if len(digits) < MIN_UPC_DIGITS:
        return []
    return list(dict.fromkeys([
        digits,
        digits[1:],
        digits.zfill(13),
        digits.zfill(14),
    ]))


@dataclass
class UPCProductData:
    upc: str
    title: Optional[str] = None
    brand: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    image_url: Optional[str] = None

    @classmethod
    def from_openfoodfacts(cls, upc: str, product: Dict[str, Any]) -> "UPCProductData":
        brand = (product.get("brands") or "").split(",")[0].strip()
        return cls(
            upc=upc,
            title=product.get("product_name") or product.get("generic_name") or None,
            brand=brand or None,
            categories=[c.replace("en:", "", 1) for c in product.get("categories_tags") or []],
            image_url=product.get("image_front_small_url") or product.get("image_small_url") or None,
        )

    @classmethod
    def from_upcitemdb(cls, upc: str, item: Dict[str, Any]) -> "UPCProductData":
        images = item.get("images") or []
        return cls(
            upc=upc,
            title=item.get("title") or item.get("description") or None,
            brand=item.get("brand") or None,
            categories=[item["category"]] if item.get("category") else [],
            image_url=images[0] if images else None,
        )


class UPCLookupClient(RegistryClient):
    """OpenFoodFacts + UPCItemDB lookup."""

    def __init__(
        self,
        openfoodfacts_endpoint: Optional[str] = None,
        upcitemdb_endpoint: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.openfoodfacts_endpoint = (
            openfoodfacts_endpoint or lookup_settings.OPENFOODFACTS_ENDPOINT
        ).rstrip("/")
        self.upcitemdb_endpoint = upcitemdb_endpoint or lookup_settings.UPCITEMDB_ENDPOINT

    async def lookup_product_by_upc(self, upc: str) -> Optional[UPCProductData]:
        """
        Returns:
            First product found, or None (also for codes under 8 digits)
        """
        variants = upc_variants(upc)
        if not variants:
            self.logger.info(f"UPC {upc!r} too short for lookup")
            return None

        self.logger.info(f"Looking up UPC variants {variants}")

        async with self._session_scope() as session:
            for variant in variants:
                data = await self._fetch_json(
                    session, f"{self.openfoodfacts_endpoint}/{variant}.json"
                )
                if data and data.get("status") == 1 and data.get("product"):
                    self.logger.info(f"Product found in OpenFoodFacts for {variant}")
                    return UPCProductData.from_openfoodfacts(variant, data["product"])

            for variant in variants:
                data = await self._fetch_json(
                    session, self.upcitemdb_endpoint, params={"upc": variant}
                )
                items = (data or {}).get("items") or []
                if items:
                    self.logger.info(f"Product found in UPCItemDB for {variant}")
                    return UPCProductData.from_upcitemdb(variant, items[0])

        self.logger.info(f"No product found for UPC {upc!r}")
        return None


async def lookup_product_by_upc(upc: str) -> Optional[UPCProductData]:
    """Convenience function using default settings."""
    return await UPCLookupClient().lookup_product_by_upc(upc)
