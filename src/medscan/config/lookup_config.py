# ============================================================================
# src/medscan/config/lookup_config.py
# ============================================================================
"""
Registry Lookup Settings
- openFDA NDC directory
- OpenFoodFacts / UPCItemDB product registries
- Per-request timeout
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LookupSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    FDA_NDC_ENDPOINT: str = Field(
        default="https://api.fda.gov/drug/ndc.json",
        description="openFDA NDC directory endpoint"
    )
    OPENFOODFACTS_ENDPOINT: str = Field(
        default="https://world.openfoodfacts.org/api/v2/product",
        description="OpenFoodFacts product endpoint; '/<upc>.json' is appended"
    )
    UPCITEMDB_ENDPOINT: str = Field(
        default="https://api.upcitemdb.com/prod/trial/lookup",
        description="UPCItemDB trial lookup endpoint"
    )
    LOOKUP_TIMEOUT: float = Field(
        default=10.0,
        gt=0.0, le=120.0,
        description="Seconds allowed for each registry request"
    )


lookup_settings = LookupSettings()
