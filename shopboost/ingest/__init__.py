"""
Onboarding import pipeline: decode, pick, normalize, resolve, write.
"""

from shopboost.ingest.models import EntityType, ImportSummary
from shopboost.ingest.orchestrator import ShopBoostImporter, run_shop_boost_import

__all__ = [
    "EntityType",
    "ImportSummary",
    "ShopBoostImporter",
    "run_shop_boost_import",
]
