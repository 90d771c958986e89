"""
Business logic services
"""

from app.services.user_service import UserService
from app.services.classifier import (
    Classifier,
    ClassifierError,
    GeminiClassifier,
    PriceRuleClassifier,
    Recommendation,
    build_classifier,
)
from app.services.pricing_service import PricingService
from app.services.catalog_service import CatalogService
from app.services.list_item_service import ListItemService
from app.services.comparison_service import ComparisonService
from app.services.list_service import ListService
from app.services.analysis_service import AnalysisService
from app.services.purchase_list_service import PurchaseListService

__all__ = [
    "UserService",
    "Classifier",
    "ClassifierError",
    "GeminiClassifier",
    "PriceRuleClassifier",
    "Recommendation",
    "build_classifier",
    "PricingService",
    "CatalogService",
    "ListItemService",
    "ComparisonService",
    "ListService",
    "AnalysisService",
    "PurchaseListService",
]
