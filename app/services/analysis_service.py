from sqlalchemy.orm import Session
from typing import Any, Dict, List
import logging

from app.core.config import settings
from app.models.shopping_list import ListItem
from app.models.user import User
from app.services.classifier import (
    Classifier,
    ClassifierError,
    Recommendation,
    UNCATEGORIZED,
    gather_bounded,
)
from app.services.comparison_service import describe
from app.services.list_service import ListService

logger = logging.getLogger(__name__)


class AnalysisService:
    """Category view of a list, annotated with classifier recommendations. Read only."""

    def __init__(self, db: Session):
        self.db = db
        self.lists = ListService(db)

    @staticmethod
    def group_by_category(items: List[ListItem]) -> Dict[str, List[ListItem]]:
        categories: Dict[str, List[ListItem]] = {}
        for item in items:
            key = item.product.category or UNCATEGORIZED
            categories.setdefault(key, []).append(item)
        return dict(sorted(categories.items()))

    async def get_category_analysis(
        self, user: User, list_id: int, classifier: Classifier
    ) -> Dict[str, Any]:
        shopping_list = self.lists.get_list(user, list_id)
        categories = self.group_by_category(list(shopping_list.items))

        annotations: Dict[int, str] = {}
        multi = {name: items for name, items in categories.items() if len(items) > 1}

        if multi:
            names = list(multi)
            descriptors = {
                name: [describe(item) for item in multi[name]] for name in names
            }
            grouped = await gather_bounded(
                [lambda n=n: classifier.group_similar(descriptors[n]) for n in names],
                timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
                max_concurrency=settings.CLASSIFIER_MAX_CONCURRENCY,
            )

            subgroups = []
            for name, result in zip(names, grouped):
                if isinstance(result, ClassifierError):
                    logger.warning(f"Grouping of category '{name}' failed: {result}")
                    continue
                by_id = {d["list_item_id"]: d for d in descriptors[name]}
                for ids in result:
                    members = [by_id[i] for i in ids if i in by_id]
                    if len(members) > 1:
                        subgroups.append(members)

            recommendations = await gather_bounded(
                [lambda g=g: classifier.recommend(g) for g in subgroups],
                timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
                max_concurrency=settings.CLASSIFIER_MAX_CONCURRENCY,
            )
            for members, result in zip(subgroups, recommendations):
                if not isinstance(result, Recommendation):
                    logger.warning(f"Recommendation for a sub-group failed: {result}")
                    continue
                if result.winner_id in [m["list_item_id"] for m in members]:
                    annotations[result.winner_id] = result.reason

        return {
            "list_id": shopping_list.id,
            "categories": [
                {
                    "category": name,
                    "items": [
                        {
                            "list_item": item,
                            "recommended": item.id in annotations,
                            "recommended_reason": annotations.get(item.id),
                        }
                        for item in items
                    ],
                }
                for name, items in categories.items()
            ],
        }
