import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from google import genai
from google.genai import errors, types

from app.utils.money import difference, parse_amount, round_money

logger = logging.getLogger(__name__)


CATEGORIES = [
    "Meat and Poultry",
    "Seafood",
    "Produce",
    "Appetizers/Snacks",
    "Dairy and Cheese",
    "Bakery",
    "Grains and Staples",
    "Canned and Jarred Goods",
    "Condiments",
    "Beverages",
    "Frozen Foods",
    "Cooking Essentials",
    "Disposable Items",
    "Kitchen Tools and Utensils",
    "Coffee",
]

UNCATEGORIZED = "Uncategorized"

CATEGORY_KEYWORDS = {
    "Meat and Poultry": ["beef", "chicken", "pork", "turkey", "bacon", "sausage", "ham", "lamb"],
    "Seafood": ["salmon", "shrimp", "tuna", "cod", "fish", "crab", "lobster", "tilapia"],
    "Produce": ["lettuce", "tomato", "onion", "potato", "apple", "banana", "lemon", "carrot", "pepper"],
    "Appetizers/Snacks": ["chips", "pretzel", "cracker", "popcorn", "nuts", "snack"],
    "Dairy and Cheese": ["milk", "cheese", "butter", "cream", "yogurt", "cheddar", "mozzarella"],
    "Bakery": ["bread", "bun", "roll", "bagel", "croissant", "muffin", "tortilla"],
    "Grains and Staples": ["rice", "flour", "pasta", "oats", "sugar", "beans", "noodle"],
    "Canned and Jarred Goods": ["canned", "jar", "paste", "puree"],
    "Condiments": ["ketchup", "mustard", "mayonnaise", "sauce", "dressing", "vinegar", "salsa"],
    "Beverages": ["juice", "soda", "water", "tea", "lemonade", "cola"],
    "Frozen Foods": ["frozen", "ice cream", "fries"],
    "Cooking Essentials": ["oil", "lard", "shortening", "fat", "salt"],
    "Disposable Items": ["napkin", "cup", "plate", "foil", "glove", "container", "straw", "bag"],
    "Kitchen Tools and Utensils": ["knife", "spatula", "tongs", "ladle", "whisk", "pan"],
    "Coffee": ["coffee", "espresso", "decaf"],
}


class ClassifierError(Exception):
    """Timeout, transport failure or unusable answer from a classifier"""


@dataclass
class Recommendation:
    winner_id: int
    price_saving: Optional[float]
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "list_item_id": self.winner_id,
            "price_saving": self.price_saving,
            "reason": self.reason,
        }


class Classifier(ABC):
    """
    Categorization, near-duplicate grouping and winner recommendation.

    Descriptors are plain dicts. ``group_similar`` and ``recommend`` identify
    products by the descriptor's ``list_item_id``.
    """

    @abstractmethod
    async def categorize(self, brand: str, description: str) -> Optional[str]:
        ...

    @abstractmethod
    async def group_similar(self, descriptors: Sequence[Dict[str, Any]]) -> List[List[int]]:
        ...

    @abstractmethod
    async def recommend(self, descriptors: Sequence[Dict[str, Any]]) -> Recommendation:
        ...


def _descriptor_ids(descriptors: Sequence[Dict[str, Any]]) -> List[int]:
    return [d["list_item_id"] for d in descriptors]


def _keyword_category(text: str) -> Optional[str]:
    # catalog descriptions lead with the noun ("Ketchup Fancy Tomato"),
    # so the earliest keyword decides
    words = text.lower()
    best = None
    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            match = re.search(rf"\b{re.escape(keyword)}s?\b", words)
            if match and (best is None or match.start() < best[0]):
                best = (match.start(), category)
    return best[1] if best else None


class PriceRuleClassifier(Classifier):
    """Deterministic classifier: keyword categories, cheapest total wins"""

    async def categorize(self, brand: str, description: str) -> Optional[str]:
        return _keyword_category(description or "") or _keyword_category(brand or "")

    async def group_similar(self, descriptors: Sequence[Dict[str, Any]]) -> List[List[int]]:
        groups: Dict[str, List[int]] = {}
        for descriptor in descriptors:
            key = _keyword_category(descriptor.get("description") or "") or UNCATEGORIZED
            groups.setdefault(key, []).append(descriptor["list_item_id"])
        return list(groups.values())

    async def recommend(self, descriptors: Sequence[Dict[str, Any]]) -> Recommendation:
        if not descriptors:
            raise ClassifierError("Nothing to recommend from")

        ranked = sorted(
            descriptors,
            key=lambda d: (round_money(d.get("total_price")), d["list_item_id"]),
        )
        winner = ranked[0]
        most_expensive = max(round_money(d.get("total_price")) for d in descriptors)
        saving = difference(most_expensive, winner.get("total_price"))

        reason = f"Lowest total price at {winner.get('vendor') or 'this vendor'}"
        if saving > 0:
            reason += f", saves ${saving:.2f}"

        return Recommendation(winner_id=winner["list_item_id"], price_saving=saving, reason=reason)


class GeminiClassifier(Classifier):
    """Classifier backed by Gemini structured (JSON schema) output"""

    def __init__(self, api_key: str, model: str):
        self.client = genai.Client(api_key=api_key)
        self.model = model

    async def _generate(self, prompt: str, system_instruction: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=schema,
            temperature=0.2,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[prompt],
                config=config,
            )
            data = json.loads(response.text)
        except errors.APIError as e:
            raise ClassifierError(f"Gemini call failed: {e}") from e
        except (TypeError, ValueError) as e:
            raise ClassifierError(f"Malformed Gemini response: {e}") from e

        if not isinstance(data, dict):
            raise ClassifierError("Malformed Gemini response: expected an object")
        return data

    async def categorize(self, brand: str, description: str) -> Optional[str]:
        schema = {
            "type": "object",
            "properties": {"category": {"type": "string", "enum": CATEGORIES}},
            "required": ["category"],
        }
        prompt = (
            f'Categorize the food-service item "{brand} {description}" into exactly one '
            f"of these categories: {', '.join(CATEGORIES)}. Consider the primary "
            "ingredients and the nature of the product."
        )
        data = await self._generate(
            prompt, "You classify grocery and food-service products.", schema
        )
        category = data.get("category")
        return category if category in CATEGORIES else None

    async def group_similar(self, descriptors: Sequence[Dict[str, Any]]) -> List[List[int]]:
        schema = {
            "type": "object",
            "properties": {
                "groups": {
                    "type": "array",
                    "items": {"type": "array", "items": {"type": "integer"}},
                }
            },
            "required": ["groups"],
        }
        prompt = (
            "Group these products so that each group holds items that can be compared "
            "side by side. Use the list_item_id values only.\n"
            + json.dumps(list(descriptors), default=str)
        )
        data = await self._generate(
            prompt, "You group near-duplicate products from different vendors.", schema
        )

        known = set(_descriptor_ids(descriptors))
        seen = set()
        groups = []
        for raw_group in data.get("groups") or []:
            group = []
            for item_id in raw_group or []:
                if item_id in known and item_id not in seen:
                    seen.add(item_id)
                    group.append(item_id)
            if group:
                groups.append(group)
        return groups

    async def recommend(self, descriptors: Sequence[Dict[str, Any]]) -> Recommendation:
        schema = {
            "type": "object",
            "properties": {
                "winner_id": {"type": "integer"},
                "price_saving": {"type": "number"},
                "reason": {"type": "string"},
            },
            "required": ["winner_id", "reason"],
        }
        prompt = (
            "Compare these products side by side and recommend the one to purchase. "
            "winner_id must be one of the list_item_id values. Keep the reason to 20 "
            "words or less and include the savings.\n"
            + json.dumps(list(descriptors), default=str)
        )
        data = await self._generate(
            prompt, "You are a purchasing assistant for restaurants.", schema
        )

        winner_id = data.get("winner_id")
        if winner_id not in _descriptor_ids(descriptors):
            raise ClassifierError(f"Recommended id {winner_id} is not part of the group")

        saving = data.get("price_saving")
        return Recommendation(
            winner_id=winner_id,
            price_saving=parse_amount(saving),
            reason=str(data.get("reason") or ""),
        )


def build_classifier(settings) -> Classifier:
    if settings.GEMINI_API_KEY:
        logger.info(f"Using Gemini classifier ({settings.GEMINI_MODEL})")
        return GeminiClassifier(settings.GEMINI_API_KEY, settings.GEMINI_MODEL)

    logger.info("GEMINI_API_KEY not set, using the price rule classifier")
    return PriceRuleClassifier()


async def gather_bounded(
    calls: Sequence[Callable[[], Awaitable[Any]]],
    timeout: float,
    max_concurrency: int,
) -> List[Any]:
    """
    Runs classifier calls concurrently.

    Returns one entry per call, in order: the call's result, or the
    ``ClassifierError`` it failed with. Timeouts become ``ClassifierError``.
    """
    semaphore = asyncio.Semaphore(max(max_concurrency, 1))

    async def run(call):
        async with semaphore:
            try:
                return await asyncio.wait_for(call(), timeout=timeout)
            except asyncio.TimeoutError:
                return ClassifierError(f"Classifier call timed out after {timeout}s")
            except ClassifierError as e:
                return e
            except Exception as e:
                logger.warning(f"Classifier call failed: {type(e).__name__}: {e}")
                return ClassifierError(f"Classifier call failed: {e}")

    return await asyncio.gather(*(run(call) for call in calls))
