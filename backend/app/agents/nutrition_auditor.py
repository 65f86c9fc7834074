"""
Hinglish Meal Assistant - Nutrition Auditor Agent

Looks up nutrition for a food by canonical name and portion weight.
A curated per-100g table of everyday Indian foods is checked first;
the USDA FoodData Central API is used as a fallback when an API key is
configured. Unknown foods return no data rather than a guess.
"""

import logging
from typing import Optional, Protocol

import httpx
from opik import track

from app.config import get_settings
from app.core.base_agent import BaseAgent
from app.core.errors import NutritionLookupError
from app.core.state import NutritionalInfo, NutritionLookupRequest, NutritionLookupResult

logger = logging.getLogger(__name__)

# USDA FoodData Central API
USDA_API_BASE = "https://api.nal.usda.gov/fdc/v1"

# Nutrient IDs in USDA API
MACRO_NUTRIENT_IDS = {
    "calories": 1008,  # Energy (kcal)
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,     # Carbohydrate, by difference
    "fiber": 1079,
}
VITAMIN_NUTRIENT_IDS = {
    "vitamin_a": 1106,
    "vitamin_c": 1162,
}
MINERAL_NUTRIENT_IDS = {
    "calcium": 1087,
    "iron": 1089,
    "sodium": 1093,
}


class NutritionLookup(Protocol):
    """Anything that can return nutrition for a food and a weight in grams."""

    async def lookup(self, food_name: str, grams: float) -> Optional[NutritionalInfo]:
        ...


# Per 100g: calories, protein, carbs, fat, fiber
INDIAN_FOOD_NUTRITION: dict[str, tuple[float, float, float, float, float]] = {
    # Rice dishes
    "rice": (130, 2.7, 28, 0.3, 0.4),
    "jeera rice": (150, 2.8, 28, 3.0, 0.6),
    "biryani": (170, 6.0, 22, 6.5, 1.0),
    "pulao": (150, 3.0, 25, 4.0, 1.0),
    "khichdi": (120, 4.5, 20, 2.5, 2.5),
    "poha": (130, 2.5, 25, 2.5, 1.0),
    "upma": (150, 3.5, 22, 5.0, 1.5),
    # Dal
    "lentils": (116, 9.0, 20, 0.4, 8.0),
    "moong dal": (105, 7.0, 19, 0.4, 7.6),
    "toor dal": (120, 7.0, 21, 0.4, 5.0),
    "masoor dal": (116, 9.0, 20, 0.4, 8.0),
    "chana dal": (140, 8.0, 22, 2.0, 7.0),
    "urad dal": (130, 8.0, 18, 2.0, 6.0),
    "dal makhani": (140, 6.0, 16, 6.0, 5.0),
    "chickpeas": (164, 8.9, 27, 2.6, 7.6),
    "chole": (180, 8.0, 25, 6.0, 7.0),
    "rajma": (140, 8.0, 20, 3.0, 6.0),
    "sambar": (65, 3.0, 9, 2.0, 2.5),
    "rasam": (30, 1.0, 5, 0.7, 0.7),
    # Breads
    "roti": (297, 9.8, 50, 3.7, 4.9),
    "flatbread": (326, 6.4, 45, 13, 4.0),
    "aloo paratha": (280, 5.5, 38, 12, 3.0),
    "gobi paratha": (260, 6.0, 36, 10, 4.0),
    "paneer paratha": (290, 10, 32, 14, 3.0),
    "naan": (310, 9.0, 50, 7.0, 2.0),
    "bread": (265, 9.0, 49, 3.2, 2.7),
    "idli": (130, 4.5, 28, 0.4, 1.5),
    "dosa": (168, 3.9, 29, 3.7, 1.0),
    # Dairy
    "milk": (61, 3.2, 4.8, 3.3, 0),
    "yogurt": (61, 3.5, 4.7, 3.3, 0),
    "lassi": (75, 3.0, 11, 2.3, 0),
    "raita": (60, 2.8, 5, 3.0, 0.5),
    "paneer": (265, 18, 1.2, 21, 0),
    "palak paneer": (160, 7.0, 6, 12, 2.0),
    "butter": (717, 0.9, 0.1, 81, 0),
    "ghee": (900, 0, 0, 100, 0),
    # Drinks
    "tea": (40, 1.5, 5, 1.5, 0),
    "black tea": (1, 0, 0.3, 0, 0),
    "green tea": (1, 0.2, 0, 0, 0),
    "masala chai": (50, 1.6, 7, 1.6, 0),
    "coffee": (2, 0.3, 0, 0, 0),
    "juice": (45, 0.7, 10, 0.2, 0.2),
    "water": (0, 0, 0, 0, 0),
    # Vegetables and sabzi
    "vegetable": (90, 2.5, 10, 4.5, 3.0),
    "aloo sabzi": (110, 2.0, 15, 5.0, 2.0),
    "palak sabzi": (70, 3.0, 6, 4.0, 2.5),
    "gobi sabzi": (80, 2.5, 8, 4.5, 3.0),
    "bhindi sabzi": (90, 2.0, 9, 5.0, 3.5),
    "vegetable curry": (110, 2.5, 10, 7.0, 3.0),
    "potato": (77, 2.0, 17, 0.1, 2.2),
    "tomato": (18, 0.9, 3.9, 0.2, 1.2),
    "spinach": (23, 2.9, 3.6, 0.4, 2.2),
    "cauliflower": (25, 1.9, 5, 0.3, 2.0),
    "okra": (33, 1.9, 7, 0.2, 3.2),
    "eggplant": (25, 1.0, 6, 0.2, 3.0),
    "carrot": (41, 0.9, 10, 0.2, 2.8),
    "peas": (81, 5.4, 14, 0.4, 5.7),
    "onion": (40, 1.1, 9.3, 0.1, 1.7),
    "cucumber": (15, 0.7, 3.6, 0.1, 0.5),
    "capsicum": (20, 0.9, 4.6, 0.2, 1.7),
    "fenugreek": (49, 4.4, 6, 0.9, 2.7),
    "chili": (40, 1.9, 9, 0.4, 1.5),
    "garlic": (149, 6.4, 33, 0.5, 2.1),
    "ginger": (80, 1.8, 18, 0.8, 2.0),
    "salad": (20, 1.0, 4, 0.2, 1.5),
    "soup": (40, 2.0, 6, 1.0, 1.0),
    # Fruit
    "banana": (89, 1.1, 23, 0.3, 2.6),
    "apple": (52, 0.3, 14, 0.2, 2.4),
    "fruit": (60, 0.8, 15, 0.2, 2.0),
    # Eggs, meat, fish
    "egg": (155, 13, 1.1, 11, 0),
    "chicken": (165, 31, 0, 3.6, 0),
    "chicken curry": (150, 14, 4, 9.0, 1.0),
    "mutton": (294, 25, 0, 21, 0),
    "mutton curry": (190, 14, 5, 13, 1.0),
    "fish": (206, 22, 0, 12, 0),
    "paneer curry": (200, 8.0, 8, 15, 1.5),
    # Snacks and sweets
    "samosa": (262, 4.5, 30, 14, 2.5),
    "pakora": (300, 7.0, 28, 18, 4.0),
    "dhokla": (160, 6.0, 24, 5.0, 2.0),
    "sandwich": (250, 10, 30, 10, 2.0),
    "pizza": (266, 11, 33, 10, 2.3),
    "burger": (295, 17, 24, 14, 1.3),
    "halwa": (350, 4.0, 50, 15, 1.0),
    "kheer": (125, 3.5, 18, 4.5, 0.2),
}

# Per 100g micronutrients where they matter for Indian diets
INDIAN_FOOD_MICRONUTRIENTS: dict[str, dict[str, dict[str, float]]] = {
    "milk": {"vitamins": {"vitamin_a": 46}, "minerals": {"calcium": 113}},
    "yogurt": {"vitamins": {"vitamin_a": 27}, "minerals": {"calcium": 121}},
    "paneer": {"minerals": {"calcium": 208}},
    "spinach": {"vitamins": {"vitamin_a": 469, "vitamin_c": 28}, "minerals": {"iron": 2.7, "calcium": 99}},
    "palak paneer": {"vitamins": {"vitamin_a": 180}, "minerals": {"iron": 1.5, "calcium": 150}},
    "lentils": {"minerals": {"iron": 3.3}},
    "chickpeas": {"minerals": {"iron": 2.9}},
    "egg": {"vitamins": {"vitamin_a": 160}, "minerals": {"iron": 1.2}},
    "tomato": {"vitamins": {"vitamin_c": 14}},
    "banana": {"vitamins": {"vitamin_c": 8.7}},
    "apple": {"vitamins": {"vitamin_c": 4.6}},
}

# Other spellings of foods in the curated table
FOOD_ALIASES: dict[str, str] = {
    "plain rice": "rice",
    "chawal": "rice",
    "dal": "lentils",
    "chapati": "roti",
    "phulka": "roti",
    "paratha": "flatbread",
    "plain paratha": "flatbread",
    "dahi": "yogurt",
    "doodh": "milk",
    "dudh": "milk",
    "chai": "tea",
    "milk tea": "tea",
    "sabzi": "vegetable",
    "curry": "vegetable curry",
    "anda": "egg",
    "eggs": "egg",
    "chole masala": "chole",
}


class NutritionAuditor(BaseAgent[NutritionLookupRequest, NutritionLookupResult]):
    """
    Nutrition source for the meal pipeline.

    Lookup order:
    1. In-process cache of per-100g values
    2. Curated Indian food table (with aliases)
    3. USDA FoodData Central search, when an API key is configured

    Values are stored per 100g and scaled to the requested grams. Network
    failures reaching USDA are retried; error responses and unparseable
    payloads count as "no data".

    Example:
        auditor = NutritionAuditor()
        info = await auditor.lookup("roti", 60)
    """

    retryable_errors = (httpx.TransportError,)

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = 3,
        retry_delay: float = 0.5,
    ):
        super().__init__(max_retries=max_retries, retry_delay=retry_delay)
        settings = get_settings()
        self.api_key = settings.usda_api_key if api_key is None else api_key
        self.timeout = timeout or settings.nutrition_lookup_timeout_seconds
        self._transport = transport
        self._cache: dict[str, NutritionalInfo] = {}

        if not self.api_key:
            logger.info("USDA API key not configured - using curated nutrition data only")

    @property
    def name(self) -> str:
        return "NutritionAuditor"

    async def lookup(self, food_name: str, grams: float) -> Optional[NutritionalInfo]:
        """
        Nutrition for ``grams`` of a food, or None when the food is unknown.

        Raises:
            NutritionLookupError: If the source fails on every attempt
        """
        result = await self.execute_with_retry(NutritionLookupRequest(food_name=food_name, grams=grams))
        if not result.success:
            raise NutritionLookupError(
                food_name, f"{result.error} (attempts: {result.attempts})"
            )
        return result.output.nutrition

    @track(name="nutrition_auditor.process")
    async def process(self, input: NutritionLookupRequest) -> NutritionLookupResult:
        key = self._canonical_key(input.food_name)

        per_100g, source = self._from_cache(key)
        if per_100g is None:
            per_100g, source = self._from_curated(key)
        if per_100g is None and self.api_key:
            per_100g = await self._fetch_from_usda(key)
            source = "usda" if per_100g is not None else "none"
        if per_100g is None:
            logger.warning(f"No nutrition data for '{input.food_name}'")
            return NutritionLookupResult(food_name=input.food_name, grams=input.grams)

        self._cache[key] = per_100g

        return NutritionLookupResult(
            food_name=input.food_name,
            grams=input.grams,
            nutrition=per_100g.scaled(input.grams / 100.0),
            source=source,
        )

    @staticmethod
    def _canonical_key(food_name: str) -> str:
        key = " ".join(food_name.lower().split())
        return FOOD_ALIASES.get(key, key)

    def _from_cache(self, key: str) -> tuple[Optional[NutritionalInfo], str]:
        if key in self._cache:
            return self._cache[key], "cache"
        return None, "none"

    @staticmethod
    def _from_curated(key: str) -> tuple[Optional[NutritionalInfo], str]:
        values = INDIAN_FOOD_NUTRITION.get(key)
        if values is None:
            return None, "none"

        calories, protein, carbs, fat, fiber = values
        micronutrients = INDIAN_FOOD_MICRONUTRIENTS.get(key, {})
        return NutritionalInfo(
            calories=calories,
            protein=protein,
            carbs=carbs,
            fat=fat,
            fiber=fiber,
            vitamins=dict(micronutrients.get("vitamins", {})),
            minerals=dict(micronutrients.get("minerals", {})),
        ), "curated"

    async def _fetch_from_usda(self, food_name: str) -> Optional[NutritionalInfo]:
        """Fetch per-100g nutrition from the USDA FoodData Central search API."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{USDA_API_BASE}/foods/search",
                    params={
                        "api_key": self.api_key,
                        "query": food_name,
                        "pageSize": 5,
                        "dataType": ["Survey (FNDDS)", "Foundation", "SR Legacy"],
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TransportError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"USDA API error for '{food_name}': {e}")
            return None

        foods = data.get("foods", [])
        if not foods:
            logger.debug(f"No USDA results for: {food_name}")
            return None

        # Search results carry nutrients, so no second request is needed
        food = foods[0]
        nutrient_values: dict[int, float] = {}
        for nutrient in food.get("foodNutrients", []):
            nutrient_id = nutrient.get("nutrientId")
            if nutrient_id is not None:
                nutrient_values[nutrient_id] = float(nutrient.get("value") or 0)

        macros = {
            field: nutrient_values[nutrient_id]
            for field, nutrient_id in MACRO_NUTRIENT_IDS.items()
            if nutrient_id in nutrient_values
        }
        if not macros:
            return None

        logger.debug(f"USDA match for '{food_name}': {food.get('description')}")

        return NutritionalInfo(
            **macros,
            vitamins={
                name: nutrient_values[nutrient_id]
                for name, nutrient_id in VITAMIN_NUTRIENT_IDS.items()
                if nutrient_id in nutrient_values
            },
            minerals={
                name: nutrient_values[nutrient_id]
                for name, nutrient_id in MINERAL_NUTRIENT_IDS.items()
                if nutrient_id in nutrient_values
            },
        )
