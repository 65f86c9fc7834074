"""
Hinglish Meal Assistant - Cultural Context Resolver

Indian-cuisine knowledge used to turn spoken portions into grams and to
account for how a dish was cooked and where it comes from:
- cooking method catalog with nutrition multipliers
- Indian serving units (katori, glass, roti...) and their weights
- regional cooking profiles
- conversion of Western measures to Indian references
"""

import logging
import re
from typing import Optional

from app.core.state import CookingMethod, CookingMethodInfo, PortionSize, RegionalVariation

logger = logging.getLogger(__name__)


# Declaration order decides which method wins when several keywords match
COOKING_METHODS: tuple[CookingMethodInfo, ...] = (
    CookingMethodInfo(
        name="tadka",
        description="Tempering with spices in hot oil/ghee",
        keywords=["tadka", "tempering", "chaunk", "baghar"],
        nutrition_multiplier=1.1,
        common_ingredients=["cumin", "mustard seeds", "curry leaves", "hing"],
    ),
    CookingMethodInfo(
        name="bhuna",
        description="Dry roasting/sautéing until moisture evaporates",
        keywords=["bhuna", "bhuno", "dry roast", "sauté"],
        nutrition_multiplier=1.0,
        common_ingredients=["onion", "ginger-garlic", "tomato"],
    ),
    CookingMethodInfo(
        name="dum",
        description="Slow cooking in sealed pot with steam",
        keywords=["dum", "slow cooked", "sealed pot", "steam"],
        nutrition_multiplier=1.2,
        common_ingredients=["whole spices", "saffron", "rose water"],
    ),
    CookingMethodInfo(
        name="tawa",
        description="Cooked on flat griddle/pan",
        keywords=["tawa", "griddle", "flat pan", "roti"],
        nutrition_multiplier=1.0,
        common_ingredients=["minimal oil", "salt"],
    ),
    CookingMethodInfo(
        name="tandoor",
        description="Clay oven high-heat cooking",
        keywords=["tandoor", "clay oven", "high heat", "charred"],
        nutrition_multiplier=0.9,
        common_ingredients=["yogurt marinade", "garam masala"],
    ),
    CookingMethodInfo(
        name="steamed",
        description="Cooked with steam without oil",
        keywords=["steamed", "steam", "idli", "dhokla"],
        nutrition_multiplier=0.8,
        common_ingredients=["minimal spices", "fermented"],
    ),
    CookingMethodInfo(
        name="fried",
        description="Deep fried in oil",
        keywords=["fried", "deep fried", "tel mein", "crispy"],
        nutrition_multiplier=1.5,
        common_ingredients=["oil", "salt", "spices"],
    ),
)

SIMPLE_COOKING = CookingMethod(
    name="simple",
    description="Basic cooking method",
    nutrition_multiplier=1.0,
    common_ingredients=["basic spices"],
)

# Grams per Indian serving unit
INDIAN_MEASUREMENTS: dict[str, float] = {
    "katori": 150.0,   # small bowl
    "glass": 250.0,
    "roti": 30.0,      # medium roti
    "spoon": 15.0,     # tablespoon
    "pinch": 1.0,
    "handful": 50.0,
    "cup": 200.0,      # Indian cup
    "plate": 300.0,
    "bowl": 150.0,
    "portion": 150.0,
    "piece": 50.0,
    "slice": 30.0,
    "gram": 1.0,
    "grams": 1.0,
    "g": 1.0,
    "kg": 1000.0,
    "ml": 1.0,
    "liter": 1000.0,
    "litre": 1000.0,
}

DEFAULT_UNIT = "katori"

SINGLE_UNIT_REFERENCES: dict[str, str] = {
    "katori": "1 katori (small bowl)",
    "glass": "1 glass",
    "roti": "1 roti",
    "plate": "1 plate serving",
}

# Default serving spoken as a portion description, by canonical food name
DEFAULT_SERVINGS: dict[str, str] = {
    "roti": "2 roti",
    "milk": "1 glass",
    "water": "1 glass",
    "lassi": "1 glass",
    "juice": "1 glass",
    "tea": "1 cup",
    "masala chai": "1 cup",
    "coffee": "1 cup",
    "vegetable": "0.5 katori",
    "aloo sabzi": "0.5 katori",
    "egg": "1 piece",
}
DEFAULT_SERVING = "1 katori"

# Checked in order; anything unmatched is north
REGION_LOCATIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("south", ("south", "tamil", "kerala", "karnataka", "chennai", "bangalore", "hyderabad")),
    ("west", ("west", "gujarat", "maharashtra", "mumbai", "pune", "goa")),
    ("east", ("east", "bengal", "odisha", "kolkata", "bhubaneswar")),
)
DEFAULT_REGION = "north"

REGIONAL_STYLES: dict[str, dict] = {
    "north": {
        "cooking_style": "rich_gravy",
        "common_ingredients": ["cream", "butter", "paneer", "wheat"],
        "spice_level": "medium",
    },
    "south": {
        "cooking_style": "coconut_based",
        "common_ingredients": ["coconut", "curry leaves", "tamarind", "rice"],
        "spice_level": "high",
    },
    "west": {
        "cooking_style": "sweet_savory",
        "common_ingredients": ["jaggery", "peanuts", "sesame", "gram flour"],
        "spice_level": "medium",
    },
    "east": {
        "cooking_style": "fish_rice",
        "common_ingredients": ["fish", "rice", "mustard oil", "poppy seeds"],
        "spice_level": "mild",
    },
}

REGIONAL_NUTRITION_ADJUSTMENTS: dict[str, dict[str, float]] = {
    "south": {"fiber": 1.2, "fat": 1.1},
    "north": {"fat": 1.3, "protein": 1.1},
    "west": {"carbs": 1.2, "fiber": 1.1},
    "east": {"protein": 1.2, "fat": 1.1},
}

FOOD_COMBINATIONS: dict[str, list[str]] = {
    "dal": ["rice", "roti", "chawal", "chapati"],
    "sabzi": ["roti", "paratha", "rice"],
    "curry": ["rice", "naan", "roti", "biryani"],
    "rice": ["dal", "curry", "sambar", "rasam"],
    "roti": ["dal", "sabzi", "curry"],
    "idli": ["sambar", "chutney", "rasam"],
    "dosa": ["sambar", "chutney", "potato curry"],
    "biryani": ["raita", "pickle", "boiled egg"],
}

GRAMS_PER_OUNCE = 28.35
GRAMS_PER_POUND = 453.59

_QUANTITY_WITH_UNIT = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text) is not None


class CulturalContextResolver:
    """
    Resolves portions, cooking styles and regional context for Indian food.

    Example:
        resolver = CulturalContextResolver()
        resolver.estimate_portion("rice", "2 katori").quantity  # 300.0
        resolver.identify_cooking_style("tadka dal").name        # "tadka"
    """

    # === Cooking methods ===

    def identify_cooking_style(self, description: str) -> CookingMethod:
        """Return the first catalog method named in the description, else simple."""
        text = (description or "").lower()
        for method in COOKING_METHODS:
            if any(_contains_phrase(text, keyword) for keyword in method.keywords):
                return method.to_cooking_method()
        return SIMPLE_COOKING

    def get_cooking_method_info(self, name: str) -> Optional[CookingMethodInfo]:
        name = (name or "").lower().strip()
        return next((m for m in COOKING_METHODS if m.name == name), None)

    def is_indian_cooking_method(self, text: str) -> bool:
        text = (text or "").lower()
        return any(
            _contains_phrase(text, keyword)
            for method in COOKING_METHODS
            for keyword in method.keywords
        )

    # === Portions ===

    def estimate_portion(self, food_name: str, description: str) -> PortionSize:
        """Convert a spoken portion ("2 katori", "ek glass") to grams."""
        text = (description or "").lower()
        quantity = 1.0
        unit = None

        for match in _QUANTITY_WITH_UNIT.finditer(text):
            if match.group(2) in INDIAN_MEASUREMENTS:
                quantity = float(match.group(1))
                unit = match.group(2)
                break

        if unit is None:
            unit = next(
                (u for u in INDIAN_MEASUREMENTS if _contains_phrase(text, u)),
                DEFAULT_UNIT,
            )

        grams = quantity * INDIAN_MEASUREMENTS[unit]

        confidence = 0.5
        if unit in text:
            confidence += 0.3
        if any(ch.isdigit() for ch in text):
            confidence += 0.2
        confidence = max(0.0, min(1.0, confidence))

        logger.debug(f"Portion for {food_name}: '{description}' -> {grams:.0f}g")

        return PortionSize(
            quantity=grams,
            unit="grams",
            indian_reference=self._indian_reference(quantity, unit),
            confidence_score=confidence,
        )

    @staticmethod
    def _indian_reference(quantity: float, unit: str) -> str:
        if quantity == 1.0:
            return SINGLE_UNIT_REFERENCES.get(unit, f"1 {unit}")
        return f"{quantity:.1f} {unit}"

    def default_portion_description(self, food_name: str) -> str:
        """Typical serving used when the user did not say how much."""
        return DEFAULT_SERVINGS.get((food_name or "").lower(), DEFAULT_SERVING)

    def convert_to_indian_reference(self, quantity: float, unit: str, food_type: str) -> str:
        """Express a Western measure the way an Indian kitchen would."""
        unit = (unit or "").lower()
        food = (food_type or "").lower()
        is_rice_or_dal = "rice" in food or "dal" in food

        if unit == "cup":
            if is_rice_or_dal:
                return f"{quantity * 1.5:.1f} katori"
            return f"{quantity:.1f} cup"
        if unit in ("tablespoon", "tbsp"):
            return f"{quantity:.1f} spoon"
        if unit in ("teaspoon", "tsp"):
            return f"{quantity / 3:.1f} spoon"
        if unit in ("ounce", "oz", "pound", "lb"):
            per_unit = GRAMS_PER_OUNCE if unit in ("ounce", "oz") else GRAMS_PER_POUND
            grams = quantity * per_unit
            if is_rice_or_dal:
                return f"{grams / INDIAN_MEASUREMENTS['katori']:.1f} katori"
            if "roti" in food or "bread" in food:
                return f"{grams / INDIAN_MEASUREMENTS['roti']:.0f} roti"
            return f"{grams:.0f}g"
        return f"{quantity} {unit}"

    # === Regions ===

    def detect_region(self, location: str) -> str:
        location = (location or "").lower()
        for region, markers in REGION_LOCATIONS:
            if any(marker in location for marker in markers):
                return region
        return DEFAULT_REGION

    def get_regional_context(self, location: str, dish: str) -> RegionalVariation:
        """Regional cooking profile for a dish eaten at a location."""
        region = self.detect_region(location)
        style = REGIONAL_STYLES[region]

        return RegionalVariation(
            region=f"{region.capitalize()} India",
            dish_name=dish,
            common_ingredients=list(style["common_ingredients"]),
            cooking_style=CookingMethod(
                name=style["cooking_style"],
                description=f"Regional {region} Indian cooking style",
                nutrition_multiplier=1.0,
                common_ingredients=list(style["common_ingredients"]),
            ),
            spice_level=style["spice_level"],
            nutrition_adjustments=dict(REGIONAL_NUTRITION_ADJUSTMENTS[region]),
        )

    def get_food_combinations(self, category: str) -> list[str]:
        """Traditional accompaniments for a dish."""
        name = (category or "").lower()
        for key, combinations in FOOD_COMBINATIONS.items():
            if key in name:
                return list(combinations)
        return []
