"""
Hinglish Meal Assistant - Meal Pipeline Pydantic Schema

This module defines the type-safe data structures handed between the
stages of the spoken-meal pipeline: extraction, cultural resolution,
nutrition lookup and meal assembly.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


KCAL_PER_GRAM_PROTEIN = 4.0
KCAL_PER_GRAM_CARBS = 4.0
KCAL_PER_GRAM_FAT = 9.0


class MealType(str, Enum):
    """Categorization of meal timing."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @classmethod
    def from_hour(cls, hour: int) -> "MealType":
        """Bucket a local hour of day into a meal type."""
        if 6 <= hour < 11:
            return cls.BREAKFAST
        if 11 <= hour < 16:
            return cls.LUNCH
        if 16 <= hour < 19:
            return cls.SNACK
        return cls.DINNER


# === Extraction ===

class FoodQuantity(BaseModel):
    """Amount spoken alongside a food item."""
    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., gt=0, description="Numeric amount")
    unit: str = Field(..., description="Unit word (katori, glass, roti, piece, portion...)")

    def describe(self) -> str:
        amount = int(self.amount) if self.amount.is_integer() else self.amount
        return f"{amount} {self.unit}"


class ExtractedFoodItem(BaseModel):
    """A single food recognized in an utterance."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Canonical food name")
    original_text: str = Field(..., description="Words as spoken by the user")
    quantity: Optional[FoodQuantity] = None
    cooking_method: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)


class FoodAmbiguity(BaseModel):
    """A food term with more than one plausible meaning."""
    model_config = ConfigDict(frozen=True)

    term: str = Field(..., description="Term as spoken")
    possible_meanings: list[str] = Field(..., min_length=1, description="Ordered candidate dishes")
    context: str = Field(default="", description="Up to two tokens either side of the term")


class FoodExtractionResult(BaseModel):
    """Output of food item extraction."""
    items: list[ExtractedFoodItem] = Field(default_factory=list)
    ambiguities: list[FoodAmbiguity] = Field(default_factory=list)
    original_text: str = ""
    processed_text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.ambiguities)


class NutritionQueryType(str, Enum):
    """Kind of nutrition question asked in a turn."""
    CALORIE = "calorie"
    PROTEIN = "protein"
    HEALTH = "health"
    WEIGHT_MANAGEMENT = "weight_management"
    MEDICAL_CONCERN = "medical_concern"
    GENERAL = "general"


class NutritionQueryResult(BaseModel):
    """Parsed nutrition question."""
    query_type: NutritionQueryType
    food_items: list[ExtractedFoodItem] = Field(default_factory=list)
    nutrition_concerns: list[str] = Field(default_factory=list)
    original_query: str = ""
    processed_query: str = ""
    requires_clarification: bool = False


# === Cultural context ===

class CookingMethod(BaseModel):
    """Cooking technique and its effect on nutrition."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    nutrition_multiplier: float = Field(default=1.0, ge=0.0)
    common_ingredients: list[str] = Field(default_factory=list)


class CookingMethodInfo(CookingMethod):
    """Catalog entry for a cooking method, with the words that identify it."""
    keywords: list[str] = Field(default_factory=list)

    def to_cooking_method(self) -> CookingMethod:
        return CookingMethod(
            name=self.name,
            description=self.description,
            nutrition_multiplier=self.nutrition_multiplier,
            common_ingredients=list(self.common_ingredients),
        )


class PortionSize(BaseModel):
    """Portion resolved to grams."""
    quantity: float = Field(..., ge=0, description="Portion weight in grams")
    unit: str = "grams"
    indian_reference: str = Field(..., description="Human-readable Indian serving reference")
    confidence_score: float = Field(..., ge=0.0, le=1.0)


class RegionalVariation(BaseModel):
    """Regional cooking profile for a dish."""
    region: str
    dish_name: str
    common_ingredients: list[str] = Field(default_factory=list)
    cooking_style: CookingMethod
    spice_level: str = "medium"
    nutrition_adjustments: dict[str, float] = Field(default_factory=dict)


class CulturalFoodContext(BaseModel):
    """Cultural details attached to a resolved food item."""
    cooking_method: CookingMethod
    indian_reference: str
    regional_variation: Optional[RegionalVariation] = None


# === Nutrition ===

class NutritionalInfo(BaseModel):
    """Nutrient amounts for some quantity of food."""
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0, description="grams")
    carbs: float = Field(default=0.0, ge=0, description="grams")
    fat: float = Field(default=0.0, ge=0, description="grams")
    fiber: float = Field(default=0.0, ge=0, description="grams")
    vitamins: dict[str, float] = Field(default_factory=dict)
    minerals: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "NutritionalInfo":
        return cls()

    def scaled(self, factor: float) -> "NutritionalInfo":
        """Return a copy with every amount multiplied by ``factor``."""
        return NutritionalInfo(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
            fiber=self.fiber * factor,
            vitamins={k: v * factor for k, v in self.vitamins.items()},
            minerals={k: v * factor for k, v in self.minerals.items()},
        )

    def __add__(self, other: "NutritionalInfo") -> "NutritionalInfo":
        if not isinstance(other, NutritionalInfo):
            return NotImplemented
        vitamins = dict(self.vitamins)
        for key, value in other.vitamins.items():
            vitamins[key] = vitamins.get(key, 0.0) + value
        minerals = dict(self.minerals)
        for key, value in other.minerals.items():
            minerals[key] = minerals.get(key, 0.0) + value
        return NutritionalInfo(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            fiber=self.fiber + other.fiber,
            vitamins=vitamins,
            minerals=minerals,
        )


class MacroBreakdown(BaseModel):
    """Share of calories from each macronutrient, in percent."""
    protein_percentage: float = 0.0
    carbs_percentage: float = 0.0
    fat_percentage: float = 0.0

    @classmethod
    def from_totals(cls, calories: float, protein: float, carbs: float, fat: float) -> "MacroBreakdown":
        if calories <= 0:
            return cls()
        return cls(
            protein_percentage=protein * KCAL_PER_GRAM_PROTEIN / calories * 100,
            carbs_percentage=carbs * KCAL_PER_GRAM_CARBS / calories * 100,
            fat_percentage=fat * KCAL_PER_GRAM_FAT / calories * 100,
        )


class NutritionalSummary(BaseModel):
    """Aggregated nutrition for a whole meal."""
    total_calories: float = 0.0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0
    total_fiber: float = 0.0
    vitamins: dict[str, float] = Field(default_factory=dict)
    minerals: dict[str, float] = Field(default_factory=dict)
    macro_breakdown: MacroBreakdown = Field(default_factory=MacroBreakdown)

    @classmethod
    def from_nutrition(cls, totals: NutritionalInfo) -> "NutritionalSummary":
        return cls(
            total_calories=totals.calories,
            total_protein=totals.protein,
            total_carbs=totals.carbs,
            total_fat=totals.fat,
            total_fiber=totals.fiber,
            vitamins=dict(totals.vitamins),
            minerals=dict(totals.minerals),
            macro_breakdown=MacroBreakdown.from_totals(
                totals.calories, totals.protein, totals.carbs, totals.fat
            ),
        )


class DetailedFoodItem(BaseModel):
    """A food item fully resolved to grams and nutrition."""
    model_config = ConfigDict(frozen=True)

    name: str
    original_text: str
    quantity: float = Field(..., gt=0, description="Display amount")
    unit: str = Field(..., description="Display unit")
    grams: float = Field(..., ge=0)
    nutrition: NutritionalInfo
    cooking_method: CookingMethod
    confidence: float = Field(..., ge=0.0, le=1.0)
    indian_reference: str
    cultural_context: Optional[CulturalFoodContext] = None


class MealData(BaseModel):
    """A logged meal."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str = Field(..., min_length=1)
    timestamp: datetime
    meal_type: MealType
    foods: list[DetailedFoodItem] = Field(..., min_length=1)
    nutrition: NutritionalSummary
    voice_description: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)


# === Meal outcomes ===

class MealLogged(BaseModel):
    """The utterance resolved into a complete meal."""
    kind: Literal["meal_logged"] = "meal_logged"
    meal: MealData
    confirmation: str
    unresolved_items: list[str] = Field(default_factory=list)


class ClarificationNeeded(BaseModel):
    """The utterance mentions dishes that need the user to pick a meaning."""
    kind: Literal["clarification_needed"] = "clarification_needed"
    questions: list[str]
    ambiguities: list[FoodAmbiguity]
    extraction: FoodExtractionResult


class MealNotUnderstood(BaseModel):
    """No usable food could be resolved from the utterance."""
    kind: Literal["meal_not_understood"] = "meal_not_understood"
    message: str
    extraction: FoodExtractionResult
    unresolved_items: list[str] = Field(default_factory=list)


MealOutcome = Annotated[
    Union[MealLogged, ClarificationNeeded, MealNotUnderstood],
    Field(discriminator="kind"),
]


# === Agent Input/Output Models ===

class NutritionLookupRequest(BaseModel):
    """Input to the bundled nutrition source."""
    food_name: str = Field(..., min_length=1)
    grams: float = Field(..., ge=0)


class NutritionLookupResult(BaseModel):
    """Output of the bundled nutrition source."""
    food_name: str
    grams: float
    nutrition: Optional[NutritionalInfo] = None
    source: str = Field(default="none", description="curated, usda, cache or none")

    @property
    def found(self) -> bool:
        return self.nutrition is not None
