"""
Hinglish Meal Assistant - Meal Assembler

The central coordinator that turns one spoken utterance into a logged
meal. Runs extraction, stops for clarification when a dish name is
ambiguous, resolves each item to grams and nutrition, and aggregates
the result.
"""

import logging
import time
from datetime import datetime
from typing import Mapping, Optional

from opik import track

from app.agents.ambiguity_resolver import AmbiguityResolver
from app.agents.cultural_context import SIMPLE_COOKING, CulturalContextResolver
from app.agents.hinglish_processor import HinglishProcessor
from app.agents.nutrition_auditor import NutritionAuditor, NutritionLookup
from app.config import get_settings
from app.core.state import (
    ClarificationNeeded,
    CookingMethod,
    CulturalFoodContext,
    DetailedFoodItem,
    ExtractedFoodItem,
    FoodExtractionResult,
    MealData,
    MealLogged,
    MealNotUnderstood,
    MealOutcome,
    MealType,
    NutritionalInfo,
    NutritionalSummary,
)

logger = logging.getLogger(__name__)

NO_FOOD_MESSAGE = "Koi khana nahi mila description mein. Kripaya phir se batayiye."
UNRESOLVED_MESSAGE = "Maaf kijiye, hum ye khana samajh nahi paye. Kya aap aur detail de sakte hain?"


class MealAssembler:
    """
    Coordinator for the spoken-meal pipeline.

    1. **EXTRACT**: HinglishProcessor finds food items and ambiguities.
       Ambiguities that the caller has not already answered end the turn
       with a ClarificationNeeded result.
    2. **RESOLVE**: for each item, CulturalContextResolver turns the spoken
       portion into grams and the nutrition lookup supplies nutrients. The
       cooking-method multiplier scales calories and fat.
    3. **SUMMARIZE**: resolved items are totalled into a MealData with a
       Hinglish confirmation.

    Usage:
        assembler = MealAssembler()
        outcome = await assembler.assemble_meal(
            "Maine breakfast mein 2 roti aur ek glass milk liya",
            user_id="user_123",
        )
    """

    def __init__(
        self,
        processor: Optional[HinglishProcessor] = None,
        ambiguity_resolver: Optional[AmbiguityResolver] = None,
        cultural_resolver: Optional[CulturalContextResolver] = None,
        nutrition_lookup: Optional[NutritionLookup] = None,
    ):
        self.settings = get_settings()
        self.processor = processor or HinglishProcessor()
        self.ambiguity_resolver = ambiguity_resolver or AmbiguityResolver(self.processor.translator)
        self.cultural_resolver = cultural_resolver or CulturalContextResolver()
        self.nutrition_lookup = nutrition_lookup or NutritionAuditor()

    @track(name="meal_assembler.assemble_meal")
    async def assemble_meal(
        self,
        utterance: str,
        user_id: str,
        nutrition_lookup: Optional[NutritionLookup] = None,
        clarifications: Optional[Mapping[str, str]] = None,
        timestamp: Optional[datetime] = None,
        location: Optional[str] = None,
    ) -> MealOutcome:
        """
        Turn an utterance into a meal outcome.

        Args:
            utterance: What the user said
            user_id: Owner of the meal
            nutrition_lookup: Overrides the assembler's nutrition source
            clarifications: Answers to earlier clarification questions,
                keyed by the ambiguous term ("dal" -> "moong dal")
            timestamp: Meal time; decides the meal type. Defaults to now.
            location: Where the user is, for regional context

        Returns:
            MealLogged, ClarificationNeeded or MealNotUnderstood
        """
        start_time = time.time()
        lookup = nutrition_lookup or self.nutrition_lookup
        timestamp = timestamp or datetime.now()
        location = location or self.settings.default_region_location

        extraction = self.processor.extract_food_items(utterance)

        if not extraction.items:
            logger.info(f"No food items found for user {user_id}")
            return MealNotUnderstood(message=NO_FOOD_MESSAGE, extraction=extraction)

        if clarifications:
            extraction = self.ambiguity_resolver.apply_clarifications(extraction, clarifications)

        if extraction.is_ambiguous:
            questions = self.ambiguity_resolver.generate_clarification_questions(extraction.ambiguities)
            logger.info(f"Asking {len(questions)} clarification questions for user {user_id}")
            return ClarificationNeeded(
                questions=questions,
                ambiguities=extraction.ambiguities,
                extraction=extraction,
            )

        resolved, unresolved = await self._resolve_items(extraction, lookup, location)

        if not resolved:
            logger.warning(f"None of {len(extraction.items)} food items could be resolved")
            return MealNotUnderstood(
                message=UNRESOLVED_MESSAGE,
                extraction=extraction,
                unresolved_items=unresolved,
            )

        meal = self._build_meal(extraction, resolved, user_id, utterance, timestamp)
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Logged {meal.meal_type.value} for user {user_id}: {len(resolved)} items, "
            f"{meal.nutrition.total_calories:.0f} kcal in {latency_ms}ms"
        )

        return MealLogged(
            meal=meal,
            confirmation=self.generate_spoken_confirmation(meal),
            unresolved_items=unresolved,
        )

    async def _resolve_items(
        self,
        extraction: FoodExtractionResult,
        lookup: NutritionLookup,
        location: str,
    ) -> tuple[list[DetailedFoodItem], list[str]]:
        resolved: list[DetailedFoodItem] = []
        unresolved: list[str] = []

        for item in extraction.items:
            amount, unit, description = self._portion_words(item)
            portion = self.cultural_resolver.estimate_portion(item.name, description)
            cooking_method = self._cooking_method(item)

            try:
                nutrition = await lookup.lookup(item.name, portion.quantity)
            except Exception as e:
                logger.warning(f"Nutrition lookup failed for '{item.name}': {e}")
                nutrition = None

            if nutrition is None:
                unresolved.append(item.name)
                continue

            nutrition = self._apply_cooking_multiplier(nutrition, cooking_method)
            regional = (
                self.cultural_resolver.get_regional_context(location, item.name) if location else None
            )

            resolved.append(DetailedFoodItem(
                name=item.name,
                original_text=item.original_text,
                quantity=amount,
                unit=unit,
                grams=portion.quantity,
                nutrition=nutrition,
                cooking_method=cooking_method,
                confidence=item.confidence,
                indian_reference=portion.indian_reference,
                cultural_context=CulturalFoodContext(
                    cooking_method=cooking_method,
                    indian_reference=portion.indian_reference,
                    regional_variation=regional,
                ),
            ))

        return resolved, unresolved

    def _portion_words(self, item: ExtractedFoodItem) -> tuple[float, str, str]:
        """Display amount, unit and portion description for an item."""
        if item.quantity is not None:
            return item.quantity.amount, item.quantity.unit, item.quantity.describe()

        description = self.cultural_resolver.default_portion_description(item.name)
        amount, unit = description.split(maxsplit=1)
        return float(amount), unit, description

    def _cooking_method(self, item: ExtractedFoodItem) -> CookingMethod:
        if item.cooking_method:
            info = self.cultural_resolver.get_cooking_method_info(item.cooking_method)
            if info is not None:
                return info.to_cooking_method()
        return SIMPLE_COOKING

    @staticmethod
    def _apply_cooking_multiplier(nutrition: NutritionalInfo, method: CookingMethod) -> NutritionalInfo:
        multiplier = method.nutrition_multiplier
        if multiplier == 1.0:
            return nutrition
        return nutrition.model_copy(update={
            "calories": nutrition.calories * multiplier,
            "fat": nutrition.fat * multiplier,
        })

    def _build_meal(
        self,
        extraction: FoodExtractionResult,
        foods: list[DetailedFoodItem],
        user_id: str,
        utterance: str,
        timestamp: datetime,
    ) -> MealData:
        totals = NutritionalInfo.empty()
        for food in foods:
            totals = totals + food.nutrition

        # Unresolved items count against confidence
        confidence = sum(food.confidence for food in foods) / len(extraction.items)

        return MealData(
            user_id=user_id,
            timestamp=timestamp,
            meal_type=MealType.from_hour(timestamp.hour),
            foods=foods,
            nutrition=NutritionalSummary.from_nutrition(totals),
            voice_description=utterance,
            confidence_score=max(0.0, min(1.0, confidence)),
        )

    @staticmethod
    def generate_spoken_confirmation(meal: MealData) -> str:
        """Hinglish sentence read back to the user after logging."""
        names = ", ".join(food.name for food in meal.foods)
        summary = meal.nutrition
        return (
            f"Aapka {meal.meal_type.value} log ho gaya: {names}. "
            f"Total {summary.total_calories:.0f} calories hain. "
            f"Protein {summary.total_protein:.1f}g, Carbs {summary.total_carbs:.1f}g, "
            f"Fat {summary.total_fat:.1f}g hai."
        )
