"""
Hinglish Meal Assistant - Hinglish Processor

Extracts food items, quantities and cooking methods from a spoken
Hinglish utterance, and classifies nutrition questions.

This is the first stage of the meal pipeline: everything downstream
works on the canonical English names it produces.
"""

import logging
import re
from typing import Optional

from app.core.state import (
    ExtractedFoodItem,
    FoodAmbiguity,
    FoodExtractionResult,
    FoodQuantity,
    NutritionQueryResult,
    NutritionQueryType,
)
from app.core.text import BilingualTranslator, TextNormalizer
from app.core.vocabulary import (
    AMBIGUOUS_TERMS,
    COMPOUND_FOODS,
    COOKING_METHOD_TOKENS,
    DESCRIPTIVE_QUANTITIES,
    FOOD_TOKENS,
    HINDI_TO_ENGLISH,
    NUMBER_WORDS,
    NUTRITION_CONCERNS,
    QUANTITY_UNITS,
    STOP_WORDS,
)

logger = logging.getLogger(__name__)

# Items below this confidence make a nutrition question ask for clarification
CLARIFICATION_CONFIDENCE_THRESHOLD = 0.7

BASE_CONFIDENCE = 0.5
KNOWN_TERM_BONUS = 0.3
QUANTITY_BONUS = 0.1
COOKING_METHOD_BONUS = 0.1

DEFAULT_COUNT_UNIT = "piece"
DESCRIPTIVE_UNIT = "portion"

# Checked in order; first match decides the query type
QUERY_TYPE_KEYWORDS: tuple[tuple[NutritionQueryType, tuple[str, ...]], ...] = (
    (NutritionQueryType.CALORIE, ("calorie",)),
    (NutritionQueryType.PROTEIN, ("protein",)),
    (NutritionQueryType.HEALTH, ("healthy", "sehatmand")),
    (NutritionQueryType.WEIGHT_MANAGEMENT, ("weight", "vajan")),
    (NutritionQueryType.MEDICAL_CONCERN, ("diabetes", "sugar")),
)

_DIGITS = re.compile(r"\d+(?:\.\d+)?")


class HinglishProcessor:
    """
    Turns Hinglish text into structured food items.

    Processing steps:
    1. Normalize and translate the utterance to the English vocabulary
    2. Walk the tokens, matching two-word dishes before single foods
    3. Attach nearby quantities and cooking methods
    4. Score confidence and flag ambiguous dish names

    Example:
        processor = HinglishProcessor()
        result = processor.extract_food_items("Maine 2 roti aur dal khayi")
        # result.items -> roti (2 roti), lentils
        # result.ambiguities -> dal
    """

    def __init__(
        self,
        normalizer: Optional[TextNormalizer] = None,
        translator: Optional[BilingualTranslator] = None,
    ):
        self.normalizer = normalizer or TextNormalizer()
        self.translator = translator or BilingualTranslator()

        # Compound dishes are matched on their translated form
        self._compounds: dict[str, str] = {
            self.translator.translate(dish): dish for dish in COMPOUND_FOODS
        }

        # Descriptive quantities are recognized in both languages
        self._descriptive: dict[str, float] = dict(DESCRIPTIVE_QUANTITIES)
        for hindi, amount in DESCRIPTIVE_QUANTITIES.items():
            english = HINDI_TO_ENGLISH.get(hindi)
            if english:
                self._descriptive.setdefault(english, amount)

    # === Food extraction ===

    def extract_food_items(self, text: str) -> FoodExtractionResult:
        """Extract foods, quantities, cooking methods and ambiguities."""
        normalized = self.normalizer.normalize(text or "")
        processed = self.translator.translate(normalized)
        words = processed.split()

        items: list[ExtractedFoodItem] = []
        ambiguities: list[FoodAmbiguity] = []

        i = 0
        while i < len(words):
            word = words[i]

            if word in STOP_WORDS or _DIGITS.fullmatch(word):
                i += 1
                continue

            if i + 1 < len(words):
                pair = f"{word} {words[i + 1]}"
                dish = self._compounds.get(pair)
                if dish is not None:
                    items.append(self._build_item(words, i, name=dish, original=dish, is_compound=True))
                    i += 2
                    continue

            if word in FOOD_TOKENS:
                original = self.translator.original_term(word, normalized)
                items.append(self._build_item(words, i, name=word, original=original, is_compound=False))

                ambiguity = self._detect_ambiguity(words, i, word, original)
                if ambiguity is not None:
                    ambiguities.append(ambiguity)

            i += 1

        confidence = sum(item.confidence for item in items) / len(items) if items else 0.0

        logger.info(
            f"Extracted {len(items)} food items with {len(ambiguities)} ambiguities "
            f"(confidence {confidence:.2f})"
        )

        return FoodExtractionResult(
            items=items,
            ambiguities=ambiguities,
            original_text=text or "",
            processed_text=processed,
            confidence=confidence,
        )

    def _build_item(
        self,
        words: list[str],
        index: int,
        name: str,
        original: str,
        is_compound: bool,
    ) -> ExtractedFoodItem:
        quantity = self._extract_quantity(words, index)
        cooking_method = self._extract_cooking_method(words, index)
        confidence = self._score(name, original, is_compound, quantity, cooking_method)

        return ExtractedFoodItem(
            name=name,
            original_text=original,
            quantity=quantity,
            cooking_method=cooking_method,
            confidence=confidence,
        )

    def _extract_quantity(self, words: list[str], index: int) -> Optional[FoodQuantity]:
        """Look back up to two tokens for a number or descriptive amount."""
        for j in range(max(0, index - 2), index):
            word = words[j]

            amount = self._parse_number(word)
            if amount is not None and amount > 0:
                unit = next(
                    (w for w in words[j:j + 3] if w in QUANTITY_UNITS),
                    DEFAULT_COUNT_UNIT,
                )
                return FoodQuantity(amount=amount, unit=unit)

            if word in self._descriptive:
                return FoodQuantity(amount=self._descriptive[word], unit=DESCRIPTIVE_UNIT)

        return None

    @staticmethod
    def _parse_number(word: str) -> Optional[float]:
        match = _DIGITS.search(word)
        if match:
            return float(match.group(0))
        return NUMBER_WORDS.get(word)

    @staticmethod
    def _extract_cooking_method(words: list[str], index: int) -> Optional[str]:
        for j in range(max(0, index - 2), min(len(words), index + 3)):
            if words[j] in COOKING_METHOD_TOKENS:
                return words[j]
        return None

    def _score(
        self,
        name: str,
        original: str,
        is_compound: bool,
        quantity: Optional[FoodQuantity],
        cooking_method: Optional[str],
    ) -> float:
        confidence = BASE_CONFIDENCE
        if is_compound or self.translator.is_known(name) or self.translator.is_known(original):
            confidence += KNOWN_TERM_BONUS
        if quantity is not None:
            confidence += QUANTITY_BONUS
        if cooking_method is not None:
            confidence += COOKING_METHOD_BONUS
        return max(0.0, min(1.0, confidence))

    @staticmethod
    def _detect_ambiguity(
        words: list[str],
        index: int,
        name: str,
        original: str,
    ) -> Optional[FoodAmbiguity]:
        if original in AMBIGUOUS_TERMS:
            term = original
        elif name in AMBIGUOUS_TERMS:
            term = name
        else:
            return None

        context = " ".join(words[max(0, index - 2):index + 3])
        return FoodAmbiguity(
            term=term,
            possible_meanings=list(AMBIGUOUS_TERMS[term]),
            context=context,
        )

    # === Nutrition questions ===

    def parse_nutrition_query(self, text: str) -> NutritionQueryResult:
        """Classify a nutrition question and pull out the foods it mentions."""
        normalized = self.normalizer.normalize(text or "")
        processed = self.translator.translate(normalized)

        query_type = NutritionQueryType.GENERAL
        for candidate, keywords in QUERY_TYPE_KEYWORDS:
            if any(keyword in processed for keyword in keywords):
                query_type = candidate
                break

        concerns = [
            concern
            for concern, keywords in NUTRITION_CONCERNS.items()
            if any(keyword in normalized or keyword in processed for keyword in keywords)
        ]

        extraction = self.extract_food_items(text)
        requires_clarification = any(
            item.confidence < CLARIFICATION_CONFIDENCE_THRESHOLD for item in extraction.items
        )

        return NutritionQueryResult(
            query_type=query_type,
            food_items=extraction.items,
            nutrition_concerns=concerns,
            original_query=text or "",
            processed_query=processed,
            requires_clarification=requires_clarification,
        )
