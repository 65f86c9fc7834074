"""
Hinglish Meal Assistant - Ambiguity Resolver

Builds clarification questions for ambiguous dish names and applies the
user's answers back onto an extraction result.
"""

import logging
from typing import Mapping, Optional

from app.core.state import ExtractedFoodItem, FoodAmbiguity, FoodExtractionResult
from app.core.text import BilingualTranslator, TextNormalizer

logger = logging.getLogger(__name__)


class AmbiguityResolver:
    """Asks the user to pick a meaning for dal, sabzi, chai and friends."""

    def __init__(self, translator: Optional[BilingualTranslator] = None):
        self.translator = translator or BilingualTranslator()
        self._normalizer = TextNormalizer()

    def generate_clarification_questions(self, ambiguities: list[FoodAmbiguity]) -> list[str]:
        """One Hinglish question per ambiguity, options in Hinglish."""
        questions = []
        for ambiguity in ambiguities:
            options = ", ".join(self.translator.to_hinglish(m) for m in ambiguity.possible_meanings)
            questions.append(f"Aap {ambiguity.term} se kya matlab hai? Options: {options}")
        return questions

    def match_answer(self, ambiguity: FoodAmbiguity, answer: str) -> Optional[str]:
        """Return the meaning the answer picks, in English or Hinglish form."""
        normalized = self._normalizer.normalize(answer)
        if not normalized:
            return None
        translated = self.translator.translate(normalized)

        for meaning in ambiguity.possible_meanings:
            if normalized in (meaning, self.translator.to_hinglish(meaning)):
                return meaning
            if translated == self.translator.translate(meaning):
                return meaning
        return None

    def apply_clarifications(
        self,
        result: FoodExtractionResult,
        answers: Mapping[str, str],
    ) -> FoodExtractionResult:
        """
        Resolve ambiguities using the user's answers.

        ``answers`` maps an ambiguous term (as spoken, e.g. "dal") to the
        chosen meaning. Items are matched to ambiguities in order. Answers
        that do not pick a listed meaning leave the ambiguity in place.
        """
        if not answers or not result.ambiguities:
            return result

        resolved: dict[int, str] = {}
        remaining: list[FoodAmbiguity] = []
        used_items: set[int] = set()

        for ambiguity in result.ambiguities:
            item_index = self._find_item(result.items, ambiguity, used_items)
            if item_index is not None:
                used_items.add(item_index)

            answer = answers.get(ambiguity.term)
            choice = self.match_answer(ambiguity, answer) if answer else None

            if choice is None or item_index is None:
                remaining.append(ambiguity)
                continue

            resolved[item_index] = choice
            logger.info(f"Resolved '{ambiguity.term}' as '{choice}'")

        items: list[ExtractedFoodItem] = [
            item.model_copy(update={"name": resolved[index]}) if index in resolved else item
            for index, item in enumerate(result.items)
        ]

        return result.model_copy(update={"items": items, "ambiguities": remaining})

    def _find_item(
        self,
        items: list[ExtractedFoodItem],
        ambiguity: FoodAmbiguity,
        used: set[int],
    ) -> Optional[int]:
        canonical = self.translator.translate(ambiguity.term)
        for index, item in enumerate(items):
            if index in used:
                continue
            if ambiguity.term in (item.original_text, item.name) or item.name == canonical:
                return index
        return None
