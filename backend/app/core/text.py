"""
Hinglish Meal Assistant - Text Normalization and Translation

Turns a raw utterance into a single normalized English vocabulary space
before any food matching happens.
"""

import re
from typing import Mapping, Optional

from app.core.vocabulary import HINDI_TO_ENGLISH

# A decimal point between digits ("1.5") is kept
_PUNCTUATION = re.compile(r"(?!(?<=\d)\.(?=\d))[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class TextNormalizer:
    """Lowercases, strips punctuation and collapses whitespace."""

    def normalize(self, text: str) -> str:
        if not text:
            return ""
        lowered = text.lower()
        without_punctuation = _PUNCTUATION.sub(" ", lowered)
        return _WHITESPACE.sub(" ", without_punctuation).strip()


class BilingualTranslator:
    """
    Whole-word Hindi -> English substitution over a fixed vocabulary.

    All dictionary keys are compiled into one alternation in dictionary
    order and applied in a single pass. At any position the first key in
    dictionary order that matches wins, and a translated value is never
    translated again.
    """

    def __init__(self, dictionary: Optional[Mapping[str, str]] = None):
        self.dictionary: dict[str, str] = dict(dictionary if dictionary is not None else HINDI_TO_ENGLISH)
        self._reverse: dict[str, str] = {}
        for hindi, english in self.dictionary.items():
            self._reverse.setdefault(english, hindi)

        if self.dictionary:
            alternation = "|".join(re.escape(key) for key in self.dictionary)
            self._pattern: Optional[re.Pattern[str]] = re.compile(rf"\b(?:{alternation})\b")
        else:
            self._pattern = None

    def translate(self, text: str) -> str:
        """Translate normalized text into the English vocabulary space."""
        if not text or self._pattern is None:
            return text
        return self._pattern.sub(lambda match: self.dictionary[match.group(0)], text)

    def is_known(self, word: str) -> bool:
        """True if the word is a dictionary key or a dictionary value."""
        return word in self.dictionary or word in self._reverse

    def to_hinglish(self, term: str) -> str:
        """Reverse-translate each token of an English term; first key wins."""
        return " ".join(self._reverse.get(token, token) for token in term.split())

    def original_term(self, word: str, original_text: str) -> str:
        """
        Find the source-language word a translated token came from.

        Returns the first dictionary key that translates to ``word`` and
        occurs as a whole word in ``original_text``; otherwise ``word``.
        """
        for hindi, english in self.dictionary.items():
            if english == word and re.search(rf"\b{re.escape(hindi)}\b", original_text):
                return hindi
        return word
