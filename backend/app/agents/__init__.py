"""
Hinglish Meal Assistant - Agents Module

Specialized stages of the spoken-meal pipeline:
- HinglishProcessor: food item extraction from Hinglish text
- AmbiguityResolver: clarification questions for ambiguous dishes
- CulturalContextResolver: Indian portions, cooking methods and regions
- NutritionAuditor: nutrition lookup (curated Indian table + USDA API)
"""

from app.agents.hinglish_processor import HinglishProcessor
from app.agents.ambiguity_resolver import AmbiguityResolver
from app.agents.cultural_context import CulturalContextResolver
from app.agents.nutrition_auditor import NutritionAuditor

__all__ = ["HinglishProcessor", "AmbiguityResolver", "CulturalContextResolver", "NutritionAuditor"]
