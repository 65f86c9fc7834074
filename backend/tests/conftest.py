"""Shared fixtures for the meal assistant tests.

Tracing and the USDA fallback are switched off before anything from the
app is imported, so no test talks to the network.
"""

import os

os.environ.setdefault("OPIK_TRACK_DISABLE", "true")
os.environ["USDA_API_KEY"] = ""
os.environ["OPIK_API_KEY"] = ""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from app.config import Settings
from app.core.state import NutritionalInfo


class FakeClock:
    """Manually advanced clock for session timing tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeNutritionLookup:
    """Per-100g table lookup that records every call."""

    def __init__(self, per_100g: dict[str, NutritionalInfo], fail_for: tuple[str, ...] = ()):
        self.per_100g = per_100g
        self.fail_for = fail_for
        self.calls: list[tuple[str, float]] = []

    async def lookup(self, food_name: str, grams: float) -> Optional[NutritionalInfo]:
        self.calls.append((food_name, grams))
        if food_name in self.fail_for:
            raise RuntimeError(f"source unavailable for {food_name}")
        base = self.per_100g.get(food_name)
        return base.scaled(grams / 100.0) if base is not None else None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def nutrition_table() -> dict[str, NutritionalInfo]:
    return {
        "roti": NutritionalInfo(calories=300, protein=10, carbs=50, fat=4, fiber=5),
        "milk": NutritionalInfo(calories=60, protein=3, carbs=5, fat=3, minerals={"calcium": 120}),
        "moong dal": NutritionalInfo(calories=105, protein=7, carbs=19, fat=0.4, fiber=7.6),
        "fish": NutritionalInfo(calories=200, protein=22, carbs=0, fat=12),
        "rice": NutritionalInfo(calories=130, protein=2.7, carbs=28, fat=0.3),
    }


@pytest.fixture
def fake_lookup(nutrition_table) -> FakeNutritionLookup:
    return FakeNutritionLookup(nutrition_table)
