from datetime import datetime

import pytest

from app.core.meal_assembler import NO_FOOD_MESSAGE, UNRESOLVED_MESSAGE, MealAssembler
from app.core.state import (
    ClarificationNeeded,
    CookingMethod,
    DetailedFoodItem,
    MacroBreakdown,
    MealData,
    MealLogged,
    MealNotUnderstood,
    MealType,
    NutritionalInfo,
    NutritionalSummary,
)

from conftest import FakeNutritionLookup

BREAKFAST_TIME = datetime(2026, 10, 18, 8, 0)


@pytest.fixture
def assembler(fake_lookup):
    return MealAssembler(nutrition_lookup=fake_lookup)


async def test_breakfast_roti_and_milk(assembler, fake_lookup):
    outcome = await assembler.assemble_meal(
        "Maine breakfast mein 2 roti aur ek glass milk liya",
        user_id="user_1",
        timestamp=BREAKFAST_TIME,
    )

    assert isinstance(outcome, MealLogged)
    meal = outcome.meal
    assert meal.meal_type == MealType.BREAKFAST
    assert [(f.name, f.quantity, f.unit, f.grams) for f in meal.foods] == [
        ("roti", 2.0, "roti", 60.0),
        ("milk", 1.0, "glass", 250.0),
    ]
    assert fake_lookup.calls == [("roti", 60.0), ("milk", 250.0)]
    assert meal.nutrition.total_calories == pytest.approx(300 * 0.6 + 60 * 2.5)
    assert meal.nutrition.minerals == {"calcium": pytest.approx(300.0)}
    assert meal.confidence_score == pytest.approx(0.9)
    assert outcome.unresolved_items == []
    assert outcome.confirmation.startswith("Aapka breakfast log ho gaya: roti, milk. Total 330 calories hain.")


@pytest.mark.parametrize(
    "utterance, grams",
    [("200 grams doodh", 200.0), ("1.5 glass doodh", 375.0), ("ek litre doodh", 1000.0)],
)
async def test_milk_portions_by_unit(assembler, utterance, grams):
    outcome = await assembler.assemble_meal(utterance, user_id="user_1", timestamp=BREAKFAST_TIME)

    assert isinstance(outcome, MealLogged)
    milk = outcome.meal.foods[0]
    assert milk.grams == pytest.approx(grams)
    assert outcome.meal.nutrition.total_calories == pytest.approx(60 * grams / 100)


async def test_nothing_recognized(assembler, fake_lookup):
    outcome = await assembler.assemble_meal("Maine kuch khaya tha", user_id="user_1")

    assert isinstance(outcome, MealNotUnderstood)
    assert outcome.message == NO_FOOD_MESSAGE
    assert outcome.extraction.items == []
    assert outcome.extraction.confidence == 0.0
    assert fake_lookup.calls == []


async def test_ambiguous_dal_asks_for_clarification(assembler, fake_lookup):
    outcome = await assembler.assemble_meal("dal khaya", user_id="user_1")

    assert isinstance(outcome, ClarificationNeeded)
    assert outcome.ambiguities[0].term == "dal"
    assert outcome.ambiguities[0].possible_meanings == [
        "moong dal", "toor dal", "masoor dal", "chana dal", "urad dal",
    ]
    assert outcome.questions[0].startswith("Aap dal se kya matlab hai?")
    assert fake_lookup.calls == []


async def test_clarified_dal_is_logged(assembler):
    outcome = await assembler.assemble_meal(
        "dal khaya",
        user_id="user_1",
        clarifications={"dal": "moong dal"},
        timestamp=datetime(2026, 10, 18, 13, 30),
    )

    assert isinstance(outcome, MealLogged)
    food = outcome.meal.foods[0]
    assert food.name == "moong dal"
    assert food.grams == 150.0
    assert food.indian_reference == "1 katori (small bowl)"
    assert outcome.meal.meal_type == MealType.LUNCH


async def test_cooking_multiplier_scales_calories_and_fat_only(assembler):
    outcome = await assembler.assemble_meal(
        "tala machli", user_id="user_1", timestamp=datetime(2026, 10, 18, 20, 0)
    )

    food = outcome.meal.foods[0]
    assert food.cooking_method.name == "fried"
    # default serving is one katori (150g)
    assert food.nutrition.calories == pytest.approx(200 * 1.5 * 1.5)
    assert food.nutrition.fat == pytest.approx(12 * 1.5 * 1.5)
    assert food.nutrition.protein == pytest.approx(22 * 1.5)


async def test_unresolved_items_lower_confidence(assembler):
    outcome = await assembler.assemble_meal(
        "2 roti aur paneer", user_id="user_1", timestamp=BREAKFAST_TIME
    )

    assert isinstance(outcome, MealLogged)
    assert [f.name for f in outcome.meal.foods] == ["roti"]
    assert outcome.unresolved_items == ["paneer"]
    assert outcome.meal.confidence_score == pytest.approx(0.9 / 2)


async def test_lookup_errors_make_items_unresolved(nutrition_table):
    lookup = FakeNutritionLookup(nutrition_table, fail_for=("milk",))
    assembler = MealAssembler(nutrition_lookup=lookup)

    outcome = await assembler.assemble_meal("2 roti aur doodh", user_id="user_1")

    assert isinstance(outcome, MealLogged)
    assert outcome.unresolved_items == ["milk"]


async def test_nothing_resolved(assembler):
    outcome = await assembler.assemble_meal("paneer aur samosa", user_id="user_1")

    assert isinstance(outcome, MealNotUnderstood)
    assert outcome.message == UNRESOLVED_MESSAGE
    assert outcome.unresolved_items == ["paneer", "samosa"]


async def test_lookup_override_per_call(assembler, nutrition_table):
    override = FakeNutritionLookup({"paneer": NutritionalInfo(calories=265, protein=18, carbs=1.2, fat=21)})
    outcome = await assembler.assemble_meal("paneer", user_id="user_1", nutrition_lookup=override)

    assert isinstance(outcome, MealLogged)
    assert override.calls == [("paneer", 150.0)]


async def test_regional_context_attached_when_location_given(assembler):
    outcome = await assembler.assemble_meal("2 roti", user_id="user_1", location="Pune")
    context = outcome.meal.foods[0].cultural_context
    assert context.regional_variation.region == "West India"


async def test_bundled_auditor_end_to_end():
    assembler = MealAssembler()
    outcome = await assembler.assemble_meal(
        "Maine breakfast mein 2 roti aur ek glass milk liya",
        user_id="user_1",
        timestamp=BREAKFAST_TIME,
    )
    assert isinstance(outcome, MealLogged)
    assert outcome.meal.nutrition.total_calories > 0


@pytest.mark.parametrize(
    "hour, meal_type",
    [
        (6, MealType.BREAKFAST),
        (10, MealType.BREAKFAST),
        (11, MealType.LUNCH),
        (15, MealType.LUNCH),
        (16, MealType.SNACK),
        (18, MealType.SNACK),
        (19, MealType.DINNER),
        (23, MealType.DINNER),
        (2, MealType.DINNER),
    ],
)
def test_meal_type_buckets(hour, meal_type):
    assert MealType.from_hour(hour) == meal_type


def test_macro_percentages_sum_to_hundred():
    totals = NutritionalInfo(calories=10 * 4 + 20 * 4 + 5 * 9, protein=10, carbs=20, fat=5)
    breakdown = NutritionalSummary.from_nutrition(totals).macro_breakdown
    total = breakdown.protein_percentage + breakdown.carbs_percentage + breakdown.fat_percentage
    assert total == pytest.approx(100.0)


def test_macro_percentages_zero_calories():
    assert MacroBreakdown.from_totals(0, 5, 5, 5) == MacroBreakdown()


def test_spoken_confirmation_format(assembler):
    summary = NutritionalSummary(total_calories=412.4, total_protein=12.24, total_carbs=60, total_fat=8.04)

    meal = MealData(
        user_id="user_1",
        timestamp=BREAKFAST_TIME,
        meal_type=MealType.BREAKFAST,
        foods=[DetailedFoodItem(
            name="poha",
            original_text="poha",
            quantity=1,
            unit="katori",
            grams=150,
            nutrition=NutritionalInfo(),
            cooking_method=CookingMethod(name="simple"),
            confidence=0.8,
            indian_reference="1 katori (small bowl)",
        )],
        nutrition=summary,
        voice_description="poha khaya",
        confidence_score=0.8,
    )

    assert MealAssembler.generate_spoken_confirmation(meal) == (
        "Aapka breakfast log ho gaya: poha. Total 412 calories hain. "
        "Protein 12.2g, Carbs 60.0g, Fat 8.0g hai."
    )
