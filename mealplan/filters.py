"""Candidate narrowing for auto-fill: constraints, slot fit and variety."""

import logging
from typing import Iterable

from mealplan.meal_calendar import Meal, MealType
from mealplan.preferences import AutoFillPreferences
from mealplan.recipes import Recipe, RecipeCategory

logger = logging.getLogger(__name__)

# Slot classification table. A recipe fits a slot when its category is one of
# the listed categories or its tags include the slot's tag.
SLOT_RULES: dict[MealType, tuple[frozenset[RecipeCategory], str]] = {
    MealType.BREAKFAST: (frozenset({RecipeCategory.BREAKFAST}), "breakfast"),
    MealType.LUNCH: (frozenset({RecipeCategory.LUNCH, RecipeCategory.SALAD}), "lunch"),
    MealType.DINNER: (
        frozenset({RecipeCategory.DINNER, RecipeCategory.PASTA, RecipeCategory.MEAT, RecipeCategory.SEAFOOD}),
        "dinner",
    ),
    MealType.SNACK: (frozenset({RecipeCategory.SNACK}), "snack"),
}


def _any_substring(needles: Iterable[str], haystacks: Iterable[str]) -> bool:
    """True if some needle occurs (case-insensitively) in some haystack."""
    lowered = [h.lower() for h in haystacks]
    return any(needle.lower() in h for needle in needles for h in lowered)


def matches_preferences(
    recipe: Recipe,
    preferences: AutoFillPreferences,
    per_meal_budget: float | None = None,
) -> bool:
    """Check one recipe against time, budget, dietary and cuisine constraints.

    Args:
        recipe: Candidate recipe
        preferences: Auto-fill preferences
        per_meal_budget: Budget overriding ``preferences.budget_per_meal``
            (used when the budget is derived from a weekly amount)

    Returns:
        True when every constraint holds
    """
    budget = preferences.budget_per_meal if per_meal_budget is None else per_meal_budget

    if recipe.total_time_minutes > preferences.max_cooking_time:
        return False
    if recipe.estimated_cost > budget:
        return False
    if preferences.dietary_restrictions and not _any_substring(
        preferences.dietary_restrictions, recipe.dietary_tags
    ):
        return False
    if preferences.preferred_cuisines and not _any_substring(
        preferences.preferred_cuisines, [recipe.cuisine]
    ):
        return False
    return True


def filter_recipes(
    recipes: Iterable[Recipe],
    preferences: AutoFillPreferences,
    per_meal_budget: float | None = None,
) -> list[Recipe]:
    matching = [r for r in recipes if matches_preferences(r, preferences, per_meal_budget)]
    logger.debug("Constraint filter applied", extra={"matching": len(matching)})
    return matching


def matches_slot(recipe: Recipe, meal_type: MealType) -> bool:
    categories, tag = SLOT_RULES[MealType(meal_type)]
    return recipe.category in categories or tag in recipe.tags


def slot_types_for(recipe: Recipe) -> list[MealType]:
    return [meal_type for meal_type in SLOT_RULES if matches_slot(recipe, meal_type)]


def filter_by_slot(recipes: Iterable[Recipe], meal_type: MealType) -> list[Recipe]:
    return [r for r in recipes if matches_slot(r, meal_type)]


def apply_variety_guard(candidates: Iterable[Recipe], assigned: Iterable[Meal]) -> list[Recipe]:
    """Drop candidates whose name was already used by an assigned meal.

    Matching is by exact recipe name, so two catalog entries sharing a name
    count as the same dish. Custom (fallback) meals never block anything.
    """
    used_names = {meal.recipe.name for meal in assigned if meal.recipe is not None}
    return [r for r in candidates if r.name not in used_names]
