"""Pytest configuration and fixtures."""

from datetime import date

from mealplan.meal_calendar import Meal, MealType
from mealplan.recipes import (
    DietaryInfo,
    NutritionInfo,
    Recipe,
    RecipeCategory,
    RecipeIngredient,
)


def create_test_recipe(
    recipe_id: str,
    name: str,
    category: RecipeCategory = RecipeCategory.DINNER,
    servings: int = 4,
    prep_time_minutes: int = 10,
    cook_time_minutes: int = 20,
    calories: int = 400,
    protein: float = 20.0,
    carbs: float = 40.0,
    fat: float = 15.0,
    fiber: float | None = None,
    tags: list | None = None,
    ingredients: list | None = None,
    estimated_cost: float = 10.0,
    rating: float = 4.0,
    review_count: int = 100,
    cuisine: str = "American",
    dietary_info: DietaryInfo | None = None,
    description: str = "",
) -> Recipe:
    """Helper to create a test Recipe.

    *ingredients* may be plain names (amount 1, unit "unit") or
    RecipeIngredient instances.
    """
    built = tuple(
        i if isinstance(i, RecipeIngredient) else RecipeIngredient(name=i, amount=1, unit="unit")
        for i in (ingredients or [])
    )
    return Recipe(
        id=recipe_id,
        name=name,
        category=category,
        servings=servings,
        prep_time_minutes=prep_time_minutes,
        cook_time_minutes=cook_time_minutes,
        description=description,
        ingredients=built,
        nutrition=NutritionInfo(calories=calories, protein=protein, carbs=carbs, fat=fat, fiber=fiber),
        tags=tuple(tags or []),
        rating=rating,
        review_count=review_count,
        dietary_info=dietary_info or DietaryInfo(),
        estimated_cost=estimated_cost,
        cuisine=cuisine,
    )


def create_test_meal(
    day: date,
    meal_type: MealType = MealType.DINNER,
    recipe: Recipe | None = None,
    name: str = "Leftovers",
    ingredients: list | None = None,
    servings: int | None = None,
) -> Meal:
    """Helper to create a calendar Meal, from a recipe or as a custom meal."""
    if recipe is not None:
        return Meal.from_recipe(recipe, day, meal_type, servings=servings)
    return Meal(
        date=day,
        meal_type=meal_type,
        recipe_name=name,
        ingredients=tuple(ingredients or []),
        servings=servings or 1,
    )
