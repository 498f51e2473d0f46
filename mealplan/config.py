import os
import secrets
import sys

# Flask secret key: used for session signing and CSRF token generation.
# Set SECRET_KEY in the environment for production; a random key is
# generated on startup as a fallback (sessions won't survive restarts).
SECRET_KEY = os.environ.get("SECRET_KEY", secrets.token_hex(32))


# Check if we're running in a test environment
def _is_testing():
    """Check if code is running under pytest."""
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING" if _is_testing() else "INFO")

# Static recipe catalog loaded at startup
RECIPES_FILE = os.environ.get("MEALPLAN_RECIPES_FILE", "data/recipes.json")

# Meal calendar persistence (loaded at startup, saved after every change)
CALENDAR_FILE = os.environ.get("MEALPLAN_CALENDAR_FILE", "data/calendar.json")

# Auto-fill preference defaults, applied only when the caller omits a value
DEFAULT_MAX_COOKING_TIME = int(os.environ.get("MEALPLAN_MAX_COOKING_TIME", 60))
DEFAULT_BUDGET_PER_MEAL = float(os.environ.get("MEALPLAN_BUDGET_PER_MEAL", 15.0))
DEFAULT_SERVINGS_PER_MEAL = int(os.environ.get("MEALPLAN_SERVINGS_PER_MEAL", 2))
DEFAULT_MEALS_PER_DAY = 3

DAYS_PER_WEEK = 7

# Meal slots filled for each supported meals-per-day count, in fill order.
MEAL_TYPES_BY_COUNT: dict[int, list[str]] = {
    2: ["breakfast", "dinner"],
    3: ["breakfast", "lunch", "dinner"],
    4: ["breakfast", "lunch", "dinner", "snack"],
}

# Daily nutrition targets used for comparison only (never enforced).
# Sodium in mg, everything else in grams except calories.
DEFAULT_NUTRITION_GOALS: dict[str, float] = {
    "calories": 2000,
    "protein": 150.0,
    "carbs": 250.0,
    "fat": 65.0,
    "fiber": 25.0,
    "sugar": 50.0,
    "sodium": 2300.0,
}

# A nutrient is "on track" when actual/goal is within 1 ± GOAL_TOLERANCE.
GOAL_TOLERANCE = 0.10

GENERATE_RATE_LIMIT = "10 per minute"
