import logging
from datetime import date, datetime
from typing import Iterable

from mealplan.meal_calendar import Meal, MealCalendar

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "Other"

# ---------------------------------------------------------------------------
# Keyword categorisation table.
# Checked in order; the first keyword found (case-insensitive substring) in
# an ingredient name decides its category. Dairy is checked before produce,
# produce before meat, meat before grains and grains before pantry, so e.g.
# "Eggs" lands in Dairy and "Peanut Butter" in Dairy rather than Pantry.
# ---------------------------------------------------------------------------

CATEGORY_KEYWORDS: list[tuple[str, str]] = [
    # Dairy
    ("milk", "Dairy"), ("cheese", "Dairy"), ("yogurt", "Dairy"), ("butter", "Dairy"),
    ("cream", "Dairy"), ("egg", "Dairy"), ("parmesan", "Dairy"),
    # Produce
    ("lettuce", "Produce"), ("greens", "Produce"), ("spinach", "Produce"), ("tomato", "Produce"),
    ("onion", "Produce"), ("garlic", "Produce"), ("ginger", "Produce"), ("carrot", "Produce"),
    ("broccoli", "Produce"), ("bell pepper", "Produce"), ("avocado", "Produce"), ("lemon", "Produce"),
    ("lime", "Produce"), ("apple", "Produce"), ("banana", "Produce"), ("berry", "Produce"),
    ("berries", "Produce"), ("fruit", "Produce"), ("vegetable", "Produce"), ("potato", "Produce"),
    ("cucumber", "Produce"), ("mushroom", "Produce"), ("zucchini", "Produce"), ("herb", "Produce"),
    ("parsley", "Produce"), ("dill", "Produce"), ("basil", "Produce"), ("cilantro", "Produce"),
    # Meat and seafood
    ("chicken", "Meat"), ("beef", "Meat"), ("pork", "Meat"), ("turkey", "Meat"), ("bacon", "Meat"),
    ("ham", "Meat"), ("sausage", "Meat"), ("lamb", "Meat"), ("salmon", "Meat"), ("fish", "Meat"),
    ("shrimp", "Meat"), ("tuna", "Meat"),
    # Grains
    ("bread", "Grains"), ("rice", "Grains"), ("pasta", "Grains"), ("fettuccine", "Grains"),
    ("spaghetti", "Grains"), ("noodle", "Grains"), ("oat", "Grains"), ("quinoa", "Grains"),
    ("flour", "Grains"), ("tortilla", "Grains"), ("muffin", "Grains"), ("crouton", "Grains"),
    ("granola", "Grains"),
    # Pantry
    ("oil", "Pantry"), ("salt", "Pantry"), ("pepper", "Pantry"), ("sugar", "Pantry"),
    ("honey", "Pantry"), ("sauce", "Pantry"), ("vinegar", "Pantry"), ("mustard", "Pantry"),
    ("spice", "Pantry"), ("paste", "Pantry"), ("stock", "Pantry"), ("broth", "Pantry"),
    ("bean", "Pantry"), ("lentil", "Pantry"), ("chickpea", "Pantry"), ("nut", "Pantry"),
    ("seed", "Pantry"), ("syrup", "Pantry"),
]

GROCERY_CATEGORIES = ["Dairy", "Produce", "Meat", "Grains", "Pantry", OTHER_CATEGORY]


def categorize_ingredient(name: str) -> str:
    """Return the grocery category for an ingredient name."""
    lowered = name.lower()
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in lowered:
            return category
    return OTHER_CATEGORY


def unique_ingredients(meals: Iterable[Meal]) -> list[str]:
    """Flat ingredient names across meals, deduplicated by exact string."""
    return list(dict.fromkeys(name for meal in meals for name in meal.ingredients))


def categorize_ingredients(names: Iterable[str]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for name in names:
        grouped.setdefault(categorize_ingredient(name), []).append(name)
    return grouped


def generate_grocery_list(calendar: MealCalendar, week_start: date | datetime) -> dict[str, list[str]]:
    """Category -> ingredient names for every meal of the week.

    Only categories with at least one ingredient appear. Names are compared
    case-sensitively, so "Eggs" and "eggs" are two entries.
    """
    meals = calendar.meals_for_week(week_start)
    grocery_list = categorize_ingredients(unique_ingredients(meals))
    logger.info(
        "Grocery list generated",
        extra={
            "meal_count": len(meals),
            "item_count": sum(len(items) for items in grocery_list.values()),
            "category_count": len(grocery_list),
        },
    )
    return grocery_list
