import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from mealplan import config
from mealplan.catalog import RecipeCatalog
from mealplan.filters import apply_variety_guard, filter_by_slot, filter_recipes
from mealplan.meal_calendar import Meal, MealCalendar, MealType, day_of, week_days
from mealplan.preferences import AutoFillPreferences
from mealplan.recipes import Recipe
from mealplan.scoring import ScoredStrategy, SelectionStrategy

logger = logging.getLogger(__name__)

# Synthetic meal used for a slot no catalog recipe can fill.
# Independent of preferences so every slot always gets an assignment.
FALLBACK_MEALS: dict[MealType, tuple[str, tuple[str, ...]]] = {
    MealType.BREAKFAST: ("Healthy Breakfast Bowl", ("Eggs", "Whole Grain Bread", "Fresh Fruit")),
    MealType.LUNCH: ("Fresh Salad with Protein", ("Mixed Greens", "Chicken Breast", "Olive Oil")),
    MealType.DINNER: ("Balanced Dinner Plate", ("Salmon Fillet", "Brown Rice", "Broccoli")),
    MealType.SNACK: ("Nutritious Snack", ("Greek Yogurt", "Mixed Nuts", "Fresh Berries")),
}

FALLBACK_MEAL_NAMES = frozenset(name for name, _ in FALLBACK_MEALS.values())


def meal_types_for_day(meals_per_day: int) -> list[MealType]:
    """Slots filled each day, in fill order.

    Raises:
        ValueError: If meals_per_day is not 2, 3 or 4
    """
    if meals_per_day not in config.MEAL_TYPES_BY_COUNT:
        raise ValueError(
            f"meals_per_day must be one of {sorted(config.MEAL_TYPES_BY_COUNT)}, got {meals_per_day}"
        )
    return [MealType(t) for t in config.MEAL_TYPES_BY_COUNT[meals_per_day]]


def fallback_meal(day: date | datetime, meal_type: MealType, servings: int) -> Meal:
    name, ingredients = FALLBACK_MEALS[MealType(meal_type)]
    return Meal(
        date=day,
        meal_type=meal_type,
        recipe_name=name,
        ingredients=ingredients,
        recipe=None,
        custom_meal=name,
        servings=servings,
    )


@dataclass
class GenerationResult:
    """Preview of one generation pass, not yet written to the calendar."""
    week_start: date
    meals: list[Meal] = field(default_factory=list)
    fallback_slots: list[tuple[date, MealType]] = field(default_factory=list)
    skipped_slots: list[tuple[date, MealType]] = field(default_factory=list)
    replace_existing: bool = False

    @property
    def fallback_count(self) -> int:
        return len(self.fallback_slots)

    @property
    def days(self) -> list[date]:
        return week_days(self.week_start)

    def meals_by_day(self) -> dict[date, list[Meal]]:
        grouped: dict[date, list[Meal]] = {}
        for meal in self.meals:
            grouped.setdefault(meal.date, []).append(meal)
        return grouped


class MealPlanGenerator:
    """Greedy week planner: filter, classify, de-duplicate, select, scale.

    The calendar is read to skip slots that are already filled and is only
    written by :meth:`commit`.
    """

    def __init__(
        self,
        catalog: RecipeCatalog,
        calendar: MealCalendar,
        strategy: SelectionStrategy | None = None,
    ):
        self.catalog = catalog
        self.calendar = calendar
        self.strategy = strategy or ScoredStrategy()

    def generate_week(
        self,
        week_start: date | datetime,
        preferences: AutoFillPreferences,
        meals_per_day: int = config.DEFAULT_MEALS_PER_DAY,
        replace_existing: bool = False,
        per_meal_budget: float | None = None,
    ) -> GenerationResult:
        """Build a preview for the 7 days starting at *week_start*.

        Slots already filled in the calendar are skipped unless
        *replace_existing* is set, in which case every slot is generated and
        :meth:`commit` clears the week's days first. Slots with no
        qualifying recipe get a fallback meal; generation never fails.
        """
        slot_types = meal_types_for_day(meals_per_day)
        candidates = filter_recipes(self.catalog, preferences, per_meal_budget)
        result = GenerationResult(week_start=day_of(week_start), replace_existing=replace_existing)

        logger.info(
            "Generating weekly plan",
            extra={
                "recipe_pool_size": len(self.catalog),
                "matching_recipes": len(candidates),
                "meal_slots": len(slot_types) * config.DAYS_PER_WEEK,
                "strategy": self.strategy.name,
            },
        )

        for day in result.days:
            self._fill_day(day, slot_types, candidates, preferences, result, skip_filled=not replace_existing)

        logger.info(
            "Weekly plan generated",
            extra={
                "total_meals": len(result.meals),
                "fallback_meals": result.fallback_count,
                "skipped_slots": len(result.skipped_slots),
            },
        )
        return result

    def regenerate_day(
        self,
        day: date | datetime,
        preferences: AutoFillPreferences,
        meals_per_day: int = config.DEFAULT_MEALS_PER_DAY,
        per_meal_budget: float | None = None,
    ) -> GenerationResult:
        """Fresh meals for a single day, ignoring what the day holds now.

        Commit the result with :meth:`replace_day` to swap it in.
        """
        slot_types = meal_types_for_day(meals_per_day)
        candidates = filter_recipes(self.catalog, preferences, per_meal_budget)
        result = GenerationResult(week_start=day_of(day), replace_existing=True)
        self._fill_day(day_of(day), slot_types, candidates, preferences, result, skip_filled=False)
        logger.info(
            "Day regenerated",
            extra={"day": day_of(day).isoformat(), "total_meals": len(result.meals), "fallback_meals": result.fallback_count},
        )
        return result

    def commit(self, result: GenerationResult) -> list[Meal]:
        """Write a preview into the calendar, clearing the week first if requested."""
        if result.replace_existing:
            for day in result.days:
                self.calendar.clear_day(day)
        for meal in result.meals:
            self.calendar.add_meal(meal)
        logger.info(
            "Plan committed",
            extra={"week_start": result.week_start.isoformat(), "meals": len(result.meals)},
        )
        return list(result.meals)

    def replace_day(self, result: GenerationResult) -> list[Meal]:
        """Commit a :meth:`regenerate_day` result over that day's meals."""
        self.calendar.clear_day(result.week_start)
        for meal in result.meals:
            self.calendar.add_meal(meal)
        return list(result.meals)

    def _fill_day(
        self,
        day: date,
        slot_types: list[MealType],
        candidates: list[Recipe],
        preferences: AutoFillPreferences,
        result: GenerationResult,
        skip_filled: bool,
    ) -> None:
        for meal_type in slot_types:
            if skip_filled and self.calendar.has_meal(day, meal_type):
                logger.debug("Slot already filled, skipping", extra={"day": day.isoformat(), "meal_type": meal_type.value})
                result.skipped_slots.append((day, meal_type))
                continue

            meal = self._fill_slot(day, meal_type, candidates, preferences, result.meals)
            if meal.is_custom:
                result.fallback_slots.append((day, meal_type))
            result.meals.append(meal)

    def _fill_slot(
        self,
        day: date,
        meal_type: MealType,
        candidates: list[Recipe],
        preferences: AutoFillPreferences,
        assigned: list[Meal],
    ) -> Meal:
        logger.debug("Filling meal slot", extra={"day": day.isoformat(), "meal_type": meal_type.value})
        slot_candidates = apply_variety_guard(filter_by_slot(candidates, meal_type), assigned)

        recipe = self.strategy.select(slot_candidates, preferences)
        if recipe is None:
            logger.warning(
                "No suitable recipes for meal slot, using fallback",
                extra={"day": day.isoformat(), "meal_type": meal_type.value},
            )
            return fallback_meal(day, meal_type, preferences.servings_per_meal)

        return Meal.from_recipe(recipe, day, meal_type, servings=preferences.servings_per_meal)
