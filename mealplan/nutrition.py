import logging
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Iterable

from mealplan import config
from mealplan.meal_calendar import Meal, MealCalendar, week_days
from mealplan.recipes import NutritionInfo

logger = logging.getLogger(__name__)

_NUTRIENTS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")


@dataclass(frozen=True)
class NutritionData:
    """Summed nutrition. Missing optional nutrients count as zero."""
    calories: int = 0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0

    @classmethod
    def from_info(cls, info: NutritionInfo, factor: float = 1.0) -> "NutritionData":
        return cls(
            calories=int(info.calories * factor),
            protein=info.protein * factor,
            carbs=info.carbs * factor,
            fat=info.fat * factor,
            fiber=(info.fiber or 0.0) * factor,
            sugar=(info.sugar or 0.0) * factor,
            sodium=(info.sodium or 0.0) * factor,
        )

    def __add__(self, other: "NutritionData") -> "NutritionData":
        if not isinstance(other, NutritionData):
            return NotImplemented
        return NutritionData(**{name: getattr(self, name) + getattr(other, name) for name in _NUTRIENTS})

    def to_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class NutritionGoals(NutritionData):
    """Daily targets, compared against but never enforced."""

    @classmethod
    def default(cls) -> "NutritionGoals":
        goals = config.DEFAULT_NUTRITION_GOALS
        return cls(**{name: goals[name] for name in _NUTRIENTS if name in goals})

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> "NutritionGoals":
        base = cls.default().to_dict()
        base.update({k: v for k, v in data.items() if k in _NUTRIENTS})
        return cls(**base)


@dataclass(frozen=True)
class GoalComparison:
    nutrient: str
    actual: float
    goal: float

    @property
    def progress(self) -> float:
        if self.goal <= 0:
            return 0.0
        return self.actual / self.goal

    @property
    def status(self) -> str:
        if self.progress < 1 - config.GOAL_TOLERANCE:
            return "under"
        if self.progress > 1 + config.GOAL_TOLERANCE:
            return "over"
        return "on_track"

    def to_dict(self) -> dict[str, float | str]:
        return {
            "actual": self.actual,
            "goal": self.goal,
            "progress": self.progress,
            "status": self.status,
        }


def meal_nutrition(meal: Meal) -> NutritionData:
    """Nutrition of a meal: its recipe scaled by servings / recipe servings."""
    if meal.recipe is None:
        return NutritionData()
    return NutritionData.from_info(meal.recipe.nutrition, meal.servings / meal.recipe.servings)


def total_nutrition(meals: Iterable[Meal]) -> NutritionData:
    total = NutritionData()
    for meal in meals:
        total = total + meal_nutrition(meal)
    return total


def nutrition_for_day(calendar: MealCalendar, day: date | datetime) -> NutritionData:
    return total_nutrition(calendar.meals(day))


def nutrition_for_week(calendar: MealCalendar, start: date | datetime) -> dict[date, NutritionData]:
    """Per-day totals for the week, for the days that have meals."""
    return {
        day: nutrition_for_day(calendar, day)
        for day in week_days(start)
        if calendar.meals(day)
    }


def weekly_average(daily: dict[date, NutritionData]) -> NutritionData:
    """Per-field mean over the days present. No days averages to zero."""
    if not daily:
        return NutritionData()
    count = len(daily)
    total = NutritionData()
    for day_total in daily.values():
        total = total + day_total
    averaged = {name: getattr(total, name) / count for name in _NUTRIENTS}
    averaged["calories"] = int(total.calories / count)
    return NutritionData(**averaged)


def compare_to_goals(actual: NutritionData, goals: NutritionGoals) -> dict[str, GoalComparison]:
    return {
        name: GoalComparison(nutrient=name, actual=getattr(actual, name), goal=getattr(goals, name))
        for name in _NUTRIENTS
    }
