"""In-memory meal calendar: the system of record the planner reads and writes.

Days are calendar dates (time of day stripped). The calendar keeps three
invariants after every call:

* every meal stored under day ``D`` has ``meal.date == D``;
* meal ids are unique within a day;
* a day with no meals has no entry at all.

The calendar is not thread-safe. Hosts that share one instance across
threads must hold a single lock for each read-modify-write sequence.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from mealplan import config
from mealplan.recipes import Recipe

logger = logging.getLogger(__name__)


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


def day_of(value: date | datetime | str) -> date:
    """Truncate a datetime (or ISO string) to its calendar day."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def week_days(start: date | datetime | str) -> list[date]:
    first = day_of(start)
    return [first + timedelta(days=offset) for offset in range(config.DAYS_PER_WEEK)]


def _new_meal_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Meal:
    """One slot assignment. Change a meal by replacing it (see update_meal)."""
    date: date
    meal_type: MealType
    recipe_name: str
    ingredients: tuple[str, ...] = ()
    recipe: Recipe | None = None
    custom_meal: str | None = None
    servings: int = 1
    notes: str | None = None
    completed: bool = False
    id: str = field(default_factory=_new_meal_id)

    def __post_init__(self):
        object.__setattr__(self, "date", day_of(self.date))
        object.__setattr__(self, "meal_type", MealType(self.meal_type))
        object.__setattr__(self, "ingredients", tuple(self.ingredients))
        if self.recipe is None and self.custom_meal is None:
            object.__setattr__(self, "custom_meal", self.recipe_name)

    @classmethod
    def from_recipe(
        cls,
        recipe: Recipe,
        day: date | datetime,
        meal_type: MealType,
        servings: int | None = None,
        notes: str | None = None,
    ) -> "Meal":
        """Assign *recipe* to a slot, scaling it when *servings* differs."""
        if servings is not None and servings != recipe.servings:
            recipe = recipe.scaled_recipe(servings)
        return cls(
            date=day,
            meal_type=meal_type,
            recipe_name=recipe.name,
            ingredients=tuple(recipe.ingredient_names),
            recipe=recipe,
            servings=recipe.servings,
            notes=notes,
        )

    @property
    def is_custom(self) -> bool:
        return self.recipe is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "meal_type": self.meal_type.value,
            "recipe_name": self.recipe_name,
            "ingredients": list(self.ingredients),
            "recipe": self.recipe.to_dict() if self.recipe else None,
            "custom_meal": self.custom_meal,
            "servings": self.servings,
            "notes": self.notes,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Meal":
        recipe_data = data.get("recipe")
        return cls(
            id=data["id"],
            date=day_of(data["date"]),
            meal_type=MealType(data["meal_type"]),
            recipe_name=data["recipe_name"],
            ingredients=tuple(data.get("ingredients", [])),
            recipe=Recipe.from_dict(recipe_data) if recipe_data else None,
            custom_meal=data.get("custom_meal"),
            servings=int(data.get("servings", 1)),
            notes=data.get("notes"),
            completed=bool(data.get("completed", False)),
        )


class MealCalendar:
    def __init__(self):
        self._days: dict[date, list[Meal]] = {}

    @property
    def days(self) -> list[date]:
        """Days holding at least one meal, in date order."""
        return sorted(self._days)

    def __len__(self) -> int:
        return sum(len(meals) for meals in self._days.values())

    def add_meal(self, meal: Meal) -> Meal:
        """Append *meal* to its day. A meal whose id is already on that day replaces it."""
        day = day_of(meal.date)
        if meal.date != day:
            meal = replace(meal, date=day)

        day_meals = self._days.setdefault(day, [])
        if any(existing.id == meal.id for existing in day_meals):
            logger.debug("Meal id already on day, replacing", extra={"meal_id": meal.id, "day": day.isoformat()})
            day_meals[:] = [existing for existing in day_meals if existing.id != meal.id]
        day_meals.append(meal)
        logger.debug(
            "Meal added",
            extra={"meal_id": meal.id, "day": day.isoformat(), "meal_type": meal.meal_type.value},
        )
        return meal

    def remove_meal(self, meal: Meal) -> None:
        """Remove by id from the meal's day. Unknown meals are ignored."""
        self._remove_from_day(day_of(meal.date), meal.id)

    def update_meal(self, meal: Meal) -> Meal:
        """Replace the stored meal with the same id (remove-then-add).

        The old entry is removed from whichever day holds it, so a meal
        whose date changed moves to its new day.
        """
        for day in list(self._days):
            self._remove_from_day(day, meal.id)
        return self.add_meal(meal)

    def find_meal(self, meal_id: str) -> Meal | None:
        for meals in self._days.values():
            for meal in meals:
                if meal.id == meal_id:
                    return meal
        return None

    def meals(self, day: date | datetime) -> list[Meal]:
        return list(self._days.get(day_of(day), []))

    def meals_for_week(self, start: date | datetime) -> list[Meal]:
        week: list[Meal] = []
        for day in week_days(start):
            week.extend(self.meals(day))
        return week

    def has_meal(self, day: date | datetime, meal_type: MealType) -> bool:
        return any(meal.meal_type == meal_type for meal in self._days.get(day_of(day), []))

    def clear_day(self, day: date | datetime) -> list[Meal]:
        """Remove every meal of *day*, returning what was removed."""
        removed = self._days.pop(day_of(day), [])
        if removed:
            logger.debug("Day cleared", extra={"day": day_of(day).isoformat(), "removed": len(removed)})
        return removed

    def _remove_from_day(self, day: date, meal_id: str) -> None:
        day_meals = self._days.get(day)
        if day_meals is None:
            return
        remaining = [meal for meal in day_meals if meal.id != meal_id]
        if len(remaining) == len(day_meals):
            return
        if remaining:
            self._days[day] = remaining
        else:
            del self._days[day]
        logger.debug("Meal removed", extra={"meal_id": meal_id, "day": day.isoformat()})
