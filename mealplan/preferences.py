from dataclasses import dataclass, field
from typing import Any

from mealplan import config


class InvalidPreferencesError(ValueError):
    """Raised when auto-fill preferences are out of range."""
    pass


@dataclass(frozen=True)
class AutoFillPreferences:
    """Caller-supplied constraints for one auto-fill run.

    Restriction and cuisine lists use OR semantics: a recipe only has to
    match one entry of each non-empty list.
    """
    dietary_restrictions: tuple[str, ...] = ()
    max_cooking_time: int = field(default_factory=lambda: config.DEFAULT_MAX_COOKING_TIME)
    budget_per_meal: float = field(default_factory=lambda: config.DEFAULT_BUDGET_PER_MEAL)
    preferred_cuisines: tuple[str, ...] = ()
    servings_per_meal: int = field(default_factory=lambda: config.DEFAULT_SERVINGS_PER_MEAL)

    def __post_init__(self):
        # Accept any iterable of strings but store tuples so the value stays hashable
        object.__setattr__(self, "dietary_restrictions", tuple(self.dietary_restrictions))
        object.__setattr__(self, "preferred_cuisines", tuple(self.preferred_cuisines))

        if self.max_cooking_time <= 0:
            raise InvalidPreferencesError("max_cooking_time must be a positive number of minutes")
        if self.budget_per_meal <= 0:
            raise InvalidPreferencesError("budget_per_meal must be positive")
        if self.servings_per_meal <= 0:
            raise InvalidPreferencesError("servings_per_meal must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AutoFillPreferences":
        """Build preferences from a JSON payload, defaulting missing keys."""
        kwargs: dict[str, Any] = {}
        try:
            if "dietary_restrictions" in data:
                kwargs["dietary_restrictions"] = [str(r) for r in data["dietary_restrictions"]]
            if "preferred_cuisines" in data:
                kwargs["preferred_cuisines"] = [str(c) for c in data["preferred_cuisines"]]
            if "max_cooking_time" in data:
                kwargs["max_cooking_time"] = int(data["max_cooking_time"])
            if "budget_per_meal" in data:
                kwargs["budget_per_meal"] = float(data["budget_per_meal"])
            if "servings_per_meal" in data:
                kwargs["servings_per_meal"] = int(data["servings_per_meal"])
        except (TypeError, ValueError) as e:
            raise InvalidPreferencesError(f"Invalid preferences: {e}") from e
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dietary_restrictions": list(self.dietary_restrictions),
            "max_cooking_time": self.max_cooking_time,
            "budget_per_meal": self.budget_per_meal,
            "preferred_cuisines": list(self.preferred_cuisines),
            "servings_per_meal": self.servings_per_meal,
        }


def per_meal_budget(weekly_budget: float, meals_per_day: int) -> float:
    """Split a weekly budget evenly across every meal slot of the week."""
    if weekly_budget <= 0:
        raise InvalidPreferencesError("weekly_budget must be positive")
    if meals_per_day <= 0:
        raise InvalidPreferencesError("meals_per_day must be positive")
    return weekly_budget / config.DAYS_PER_WEEK / meals_per_day
