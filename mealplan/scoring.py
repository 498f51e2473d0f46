"""Recipe scoring and the pluggable selection strategies."""

import logging
import random
from abc import ABC, abstractmethod
from typing import Sequence

from mealplan.preferences import AutoFillPreferences
from mealplan.recipes import Recipe

logger = logging.getLogger(__name__)

PROTEIN_KCAL_PER_GRAM = 4
CARB_KCAL_PER_GRAM = 4
FAT_KCAL_PER_GRAM = 9

# Share of calories coming from each macro that counts as balanced
PROTEIN_RATIO_RANGE = (0.15, 0.35)
CARB_RATIO_RANGE = (0.30, 0.65)
FAT_RATIO_RANGE = (0.20, 0.40)


def nutrition_score(recipe: Recipe) -> float:
    """Macro-balance term, 0 to 5."""
    nutrition = recipe.nutrition
    score = 0.0

    if nutrition.protein >= 20:
        score += 2.0
    elif nutrition.protein >= 10:
        score += 1.0

    if nutrition.fiber is not None and nutrition.fiber >= 5:
        score += 1.0

    # Ratios are undefined without calories; such recipes get no balance credit
    if nutrition.calories <= 0:
        return score

    total = float(nutrition.calories)
    ratios = [
        (nutrition.protein * PROTEIN_KCAL_PER_GRAM / total, PROTEIN_RATIO_RANGE),
        (nutrition.carbs * CARB_KCAL_PER_GRAM / total, CARB_RATIO_RANGE),
        (nutrition.fat * FAT_KCAL_PER_GRAM / total, FAT_RATIO_RANGE),
    ]
    for ratio, (low, high) in ratios:
        if low <= ratio <= high:
            score += 1.0
    return score


def score_recipe(recipe: Recipe, preferences: AutoFillPreferences | None = None) -> float:
    """Weighted desirability of a recipe. Higher is better.

    Terms: rating (0-10), popularity (0-5), time efficiency (0-10),
    cost efficiency (0-10) and macro balance (0-5). *preferences* is
    accepted for strategy symmetry; no term depends on it.
    """
    rating_term = recipe.rating * 2.0
    popularity_term = min(recipe.review_count / 1000.0, 5.0)
    time_term = max(0.0, 10.0 - recipe.total_time_minutes / 5.0)
    cost_term = max(0.0, 10.0 - recipe.estimated_cost / 2.0)
    return rating_term + popularity_term + time_term + cost_term + nutrition_score(recipe)


def rank_recipes(
    candidates: Sequence[Recipe],
    preferences: AutoFillPreferences | None = None,
) -> list[tuple[Recipe, float]]:
    """Candidates with their scores, best first. Ties keep catalog order."""
    scored = [(recipe, score_recipe(recipe, preferences)) for recipe in candidates]
    # sorted() is stable, so equal scores stay in input order
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


class SelectionStrategy(ABC):
    """Picks one recipe for a slot from already-narrowed candidates."""

    name: str = ""

    @abstractmethod
    def select(
        self,
        candidates: Sequence[Recipe],
        preferences: AutoFillPreferences,
    ) -> Recipe | None:
        """Return the chosen recipe, or None when there are no candidates."""


class ScoredStrategy(SelectionStrategy):
    """Highest-scoring candidate wins. The default strategy."""

    name = "scored"

    def select(self, candidates, preferences):
        if not candidates:
            return None
        best, best_score = rank_recipes(candidates, preferences)[0]
        logger.debug("Selected best-scoring recipe", extra={"recipe_id": best.id, "score": round(best_score, 2)})
        return best


class RandomStrategy(SelectionStrategy):
    """Uniform random choice among candidates."""

    name = "random"

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def select(self, candidates, preferences):
        if not candidates:
            return None
        return self._rng.choice(list(candidates))


STRATEGIES: dict[str, type[SelectionStrategy]] = {
    ScoredStrategy.name: ScoredStrategy,
    RandomStrategy.name: RandomStrategy,
}


def strategy_by_name(name: str, seed: int | None = None) -> SelectionStrategy:
    """Build a strategy from its name ("scored" or "random")."""
    if name not in STRATEGIES:
        raise ValueError(f"Unknown selection strategy: {name!r} (expected one of {sorted(STRATEGIES)})")
    if name == RandomStrategy.name:
        return RandomStrategy(random.Random(seed))
    return STRATEGIES[name]()
