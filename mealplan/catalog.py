"""Read-only recipe catalog.

Every query returns a new list in catalog order and never raises; an empty
result is a valid answer.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator

from mealplan.recipes import Recipe, RecipeCategory, load_recipes

logger = logging.getLogger(__name__)

# Share of a recipe's ingredients that must be on hand for a leftover suggestion
LEFTOVER_MATCH_THRESHOLD = 0.6


class RecipeCatalog:
    def __init__(self, recipes: Iterable[Recipe]):
        self._recipes: tuple[Recipe, ...] = tuple(recipes)

    @classmethod
    def from_file(cls, file_path: Path | str) -> "RecipeCatalog":
        recipes = load_recipes(file_path)
        logger.info("Recipe catalog loaded", extra={"recipe_count": len(recipes), "path": str(file_path)})
        return cls(recipes)

    @property
    def recipes(self) -> list[Recipe]:
        return list(self._recipes)

    def __len__(self) -> int:
        return len(self._recipes)

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self._recipes)

    def get(self, recipe_id: str) -> Recipe | None:
        return next((r for r in self._recipes if r.id == recipe_id), None)

    def search(self, query: str) -> list[Recipe]:
        """Case-insensitive substring match on name and description."""
        needle = query.lower()
        return [
            r for r in self._recipes
            if needle in r.name.lower() or needle in r.description.lower()
        ]

    def by_category(self, category: RecipeCategory) -> list[Recipe]:
        return [r for r in self._recipes if r.category == category]

    def by_dietary_tag(self, tag: str) -> list[Recipe]:
        needle = tag.lower()
        return [
            r for r in self._recipes
            if any(needle in dietary_tag.lower() for dietary_tag in r.dietary_tags)
        ]

    def quick_meals(self, max_minutes: int = 30) -> list[Recipe]:
        return [r for r in self._recipes if r.total_time_minutes <= max_minutes]

    def budget_friendly(self, max_cost: float = 20.0) -> list[Recipe]:
        return [r for r in self._recipes if r.estimated_cost <= max_cost]

    def top_rated(self, min_rating: float = 4.5) -> list[Recipe]:
        return [r for r in self._recipes if r.rating >= min_rating]

    def suggest_from_ingredients(
        self,
        available: Iterable[str],
        threshold: float = LEFTOVER_MATCH_THRESHOLD,
    ) -> list[Recipe]:
        """Recipes that can mostly be cooked from *available* ingredient names.

        An ingredient counts as on hand when either name contains the other
        (case-insensitive). Recipes without ingredients never match.
        """
        on_hand = [name.lower() for name in available]
        suggestions = []
        for recipe in self._recipes:
            needed = [name.lower() for name in recipe.ingredient_names]
            if not needed:
                continue
            matched = sum(
                1 for name in needed
                if any(have in name or name in have for have in on_hand)
            )
            if matched / len(needed) >= threshold:
                suggestions.append(recipe)
        return suggestions
