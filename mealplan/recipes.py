import json
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any


class RecipeLoadError(Exception):
    """Raised when recipes cannot be loaded from file."""
    pass


class RecipeCategory(str, Enum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    DESSERT = "Dessert"
    SNACK = "Snack"
    APPETIZER = "Appetizer"
    SOUP = "Soup"
    SALAD = "Salad"
    PASTA = "Pasta"
    MEAT = "Meat"
    SEAFOOD = "Seafood"
    VEGETARIAN = "Vegetarian"
    VEGAN = "Vegan"
    QUICK_MEALS = "Quick Meals"
    SLOW_COOKER = "Slow Cooker"
    BAKING = "Baking"
    DRINKS = "Drinks"


class RecipeDifficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


@dataclass(frozen=True)
class NutritionInfo:
    """Nutrition for the recipe's base serving count."""
    calories: int = 0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None

    def scaled(self, factor: float) -> "NutritionInfo":
        def _opt(value: float | None) -> float | None:
            return None if value is None else value * factor

        return NutritionInfo(
            calories=int(self.calories * factor),
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
            fiber=_opt(self.fiber),
            sugar=_opt(self.sugar),
            sodium=_opt(self.sodium),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NutritionInfo":
        return cls(
            calories=int(data.get("calories") or 0),
            protein=float(data.get("protein") or 0.0),
            carbs=float(data.get("carbs") or 0.0),
            fat=float(data.get("fat") or 0.0),
            fiber=data.get("fiber"),
            sugar=data.get("sugar"),
            sodium=data.get("sodium"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "fiber": self.fiber,
            "sugar": self.sugar,
            "sodium": self.sodium,
        }


# Flag attribute -> human-readable tag, in display order
_DIETARY_TAGS: list[tuple[str, str]] = [
    ("is_vegetarian", "Vegetarian"),
    ("is_vegan", "Vegan"),
    ("is_gluten_free", "Gluten-Free"),
    ("is_dairy_free", "Dairy-Free"),
    ("is_nut_free", "Nut-Free"),
    ("is_keto", "Keto"),
    ("is_paleo", "Paleo"),
]


@dataclass(frozen=True)
class DietaryInfo:
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_dairy_free: bool = False
    is_nut_free: bool = False
    is_keto: bool = False
    is_paleo: bool = False
    allergens: tuple[str, ...] = ()

    @property
    def dietary_tags(self) -> list[str]:
        return [tag for attr, tag in _DIETARY_TAGS if getattr(self, attr)]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DietaryInfo":
        flags = {attr: bool(data.get(attr, False)) for attr, _ in _DIETARY_TAGS}
        return cls(**flags, allergens=tuple(data.get("allergens", [])))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {attr: getattr(self, attr) for attr, _ in _DIETARY_TAGS}
        data["allergens"] = list(self.allergens)
        return data


@dataclass(frozen=True)
class RecipeIngredient:
    name: str
    amount: float
    unit: str
    aisle: int = 0
    estimated_price: float = 0.0
    notes: str | None = None

    @property
    def display_amount(self) -> str:
        if float(self.amount).is_integer():
            return f"{int(self.amount)} {self.unit}"
        return f"{self.amount} {self.unit}"

    def scaled(self, factor: float) -> "RecipeIngredient":
        """Scale amount and price; unit and aisle never change."""
        return replace(
            self,
            amount=self.amount * factor,
            estimated_price=self.estimated_price * factor,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecipeIngredient":
        return cls(
            name=data["name"],
            amount=float(data.get("amount", 0.0)),
            unit=data.get("unit", ""),
            aisle=int(data.get("aisle", 0)),
            estimated_price=float(data.get("estimated_price", 0.0)),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "aisle": self.aisle,
            "estimated_price": self.estimated_price,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class Recipe:
    id: str
    name: str
    category: RecipeCategory
    servings: int
    prep_time_minutes: int
    cook_time_minutes: int
    description: str = ""
    difficulty: RecipeDifficulty = RecipeDifficulty.EASY
    ingredients: tuple[RecipeIngredient, ...] = ()
    instructions: tuple[str, ...] = ()
    nutrition: NutritionInfo = field(default_factory=NutritionInfo)
    tags: tuple[str, ...] = ()
    image_url: str | None = None
    rating: float = 0.0
    review_count: int = 0
    dietary_info: DietaryInfo = field(default_factory=DietaryInfo)
    estimated_cost: float = 0.0
    cuisine: str = ""
    author: str = ""

    @property
    def total_time_minutes(self) -> int:
        return self.prep_time_minutes + self.cook_time_minutes

    @property
    def dietary_tags(self) -> list[str]:
        return self.dietary_info.dietary_tags

    @property
    def ingredient_names(self) -> list[str]:
        return [ingredient.name for ingredient in self.ingredients]

    def scaled_recipe(self, servings: int) -> "Recipe":
        """Return a copy rescaled linearly to *servings*.

        Ingredient amounts and prices, nutrition and the estimated cost are
        all multiplied by ``servings / self.servings``.
        """
        factor = servings / self.servings
        return replace(
            self,
            servings=servings,
            ingredients=tuple(ingredient.scaled(factor) for ingredient in self.ingredients),
            nutrition=self.nutrition.scaled(factor),
            estimated_cost=self.estimated_cost * factor,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipe":
        """Create Recipe from its JSON dictionary form."""
        required = ["id", "name", "category", "servings", "prep_time_minutes", "cook_time_minutes"]
        missing = [f for f in required if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        if int(data["servings"]) <= 0:
            raise ValueError(f"Recipe '{data['id']}' must have a positive serving count")

        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=RecipeCategory(data["category"]),
            difficulty=RecipeDifficulty(data.get("difficulty", RecipeDifficulty.EASY.value)),
            servings=int(data["servings"]),
            prep_time_minutes=int(data["prep_time_minutes"]),
            cook_time_minutes=int(data["cook_time_minutes"]),
            ingredients=tuple(RecipeIngredient.from_dict(i) for i in data.get("ingredients", [])),
            instructions=tuple(data.get("instructions", [])),
            nutrition=NutritionInfo.from_dict(data.get("nutrition", {})),
            tags=tuple(data.get("tags", [])),
            image_url=data.get("image_url"),
            rating=float(data.get("rating", 0.0)),
            review_count=int(data.get("review_count", 0)),
            dietary_info=DietaryInfo.from_dict(data.get("dietary_info", {})),
            estimated_cost=float(data.get("estimated_cost", 0.0)),
            cuisine=data.get("cuisine", ""),
            author=data.get("author", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "servings": self.servings,
            "prep_time_minutes": self.prep_time_minutes,
            "cook_time_minutes": self.cook_time_minutes,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "instructions": list(self.instructions),
            "nutrition": self.nutrition.to_dict(),
            "tags": list(self.tags),
            "image_url": self.image_url,
            "rating": self.rating,
            "review_count": self.review_count,
            "dietary_info": self.dietary_info.to_dict(),
            "estimated_cost": self.estimated_cost,
            "cuisine": self.cuisine,
            "author": self.author,
        }


def load_recipes(file_path: Path | str) -> list[Recipe]:
    file_path = Path(file_path)

    if not file_path.exists():
        raise RecipeLoadError(f"Recipe file not found: {file_path}")

    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RecipeLoadError(f"Invalid JSON in recipe file: {e}") from e

    if "recipes" not in data:
        raise RecipeLoadError("Recipe file must contain a 'recipes' key")

    try:
        return [Recipe.from_dict(r) for r in data["recipes"]]
    except ValueError as e:
        raise RecipeLoadError(f"Invalid recipe in {file_path}: {e}") from e
