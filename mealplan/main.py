import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect

from mealplan import config
from mealplan.catalog import RecipeCatalog
from mealplan.logging_config import configure_logging
from mealplan.meal_calendar import Meal, MealCalendar, MealType, day_of, week_days
from mealplan.nutrition import (
    NutritionGoals,
    compare_to_goals,
    nutrition_for_week,
    weekly_average,
)
from mealplan.planner import MealPlanGenerator
from mealplan.preferences import AutoFillPreferences, per_meal_budget
from mealplan.recipes import Recipe, RecipeCategory
from mealplan.scoring import strategy_by_name
from mealplan.shopping_list import generate_grocery_list
from mealplan.storage import CalendarStore, CalendarStoreError, JsonCalendarStore

logger = logging.getLogger(__name__)

csrf = CSRFProtect()
limiter = Limiter(
    get_remote_address,
    default_limits=[],          # no global limit; apply per-route only
    storage_uri="memory://",
)

api = Blueprint("api", __name__)


@dataclass
class PlannerState:
    """Per-app collaborators. The lock guards every calendar read-modify-write."""
    catalog: RecipeCatalog
    calendar: MealCalendar
    store: CalendarStore
    goals: NutritionGoals
    lock: threading.Lock = field(default_factory=threading.Lock)


def create_app(
    catalog: RecipeCatalog | None = None,
    calendar: MealCalendar | None = None,
    store: CalendarStore | None = None,
    goals: NutritionGoals | None = None,
    config_overrides: dict[str, Any] | None = None,
) -> Flask:
    """Build the API app, loading the catalog and calendar unless injected."""
    configure_logging()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config.update(config_overrides or {})

    csrf.init_app(app)
    limiter.init_app(app)

    if catalog is None:
        catalog = RecipeCatalog.from_file(config.RECIPES_FILE)
    if store is None:
        store = JsonCalendarStore(config.CALENDAR_FILE)
    if calendar is None:
        calendar = store.load()

    app.extensions["mealplan"] = PlannerState(
        catalog=catalog,
        calendar=calendar,
        store=store,
        goals=goals or NutritionGoals.default(),
    )
    app.register_blueprint(api)
    return app


def _state() -> PlannerState:
    return current_app.extensions["mealplan"]


def _persist(state: PlannerState):
    """Save the calendar; returns an error response on failure, else None."""
    try:
        state.store.save(state.calendar)
    except CalendarStoreError as e:
        logger.exception("Failed to persist calendar")
        return jsonify({"error": f"Failed to save calendar: {e}"}), 500
    return None


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_recipe(recipe: Recipe) -> dict[str, Any]:
    data = recipe.to_dict()
    data["total_time_minutes"] = recipe.total_time_minutes
    data["dietary_tags"] = recipe.dietary_tags
    data["ingredients"] = [
        {**ingredient.to_dict(), "display_amount": ingredient.display_amount}
        for ingredient in recipe.ingredients
    ]
    return data


def _serialize_meal(meal: Meal) -> dict[str, Any]:
    return {
        "id": meal.id,
        "date": meal.date.isoformat(),
        "meal_type": meal.meal_type.value,
        "recipe_name": meal.recipe_name,
        "recipe_id": meal.recipe.id if meal.recipe else None,
        "custom_meal": meal.custom_meal,
        "servings": meal.servings,
        "ingredients": list(meal.ingredients),
        "notes": meal.notes,
        "completed": meal.completed,
        "total_time": meal.recipe.total_time_minutes if meal.recipe else None,
        "estimated_cost": meal.recipe.estimated_cost if meal.recipe else None,
        "calories": meal.recipe.nutrition.calories if meal.recipe else None,
    }


def _serialize_result(result) -> dict[str, Any]:
    return {
        "week_start": result.week_start.isoformat(),
        "meals": [_serialize_meal(m) for m in result.meals],
        "fallback_count": result.fallback_count,
        "skipped_slots": [
            {"date": day.isoformat(), "meal_type": meal_type.value}
            for day, meal_type in result.skipped_slots
        ],
    }


def _parse_day(value: Any, field_name: str) -> date:
    if not value:
        raise ValueError(f"Missing required field: {field_name}")
    try:
        return day_of(str(value))
    except ValueError as e:
        raise ValueError(f"Invalid date for {field_name}: {value!r}") from e


def _week_start_arg() -> date:
    return _parse_day(request.args.get("week_start"), "week_start")


@dataclass
class _PlanRequest:
    day: date
    preferences: AutoFillPreferences
    meals_per_day: int
    replace_existing: bool
    per_meal_budget: float | None
    strategy: str
    seed: int | None


def _parse_plan_request(data: dict[str, Any], day_field: str) -> _PlanRequest:
    """Validate a plan payload. Raises ValueError on bad input."""
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")

    day = _parse_day(data.get(day_field), day_field)
    preferences = AutoFillPreferences.from_dict(data.get("preferences") or {})

    try:
        meals_per_day = int(data.get("meals_per_day", config.DEFAULT_MEALS_PER_DAY))
    except (TypeError, ValueError) as e:
        raise ValueError("meals_per_day must be an integer") from e
    if meals_per_day not in config.MEAL_TYPES_BY_COUNT:
        raise ValueError(f"meals_per_day must be one of {sorted(config.MEAL_TYPES_BY_COUNT)}")

    budget = None
    if data.get("weekly_budget") is not None:
        try:
            weekly_budget = float(data["weekly_budget"])
        except (TypeError, ValueError) as e:
            raise ValueError("weekly_budget must be a number") from e
        budget = per_meal_budget(weekly_budget, meals_per_day)

    seed = data.get("seed")
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
        raise ValueError("seed must be an integer")

    return _PlanRequest(
        day=day,
        preferences=preferences,
        meals_per_day=meals_per_day,
        replace_existing=bool(data.get("replace_existing", False)),
        per_meal_budget=budget,
        strategy=str(data.get("strategy", "scored")),
        seed=seed,
    )


def _generator(state: PlannerState, plan_request: _PlanRequest) -> MealPlanGenerator:
    strategy = strategy_by_name(plan_request.strategy, seed=plan_request.seed)
    return MealPlanGenerator(state.catalog, state.calendar, strategy=strategy)


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------

@api.route("/recipes")
def list_recipes():
    """Query the catalog. Every given filter must hold."""
    catalog = _state().catalog
    results = catalog.recipes

    try:
        if request.args.get("q"):
            matching = {r.id for r in catalog.search(request.args["q"])}
            results = [r for r in results if r.id in matching]
        if request.args.get("category"):
            matching = {r.id for r in catalog.by_category(RecipeCategory(request.args["category"]))}
            results = [r for r in results if r.id in matching]
        if request.args.get("dietary"):
            matching = {r.id for r in catalog.by_dietary_tag(request.args["dietary"])}
            results = [r for r in results if r.id in matching]
        if request.args.get("max_time"):
            matching = {r.id for r in catalog.quick_meals(int(request.args["max_time"]))}
            results = [r for r in results if r.id in matching]
        if request.args.get("max_cost"):
            matching = {r.id for r in catalog.budget_friendly(float(request.args["max_cost"]))}
            results = [r for r in results if r.id in matching]
        if request.args.get("min_rating"):
            matching = {r.id for r in catalog.top_rated(float(request.args["min_rating"]))}
            results = [r for r in results if r.id in matching]
        if request.args.get("have"):
            on_hand = [name.strip() for name in request.args["have"].split(",") if name.strip()]
            matching = {r.id for r in catalog.suggest_from_ingredients(on_hand)}
            results = [r for r in results if r.id in matching]
    except ValueError as e:
        return jsonify({"error": f"Invalid query parameter: {e}"}), 400

    return jsonify({"recipes": [_serialize_recipe(r) for r in results], "count": len(results)})


@api.route("/recipes/<recipe_id>")
def get_recipe(recipe_id):
    recipe = _state().catalog.get(recipe_id)
    if recipe is None:
        return jsonify({"error": f"Recipe not found: {recipe_id}"}), 404
    return jsonify(_serialize_recipe(recipe))


# ---------------------------------------------------------------------------
# Plan generation
# ---------------------------------------------------------------------------

@api.route("/plan/preview", methods=["POST"])
def preview_plan():
    """Generate a week without touching the calendar."""
    logger.info("Previewing weekly plan")
    state = _state()
    try:
        plan_request = _parse_plan_request(request.get_json(silent=True), "week_start")
        generator = _generator(state, plan_request)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    with state.lock:
        result = generator.generate_week(
            plan_request.day,
            plan_request.preferences,
            meals_per_day=plan_request.meals_per_day,
            replace_existing=plan_request.replace_existing,
            per_meal_budget=plan_request.per_meal_budget,
        )
    return jsonify(_serialize_result(result))


@api.route("/plan/generate", methods=["POST"])
@limiter.limit(config.GENERATE_RATE_LIMIT)
def generate_plan():
    """Generate a week and commit it to the calendar."""
    logger.info("Generating and committing weekly plan")
    state = _state()
    try:
        plan_request = _parse_plan_request(request.get_json(silent=True), "week_start")
        generator = _generator(state, plan_request)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    with state.lock:
        result = generator.generate_week(
            plan_request.day,
            plan_request.preferences,
            meals_per_day=plan_request.meals_per_day,
            replace_existing=plan_request.replace_existing,
            per_meal_budget=plan_request.per_meal_budget,
        )
        generator.commit(result)
        error = _persist(state)
    if error:
        return error

    payload = _serialize_result(result)
    payload["success"] = True
    return jsonify(payload)


@api.route("/plan/regenerate-day", methods=["POST"])
def regenerate_day():
    """Replace one day's meals with a freshly generated set."""
    state = _state()
    try:
        plan_request = _parse_plan_request(request.get_json(silent=True), "day")
        generator = _generator(state, plan_request)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    logger.info("Regenerating day", extra={"day": plan_request.day.isoformat()})
    with state.lock:
        result = generator.regenerate_day(
            plan_request.day,
            plan_request.preferences,
            meals_per_day=plan_request.meals_per_day,
            per_meal_budget=plan_request.per_meal_budget,
        )
        generator.replace_day(result)
        error = _persist(state)
    if error:
        return error

    payload = _serialize_result(result)
    payload["success"] = True
    return jsonify(payload)


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

@api.route("/calendar")
def get_calendar():
    try:
        week_start = _week_start_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state = _state()
    with state.lock:
        days = {
            day.isoformat(): [_serialize_meal(m) for m in state.calendar.meals(day)]
            for day in week_days(week_start)
        }
    return jsonify({"week_start": week_start.isoformat(), "days": days})


@api.route("/calendar/meals", methods=["POST"])
def add_meal():
    """Add a meal from a catalog recipe (scaled to servings) or a custom label."""
    state = _state()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    for required in ("date", "meal_type"):
        if required not in data:
            return jsonify({"error": f"Missing required field: {required}"}), 400

    try:
        day = _parse_day(data["date"], "date")
        meal_type = MealType(data["meal_type"])
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    servings = data.get("servings", config.DEFAULT_SERVINGS_PER_MEAL)
    if not isinstance(servings, int) or isinstance(servings, bool) or servings <= 0:
        return jsonify({"error": "servings must be a positive integer"}), 400

    if data.get("recipe_id"):
        recipe = state.catalog.get(data["recipe_id"])
        if recipe is None:
            return jsonify({"error": f"Recipe not found: {data['recipe_id']}"}), 404
        meal = Meal.from_recipe(recipe, day, meal_type, servings=servings, notes=data.get("notes"))
    elif data.get("custom_meal"):
        meal = Meal(
            date=day,
            meal_type=meal_type,
            recipe_name=data["custom_meal"],
            ingredients=tuple(data.get("ingredients", [])),
            custom_meal=data["custom_meal"],
            servings=servings,
            notes=data.get("notes"),
        )
    else:
        return jsonify({"error": "Either recipe_id or custom_meal is required"}), 400

    with state.lock:
        state.calendar.add_meal(meal)
        error = _persist(state)
    if error:
        return error

    logger.info("Meal added", extra={"meal_id": meal.id, "day": day.isoformat(), "meal_type": meal_type.value})
    return jsonify({"success": True, "meal": _serialize_meal(meal)}), 201


@api.route("/calendar/meals/<meal_id>", methods=["PUT"])
def update_meal(meal_id):
    """Update servings, notes or the completed flag of a stored meal."""
    state = _state()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    with state.lock:
        meal = state.calendar.find_meal(meal_id)
        if meal is None:
            return jsonify({"error": f"Meal not found: {meal_id}"}), 404

        changes: dict[str, Any] = {}
        if "servings" in data:
            servings = data["servings"]
            if not isinstance(servings, int) or isinstance(servings, bool) or servings <= 0:
                return jsonify({"error": "servings must be a positive integer"}), 400
            changes["servings"] = servings
        if "notes" in data:
            changes["notes"] = data["notes"]
        if "completed" in data:
            changes["completed"] = bool(data["completed"])

        if "servings" in changes and meal.recipe is not None:
            # Rescale the snapshot so ingredients and nutrition follow servings
            updated = Meal.from_recipe(meal.recipe, meal.date, meal.meal_type, servings=changes.pop("servings"))
            updated = replace(updated, id=meal.id, notes=meal.notes, completed=meal.completed)
            updated = replace(updated, **changes)
        else:
            updated = replace(meal, **changes)

        state.calendar.update_meal(updated)
        error = _persist(state)
    if error:
        return error

    return jsonify({"success": True, "meal": _serialize_meal(updated)})


@api.route("/calendar/meals/<meal_id>", methods=["DELETE"])
def remove_meal(meal_id):
    state = _state()
    with state.lock:
        meal = state.calendar.find_meal(meal_id)
        if meal is None:
            return jsonify({"error": f"Meal not found: {meal_id}"}), 404
        state.calendar.remove_meal(meal)
        error = _persist(state)
    if error:
        return error

    logger.info("Meal removed", extra={"meal_id": meal_id})
    return jsonify({"success": True})


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

@api.route("/shopping-list")
def shopping_list():
    try:
        week_start = _week_start_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state = _state()
    with state.lock:
        grocery_list = generate_grocery_list(state.calendar, week_start)
    return jsonify({
        "week_start": week_start.isoformat(),
        "items_by_category": {category: sorted(items) for category, items in grocery_list.items()},
        "item_count": sum(len(items) for items in grocery_list.values()),
    })


@api.route("/nutrition")
def nutrition():
    try:
        week_start = _week_start_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state = _state()
    with state.lock:
        daily = nutrition_for_week(state.calendar, week_start)
    average = weekly_average(daily)
    return jsonify({
        "week_start": week_start.isoformat(),
        "daily": {day.isoformat(): totals.to_dict() for day, totals in daily.items()},
        "weekly_average": average.to_dict(),
        "goals": {
            nutrient: comparison.to_dict()
            for nutrient, comparison in compare_to_goals(average, state.goals).items()
        },
    })


if __name__ == "__main__":
    import os
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV") != "production"
    create_app().run(host="0.0.0.0", port=port, debug=debug)
