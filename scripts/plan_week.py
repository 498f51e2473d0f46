#!/usr/bin/env python3
"""
Auto-fill a week of meals from the recipe catalog and print the plan.

By default this is a dry run: the plan is generated and printed, the
calendar file is left alone. Pass --commit to write it.

Usage:
    python plan_week.py --week-start 2025-03-03
    python plan_week.py --week-start 2025-03-03 --diet Vegetarian --max-time 30
    python plan_week.py --week-start 2025-03-03 --budget 120 --commit
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path to import mealplan modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from mealplan import config
from mealplan.catalog import RecipeCatalog
from mealplan.logging_config import configure_logging
from mealplan.meal_calendar import MealCalendar, day_of
from mealplan.nutrition import nutrition_for_week, weekly_average
from mealplan.planner import GenerationResult, MealPlanGenerator
from mealplan.preferences import AutoFillPreferences, InvalidPreferencesError, per_meal_budget
from mealplan.recipes import RecipeLoadError
from mealplan.scoring import STRATEGIES, strategy_by_name
from mealplan.shopping_list import generate_grocery_list
from mealplan.storage import CalendarStoreError, JsonCalendarStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a weekly meal plan from the recipe catalog"
    )
    parser.add_argument(
        '--week-start',
        required=True,
        help='First day of the week (YYYY-MM-DD)'
    )
    parser.add_argument(
        '--meals-per-day',
        type=int,
        default=config.DEFAULT_MEALS_PER_DAY,
        choices=sorted(config.MEAL_TYPES_BY_COUNT),
        help='Meals per day (2: breakfast+dinner, 3: +lunch, 4: +snack)'
    )
    parser.add_argument(
        '--max-time',
        type=int,
        default=config.DEFAULT_MAX_COOKING_TIME,
        help='Maximum total cooking time in minutes'
    )
    parser.add_argument(
        '--budget',
        type=float,
        help='Weekly budget; split evenly across every meal of the week'
    )
    parser.add_argument(
        '--diet',
        action='append',
        default=[],
        help='Dietary restriction (repeatable, any one must match)'
    )
    parser.add_argument(
        '--cuisine',
        action='append',
        default=[],
        help='Preferred cuisine (repeatable, any one must match)'
    )
    parser.add_argument(
        '--servings',
        type=int,
        default=config.DEFAULT_SERVINGS_PER_MEAL,
        help='Servings per meal'
    )
    parser.add_argument(
        '--strategy',
        default="scored",
        choices=sorted(STRATEGIES),
        help='Recipe selection strategy'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Seed for the random strategy'
    )
    parser.add_argument(
        '--replace',
        action='store_true',
        help='Regenerate slots that already hold a meal'
    )
    parser.add_argument(
        '--commit',
        action='store_true',
        help='Write the plan to the calendar file'
    )
    parser.add_argument(
        '--recipes',
        default=config.RECIPES_FILE,
        help='Recipe catalog JSON file'
    )
    parser.add_argument(
        '--calendar',
        default=config.CALENDAR_FILE,
        help='Calendar JSON file'
    )
    return parser


def print_plan(result: GenerationResult, calendar: MealCalendar) -> None:
    by_day = result.meals_by_day()
    for day in result.days:
        print(f"\n{day.strftime('%A %Y-%m-%d')}")
        for meal in by_day.get(day, []):
            marker = " (fallback)" if meal.is_custom else ""
            details = ""
            if meal.recipe is not None:
                details = f"  [{meal.recipe.total_time_minutes} min, ${meal.recipe.estimated_cost:.2f}]"
            print(f"  {meal.meal_type.value:<10} {meal.recipe_name}{marker}{details}")
        for slot_day, meal_type in result.skipped_slots:
            if slot_day == day:
                existing = [m for m in calendar.meals(day) if m.meal_type == meal_type]
                label = existing[0].recipe_name if existing else "?"
                print(f"  {meal_type.value:<10} {label} (kept)")


def main():
    parser = build_parser()
    args = parser.parse_args()
    configure_logging()

    try:
        week_start = day_of(args.week_start)
    except ValueError:
        parser.error(f"--week-start must be an ISO date, got {args.week_start!r}")

    try:
        preferences = AutoFillPreferences(
            dietary_restrictions=args.diet,
            max_cooking_time=args.max_time,
            preferred_cuisines=args.cuisine,
            servings_per_meal=args.servings,
        )
        budget = per_meal_budget(args.budget, args.meals_per_day) if args.budget is not None else None
    except InvalidPreferencesError as e:
        parser.error(str(e))

    try:
        catalog = RecipeCatalog.from_file(args.recipes)
    except RecipeLoadError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    store = JsonCalendarStore(args.calendar)
    try:
        calendar = store.load()
    except CalendarStoreError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    generator = MealPlanGenerator(catalog, calendar, strategy=strategy_by_name(args.strategy, seed=args.seed))
    result = generator.generate_week(
        week_start,
        preferences,
        meals_per_day=args.meals_per_day,
        replace_existing=args.replace,
        per_meal_budget=budget,
    )

    print("=" * 60)
    print(f"Meal plan for week of {week_start.isoformat()}")
    print(f"📚 {len(catalog)} recipes, strategy: {generator.strategy.name}")
    print("=" * 60)
    print_plan(result, calendar)

    print()
    print("=" * 60)
    print(f"✅ Generated: {len(result.meals)} meals")
    print(f"⚠️  Fallback:  {result.fallback_count} meals")
    print(f"⏭️  Kept:      {len(result.skipped_slots)} existing meals")
    print("=" * 60)

    if args.commit:
        generator.commit(result)
        try:
            store.save(calendar)
        except CalendarStoreError as e:
            print(f"❌ {e}", file=sys.stderr)
            sys.exit(1)
        print(f"\n💾 Saved calendar to {args.calendar}")
        week = calendar
    else:
        print("\nDry run: calendar not modified (use --commit to save)")
        week = preview_calendar(result, calendar)

    print("\nShopping list:")
    for category, items in generate_grocery_list(week, week_start).items():
        print(f"  {category}: {', '.join(sorted(items))}")

    average = weekly_average(nutrition_for_week(week, week_start))
    print("\nDaily average:")
    print(
        f"  {average.calories} kcal, {average.protein:.0f}g protein, "
        f"{average.carbs:.0f}g carbs, {average.fat:.0f}g fat"
    )


def preview_calendar(result: GenerationResult, calendar: MealCalendar) -> MealCalendar:
    """The week as it would look after committing *result*, without touching *calendar*."""
    preview = MealCalendar()
    if not result.replace_existing:
        for meal in calendar.meals_for_week(result.week_start):
            preview.add_meal(meal)
    for meal in result.meals:
        preview.add_meal(meal)
    return preview


if __name__ == "__main__":
    main()
