import json

import pytest

from mealplan.catalog import RecipeCatalog
from mealplan.main import create_app
from mealplan.meal_calendar import MealCalendar, MealType
from mealplan.recipes import DietaryInfo, RecipeCategory
from mealplan.storage import CalendarStoreError, InMemoryCalendarStore
from tests.conftest import create_test_meal, create_test_recipe

WEEK_START = "2025-03-03"

TEST_CONFIG = {
    "TESTING": True,
    "WTF_CSRF_ENABLED": False,
    "RATELIMIT_ENABLED": False,
}


@pytest.fixture
def catalog():
    vegetarian = DietaryInfo(is_vegetarian=True)
    return RecipeCatalog([
        create_test_recipe(
            "REC002",
            "Avocado Toast",
            category=RecipeCategory.BREAKFAST,
            servings=2,
            estimated_cost=13.45,
            prep_time_minutes=10,
            cook_time_minutes=15,
            dietary_info=vegetarian,
            ingredients=["Sourdough Bread", "Avocados", "Eggs"],
        ),
        create_test_recipe(
            "REC003",
            "Chicken Caesar Salad",
            category=RecipeCategory.SALAD,
            servings=4,
            estimated_cost=12.0,
            ingredients=["Romaine Lettuce", "Chicken Breast", "Parmesan Cheese"],
        ),
        create_test_recipe(
            "REC004",
            "Chicken Alfredo Pasta",
            category=RecipeCategory.PASTA,
            servings=4,
            estimated_cost=14.0,
            prep_time_minutes=15,
            cook_time_minutes=25,
            ingredients=["Fettuccine", "Chicken Breast", "Heavy Cream"],
        ),
    ])


@pytest.fixture
def store():
    return InMemoryCalendarStore()


@pytest.fixture
def app(catalog, store):
    return create_app(catalog=catalog, calendar=MealCalendar(), store=store, config_overrides=TEST_CONFIG)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def put_json(client, url, payload):
    return client.put(url, data=json.dumps(payload), content_type="application/json")


class TestRecipes:
    def test_list_recipes(self, client):
        response = client.get("/recipes")
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["count"] == 3
        assert [r["id"] for r in data["recipes"]] == ["REC002", "REC003", "REC004"]
        assert data["recipes"][0]["total_time_minutes"] == 25
        assert data["recipes"][0]["dietary_tags"] == ["Vegetarian"]

    def test_filters_combine(self, client):
        response = client.get("/recipes?q=chicken&max_time=35")
        data = json.loads(response.data)
        assert [r["id"] for r in data["recipes"]] == ["REC003"]

    def test_dietary_and_category_filters(self, client):
        data = json.loads(client.get("/recipes?dietary=vegetarian").data)
        assert [r["id"] for r in data["recipes"]] == ["REC002"]
        data = json.loads(client.get("/recipes?category=Pasta").data)
        assert [r["id"] for r in data["recipes"]] == ["REC004"]

    def test_cost_and_rating_filters(self, client):
        data = json.loads(client.get("/recipes?max_cost=12.5&min_rating=4").data)
        assert [r["id"] for r in data["recipes"]] == ["REC003"]

    def test_leftover_suggestions(self, client):
        data = json.loads(client.get("/recipes", query_string={"have": "chicken,romaine lettuce,parmesan"}).data)
        assert [r["id"] for r in data["recipes"]] == ["REC003"]

    def test_leftover_suggestions_combine_with_filters(self, client):
        data = json.loads(client.get("/recipes?have=chicken,romaine,parmesan,fettuccine,cream&max_time=35").data)
        assert [r["id"] for r in data["recipes"]] == ["REC003"]

    def test_invalid_filter_value(self, client):
        assert client.get("/recipes?category=Brunch").status_code == 400
        assert client.get("/recipes?max_time=soon").status_code == 400

    def test_get_recipe(self, client):
        response = client.get("/recipes/REC004")
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["name"] == "Chicken Alfredo Pasta"
        assert data["ingredients"][0]["name"] == "Fettuccine"
        assert data["ingredients"][0]["display_amount"] == "1 unit"

    def test_get_recipe_not_found(self, client):
        response = client.get("/recipes/nonexistent")
        assert response.status_code == 404
        assert "error" in json.loads(response.data)


class TestPlanPreview:
    def test_preview_returns_full_week_without_saving(self, client, store):
        response = post_json(client, "/plan/preview", {"week_start": WEEK_START})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["week_start"] == WEEK_START
        assert len(data["meals"]) == 21
        assert store.save_count == 0

        calendar = json.loads(client.get(f"/calendar?week_start={WEEK_START}").data)
        assert all(meals == [] for meals in calendar["days"].values())

    def test_preview_applies_preferences(self, client):
        payload = {
            "week_start": WEEK_START,
            "meals_per_day": 2,
            "preferences": {"dietary_restrictions": ["Vegetarian"], "servings_per_meal": 4},
        }
        data = json.loads(post_json(client, "/plan/preview", payload).data)

        assert len(data["meals"]) == 14
        real = [m for m in data["meals"] if m["recipe_id"]]
        assert [m["recipe_id"] for m in real] == ["REC002"]
        assert real[0]["servings"] == 4
        assert data["fallback_count"] == 13

    def test_weekly_budget(self, client):
        # 273 / 7 / 3 = 13 per meal: only the salad fits
        payload = {"week_start": WEEK_START, "weekly_budget": 273}
        data = json.loads(post_json(client, "/plan/preview", payload).data)
        assert {m["recipe_id"] for m in data["meals"] if m["recipe_id"]} == {"REC003"}

    def test_random_strategy_with_seed(self, client):
        payload = {"week_start": WEEK_START, "strategy": "random", "seed": 7}
        first = json.loads(post_json(client, "/plan/preview", payload).data)
        second = json.loads(post_json(client, "/plan/preview", payload).data)
        assert [m["recipe_name"] for m in first["meals"]] == [m["recipe_name"] for m in second["meals"]]

    @pytest.mark.parametrize("payload", [
        {},
        {"week_start": "not-a-date"},
        {"week_start": WEEK_START, "meals_per_day": 5},
        {"week_start": WEEK_START, "meals_per_day": "three"},
        {"week_start": WEEK_START, "strategy": "cheapest"},
        {"week_start": WEEK_START, "weekly_budget": -10},
        {"week_start": WEEK_START, "preferences": {"max_cooking_time": 0}},
        {"week_start": WEEK_START, "preferences": {"servings_per_meal": "many"}},
        {"week_start": WEEK_START, "weekly_budget": [1]},
        {"week_start": WEEK_START, "weekly_budget": "lots"},
        {"week_start": WEEK_START, "strategy": "random", "seed": [1]},
        {"week_start": WEEK_START, "strategy": "random", "seed": "abc"},
    ])
    def test_invalid_requests(self, client, payload):
        response = post_json(client, "/plan/preview", payload)
        assert response.status_code == 400
        assert "error" in json.loads(response.data)

    def test_non_json_body(self, client):
        response = client.post("/plan/preview", data="week_start=2025-03-03")
        assert response.status_code == 400


class TestPlanGenerate:
    def test_generate_commits_and_saves(self, client, store):
        response = post_json(client, "/plan/generate", {"week_start": WEEK_START, "meals_per_day": 4})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert len(data["meals"]) == 28
        assert store.save_count == 1
        assert len(store.load()) == 28

        calendar = json.loads(client.get(f"/calendar?week_start={WEEK_START}").data)
        assert len(calendar["days"]) == 7
        assert all(len(meals) == 4 for meals in calendar["days"].values())

    def test_generate_skips_filled_slots(self, client, app):
        app.extensions["mealplan"].calendar.add_meal(
            create_test_meal(WEEK_START, MealType.DINNER, name="Date night")
        )

        data = json.loads(post_json(client, "/plan/generate", {"week_start": WEEK_START}).data)

        assert len(data["meals"]) == 20
        assert data["skipped_slots"] == [{"date": WEEK_START, "meal_type": "dinner"}]

    def test_generate_replace_existing(self, client, app):
        existing = create_test_meal(WEEK_START, MealType.DINNER, name="Date night")
        app.extensions["mealplan"].calendar.add_meal(existing)

        payload = {"week_start": WEEK_START, "replace_existing": True}
        data = json.loads(post_json(client, "/plan/generate", payload).data)

        assert len(data["meals"]) == 21
        assert app.extensions["mealplan"].calendar.find_meal(existing.id) is None

    def test_regenerate_day(self, client, app):
        post_json(client, "/plan/generate", {"week_start": WEEK_START})
        calendar = app.extensions["mealplan"].calendar
        before = {m.id for m in calendar.meals(WEEK_START)}

        response = post_json(client, "/plan/regenerate-day", {"day": WEEK_START})

        assert response.status_code == 200
        after = {m.id for m in calendar.meals(WEEK_START)}
        assert len(after) == 3
        assert not before & after
        assert len(calendar.meals_for_week(WEEK_START)) == 21

    def test_regenerate_day_requires_day(self, client):
        assert post_json(client, "/plan/regenerate-day", {"week_start": WEEK_START}).status_code == 400

    def test_save_failure_returns_500(self, catalog):
        class BrokenStore(InMemoryCalendarStore):
            def save(self, calendar):
                raise CalendarStoreError("disk full")

        app = create_app(catalog=catalog, calendar=MealCalendar(), store=BrokenStore(), config_overrides=TEST_CONFIG)
        with app.test_client() as client:
            response = post_json(client, "/plan/generate", {"week_start": WEEK_START})

        assert response.status_code == 500
        assert "disk full" in json.loads(response.data)["error"]

    def test_generate_is_rate_limited(self, catalog):
        overrides = dict(TEST_CONFIG, RATELIMIT_ENABLED=True)
        app = create_app(catalog=catalog, calendar=MealCalendar(), store=InMemoryCalendarStore(), config_overrides=overrides)
        with app.test_client() as client:
            statuses = [
                post_json(client, "/plan/generate", {"week_start": WEEK_START}).status_code
                for _ in range(11)
            ]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429


class TestCalendarMeals:
    def test_get_calendar_requires_week_start(self, client):
        assert client.get("/calendar").status_code == 400

    def test_add_recipe_meal_scales_servings(self, client, store):
        payload = {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004", "servings": 2}
        response = post_json(client, "/calendar/meals", payload)

        assert response.status_code == 201
        meal = json.loads(response.data)["meal"]
        assert meal["recipe_name"] == "Chicken Alfredo Pasta"
        assert meal["servings"] == 2
        assert meal["estimated_cost"] == pytest.approx(7.0)
        assert meal["ingredients"] == ["Fettuccine", "Chicken Breast", "Heavy Cream"]
        assert store.save_count == 1

    def test_add_custom_meal(self, client):
        payload = {"date": WEEK_START, "meal_type": "lunch", "custom_meal": "Leftovers", "ingredients": ["Rice"]}
        meal = json.loads(post_json(client, "/calendar/meals", payload).data)["meal"]
        assert meal["recipe_id"] is None
        assert meal["custom_meal"] == "Leftovers"
        assert meal["ingredients"] == ["Rice"]

    @pytest.mark.parametrize("payload,status", [
        ({"meal_type": "lunch", "custom_meal": "X"}, 400),
        ({"date": WEEK_START, "custom_meal": "X"}, 400),
        ({"date": WEEK_START, "meal_type": "brunch", "custom_meal": "X"}, 400),
        ({"date": WEEK_START, "meal_type": "lunch"}, 400),
        ({"date": WEEK_START, "meal_type": "lunch", "custom_meal": "X", "servings": 0}, 400),
        ({"date": WEEK_START, "meal_type": "lunch", "recipe_id": "missing"}, 404),
    ])
    def test_add_meal_errors(self, client, payload, status):
        assert post_json(client, "/calendar/meals", payload).status_code == status

    def test_update_meal_completed_and_notes(self, client):
        payload = {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004"}
        meal = json.loads(post_json(client, "/calendar/meals", payload).data)["meal"]

        response = put_json(client, f"/calendar/meals/{meal['id']}", {"completed": True, "notes": "Great"})

        assert response.status_code == 200
        updated = json.loads(response.data)["meal"]
        assert updated["id"] == meal["id"]
        assert updated["completed"] is True
        assert updated["notes"] == "Great"

    def test_update_meal_servings_rescales(self, client, app):
        payload = {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004", "servings": 4}
        meal = json.loads(post_json(client, "/calendar/meals", payload).data)["meal"]

        updated = json.loads(put_json(client, f"/calendar/meals/{meal['id']}", {"servings": 8}).data)["meal"]

        assert updated["id"] == meal["id"]
        assert updated["servings"] == 8
        assert updated["estimated_cost"] == pytest.approx(28.0)
        assert len(app.extensions["mealplan"].calendar) == 1

    def test_update_servings_notes_and_completed_together(self, client):
        payload = {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004", "servings": 4}
        meal = json.loads(post_json(client, "/calendar/meals", payload).data)["meal"]

        response = put_json(
            client, f"/calendar/meals/{meal['id']}", {"servings": 8, "notes": "x", "completed": True}
        )

        assert response.status_code == 200
        updated = json.loads(response.data)["meal"]
        assert updated["id"] == meal["id"]
        assert updated["servings"] == 8
        assert updated["notes"] == "x"
        assert updated["completed"] is True
        assert updated["estimated_cost"] == pytest.approx(28.0)

    def test_update_unknown_meal(self, client):
        assert put_json(client, "/calendar/meals/missing", {"completed": True}).status_code == 404

    def test_delete_meal(self, client, app):
        payload = {"date": WEEK_START, "meal_type": "lunch", "custom_meal": "Leftovers"}
        meal = json.loads(post_json(client, "/calendar/meals", payload).data)["meal"]

        response = client.delete(f"/calendar/meals/{meal['id']}")

        assert response.status_code == 200
        assert len(app.extensions["mealplan"].calendar) == 0
        assert client.delete(f"/calendar/meals/{meal['id']}").status_code == 404


class TestDerivedViews:
    def test_shopping_list(self, client):
        post_json(client, "/calendar/meals", {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004"})
        post_json(client, "/calendar/meals", {"date": "2025-03-04", "meal_type": "lunch", "recipe_id": "REC003"})

        data = json.loads(client.get(f"/shopping-list?week_start={WEEK_START}").data)

        assert data["items_by_category"]["Meat"] == ["Chicken Breast"]
        assert data["items_by_category"]["Dairy"] == ["Heavy Cream", "Parmesan Cheese"]
        assert data["item_count"] == 5

    def test_nutrition(self, client):
        payload = {"date": WEEK_START, "meal_type": "dinner", "recipe_id": "REC004", "servings": 4}
        post_json(client, "/calendar/meals", payload)

        data = json.loads(client.get(f"/nutrition?week_start={WEEK_START}").data)

        assert data["daily"][WEEK_START]["calories"] == 400
        assert data["weekly_average"]["calories"] == 400
        assert data["goals"]["calories"]["status"] == "under"

    def test_views_require_week_start(self, client):
        assert client.get("/shopping-list").status_code == 400
        assert client.get("/nutrition?week_start=tomorrow").status_code == 400
