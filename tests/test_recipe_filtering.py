from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from eatinn import crud, schemas
from eatinn.filters import filtered_recipes, build_list_query

# --- Unit Tests ---

@pytest.mark.parametrize(
    "sort, column, direction",
    [
        ("id", "id", "ASC"),
        ("-id", "id", "DESC"),
        ("name", "name", "ASC"),
        ("-prep_time", "prep_time", "DESC"),
        ("active_time", "active_time", "ASC"),
        ("created_at", "id", "ASC"),
        ("-created_at", "id", "ASC"),
        ("name; DROP TABLE recipes", "id", "ASC"),
    ],
)
def test_sort_safelist(sort, column, direction):
    filters = schemas.Filters(sort=sort)
    assert filters.sort_column() == column
    assert filters.sort_direction() == direction


def test_limit_and_offset():
    filters = schemas.Filters(page=3, page_size=10)
    assert filters.limit() == 10
    assert filters.offset() == 20


@pytest.mark.parametrize(
    "total, page, page_size, last_page",
    [(25, 1, 10, 3), (20, 1, 10, 2), (1, 1, 20, 1), (101, 2, 100, 2)],
)
def test_calculate_metadata(total, page, page_size, last_page):
    metadata = schemas.calculate_metadata(total, page, page_size)
    assert metadata.current_page == page
    assert metadata.page_size == page_size
    assert metadata.first_page == 1
    assert metadata.last_page == last_page
    assert metadata.total_records == total


def test_calculate_metadata_for_no_records():
    metadata = schemas.calculate_metadata(0, 4, 20)
    assert metadata.first_page == 1
    assert metadata.last_page == 1
    assert metadata.total_records == 0
    assert metadata.current_page == 4


def test_list_query_escapes_like_wildcards():
    sql = str(build_list_query(filtered_recipes(name="100%"), schemas.Filters()))
    assert "ESCAPE" in sql


# --- Integration Tests (using DB) ---

def add_recipe(db: Session, name: str, **fields) -> schemas.Recipe:
    return crud.insert_recipe(db, schemas.Recipe(name=name, **fields))


@pytest.fixture
def pantry(db: Session):
    """A small set of recipes with distinct ingredients, equipment and times."""
    return {
        "stew": add_recipe(
            db, "Beef Stew", prep_time="20m", active_time="2h",
            ingredients=[{"ingredient": "beef"}, {"ingredient": "carrot"}],
            required_equipment=["dutch oven"],
            display_url="https://example.com/stew.jpg",
        ),
        "burger": add_recipe(
            db, "Beef Burger", prep_time="15m", active_time="10m",
            ingredients=[{"ingredient": "ground beef"}, {"ingredient": "bun"}],
            required_equipment=["grill"],
        ),
        "salad": add_recipe(
            db, "Garden Salad", prep_time="10m",
            ingredients=[{"ingredient": "lettuce"}, {"ingredient": "carrot"}],
            required_equipment=["bowl", "knife"],
        ),
        "pancakes": add_recipe(
            db, "Pancakes", prep_time="5m", active_time="20m",
            ingredients=[{"ingredient": "flour"}, {"ingredient": "egg"}],
            required_equipment=["frying pan", "whisk"],
        ),
    }


def names(recipes):
    return [recipe.name for recipe in recipes]


def test_no_filters_returns_everything_by_id(db: Session, pantry):
    recipes, metadata = crud.get_recipes(db)
    assert [r.id for r in recipes] == sorted(r.id for r in pantry.values())
    assert metadata.total_records == 4
    assert metadata.last_page == 1


def test_summaries_carry_display_url_and_no_children(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, name="stew")
    assert len(recipes) == 1
    summary = recipes[0]
    assert summary.display_url == "https://example.com/stew.jpg"
    assert summary.prep_time == timedelta(minutes=20)
    assert summary.active_time == timedelta(hours=2)
    assert summary.ingredients == []
    assert summary.required_equipment == []
    assert summary.instructions == []


def test_filter_by_name_is_case_insensitive(db: Session, pantry):
    recipes, metadata = crud.get_recipes(db, name="BEEF")
    assert sorted(names(recipes)) == ["Beef Burger", "Beef Stew"]
    assert metadata.total_records == 2


def test_filter_by_ingredient_matches_any_substring(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, ingredients=["beef"])
    assert sorted(names(recipes)) == ["Beef Burger", "Beef Stew"]

    recipes, _ = crud.get_recipes(db, ingredients=["lettuce", "flour"])
    assert sorted(names(recipes)) == ["Garden Salad", "Pancakes"]


def test_recipe_matching_several_ingredients_is_listed_once(db: Session, pantry):
    recipes, metadata = crud.get_recipes(db, ingredients=["beef", "carrot"])
    assert sorted(names(recipes)) == ["Beef Burger", "Beef Stew", "Garden Salad"]
    assert metadata.total_records == 3


def test_filter_by_equipment(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, equipment=["PAN"])
    assert names(recipes) == ["Pancakes"]


def test_filters_are_combined(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, ingredients=["carrot"], equipment=["knife"])
    assert names(recipes) == ["Garden Salad"]

    recipes, _ = crud.get_recipes(db, name="beef", equipment=["bowl"])
    assert recipes == []


def test_filter_by_maximum_times(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, prep_time=timedelta(minutes=15))
    assert sorted(names(recipes)) == ["Beef Burger", "Garden Salad", "Pancakes"]

    # a recipe without an active time never matches an active time limit
    recipes, _ = crud.get_recipes(db, active_time=timedelta(minutes=30))
    assert sorted(names(recipes)) == ["Beef Burger", "Pancakes"]


def test_sort_descending_by_name(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, filters=schemas.Filters(sort="-name"))
    assert names(recipes) == ["Pancakes", "Garden Salad", "Beef Stew", "Beef Burger"]


def test_sort_by_prep_time(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, filters=schemas.Filters(sort="prep_time"))
    assert names(recipes) == ["Pancakes", "Garden Salad", "Beef Burger", "Beef Stew"]


def test_unknown_sort_falls_back_to_id(db: Session, pantry):
    recipes, _ = crud.get_recipes(db, filters=schemas.Filters(sort="servings"))
    assert [r.id for r in recipes] == sorted(r.id for r in pantry.values())


def test_wildcards_in_filters_are_literal(db: Session):
    add_recipe(db, "100% Rye Bread")
    add_recipe(db, "1000 Island Dressing")
    add_recipe(db, "Pasta_Bake")
    add_recipe(db, "Pasta Bake")

    recipes, _ = crud.get_recipes(db, name="0%")
    assert names(recipes) == ["100% Rye Bread"]

    recipes, _ = crud.get_recipes(db, name="a_b")
    assert names(recipes) == ["Pasta_Bake"]


def test_pagination(db: Session):
    created = [add_recipe(db, f"Recipe {i:02d}") for i in range(1, 26)]

    recipes, metadata = crud.get_recipes(db, filters=schemas.Filters(page=2, page_size=10))
    assert [r.id for r in recipes] == [r.id for r in created[10:20]]
    assert metadata.current_page == 2
    assert metadata.page_size == 10
    assert metadata.first_page == 1
    assert metadata.last_page == 3
    assert metadata.total_records == 25

    recipes, metadata = crud.get_recipes(db, filters=schemas.Filters(page=3, page_size=10))
    assert len(recipes) == 5
    assert metadata.last_page == 3


def test_no_matches_reports_single_empty_page(db: Session, pantry):
    recipes, metadata = crud.get_recipes(db, name="nothing like this")
    assert recipes == []
    assert metadata.total_records == 0
    assert metadata.first_page == 1
    assert metadata.last_page == 1


def test_page_past_the_end_still_reports_total(db: Session, pantry):
    recipes, metadata = crud.get_recipes(db, filters=schemas.Filters(page=5, page_size=2))
    assert recipes == []
    assert metadata.current_page == 5
    assert metadata.total_records == 4
    assert metadata.last_page == 2
