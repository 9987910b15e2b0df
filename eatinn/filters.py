# eatinn/filters.py
# Builds the dynamic listing query: filtering, safelisted sorting and pagination.

from datetime import timedelta
from typing import Sequence

from sqlalchemy import Select, and_, asc, desc, func, or_, select
from sqlalchemy.sql.selectable import CTE

from eatinn import models
from eatinn.schemas import Filters


def _any_name_contains(column, values: Sequence[str]):
    # Substrings are matched literally; '%' and '_' in user input are escaped.
    return or_(*[column.icontains(value, autoescape=True) for value in values])


def filtered_recipes(
    name: str = "",
    ingredients: Sequence[str] = (),
    equipment: Sequence[str] = (),
    prep_time: timedelta = timedelta(0),
    active_time: timedelta = timedelta(0),
) -> CTE:
    """
    The set of recipes matching every given predicate, as a CTE.

    Empty name/lists and zero durations mean "no filter". Ingredient and
    equipment lists match a recipe when any of the substrings matches any of
    its linked names.
    """
    recipe = models.Recipe
    query = select(
        recipe.id,
        recipe.name,
        recipe.description,
        recipe.prep_time,
        recipe.active_time,
        recipe.servings,
        recipe.public,
        recipe.created_at,
        recipe.version,
    )

    if name:
        query = query.where(recipe.name.icontains(name, autoescape=True))
    if prep_time:
        query = query.where(recipe.prep_time <= prep_time)
    if active_time:
        query = query.where(recipe.active_time <= active_time)

    if ingredients:
        matching = (
            select(models.RecipeIngredient.recipe_id)
            .join(models.Ingredient, models.RecipeIngredient.ingredient_id == models.Ingredient.id)
            .where(_any_name_contains(models.Ingredient.name, ingredients))
        )
        query = query.where(recipe.id.in_(matching))

    if equipment:
        matching = (
            select(models.RecipeEquipment.recipe_id)
            .join(models.Equipment, models.RecipeEquipment.equipment_id == models.Equipment.id)
            .where(_any_name_contains(models.Equipment.name, equipment))
        )
        query = query.where(recipe.id.in_(matching))

    return query.cte("filtered_recipes")


def apply_sorting(query: Select, recipes: CTE, filters: Filters) -> Select:
    sort_columns = {
        "id": recipes.c.id,
        "name": recipes.c.name,
        "prep_time": recipes.c.prep_time,
        "active_time": recipes.c.active_time,
    }
    column_name = filters.sort_column()
    direction = desc if filters.sort_direction() == "DESC" else asc

    query = query.order_by(direction(sort_columns[column_name]))
    if column_name != "id":
        # Stable order between rows sharing the same sort value
        query = query.order_by(recipes.c.id.asc())
    return query


def build_list_query(recipes: CTE, filters: Filters) -> Select:
    """
    One page of the filtered recipes, each row carrying the pre-pagination
    total as total_records and the recipe's main image URL as display_url.
    """
    image = models.RecipeImage
    query = (
        select(
            func.count().over().label("total_records"),
            recipes.c.id,
            recipes.c.name,
            recipes.c.description,
            recipes.c.prep_time,
            recipes.c.active_time,
            recipes.c.servings,
            recipes.c.public,
            recipes.c.created_at,
            recipes.c.version,
            image.image_url.label("display_url"),
        )
        .select_from(recipes)
        .outerjoin(
            image,
            and_(image.recipe_id == recipes.c.id, image.image_type == models.ImageType.MAIN),
        )
    )
    query = apply_sorting(query, recipes, filters)
    return query.limit(filters.limit()).offset(filters.offset())


def build_count_query(recipes: CTE) -> Select:
    return select(func.count()).select_from(recipes)
