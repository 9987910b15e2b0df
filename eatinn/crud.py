# crud.py
# Create, Read, Update, Delete (CRUD) operations for recipe aggregates.
#
# Every operation runs under operation_deadline() and every write runs in a
# single transaction that is rolled back on any error.

import logging
from datetime import timedelta
from typing import List, Sequence, Tuple, Type

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eatinn import models
from eatinn import schemas
from eatinn.db.session import operation_deadline
from eatinn.durations import from_interval, to_interval
from eatinn.exceptions import EditConflict, RecordNotFound
from eatinn.filters import build_count_query, build_list_query, filtered_recipes

# Get a logger instance
logger = logging.getLogger(__name__)


# --- Reference rows (ingredients, equipment) ---

def _resolve_reference(db: Session, model: Type[models.Base], name: str) -> int:
    """
    Return the id of the reference row called `name`, creating it if absent.

    The insert runs in a SAVEPOINT so that losing a race against a concurrent
    insert of the same name only undoes the savepoint; the winner's row is
    then read back.
    """
    ref_id = db.execute(select(model.id).where(model.name == name)).scalar_one_or_none()
    if ref_id is not None:
        return ref_id

    row = model(name=name)
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        logger.debug(f"{model.__tablename__} row {name!r} was created concurrently, reusing it")
        return db.execute(select(model.id).where(model.name == name)).scalar_one()
    return row.id


def resolve_ingredient(db: Session, name: str) -> int:
    return _resolve_reference(db, models.Ingredient, name)


def resolve_equipment(db: Session, name: str) -> int:
    return _resolve_reference(db, models.Equipment, name)


# --- Recipe CRUD Functions ---

def _recipe_columns(recipe: schemas.Recipe) -> dict:
    return {
        "name": recipe.name,
        "description": recipe.description,
        "notes": recipe.notes,
        "source_url": recipe.source_url,
        "prep_time": to_interval(recipe.prep_time),
        "active_time": to_interval(recipe.active_time),
        "servings": recipe.servings or None,
        "public": recipe.public,
    }


def _write_children(db: Session, recipe_id: int, recipe: schemas.Recipe) -> dict:
    """
    Insert the ingredient/equipment links, instructions with their step
    images, and the display image for a recipe row that has no children.

    Returns the ingredient and instruction lists carrying their row ids.
    """
    ingredients = []
    for entry in recipe.ingredients:
        ingredient_id = resolve_ingredient(db, entry.ingredient)
        db.add(models.RecipeIngredient(
            recipe_id=recipe_id,
            ingredient_id=ingredient_id,
            quantity=entry.amount,
            unit=entry.unit,
            optional=entry.optional,
        ))
        ingredients.append(entry.model_copy(update={"id": ingredient_id}))

    for name in recipe.required_equipment:
        db.add(models.RecipeEquipment(
            recipe_id=recipe_id,
            equipment_id=resolve_equipment(db, name),
        ))

    instructions = []
    for step in recipe.instructions:
        db_step = models.RecipeInstruction(
            recipe_id=recipe_id,
            step_number=step.step_number,
            instruction=step.text,
            notes=step.notes,
        )
        db.add(db_step)
        db.flush()  # need the step id

        for url in step.image_urls:
            image = models.RecipeImage(recipe_id=recipe_id, image_url=url, image_type=models.ImageType.STEP)
            db.add(image)
            db.flush()
            db.add(models.RecipeInstructionImage(instruction_id=db_step.id, image_id=image.id))
        instructions.append(step.model_copy(update={"id": db_step.id}))

    if recipe.display_url:
        db.add(models.RecipeImage(recipe_id=recipe_id, image_url=recipe.display_url,
                                  image_type=models.ImageType.MAIN))

    db.flush()
    return {"ingredients": ingredients, "instructions": instructions}


def insert_recipe(db: Session, recipe: schemas.Recipe) -> schemas.Recipe:
    """
    Create a recipe and all of its child rows in one transaction.

    Returns a copy of `recipe` carrying the store-assigned id, created_at,
    version (always 1) and ingredient and instruction ids.
    """
    logger.debug(f"Creating recipe: {recipe.name!r}")

    with operation_deadline(db):
        try:
            db_recipe = models.Recipe(**_recipe_columns(recipe), user_id=recipe.user_id, version=1)
            db.add(db_recipe)
            db.flush()
            db.refresh(db_recipe)  # pick up created_at from the server default
            assigned = {"id": db_recipe.id, "created_at": db_recipe.created_at, "version": db_recipe.version}

            assigned.update(_write_children(db, db_recipe.id, recipe))
            db.commit()
        except Exception:
            db.rollback()
            logger.debug(f"Rolled back insert of recipe {recipe.name!r}")
            raise

    logger.debug(f"Created recipe {assigned['id']}")
    return recipe.model_copy(update=assigned)


def update_recipe(db: Session, recipe: schemas.Recipe) -> schemas.Recipe:
    """
    Replace a stored recipe with `recipe`, child rows included.

    `recipe.version` must be the version currently stored; otherwise (or if
    the recipe no longer exists) EditConflict is raised and nothing changes.
    Returns a copy of `recipe` carrying the new version and the new
    ingredient and instruction ids.
    """
    logger.debug(f"Updating recipe {recipe.id} from version {recipe.version}")

    with operation_deadline(db):
        try:
            result = db.execute(
                update(models.Recipe)
                .where(models.Recipe.id == recipe.id, models.Recipe.version == recipe.version)
                .values(**_recipe_columns(recipe), version=models.Recipe.version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise EditConflict()

            # Children are re-derived from the input rather than diffed.
            for table, criteria in (
                (models.RecipeIngredient, models.RecipeIngredient.recipe_id == recipe.id),
                (models.RecipeEquipment, models.RecipeEquipment.recipe_id == recipe.id),
                # instruction image links cascade
                (models.RecipeInstruction, models.RecipeInstruction.recipe_id == recipe.id),
                (models.RecipeImage, (models.RecipeImage.recipe_id == recipe.id)
                 & models.RecipeImage.image_type.in_([models.ImageType.MAIN, models.ImageType.STEP])),
            ):
                db.execute(delete(table).where(criteria).execution_options(synchronize_session=False))

            children = _write_children(db, recipe.id, recipe)
            db.commit()
        except Exception:
            db.rollback()
            logger.debug(f"Rolled back update of recipe {recipe.id}")
            raise

    return recipe.model_copy(update={**children, "version": recipe.version + 1})


def delete_recipe(db: Session, recipe_id: int) -> None:
    """
    Delete a recipe. The ON DELETE CASCADE constraints remove its junction
    rows, instructions, images and image links; ingredient and equipment
    reference rows are kept.
    """
    if recipe_id < 1:
        raise RecordNotFound()

    logger.debug(f"Deleting recipe {recipe_id}")
    with operation_deadline(db):
        try:
            result = db.execute(
                delete(models.Recipe)
                .where(models.Recipe.id == recipe_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFound()
            db.commit()
        except Exception:
            db.rollback()
            raise


def get_recipe(db: Session, recipe_id: int) -> schemas.Recipe:
    """
    Retrieve a single recipe with its ingredients, equipment, instructions
    (and their images) and display image.
    """
    if recipe_id < 1:
        raise RecordNotFound()

    logger.debug(f"Retrieving recipe with id {recipe_id}")
    recipe = models.Recipe
    with operation_deadline(db):
        row = db.execute(
            select(
                recipe.id, recipe.created_at, recipe.name, recipe.description, recipe.notes,
                recipe.source_url, recipe.prep_time, recipe.active_time, recipe.servings,
                recipe.public, recipe.user_id, recipe.version,
            ).where(recipe.id == recipe_id)
        ).one_or_none()
        if row is None:
            raise RecordNotFound()

        ingredients = [
            schemas.IngredientEntry(
                id=item.id,
                ingredient=item.name,
                amount=item.quantity,
                unit=item.unit,
                optional=item.optional,
            )
            for item in db.execute(
                select(
                    models.Ingredient.id,
                    models.Ingredient.name,
                    models.RecipeIngredient.quantity,
                    models.RecipeIngredient.unit,
                    models.RecipeIngredient.optional,
                )
                .join(models.RecipeIngredient, models.RecipeIngredient.ingredient_id == models.Ingredient.id)
                .where(models.RecipeIngredient.recipe_id == recipe_id)
                .order_by(models.Ingredient.name)
            )
        ]

        equipment = list(db.execute(
            select(models.Equipment.name)
            .join(models.RecipeEquipment, models.RecipeEquipment.equipment_id == models.Equipment.id)
            .where(models.RecipeEquipment.recipe_id == recipe_id)
            .order_by(models.Equipment.name)
        ).scalars())

        instructions = []
        for step in db.execute(
            select(
                models.RecipeInstruction.id,
                models.RecipeInstruction.step_number,
                models.RecipeInstruction.instruction,
                models.RecipeInstruction.notes,
            )
            .where(models.RecipeInstruction.recipe_id == recipe_id)
            .order_by(models.RecipeInstruction.step_number)
        ).all():
            image_urls = list(db.execute(
                select(models.RecipeImage.image_url)
                .join(models.RecipeInstructionImage, models.RecipeInstructionImage.image_id == models.RecipeImage.id)
                .where(models.RecipeInstructionImage.instruction_id == step.id)
                .order_by(models.RecipeImage.id)
            ).scalars())
            instructions.append(schemas.InstructionStep(
                id=step.id,
                step_number=step.step_number,
                text=step.instruction,
                notes=step.notes or "",
                image_urls=image_urls,
            ))

        display_url = db.execute(
            select(models.RecipeImage.image_url)
            .where(models.RecipeImage.recipe_id == recipe_id,
                   models.RecipeImage.image_type == models.ImageType.MAIN)
            .order_by(models.RecipeImage.id)
            .limit(1)
        ).scalar_one_or_none()

    return schemas.Recipe(
        id=row.id,
        created_at=row.created_at,
        name=row.name,
        description=row.description or "",
        notes=row.notes or "",
        source_url=row.source_url or "",
        display_url=display_url or "",
        prep_time=from_interval(row.prep_time),
        active_time=from_interval(row.active_time),
        servings=row.servings or 0,
        public=bool(row.public),
        user_id=row.user_id,
        version=row.version,
        ingredients=ingredients,
        required_equipment=equipment,
        instructions=instructions,
    )


def get_recipes(
    db: Session,
    name: str = "",
    ingredients: Sequence[str] = (),
    equipment: Sequence[str] = (),
    prep_time: timedelta = timedelta(0),
    active_time: timedelta = timedelta(0),
    filters: schemas.Filters | None = None,
) -> Tuple[List[schemas.Recipe], schemas.Metadata]:
    """
    Retrieve one page of recipe summaries matching the filters, together
    with pagination metadata. Child collections of the summaries are empty.
    """
    if filters is None:
        filters = schemas.Filters()
    logger.debug(
        f"Listing recipes name={name!r} ingredients={list(ingredients)} equipment={list(equipment)} "
        f"prep_time<={prep_time} active_time<={active_time} page={filters.page} "
        f"page_size={filters.page_size} sort={filters.sort!r}"
    )

    recipes = filtered_recipes(name, ingredients, equipment, prep_time, active_time)
    with operation_deadline(db):
        rows = db.execute(build_list_query(recipes, filters)).all()
        if rows:
            total_records = rows[0].total_records
        elif filters.page > 1:
            # Past the last page the window count has no row to ride on.
            total_records = db.execute(build_count_query(recipes)).scalar_one()
        else:
            total_records = 0

    results = [
        schemas.Recipe(
            id=row.id,
            created_at=row.created_at,
            name=row.name,
            description=row.description or "",
            prep_time=from_interval(row.prep_time),
            active_time=from_interval(row.active_time),
            servings=row.servings or 0,
            public=bool(row.public),
            version=row.version,
            display_url=row.display_url or "",
        )
        for row in rows
    ]
    return results, schemas.calculate_metadata(total_records, filters.page, filters.page_size)
