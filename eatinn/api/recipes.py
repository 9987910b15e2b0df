# api/recipes.py
# Handles all API endpoints related to recipes.

import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session
from typing import List

# Import local modules
from eatinn import crud
from eatinn import schemas
from eatinn.db.session import get_db
from eatinn.durations import MAX_MINUTES
from eatinn.exceptions import EditConflict, OperationTimeout, RecordNotFound

# Create an API router
router = APIRouter()

# Get a logger instance
logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "the requested resource could not be found"
EDIT_CONFLICT_MESSAGE = "unable to update the record due to an edit conflict, please try again"
TIMEOUT_MESSAGE = "the server took too long to process your request, please try again"


def parse_csv(value: str) -> List[str]:
    """
    Split a comma-separated query value, dropping blanks.
    """
    return [item.strip() for item in value.split(",") if item.strip()]


def not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)


def timed_out() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=TIMEOUT_MESSAGE)


def _fetch(db: Session, recipe_id: int) -> schemas.Recipe:
    try:
        return crud.get_recipe(db, recipe_id)
    except RecordNotFound:
        logger.warning(f"Recipe with ID {recipe_id} not found.")
        raise not_found()
    except OperationTimeout:
        logger.error(f"Timed out reading recipe {recipe_id}")
        raise timed_out()


def _save(db: Session, recipe: schemas.Recipe) -> schemas.Recipe:
    try:
        return crud.update_recipe(db, recipe)
    except EditConflict:
        logger.warning(f"Edit conflict updating recipe {recipe.id} at version {recipe.version}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EDIT_CONFLICT_MESSAGE)
    except OperationTimeout:
        logger.error(f"Timed out updating recipe {recipe.id}")
        raise timed_out()


@router.post("/", response_model=schemas.Recipe, status_code=status.HTTP_201_CREATED)
def create_recipe(
        recipe: schemas.RecipeCreate,
        response: Response,
        db: Session = Depends(get_db),
):
    """
    Create a new recipe.
    """
    logger.debug(f"Creating a new recipe named {recipe.name!r}")
    try:
        created = crud.insert_recipe(db, schemas.Recipe(**recipe.model_dump()))
    except OperationTimeout:
        logger.error(f"Timed out creating recipe {recipe.name!r}")
        raise timed_out()
    response.headers["Location"] = f"/recipes/{created.id}"
    return created


@router.get("/", response_model=schemas.RecipeListResponse)
def read_recipes(
        name: str = Query(default="", description="Case-insensitive substring of the recipe name"),
        ingredients: str = Query(default="", description="Comma-separated ingredient name substrings (any may match)"),
        required_equipment: str = Query(default="", description="Comma-separated equipment name substrings (any may match)"),
        prep_time: int = Query(default=0, ge=0, le=MAX_MINUTES, description="Maximum prep time in minutes, 0 for no limit"),
        active_time: int = Query(default=0, ge=0, le=MAX_MINUTES, description="Maximum active time in minutes, 0 for no limit"),
        page: int = Query(default=1, ge=1, le=10_000_000),
        page_size: int = Query(default=20, ge=1, le=100),
        sort: str = Query(
            default="id",
            description="Sort field: id, name, prep_time or active_time. Prefix with '-' for descending.",
        ),
        db: Session = Depends(get_db),
):
    """
    Retrieve a page of recipes with optional filtering and sorting.
    """
    if sort not in schemas.SORT_SAFELIST:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"sort": "invalid sort value"})

    filters = schemas.Filters(page=page, page_size=page_size, sort=sort)
    logger.debug(f"Fetching recipes with filters {filters}")
    try:
        recipes, metadata = crud.get_recipes(
            db,
            name=name,
            ingredients=parse_csv(ingredients),
            equipment=parse_csv(required_equipment),
            prep_time=timedelta(minutes=prep_time),
            active_time=timedelta(minutes=active_time),
            filters=filters,
        )
    except OperationTimeout:
        logger.error("Timed out listing recipes")
        raise timed_out()
    return schemas.RecipeListResponse(recipes=recipes, metadata=metadata)


@router.get("/{recipe_id}", response_model=schemas.Recipe)
def read_recipe(
        recipe_id: int,
        db: Session = Depends(get_db),
):
    """
    Retrieve a single recipe by its ID.
    """
    logger.debug(f"Fetching recipe with ID: {recipe_id}")
    return _fetch(db, recipe_id)


@router.put("/{recipe_id}", response_model=schemas.Recipe)
def replace_recipe(
        recipe_id: int,
        recipe: schemas.RecipeUpdate,
        db: Session = Depends(get_db),
):
    """
    Replace a recipe. The body carries the version the client last read.
    """
    logger.debug(f"Replacing recipe with ID: {recipe_id}")
    current = _fetch(db, recipe_id)
    replacement = schemas.Recipe(
        **recipe.model_dump(),
        id=recipe_id,
        created_at=current.created_at,
        user_id=current.user_id,
    )
    return _save(db, replacement)


@router.patch("/{recipe_id}", response_model=schemas.Recipe)
def update_recipe(
        recipe_id: int,
        patch: schemas.RecipePatch,
        db: Session = Depends(get_db),
):
    """
    Update some fields of a recipe; anything left out keeps its stored value.
    """
    logger.debug(f"Patching recipe with ID: {recipe_id}")
    current = _fetch(db, recipe_id)

    merged = current.model_dump()
    # null is treated like an absent field
    merged.update(patch.model_dump(exclude_unset=True, exclude_none=True))
    if merged.get("version") is None:
        merged["version"] = current.version
    try:
        recipe = schemas.Recipe.model_validate(merged)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))
    return _save(db, recipe)


@router.delete("/{recipe_id}")
def delete_recipe(
        recipe_id: int,
        db: Session = Depends(get_db),
):
    """
    Delete a recipe and everything it owns.
    """
    logger.debug(f"Deleting recipe with ID: {recipe_id}")
    try:
        crud.delete_recipe(db, recipe_id)
    except RecordNotFound:
        logger.warning(f"Recipe with ID: {recipe_id} not found for deletion.")
        raise not_found()
    except OperationTimeout:
        logger.error(f"Timed out deleting recipe {recipe_id}")
        raise timed_out()
    return {"message": "recipe successfully deleted"}
