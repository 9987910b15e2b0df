# schemas.py
# Defines the Pydantic models (schemas) for data validation and serialization.
# The Recipe model is the in-memory aggregate the persistence core reads and writes.

import math
from datetime import datetime, timedelta
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional

from eatinn.durations import MAX_DURATION, Duration

MAX_NAME_BYTES = 500

# Accepted values for the list sort parameter. A leading '-' means descending.
SORT_SAFELIST = ["id", "name", "prep_time", "active_time", "-id", "-name", "-prep_time", "-active_time"]


# --- Ingredient Schemas ---
class IngredientEntry(BaseModel):
    # id of the shared ingredient row; set by the store, ignored on input
    id: Optional[int] = None
    ingredient: str = Field(..., min_length=1)
    amount: str = ""
    unit: str = ""
    optional: bool = False


# --- Instruction Schemas ---
class InstructionStep(BaseModel):
    # id of the instruction row; set by the store, ignored on input
    id: Optional[int] = None
    step_number: int = Field(..., ge=1)
    text: str = Field(..., min_length=1)
    notes: str = ""
    image_urls: List[str] = Field(default_factory=list)


# --- Recipe Schemas ---

class RecipeBase(BaseModel):
    name: str
    description: str = ""
    notes: str = ""
    source_url: str = ""
    display_url: str = ""
    prep_time: Duration = timedelta(0)
    active_time: Duration = timedelta(0)
    servings: int = Field(default=0, ge=0)  # 0 means not set
    public: bool = False
    ingredients: List[IngredientEntry] = Field(default_factory=list)
    required_equipment: List[str] = Field(default_factory=list)
    instructions: List[InstructionStep] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if value == "":
            raise ValueError("must be provided")
        if len(value.encode("utf-8")) > MAX_NAME_BYTES:
            raise ValueError(f"must not be more than {MAX_NAME_BYTES} bytes long")
        return value

    @field_validator("prep_time", "active_time")
    @classmethod
    def check_duration_range(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("must not be negative")
        if value > MAX_DURATION:
            raise ValueError("must not be longer than 2562047h")
        return value

    @field_validator("required_equipment")
    @classmethod
    def check_equipment(cls, value: List[str]) -> List[str]:
        if any(item == "" for item in value):
            raise ValueError("equipment names must not be empty")
        if len(value) != len(set(value)):
            raise ValueError("equipment names must be unique")
        return value

    @model_validator(mode="after")
    def check_children_unique(self):
        # Each ingredient and step number may appear once per recipe.
        names = [entry.ingredient for entry in self.ingredients]
        if len(names) != len(set(names)):
            raise ValueError("ingredients must be unique")
        numbers = [step.step_number for step in self.instructions]
        if len(numbers) != len(set(numbers)):
            raise ValueError("instruction step numbers must be unique")
        return self


class RecipeCreate(RecipeBase):
    pass


class RecipeUpdate(RecipeBase):
    """
    Full replacement of a recipe. version is the one the client last read.
    """
    version: int = Field(..., ge=1)


class RecipePatch(BaseModel):
    """
    Partial update: any field left out keeps its stored value.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    source_url: Optional[str] = None
    display_url: Optional[str] = None
    prep_time: Optional[Duration] = None
    active_time: Optional[Duration] = None
    servings: Optional[int] = None
    public: Optional[bool] = None
    ingredients: Optional[List[IngredientEntry]] = None
    required_equipment: Optional[List[str]] = None
    instructions: Optional[List[InstructionStep]] = None
    version: Optional[int] = Field(default=None, ge=1)


class Recipe(RecipeBase):
    """
    The full recipe aggregate. id, created_at and version are assigned by the store.
    """
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    user_id: Optional[int] = None
    version: int = 1

    model_config = ConfigDict(from_attributes=True)


# --- Listing ---

class Filters(BaseModel):
    page: int = Field(default=1, ge=1, le=10_000_000)
    page_size: int = Field(default=20, ge=1, le=100)
    sort: str = "id"

    def sort_column(self) -> str:
        """
        The column name to sort by, or "id" when sort is not in the safelist.
        """
        if self.sort in SORT_SAFELIST:
            return self.sort.lstrip("-")
        return "id"

    def sort_direction(self) -> str:
        if self.sort in SORT_SAFELIST and self.sort.startswith("-"):
            return "DESC"
        return "ASC"

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class Metadata(BaseModel):
    current_page: int
    page_size: int
    first_page: int
    last_page: int
    total_records: int


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata(current_page=page, page_size=page_size, first_page=1,
                        last_page=1, total_records=0)
    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )


class RecipeListResponse(BaseModel):
    recipes: List[Recipe]
    metadata: Metadata
