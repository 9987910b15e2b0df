# models.py
# Defines the SQLAlchemy ORM models for the database tables.

import enum
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, Interval, String, Text, func
)
from sqlalchemy.orm import relationship
from eatinn.db.session import Base

SQLITE_EPOCH = "1970-01-01 00:00:00"


class ImageType(str, enum.Enum):
    THUMBNAIL = "thumbnail"
    MAIN = "main"
    STEP = "step"


class Recipe(Base):
    """
    Recipe model for the 'recipes' table.
    """
    __tablename__ = "recipes"
    __table_args__ = (
        CheckConstraint("servings > 0", name="recipes_servings_check"),
        # Intervals are native on PostgreSQL; SQLite stores them as offsets from the epoch.
        CheckConstraint("prep_time >= interval '0 seconds'", name="recipes_prep_time_check")
        .ddl_if(dialect="postgresql"),
        CheckConstraint("active_time >= interval '0 seconds'", name="recipes_active_time_check")
        .ddl_if(dialect="postgresql"),
        CheckConstraint(f"prep_time >= '{SQLITE_EPOCH}'", name="recipes_prep_time_check")
        .ddl_if(dialect="sqlite"),
        CheckConstraint(f"active_time >= '{SQLITE_EPOCH}'", name="recipes_active_time_check")
        .ddl_if(dialect="sqlite"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Core fields
    name = Column(String(500), index=True, nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    source_url = Column(Text, nullable=True)

    # Times, NULL when not given
    prep_time = Column(Interval, nullable=True, index=True)
    active_time = Column(Interval, nullable=True, index=True)

    servings = Column(Integer, nullable=True)
    public = Column(Boolean, nullable=False, default=False)
    user_id = Column(Integer, nullable=True, index=True)

    # Optimistic lock token
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    ingredients = relationship("RecipeIngredient", back_populates="recipe",
                               cascade="all, delete-orphan", passive_deletes=True)
    equipment = relationship("RecipeEquipment", back_populates="recipe",
                             cascade="all, delete-orphan", passive_deletes=True)
    instructions = relationship("RecipeInstruction", back_populates="recipe",
                                cascade="all, delete-orphan", passive_deletes=True)
    images = relationship("RecipeImage", back_populates="recipe",
                          cascade="all, delete-orphan", passive_deletes=True)

    def __str__(self):
        return f"{self.id}: {self.name} (v{self.version})"


class Ingredient(Base):
    """
    Master list of ingredients, shared across recipes.
    """
    __tablename__ = "ingredients"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    name = Column(Text, unique=True, index=True, nullable=False)


class Equipment(Base):
    """
    Master list of equipment, shared across recipes.
    """
    __tablename__ = "equipment"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    name = Column(Text, unique=True, index=True, nullable=False)


class RecipeIngredient(Base):
    """
    Association object between Recipe and Ingredient.
    """
    __tablename__ = "recipe_ingredients"
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), primary_key=True, index=True)

    quantity = Column(Text, nullable=False)
    unit = Column(Text, nullable=False)
    optional = Column(Boolean, nullable=False, default=False)

    recipe = relationship("Recipe", back_populates="ingredients")
    ingredient = relationship("Ingredient")


class RecipeEquipment(Base):
    """
    Association between Recipe and Equipment.
    """
    __tablename__ = "recipe_equipment"
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True)
    equipment_id = Column(Integer, ForeignKey("equipment.id"), primary_key=True, index=True)

    recipe = relationship("Recipe", back_populates="equipment")
    equipment = relationship("Equipment")


class RecipeInstruction(Base):
    """
    An instruction step for a recipe.
    """
    __tablename__ = "recipe_instructions"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    recipe = relationship("Recipe", back_populates="instructions")
    image_links = relationship("RecipeInstructionImage", back_populates="instruction",
                               cascade="all, delete-orphan", passive_deletes=True)


class RecipeImage(Base):
    """
    An image attached to a recipe: the display image ('main'), a thumbnail,
    or a picture belonging to one instruction step ('step').
    """
    __tablename__ = "recipe_images"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    image_type = Column(
        Enum(ImageType, name="recipe_image_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    caption = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    recipe = relationship("Recipe", back_populates="images")
    instruction_links = relationship("RecipeInstructionImage", back_populates="image",
                                     cascade="all, delete-orphan", passive_deletes=True)


class RecipeInstructionImage(Base):
    """
    Links a 'step' image to the instruction it illustrates.
    """
    __tablename__ = "recipe_instruction_images"
    instruction_id = Column(Integer, ForeignKey("recipe_instructions.id", ondelete="CASCADE"), primary_key=True)
    image_id = Column(Integer, ForeignKey("recipe_images.id", ondelete="CASCADE"), primary_key=True, index=True)

    instruction = relationship("RecipeInstruction", back_populates="image_links")
    image = relationship("RecipeImage", back_populates="instruction_links")
