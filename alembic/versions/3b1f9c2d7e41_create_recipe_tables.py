"""create_recipe_tables

Revision ID: 3b1f9c2d7e41
Revises:
Create Date: 2026-10-19 10:12:44.118203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b1f9c2d7e41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

image_type = sa.Enum("thumbnail", "main", "step", name="recipe_image_type")


def _time_checks(dialect: str) -> list:
    """Non-negative prep/active time checks in the dialect's interval representation."""
    if dialect == "postgresql":
        floor = "interval '0 seconds'"
    elif dialect == "sqlite":
        floor = "'1970-01-01 00:00:00'"
    else:
        return []
    return [
        sa.CheckConstraint(f"prep_time >= {floor}", name="recipes_prep_time_check"),
        sa.CheckConstraint(f"active_time >= {floor}", name="recipes_active_time_check"),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "recipes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("prep_time", sa.Interval(), nullable=True),
        sa.Column("active_time", sa.Interval(), nullable=True),
        sa.Column("servings", sa.Integer(), nullable=True),
        sa.Column("public", sa.Boolean(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint("servings > 0", name="recipes_servings_check"),
        *_time_checks(op.get_context().dialect.name),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipes_id"), "recipes", ["id"], unique=False)
    op.create_index(op.f("ix_recipes_name"), "recipes", ["name"], unique=False)
    op.create_index(op.f("ix_recipes_prep_time"), "recipes", ["prep_time"], unique=False)
    op.create_index(op.f("ix_recipes_active_time"), "recipes", ["active_time"], unique=False)
    op.create_index(op.f("ix_recipes_user_id"), "recipes", ["user_id"], unique=False)

    for table in ("ingredients", "equipment"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f(f"ix_{table}_id"), table, ["id"], unique=False)
        op.create_index(op.f(f"ix_{table}_name"), table, ["name"], unique=True)

    op.create_table(
        "recipe_ingredients",
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Text(), nullable=False),
        sa.Column("unit", sa.Text(), nullable=False),
        sa.Column("optional", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"]),
        sa.PrimaryKeyConstraint("recipe_id", "ingredient_id"),
    )
    op.create_index(op.f("ix_recipe_ingredients_ingredient_id"), "recipe_ingredients", ["ingredient_id"], unique=False)

    op.create_table(
        "recipe_equipment",
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("equipment_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"]),
        sa.PrimaryKeyConstraint("recipe_id", "equipment_id"),
    )
    op.create_index(op.f("ix_recipe_equipment_equipment_id"), "recipe_equipment", ["equipment_id"], unique=False)

    op.create_table(
        "recipe_instructions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("instruction", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipe_instructions_id"), "recipe_instructions", ["id"], unique=False)
    op.create_index(op.f("ix_recipe_instructions_recipe_id"), "recipe_instructions", ["recipe_id"], unique=False)

    op.create_table(
        "recipe_images",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("image_type", image_type, nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipe_images_id"), "recipe_images", ["id"], unique=False)
    op.create_index(op.f("ix_recipe_images_recipe_id"), "recipe_images", ["recipe_id"], unique=False)

    op.create_table(
        "recipe_instruction_images",
        sa.Column("instruction_id", sa.Integer(), nullable=False),
        sa.Column("image_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["instruction_id"], ["recipe_instructions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["image_id"], ["recipe_images.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("instruction_id", "image_id"),
    )
    op.create_index(
        op.f("ix_recipe_instruction_images_image_id"), "recipe_instruction_images", ["image_id"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("recipe_instruction_images")
    op.drop_table("recipe_images")
    op.drop_table("recipe_instructions")
    op.drop_table("recipe_equipment")
    op.drop_table("recipe_ingredients")
    op.drop_table("equipment")
    op.drop_table("ingredients")
    op.drop_table("recipes")
    image_type.drop(op.get_bind(), checkfirst=True)
