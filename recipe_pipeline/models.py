"""
Database models for recipes, their ingredients, categories, dietary tags and ratings.
"""
from sqlalchemy import (
    CheckConstraint, Column, ForeignKey, Integer, String, Table, Text, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship, validates

from recipe_pipeline.exceptions import ValidationError

Base = declarative_base()


def _require_name(model, key, value):
    if value is None or not str(value).strip():
        raise ValidationError(f"{model} {key} can't be blank")
    return value


def _require_minutes(key, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer, got {value!r}")
    if value < 0:
        raise ValidationError(f"{key} must be greater than or equal to 0")
    return value


# Junction table for many-to-many: Recipe ↔ DietaryTag
recipe_dietary_tags = Table(
    'recipe_dietary_tags',
    Base.metadata,
    Column('recipe_id', Integer, ForeignKey('recipes.id'), primary_key=True),
    Column('dietary_tag_id', Integer, ForeignKey('dietary_tags.id'), primary_key=True)
)


# Association object for many-to-many: Recipe ↔ Ingredients (with quantity and unit)
class RecipeIngredient(Base):
    """Association object linking recipes to ingredients with quantity and unit."""
    __tablename__ = 'recipe_ingredients'

    recipe_id = Column(Integer, ForeignKey('recipes.id'), primary_key=True)
    ingredient_id = Column(Integer, ForeignKey('ingredients.id'), primary_key=True)
    quantity = Column(String(100))  # e.g., "2", "1/2", "two"
    unit = Column(String(50))  # e.g., "cups", "tbsp"

    # Relationships
    recipe = relationship('Recipe', back_populates='ingredient_associations')
    ingredient = relationship('Ingredient', back_populates='recipe_associations')


class User(Base):
    """Recipe author and rater."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), unique=True, nullable=False)

    recipes = relationship('Recipe', back_populates='user')
    ratings = relationship('Rating', back_populates='user')

    @validates('name')
    def validate_name(self, key, value):
        return _require_name('User', key, value)


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)  # case-sensitive as stored

    recipes = relationship('Recipe', back_populates='category')

    @validates('name')
    def validate_name(self, key, value):
        return _require_name('Category', key, value)


class Ingredient(Base):
    """Ingredient shared across recipes, keyed by its exact parsed name."""
    __tablename__ = 'ingredients'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), unique=True, nullable=False)

    recipe_associations = relationship('RecipeIngredient', back_populates='ingredient')

    @validates('name')
    def validate_name(self, key, value):
        return _require_name('Ingredient', key, value)


class DietaryTag(Base):
    __tablename__ = 'dietary_tags'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)

    recipes = relationship('Recipe', secondary=recipe_dietary_tags, back_populates='dietary_tags')

    @validates('name')
    def validate_name(self, key, value):
        return _require_name('DietaryTag', key, value)


class Recipe(Base):
    """Recipe model - unique per (title, owner)."""
    __tablename__ = 'recipes'
    __table_args__ = (
        UniqueConstraint('title', 'user_id', name='uq_recipes_title_user'),
        CheckConstraint('cook_time >= 0', name='ck_recipes_cook_time'),
        CheckConstraint('prep_time >= 0', name='ck_recipes_prep_time'),
    )

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    cook_time = Column(Integer, nullable=False, default=0)  # minutes
    prep_time = Column(Integer, nullable=False, default=0)  # minutes
    cuisine = Column(String(100))
    image = Column(Text)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False)

    user = relationship('User', back_populates='recipes')
    category = relationship('Category', back_populates='recipes')

    # Many-to-many relationship with DietaryTags
    dietary_tags = relationship('DietaryTag', secondary=recipe_dietary_tags, back_populates='recipes')

    # Many-to-many relationship with Ingredients (via association object for quantity/unit)
    ingredient_associations = relationship('RecipeIngredient', back_populates='recipe',
                                           cascade='all, delete-orphan')

    ratings = relationship('Rating', back_populates='recipe', cascade='all, delete-orphan')

    @validates('title')
    def validate_title(self, key, value):
        return _require_name('Recipe', key, value)

    @validates('cook_time', 'prep_time')
    def validate_minutes(self, key, value):
        return _require_minutes(key, value)

    @property
    def average_rating(self):
        """Mean rating score rounded to 2 decimals, 0.0 when unrated."""
        if not self.ratings:
            return 0.0
        return round(sum(r.score for r in self.ratings) / len(self.ratings), 2)

    def get_ingredient_association(self, ingredient):
        """Get the association object for a specific ingredient."""
        for assoc in self.ingredient_associations:
            if assoc.ingredient_id == ingredient.id:
                return assoc
        return None


class Rating(Base):
    """A single user's 1-5 score for a recipe."""
    __tablename__ = 'ratings'
    __table_args__ = (
        UniqueConstraint('user_id', 'recipe_id', name='uq_ratings_user_recipe'),
        CheckConstraint('score >= 1 AND score <= 5', name='ck_ratings_score'),
    )

    id = Column(Integer, primary_key=True)
    score = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    recipe_id = Column(Integer, ForeignKey('recipes.id'), nullable=False)

    user = relationship('User', back_populates='ratings')
    recipe = relationship('Recipe', back_populates='ratings')

    @validates('score')
    def validate_score(self, key, value):
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            raise ValidationError(f"Rating score must be an integer from 1 to 5, got {value!r}")
        return value
