"""
Database operations for recipes, ingredients, dietary tags and ratings.
"""
from sqlalchemy.exc import IntegrityError

from recipe_pipeline.exceptions import ConflictError, NotFoundError
from recipe_pipeline.logging_utils import get_logger
from recipe_pipeline.models import DietaryTag, Ingredient, Rating, Recipe

logger = get_logger(__name__)

QUICK_COOK_MINUTES = 30
QUICK_PREP_MINUTES = 15


# ==================== UPSERT HELPERS ====================

def find_or_create(db, model, **key):
    """
    Return the row of `model` matching `key`, inserting it if missing.

    The insert runs in a SAVEPOINT so a uniqueness violation only undoes
    this insert. A concurrent writer may have won the race, so the lookup is
    retried once before the violation is reported.

    Args:
        db: Database session
        model: Mapped class (Ingredient, Category, User, ...)
        **key: Column values identifying the row

    Returns:
        The existing or newly flushed instance

    Raises:
        ConflictError: If the insert violated a constraint and no row appeared
    """
    instance = db.query(model).filter_by(**key).first()
    if instance:
        return instance

    try:
        with db.begin_nested():
            instance = model(**key)
            db.add(instance)
    except IntegrityError as e:
        instance = db.query(model).filter_by(**key).first()
        if instance is None:
            raise ConflictError(f"Could not create {model.__name__} {key}: {e.orig}") from e
        logger.debug("Lost insert race for %s %s, using existing row", model.__name__, key)
    return instance


def find_or_initialize(db, model, **key):
    """Return the matching row, or a new pending instance built from `key`."""
    instance = db.query(model).filter_by(**key).first()
    if instance is None:
        instance = model(**key)
        db.add(instance)
    return instance


# ==================== DIETARY TAG OPERATIONS ====================

def get_or_create_dietary_tag(db, tag_name):
    return find_or_create(db, DietaryTag, name=tag_name)


def add_dietary_tags_to_recipe(db, recipe, tag_names):
    """Attach dietary tags to a recipe, skipping ones it already has."""
    for tag_name in tag_names:
        tag = get_or_create_dietary_tag(db, tag_name)
        if tag not in recipe.dietary_tags:
            recipe.dietary_tags.append(tag)
    db.flush()
    return recipe


# ==================== RATING OPERATIONS ====================

def add_rating(db, recipe, user, score):
    """
    Record `user`'s score for `recipe`.

    Raises:
        ConflictError: If the user already rated this recipe
    """
    existing = db.query(Rating).filter_by(recipe_id=recipe.id, user_id=user.id).first()
    if existing:
        raise ConflictError("User can only rate a recipe once")

    try:
        with db.begin_nested():
            rating = Rating(recipe=recipe, user=user, score=score)
            db.add(rating)
    except IntegrityError as e:
        raise ConflictError("User can only rate a recipe once") from e
    return rating


# ==================== RECIPE OPERATIONS ====================

def get_recipe(db, recipe_id):
    """Get a recipe by ID."""
    return db.query(Recipe).filter(Recipe.id == recipe_id).first()


def list_recipes(db, cuisine=None, max_minutes=None, quick=False):
    """
    List recipes, optionally filtered.

    Args:
        db: Database session
        cuisine: Only recipes with exactly this cuisine
        max_minutes: Only recipes whose cook and prep time each fit in this many minutes
        quick: Only recipes cooking in 30 minutes or less with 15 or less of prep

    Returns:
        List of Recipe objects ordered by ID
    """
    query = db.query(Recipe)
    if cuisine:
        query = query.filter(Recipe.cuisine == cuisine)
    if max_minutes is not None:
        query = query.filter(Recipe.cook_time <= max_minutes, Recipe.prep_time <= max_minutes)
    if quick:
        query = query.filter(Recipe.cook_time <= QUICK_COOK_MINUTES,
                             Recipe.prep_time <= QUICK_PREP_MINUTES)
    return query.order_by(Recipe.id).all()


def list_ingredients(db):
    """List all ingredients."""
    return db.query(Ingredient).order_by(Ingredient.name).all()


def recipe_summary(recipe, matched_count=None):
    """Flat dictionary describing a recipe for listings and search results."""
    summary = {
        'id': recipe.id,
        'title': recipe.title,
        'category': recipe.category.name if recipe.category else None,
        'cuisine': recipe.cuisine,
        'cook_time': recipe.cook_time,
        'prep_time': recipe.prep_time,
        'image': recipe.image,
        'author': recipe.user.name if recipe.user else None,
    }
    if matched_count is not None:
        summary['matching_ingredients_count'] = matched_count
    return summary


def get_recipe_detail(db, recipe_id):
    """
    Build the detail view of a recipe.

    Returns:
        Dictionary with ingredients (name, quantity, unit), category,
        dietary tags, ratings (score, user_name) and average rating

    Raises:
        NotFoundError: If no recipe has this ID
    """
    recipe = get_recipe(db, recipe_id)
    if not recipe:
        raise NotFoundError("Recipe not found")

    return {
        'id': recipe.id,
        'title': recipe.title,
        'ingredients': [{
            'name': assoc.ingredient.name,
            'quantity': assoc.quantity,
            'unit': assoc.unit
        } for assoc in recipe.ingredient_associations],
        'category': recipe.category.name if recipe.category else None,
        'dietary_tags': [tag.name for tag in recipe.dietary_tags],
        'ratings': [{
            'score': rating.score,
            'user_name': rating.user.name
        } for rating in recipe.ratings],
        'average_rating': recipe.average_rating
    }
