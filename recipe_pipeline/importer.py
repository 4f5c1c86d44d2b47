"""
Import raw recipe records into the database.

ImportPipeline handles one record inside the caller's transaction.
BatchImporter wraps a whole list in a single transaction: either every
record is stored or none is.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import parse_qs, urlparse

from sqlalchemy.exc import IntegrityError

from recipe_pipeline.categorizer import RecipeCategorizer
from recipe_pipeline.config_loader import get_default_author
from recipe_pipeline.database import session_scope
from recipe_pipeline.db_operations import add_rating, find_or_create, find_or_initialize
from recipe_pipeline.dietary_tags import DietaryTagger
from recipe_pipeline.exceptions import ConflictError, RecipePipelineError, ValidationError
from recipe_pipeline.ingredient_parser import IngredientParser
from recipe_pipeline.logging_utils import get_logger
from recipe_pipeline.models import Category, Ingredient, Recipe, RecipeIngredient, User
from recipe_pipeline.ratings import normalize_rating

logger = get_logger(__name__)


def _minutes(key, value) -> int:
    """Coerce a time field to whole minutes; missing means 0."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number of minutes, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be a number of minutes, got {value!r}") from e
    if not number.is_integer():
        raise ValidationError(f"{key} must be a whole number of minutes, got {value!r}")
    return int(number)


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass
class RecipeRecord:
    """One raw recipe as it arrives from a dataset or an API call."""
    title: str
    ingredients: List[str] = field(default_factory=list)   # each row as free text line
    cook_time: int = 0
    prep_time: int = 0
    cuisine: Optional[str] = None
    image: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    rating: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecipeRecord":
        if not isinstance(data, dict):
            raise ValidationError(f"Recipe record must be an object, got {type(data).__name__}")

        title = data.get('title')
        if title is not None and not isinstance(title, str):
            raise ValidationError(f"title must be a string, got {type(title).__name__}")

        ingredients = data.get('ingredients') or []
        if not isinstance(ingredients, list) or not all(
                isinstance(line, str) or line is None for line in ingredients):
            raise ValidationError("ingredients must be a list of strings")

        rating = data['ratings'] if 'ratings' in data else data.get('rating')
        return cls(
            title=title or '',
            ingredients=[line for line in ingredients if line is not None],
            cook_time=_minutes('cook_time', data.get('cook_time')),
            prep_time=_minutes('prep_time', data.get('prep_time')),
            cuisine=_optional_text(data.get('cuisine')),
            image=_optional_text(data.get('image')),
            author=_optional_text(data.get('author')),
            category=_optional_text(data.get('category')),
            rating=rating,
        )


def unwrap_image_url(image: Optional[str]) -> Optional[str]:
    """Return the nested `url` query parameter of a proxied image link, else the link itself."""
    if not image or not image.strip():
        return None
    nested = parse_qs(urlparse(image).query).get('url')
    if nested and nested[0]:
        return nested[0]
    return image


def load_records(path) -> List[Dict[str, Any]]:
    """Read records from a JSON file holding a list (or {"recipes": [...]})."""
    with open(Path(path), 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict) and 'recipes' in data:
        data = data['recipes']
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a list of recipe records")
    return data


class ImportPipeline:
    """Turn one raw record into a Recipe with its user, category, ingredients, tags and rating."""

    def __init__(self, parser: IngredientParser, categorizer: RecipeCategorizer,
                 tagger: DietaryTagger, default_author: str = 'John Doe'):
        self.parser = parser
        self.categorizer = categorizer
        self.tagger = tagger
        self.default_author = default_author

    @classmethod
    def from_config(cls):
        return cls(IngredientParser.from_config(), RecipeCategorizer.from_config(),
                   DietaryTagger.from_config(), default_author=get_default_author())

    def import_record(self, db, data) -> Recipe:
        """
        Upsert one record in the caller's transaction.

        Args:
            db: Database session (the caller commits or rolls back)
            data: RecipeRecord or raw dictionary

        Returns:
            The created or updated Recipe (flushed, not committed)

        Raises:
            ValidationError: Missing or invalid field
            ConflictError: Uniqueness violation, e.g. the author already rated this recipe
        """
        title = data.title if isinstance(data, RecipeRecord) else (
            data.get('title') if isinstance(data, dict) else None)
        try:
            record = data if isinstance(data, RecipeRecord) else RecipeRecord.from_dict(data)
            return self._import(db, record)
        except IntegrityError as e:
            logger.error("Failed to import recipe: %s, error: %s", title, e.orig)
            raise ConflictError(str(e.orig)) from e
        except RecipePipelineError as e:
            logger.error("Failed to import recipe: %s, error: %s", title, e)
            raise

    def import_one(self, data, session_factory=None) -> Recipe:
        """Import a single record in its own transaction."""
        with session_scope(session_factory) as db:
            recipe = self.import_record(db, data)
        logger.info("Imported recipe %s (ID: %s)", recipe.title, recipe.id)
        return recipe

    def _import(self, db, record: RecipeRecord) -> Recipe:
        author = record.author if record.author and record.author.strip() else self.default_author
        user = find_or_create(db, User, name=author)

        lines = [line for line in record.ingredients if line.strip()]
        parsed = [self.parser.parse(line) for line in lines]
        ingredient_names = [item.name for item in parsed]

        if record.category and record.category.strip():
            category = find_or_create(db, Category, name=record.category)
        else:
            category = self.categorizer.find_or_create(db, record.title, ingredient_names)

        recipe = find_or_initialize(db, Recipe, title=record.title, user=user)
        recipe.cook_time = record.cook_time
        recipe.prep_time = record.prep_time
        recipe.cuisine = record.cuisine
        recipe.image = unwrap_image_url(record.image)
        recipe.category = category
        db.flush()

        for line, item in zip(lines, parsed):
            self._import_ingredient(db, recipe, line, item)

        self.tagger.assign(db, recipe, record.title, [name.lower() for name in ingredient_names])

        if record.rating is not None and str(record.rating).strip():
            add_rating(db, recipe, user, normalize_rating(record.rating))

        db.flush()
        return recipe

    def _import_ingredient(self, db, recipe, line, item):
        try:
            ingredient = find_or_create(db, Ingredient, name=item.name)
            association = find_or_initialize(db, RecipeIngredient, recipe=recipe, ingredient=ingredient)
            association.quantity = item.quantity
            association.unit = item.unit
            db.flush()
        except (RecipePipelineError, IntegrityError) as e:
            logger.error("Failed to import ingredient: %s, error: %s", line, e)
            raise
        return association


class BatchImporter:
    """Import a list of records atomically: all of them or none."""

    def __init__(self, pipeline: Optional[ImportPipeline] = None, session_factory=None):
        self.pipeline = pipeline or ImportPipeline.from_config()
        self.session_factory = session_factory

    def call(self, records: Iterable) -> bool:
        """
        Import every record in one transaction.

        Returns:
            True when the batch committed, False when a validation or
            uniqueness error rolled it back (the error is logged)
        """
        records = list(records)
        try:
            with session_scope(self.session_factory) as db:
                for data in records:
                    self.pipeline.import_record(db, data)
        except (ValidationError, ConflictError) as e:
            logger.error("Failed to import batch of recipes: %s", e)
            return False
        logger.info("Imported batch of %d recipes", len(records))
        return True


def import_batch(records, session_factory=None, pipeline=None) -> bool:
    return BatchImporter(pipeline=pipeline, session_factory=session_factory).call(records)
