import logging

import pytest
from sqlalchemy import func, select

from recipe_pipeline.database import session_scope
from recipe_pipeline.exceptions import ConflictError, ValidationError
from recipe_pipeline.importer import (
    BatchImporter, RecipeRecord, import_batch, load_records, unwrap_image_url
)
from recipe_pipeline.models import (
    Category, DietaryTag, Ingredient, Rating, Recipe, RecipeIngredient, User, recipe_dietary_tags
)


def _counts(session_factory):
    with session_scope(session_factory) as db:
        counts = {model.__name__: db.query(model).count()
                  for model in (Recipe, Ingredient, RecipeIngredient, Category, DietaryTag, User, Rating)}
        counts["recipe_dietary_tags"] = db.execute(
            select(func.count()).select_from(recipe_dietary_tags)).scalar()
        return counts


# ==================== RECORDS ====================

def test_record_defaults_and_aliases():
    record = RecipeRecord.from_dict({"title": "Toast", "rating": "4", "cook_time": "5"})

    assert record.cook_time == 5
    assert record.prep_time == 0
    assert record.ingredients == []
    assert record.rating == "4"


@pytest.mark.parametrize("data", [
    "not a record",
    {"title": 123},
    {"title": "Toast", "cook_time": "soon"},
    {"title": "Toast", "prep_time": 2.5},
    {"title": "Toast", "ingredients": "bread"},
])
def test_record_rejects_bad_fields(data):
    with pytest.raises(ValidationError):
        RecipeRecord.from_dict(data)


def test_unwrap_image_url():
    proxied = "https://imagesvc.example.com/image?url=https%3A%2F%2Fimages.example.com%2Fbread.jpg&w=100"

    assert unwrap_image_url(proxied) == "https://images.example.com/bread.jpg"
    assert unwrap_image_url("https://images.example.com/bread.jpg") == "https://images.example.com/bread.jpg"
    assert unwrap_image_url("  ") is None
    assert unwrap_image_url(None) is None


# ==================== SINGLE RECORD ====================

def test_import_one_stores_everything(session_factory, pipeline, cornbread):
    recipe = pipeline.import_one(cornbread, session_factory)

    with session_scope(session_factory) as db:
        stored = db.query(Recipe).filter_by(id=recipe.id).one()
        assert stored.title == "Golden Sweet Cornbread"
        assert stored.user.name == "bluegirl"
        assert stored.category.name == "Cornbread"
        assert stored.cuisine is None
        assert stored.image == "https://images.media-allrecipes.com/userphotos/43589.jpg"
        assert (stored.cook_time, stored.prep_time) == (25, 10)

        quantities = {a.ingredient.name: (a.quantity, a.unit) for a in stored.ingredient_associations}
        assert quantities["all-purpose flour"] == ("1", "cup")
        assert quantities["white sugar"] == ("⅔", "cup")
        assert quantities["large egg"] == ("1", None)
        assert len(quantities) == 8

        assert [(r.score, r.user.name) for r in stored.ratings] == [(5, "bluegirl")]


def test_missing_author_and_category_use_defaults(session_factory, pipeline, cornbread):
    del cornbread["author"]
    cornbread["category"] = "  "

    recipe = pipeline.import_one(cornbread, session_factory)

    with session_scope(session_factory) as db:
        stored = db.query(Recipe).filter_by(id=recipe.id).one()
        assert stored.user.name == "John Doe"
        assert stored.category.name == "Baking"


def test_reimport_is_idempotent(session_factory, pipeline, cornbread):
    del cornbread["ratings"]
    pipeline.import_one(cornbread, session_factory)
    before = _counts(session_factory)

    cornbread["cook_time"] = 30
    cornbread["ingredients"][0] = "2 cups all-purpose flour"
    recipe = pipeline.import_one(cornbread, session_factory)

    assert _counts(session_factory) == before
    with session_scope(session_factory) as db:
        stored = db.query(Recipe).filter_by(id=recipe.id).one()
        flour = db.query(Ingredient).filter_by(name="all-purpose flour").one()
        association = stored.get_ingredient_association(flour)
        assert stored.cook_time == 30
        assert (association.quantity, association.unit) == ("2", "cups")


def test_same_title_different_author_is_a_new_recipe(session_factory, pipeline, cornbread):
    pipeline.import_one(cornbread, session_factory)
    cornbread["author"] = "someone else"
    pipeline.import_one(cornbread, session_factory)

    counts = _counts(session_factory)
    assert counts["Recipe"] == 2
    assert counts["Ingredient"] == 8


def test_second_rating_by_same_user_conflicts(session_factory, pipeline, cornbread):
    pipeline.import_one(cornbread, session_factory)

    with pytest.raises(ConflictError):
        pipeline.import_one(cornbread, session_factory)

    assert _counts(session_factory)["Rating"] == 1


def test_blank_title_is_rejected_and_logged(session_factory, pipeline, cornbread, caplog):
    cornbread["title"] = ""

    with caplog.at_level(logging.ERROR, logger="recipe_pipeline"):
        with pytest.raises(ValidationError):
            pipeline.import_one(cornbread, session_factory)

    assert "Failed to import recipe" in caplog.text
    assert _counts(session_factory)["Recipe"] == 0


def test_ingredient_without_name_is_rejected(session_factory, pipeline, cornbread, caplog):
    cornbread["ingredients"].append("2 cups")

    with caplog.at_level(logging.ERROR, logger="recipe_pipeline"):
        with pytest.raises(ValidationError):
            pipeline.import_one(cornbread, session_factory)

    assert "Failed to import ingredient: 2 cups" in caplog.text
    assert _counts(session_factory)["Ingredient"] == 0


def test_dietary_tags_are_attached(session_factory, pipeline):
    recipe = pipeline.import_one({
        "title": "Vegan Pancakes",
        "ingredients": ["1 cup flour", "1 cup oat milk"],
    }, session_factory)

    with session_scope(session_factory) as db:
        stored = db.query(Recipe).filter_by(id=recipe.id).one()
        assert sorted(tag.name for tag in stored.dietary_tags) == ["dairy_free", "vegan"]


def test_reimport_does_not_duplicate_dietary_tags(session_factory, pipeline):
    record = {"title": "Vegan Pancakes", "ingredients": ["1 cup flour", "1 cup oat milk"]}
    pipeline.import_one(record, session_factory)
    before = _counts(session_factory)

    pipeline.import_one(record, session_factory)

    assert before["recipe_dietary_tags"] == 2
    assert _counts(session_factory) == before


# ==================== BATCHES ====================

def test_batch_commits_all_records(session_factory, pipeline, search_recipes):
    assert BatchImporter(pipeline, session_factory).call(search_recipes) is True

    assert _counts(session_factory)["Recipe"] == 3


def test_batch_is_all_or_nothing(session_factory, pipeline, search_recipes, caplog):
    search_recipes[2]["title"] = "   "

    with caplog.at_level(logging.ERROR, logger="recipe_pipeline"):
        assert import_batch(search_recipes, session_factory, pipeline) is False

    assert "Failed to import batch of recipes" in caplog.text
    counts = _counts(session_factory)
    assert counts["Recipe"] == 0
    assert counts["Ingredient"] == 0


def test_batch_with_non_string_title_is_rejected(session_factory, pipeline, caplog):
    with caplog.at_level(logging.ERROR, logger="recipe_pipeline"):
        assert import_batch([{"title": 123, "ingredients": ["1 cup flour"]}],
                            session_factory, pipeline) is False

    assert "Failed to import batch of recipes" in caplog.text
    assert _counts(session_factory)["Recipe"] == 0


def test_batch_with_duplicate_rating_rolls_back(session_factory, pipeline, cornbread):
    assert import_batch([cornbread, dict(cornbread)], session_factory, pipeline) is False

    assert _counts(session_factory)["Rating"] == 0


def test_load_records(tmp_path):
    path = tmp_path / "recipes.json"
    path.write_text('{"recipes": [{"title": "Toast"}]}', encoding="utf-8")

    assert load_records(path) == [{"title": "Toast"}]
