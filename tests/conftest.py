import copy

import pytest

from recipe_pipeline.database import create_db_engine, create_session_factory, init_db
from recipe_pipeline.importer import ImportPipeline

# In-memory SQLite; create_db_engine uses StaticPool so every session shares one database
TEST_DATABASE_URL = "sqlite:///:memory:"

CORNBREAD = {
    "title": "Golden Sweet Cornbread",
    "cook_time": 25,
    "prep_time": 10,
    "ingredients": [
        "1 cup all-purpose flour",
        "1 cup yellow cornmeal",
        "⅔ cup white sugar",
        "1 teaspoon salt",
        "3 teaspoons baking powder",
        "⅓ cup vegetable oil",
        "1 large egg",
        "1 cup milk",
    ],
    "ratings": 4.74,
    "cuisine": "",
    "category": "Cornbread",
    "author": "bluegirl",
    "image": "https://imagesvc.meredithcorp.io/v3/mm/image?url=https%3A%2F%2Fimages.media-allrecipes.com%2Fuserphotos%2F43589.jpg",
}

SEARCH_RECIPES = [
    {
        "title": "Pesto Pita Pizza",
        "cook_time": 10,
        "prep_time": 5,
        "ingredients": ["1 cup pesto", "2 pita breads", "1 cup mozzarella"],
        "category": "Main Course",
        "cuisine": "Italian",
    },
    {
        "title": "Banana Bread",
        "cook_time": 60,
        "prep_time": 15,
        "ingredients": ["3 ripe bananas", "2 cups flour", "1 teaspoon baking soda", "1/2 cup sugar"],
        "category": "Baking",
    },
    {
        "title": "Tomato Soup",
        "cook_time": 30,
        "prep_time": 30,
        "ingredients": ["4 large tomatoes", "2 cups vegetable broth", "1 pinch nutmeg"],
        "category": "Soup",
        "cuisine": "Italian",
    },
]


@pytest.fixture
def engine():
    engine = create_db_engine(TEST_DATABASE_URL)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def pipeline():
    return ImportPipeline.from_config()


@pytest.fixture
def cornbread():
    return copy.deepcopy(CORNBREAD)


@pytest.fixture
def search_recipes():
    return copy.deepcopy(SEARCH_RECIPES)


@pytest.fixture
def seeded(session_factory, pipeline, search_recipes):
    """Session factory whose database holds the three search recipes (IDs 1-3)."""
    for record in search_recipes:
        pipeline.import_one(record, session_factory)
    return session_factory
