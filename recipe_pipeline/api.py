"""
Flask API for recipe search, recipe details and batch imports.
"""
from flask import Flask, jsonify, request

from recipe_pipeline.database import SessionLocal, init_db
from recipe_pipeline.db_operations import get_recipe_detail, list_recipes, recipe_summary
from recipe_pipeline.exceptions import BadQuery, NotFoundError
from recipe_pipeline.importer import BatchImporter, ImportPipeline
from recipe_pipeline.search import SimilaritySearch


def create_app(session_factory=None, pipeline=None, searcher=None):
    """
    Build the Flask application.

    Args:
        session_factory: Callable returning a database session (defaults to SessionLocal)
        pipeline: ImportPipeline used by the import endpoint
        searcher: SimilaritySearch used by the search endpoint
    """
    app = Flask(__name__)

    if session_factory is None:
        # Initialize database on startup
        init_db()
        session_factory = SessionLocal
    pipeline = pipeline or ImportPipeline.from_config()
    searcher = searcher or SimilaritySearch.from_config()

    def get_db_session():
        """Get a database session."""
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    # ==================== SEARCH ENDPOINTS ====================

    @app.route('/api/v1/recipes/search', methods=['GET'])
    def search_recipes():
        """Search recipes by comma-separated ingredients."""
        db = next(get_db_session())
        try:
            results = searcher.search(db, request.args.get('ingredients', ''))
            if not results:
                return jsonify({'error': 'No recipes found'}), 404
            return jsonify({'recipes': [recipe_summary(r.recipe, r.matched_count) for r in results]})
        except BadQuery:
            return jsonify({'error': 'Ingredients parameter is required'}), 400
        finally:
            db.close()

    # ==================== RECIPE ENDPOINTS ====================

    @app.route('/api/v1/recipes', methods=['GET'])
    def get_recipes():
        """List recipes, optionally filtered by cuisine, time budget or quickness."""
        within = request.args.get('within')
        if within is not None:
            try:
                within = int(within)
            except ValueError:
                return jsonify({'error': 'within must be a number of minutes'}), 400
        quick = request.args.get('quick', '').lower() in ('1', 'true', 'yes')

        db = next(get_db_session())
        try:
            recipes = list_recipes(db, cuisine=request.args.get('cuisine'),
                                   max_minutes=within, quick=quick)
            return jsonify({'recipes': [recipe_summary(recipe) for recipe in recipes]})
        finally:
            db.close()

    @app.route('/api/v1/recipe_ingredients/<int:recipe_id>', methods=['GET'])
    def get_recipe_ingredients(recipe_id):
        """Get ingredients, category, ratings and average rating of a recipe."""
        db = next(get_db_session())
        try:
            return jsonify(get_recipe_detail(db, recipe_id))
        except NotFoundError:
            return jsonify({'error': 'Recipe not found'}), 404
        finally:
            db.close()

    # ==================== IMPORT ENDPOINTS ====================

    @app.route('/api/v1/imports', methods=['POST'])
    def create_import():
        """Import a JSON list of recipe records as one batch."""
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            data = data.get('recipes', [data])
        if not isinstance(data, list) or not data:
            return jsonify({'error': 'Expected a non-empty list of recipe records'}), 400

        imported = BatchImporter(pipeline=pipeline, session_factory=session_factory).call(data)
        if not imported:
            return jsonify({'error': 'Failed to import batch of recipes'}), 422
        return jsonify({'imported': len(data)}), 201

    return app
