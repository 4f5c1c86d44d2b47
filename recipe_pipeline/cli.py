#!/usr/bin/env python3
"""
CLI interface for importing and searching recipes.
"""
import argparse
import json
import sys

from recipe_pipeline.database import SessionLocal, init_db
from recipe_pipeline.db_operations import get_recipe_detail, list_recipes
from recipe_pipeline.exceptions import BadQuery, NotFoundError, ValidationError
from recipe_pipeline.importer import BatchImporter, load_records
from recipe_pipeline.search import SimilaritySearch


def print_recipe(recipe, matched_count=None):
    """Print recipe information (simple format for lists)."""
    category = recipe.category.name if recipe.category else '-'
    line = f"  [{recipe.id:3d}] {recipe.title:40s} ({category})"
    if matched_count is not None:
        line += f"  {matched_count} matching ingredient(s)"
    print(line)


def print_recipe_detail(detail):
    """Pretty print detailed recipe information."""
    print(f"\n{'='*70}")
    print(f"Recipe #{detail['id']}: {detail['title']}")
    print(f"{'='*70}")
    print(f"Category: {detail['category']}")
    if detail['dietary_tags']:
        print(f"Dietary tags: {', '.join(detail['dietary_tags'])}")

    if detail['ingredients']:
        print("\nIngredients:")
        for ing in detail['ingredients']:
            amount = ' '.join(part for part in (ing['quantity'], ing['unit']) if part)
            print(f"  • {amount + ' ' if amount else ''}{ing['name']}")

    if detail['ratings']:
        print(f"\nRatings (average {detail['average_rating']:.2f}):")
        for rating in detail['ratings']:
            print(f"  {rating['score']}/5 by {rating['user_name']}")
    print()


def cmd_init_db(args):
    """Create the database tables."""
    init_db()
    print("✓ Database initialized")


def cmd_import(args):
    """Import recipe records from a JSON file as one batch."""
    try:
        records = load_records(args.file)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if BatchImporter().call(records):
        print(f"✓ Imported {len(records)} recipe(s) from {args.file}")
    else:
        print("✗ Error: Failed to import batch of recipes (nothing was saved)", file=sys.stderr)
        sys.exit(1)


def cmd_search(args):
    """Search recipes by comma-separated ingredients."""
    db = SessionLocal()
    try:
        results = SimilaritySearch.from_config().search(db, args.ingredients)
        if not results:
            print("No recipes found.")
            return
        print(f"\n{'='*70}")
        print(f"Recipes matching '{args.ingredients}' ({len(results)} total)")
        print(f"{'='*70}")
        for result in results:
            print_recipe(result.recipe, result.matched_count)
    except BadQuery as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


def cmd_show(args):
    """Show ingredients, category and ratings of a recipe."""
    db = SessionLocal()
    try:
        print_recipe_detail(get_recipe_detail(db, args.id))
    except NotFoundError:
        print(f"✗ Error: Recipe not found (ID: {args.id})", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


def cmd_list_recipes(args):
    """List recipes, optionally filtered."""
    db = SessionLocal()
    try:
        recipes = list_recipes(db, cuisine=args.cuisine, max_minutes=args.within, quick=args.quick)
        if not recipes:
            print("No recipes found.")
        else:
            print(f"\n{'='*70}")
            print(f"Recipes ({len(recipes)} total)")
            print(f"{'='*70}")
            for recipe in recipes:
                print_recipe(recipe)
    finally:
        db.close()


def cmd_serve(args):
    """Run the HTTP API."""
    from recipe_pipeline.api import create_app

    create_app().run(host=args.host, port=args.port, debug=args.debug)


def build_parser():
    parser = argparse.ArgumentParser(description='Recipe ingestion and search CLI')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database tables')
    init_parser.set_defaults(func=cmd_init_db)

    import_parser = subparsers.add_parser('import', help='Import recipes from a JSON file (all or nothing)')
    import_parser.add_argument('file', help='JSON file with a list of recipe records')
    import_parser.set_defaults(func=cmd_import)

    search_parser = subparsers.add_parser('search', help='Find recipes by ingredients')
    search_parser.add_argument('ingredients', help='Comma-separated ingredients, e.g. "pesto, pita"')
    search_parser.set_defaults(func=cmd_search)

    show_parser = subparsers.add_parser('show', help='Display a recipe with ingredients and ratings')
    show_parser.add_argument('--id', type=int, required=True, help='Recipe ID')
    show_parser.set_defaults(func=cmd_show)

    list_parser = subparsers.add_parser('list', help='List recipes')
    list_parser.add_argument('--cuisine', help='Only this cuisine')
    list_parser.add_argument('--within', type=int, help='Cook and prep time each at most this many minutes')
    list_parser.add_argument('--quick', action='store_true', help='Cook time <= 30 and prep time <= 15')
    list_parser.set_defaults(func=cmd_list_recipes)

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=5000)
    serve_parser.add_argument('--debug', action='store_true')
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Initialize database
    init_db()
    args.func(args)


if __name__ == '__main__':
    main()
