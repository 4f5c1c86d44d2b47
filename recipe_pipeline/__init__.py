"""
Recipe ingestion and ingredient-similarity search.
"""

__version__ = "0.1.0"
