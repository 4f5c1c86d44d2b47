"""
Exceptions raised by the recipe pipeline.

They all derive from ValueError so callers can keep catching ValueError for
bad input, the same way the database helpers always have.
"""


class RecipePipelineError(ValueError):
    """Base class for pipeline errors."""


class ValidationError(RecipePipelineError):
    """A record or entity field is missing or invalid."""


class NotFoundError(RecipePipelineError):
    """A requested recipe does not exist."""


class ConflictError(RecipePipelineError):
    """A uniqueness rule was violated (e.g. a user rating a recipe twice)."""


class BadQuery(RecipePipelineError):
    """A search query is empty after normalization."""
