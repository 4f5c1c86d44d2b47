"""
Ingredient-based recipe search using character-trigram similarity.
"""
import re
from dataclasses import dataclass
from typing import List, Set

import inflect
from rapidfuzz import process
from sqlalchemy import distinct, func

from recipe_pipeline.config_loader import get_similarity_threshold
from recipe_pipeline.exceptions import BadQuery
from recipe_pipeline.logging_utils import get_logger
from recipe_pipeline.models import Ingredient, Recipe, RecipeIngredient

logger = get_logger(__name__)

_inflect_engine = inflect.engine()
_WORD_RE = re.compile(r'[a-z0-9]+')


@dataclass
class SearchResult:
    recipe: Recipe
    matched_count: int


def normalize_query(raw) -> List[str]:
    """
    Split a comma-separated query into lowercase, singular tokens.

    Raises:
        BadQuery: If nothing is left after normalization
    """
    tokens = []
    for part in (raw or '').split(','):
        words = part.strip().lower().split()
        if words:
            tokens.append(' '.join(_inflect_engine.singular_noun(w) or w for w in words))
    if not tokens:
        raise BadQuery("Ingredients parameter is required")
    return tokens


def trigrams(text: str) -> Set[str]:
    """Padded 3-character substrings of every word, the way pg_trgm builds them."""
    result = set()
    for word in _WORD_RE.findall((text or '').lower()):
        padded = f"  {word} "
        result.update(padded[i:i + 3] for i in range(len(padded) - 2))
    return result


def trigram_similarity(left, right, **kwargs) -> float:
    """
    Overlap coefficient of the two trigram sets, in [0, 1].

    Extra keyword arguments (score_cutoff, ...) are accepted so the function
    can be passed to rapidfuzz as a scorer.
    """
    left_set = trigrams(left)
    right_set = trigrams(right)
    if not left_set or not right_set:
        return 0.0
    return len(left_set & right_set) / min(len(left_set), len(right_set))


class SimilaritySearch:
    """Rank recipes by how many distinct ingredients fuzzily match the query."""

    def __init__(self, threshold: float = 0.2):
        self.threshold = threshold

    @classmethod
    def from_config(cls):
        return cls(threshold=get_similarity_threshold())

    def matching_ingredient_ids(self, db, tokens) -> Set[int]:
        choices = {ing.id: ing.name for ing in db.query(Ingredient).all()}
        if not choices:
            return set()

        matched = set()
        for token in tokens:
            for name, score, ingredient_id in process.extract(
                    token, choices, scorer=trigram_similarity, limit=None):
                if score > self.threshold:
                    matched.add(ingredient_id)
        return matched

    def search(self, db, raw_query) -> List[SearchResult]:
        """
        Find recipes using any ingredient similar to a query token.

        Args:
            db: Database session
            raw_query: Comma-separated ingredient names, e.g. "pesto, pita"

        Returns:
            SearchResults ordered by matched ingredient count (desc), then recipe ID

        Raises:
            BadQuery: If the query is empty
        """
        tokens = normalize_query(raw_query)
        ingredient_ids = self.matching_ingredient_ids(db, tokens)
        logger.debug("Query %s matched ingredient IDs %s", tokens, sorted(ingredient_ids))
        if not ingredient_ids:
            return []

        matched_count = func.count(distinct(RecipeIngredient.ingredient_id)).label('matched_count')
        rows = (db.query(Recipe, matched_count)
                .join(RecipeIngredient, RecipeIngredient.recipe_id == Recipe.id)
                .filter(RecipeIngredient.ingredient_id.in_(ingredient_ids))
                .group_by(Recipe.id)
                .order_by(matched_count.desc(), Recipe.id.asc())
                .all())
        return [SearchResult(recipe=recipe, matched_count=count) for recipe, count in rows]
