"""
Heuristic recipe categorization from title and ingredient names.
"""
from typing import Dict, Iterable, List, Optional

from recipe_pipeline.config_loader import CategoryRules, get_fallback_category, load_category_rules
from recipe_pipeline.db_operations import find_or_create
from recipe_pipeline.logging_utils import get_logger
from recipe_pipeline.models import Category

logger = get_logger(__name__)

TITLE_EXACT_SCORE = 3
TITLE_PARTIAL_SCORE = 2
INGREDIENT_EXACT_SCORE = 1
INGREDIENT_PARTIAL_SCORE = 0.5
MIN_SCORE_GAP = 2


def _match_score(keyword: str, text: str, exact: float, partial: float) -> float:
    """`exact` when the keyword is one of the whitespace tokens of the text, `partial` for a substring.

    Tokens keep their punctuation, so "cake." is only a partial match for "cake",
    and a multi-word keyword can only ever match partially.
    """
    if keyword in text.split():
        return exact
    if keyword in text:
        return partial
    return 0


class RecipeCategorizer:
    """Pick a category for a recipe, or the fallback when the evidence is weak."""

    def __init__(self, rules: CategoryRules, fallback: str = 'Uncategorized'):
        self.cooking_methods = tuple(m.lower() for m in rules.cooking_methods)
        self.categories = {name: tuple(k.lower() for k in keywords)
                           for name, keywords in rules.categories.items()}
        self.fallback = fallback

    @classmethod
    def from_config(cls):
        return cls(load_category_rules(), fallback=get_fallback_category())

    def determine_category(self, title: Optional[str], ingredients: Iterable[str]) -> str:
        """
        Category name for a recipe.

        A cooking method found in the title or any ingredient wins outright.
        Otherwise the best keyword score wins if it is positive and at least
        2 points clear of the runner-up.
        """
        title = (title or '').lower()
        ingredients = [i.lower() for i in ingredients or () if i]

        method = self.find_cooking_method(title, ingredients)
        if method:
            return method

        return self.best_category(self.calculate_category_scores(title, ingredients)) or self.fallback

    def find_cooking_method(self, title: str, ingredients: List[str]) -> Optional[str]:
        for method in self.cooking_methods:
            if method in title or any(method in ingredient for ingredient in ingredients):
                return ' '.join(word.capitalize() for word in method.split())
        return None

    def calculate_category_scores(self, title: str, ingredients: List[str]) -> Dict[str, float]:
        """Keyword score per category, in configuration order."""
        scores = {}
        for category, keywords in self.categories.items():
            score = 0
            for keyword in keywords:
                score += _match_score(keyword, title, TITLE_EXACT_SCORE, TITLE_PARTIAL_SCORE)
                for ingredient in ingredients:
                    score += _match_score(keyword, ingredient, INGREDIENT_EXACT_SCORE,
                                          INGREDIENT_PARTIAL_SCORE)
            scores[category] = score
        return scores

    @staticmethod
    def best_category(scores: Dict[str, float]) -> Optional[str]:
        """Top category if it clearly beats the runner-up; ties keep configuration order."""
        if not scores:
            return None
        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        top_name, top_score = ranked[0]
        # a lone category is compared against itself, so it never clears the gap
        runner_up = ranked[1][1] if len(ranked) > 1 else top_score
        if top_score == 0 or top_score - runner_up < MIN_SCORE_GAP:
            return None
        return top_name

    def find_or_create(self, db, title, ingredients) -> Category:
        name = self.determine_category(title, ingredients)
        logger.debug("Categorized '%s' as %s", title, name)
        return find_or_create(db, Category, name=name)
