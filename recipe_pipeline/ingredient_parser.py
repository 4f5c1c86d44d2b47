"""
Split a free-text ingredient line into quantity, unit and name.
"""
import re
from dataclasses import dataclass
from typing import Optional

import inflect

from recipe_pipeline.config_loader import Vocabulary, load_vocabulary

NUMERIC_QUANTITY = re.compile(r'^\d+(\.\d+)?$')
FRACTION_QUANTITY = re.compile(r'^\d+/\d+$')

_inflect_engine = inflect.engine()


@dataclass(frozen=True)
class ParsedIngredient:
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None


class IngredientParser:
    """
    Token-based parser: the first quantity token and the first unit token are
    pulled out, everything else (in order) is the ingredient name.

        "2 cups all-purpose flour" -> ("all-purpose flour", "2", "cups")
        "3 large eggs"             -> ("large eggs", "3", None)
    """

    def __init__(self, vocabulary: Vocabulary):
        self.quantity_words = frozenset(q.lower() for q in vocabulary.quantities)
        self.units = frozenset(u.lower() for u in vocabulary.units)

    @classmethod
    def from_config(cls):
        return cls(load_vocabulary())

    def is_quantity(self, token: str) -> bool:
        return bool(NUMERIC_QUANTITY.match(token) or FRACTION_QUANTITY.match(token)
                    or token.lower() in self.quantity_words)

    def is_unit(self, token: str) -> bool:
        word = token.lower()
        if word in self.units:
            return True
        singular = _inflect_engine.singular_noun(word) or word
        if singular in self.units:
            return True
        return _inflect_engine.plural_noun(singular) in self.units

    def parse(self, line) -> ParsedIngredient:
        """Parse one ingredient line. Never raises; blank input gives an empty name."""
        quantity = None
        unit = None
        name_tokens = []

        for token in (line or '').split():
            if quantity is None and self.is_quantity(token):
                quantity = token
            elif unit is None and self.is_unit(token):
                unit = token
            else:
                name_tokens.append(token)

        return ParsedIngredient(name=' '.join(name_tokens), quantity=quantity, unit=unit)
