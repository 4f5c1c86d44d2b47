"""
Keyword-based dietary tag detection.
"""
from typing import Iterable, List, Optional

from recipe_pipeline.config_loader import DietaryRules, load_dietary_rules
from recipe_pipeline.db_operations import add_dietary_tags_to_recipe


class DietaryTagger:

    def __init__(self, rules: DietaryRules):
        self.tags = {name: tuple(k.lower() for k in keywords) for name, keywords in rules.tags.items()}

    @classmethod
    def from_config(cls):
        return cls(load_dietary_rules())

    def match(self, title: Optional[str], ingredients: Optional[Iterable[str]]) -> List[str]:
        """Tag names whose keywords occur in the title or any ingredient, in configuration order."""
        texts = [t.lower() for t in [title, *(ingredients or ())] if t]
        if not texts:
            return []
        return [name for name, keywords in self.tags.items()
                if any(keyword in text for keyword in keywords for text in texts)]

    def assign(self, db, recipe, title, ingredients) -> List[str]:
        """Attach every matching tag to the recipe; tags already attached are left alone."""
        names = self.match(title, ingredients)
        if names:
            add_dietary_tags_to_recipe(db, recipe, names)
        return names
