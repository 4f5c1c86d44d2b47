"""
Configuration loader for the recipe pipeline.

Settings come from config/config.yaml merged over DEFAULT_CONFIG. The rule
files (categories, dietary tags, measurements) are loaded into frozen
dataclasses so the components that use them cannot change them.
"""
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Tuple

import yaml

CONFIG_DIR = Path(__file__).parent / 'config'

# Default configuration
DEFAULT_CONFIG = {
    'database': {
        'path': 'data/recipes.db',
        'url': None
    },
    'search': {
        'similarity_threshold': 0.2
    },
    'import': {
        'default_author': 'John Doe',
        'fallback_category': 'Uncategorized'
    },
    'rules': {
        'categories': 'category_rules.yaml',
        'dietary_tags': 'dietary_tags.yaml',
        'measurements': 'ingredient_measurements.yaml'
    },
    'logging': {
        'level': 'INFO'
    }
}

_config = None


def load_config(config_path=None):
    """Load configuration from config.yaml, falling back to defaults.

    Passing a path always reloads; without one the cached settings are
    returned once they exist.
    """
    global _config
    if _config is not None and config_path is None:
        return _config

    config_path = Path(config_path) if config_path else CONFIG_DIR / 'config.yaml'

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                user_config = yaml.safe_load(f) or {}
            # Merge with defaults to ensure all keys exist
            _config = _merge_config(DEFAULT_CONFIG, user_config)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Failed to load {config_path}: {e}. Using defaults.", file=sys.stderr)
            _config = _merge_config(DEFAULT_CONFIG, {})
    else:
        _config = _merge_config(DEFAULT_CONFIG, {})

    return _config


def _merge_config(default, user):
    """Merge user config with defaults, recursively."""
    result = dict(default)
    for key, value in user.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_config(result[key], value)
        else:
            result[key] = value
    return result


def get_config():
    """Get the current configuration."""
    if _config is None:
        load_config()
    return _config


def get_similarity_threshold() -> float:
    """Get the minimum trigram similarity for ingredient search."""
    config = get_config()
    return float(config.get('search', {}).get('similarity_threshold', 0.2))


def get_default_author() -> str:
    config = get_config()
    return config.get('import', {}).get('default_author') or 'John Doe'


def get_fallback_category() -> str:
    config = get_config()
    return config.get('import', {}).get('fallback_category') or 'Uncategorized'


def get_log_level() -> str:
    config = get_config()
    return str(config.get('logging', {}).get('level', 'INFO')).upper()


def get_database_path() -> Path:
    """Get the database file path (relative paths resolve against the cwd)."""
    config = get_config()
    db_path = Path(config.get('database', {}).get('path') or 'data/recipes.db')
    return db_path if db_path.is_absolute() else Path.cwd() / db_path


def get_database_url() -> str:
    """Get the SQLAlchemy URL, preferring an explicit `database.url`."""
    config = get_config()
    url = config.get('database', {}).get('url')
    if url:
        return url
    return f"sqlite:///{get_database_path().absolute()}"


def get_rules_path(name: str) -> Path:
    """Resolve a rule file named in the `rules` section."""
    config = get_config()
    rule_file = config.get('rules', {}).get(name) or DEFAULT_CONFIG['rules'][name]
    path = Path(rule_file)
    return path if path.is_absolute() else CONFIG_DIR / path


# ==================== RULE TABLES ====================

@dataclass(frozen=True)
class Vocabulary:
    """Words the ingredient parser recognises as quantities and units."""
    quantities: Tuple[str, ...]
    units: Tuple[str, ...]


@dataclass(frozen=True)
class CategoryRules:
    """Cooking methods (checked in order) and category keywords."""
    cooking_methods: Tuple[str, ...]
    categories: Mapping[str, Tuple[str, ...]]


@dataclass(frozen=True)
class DietaryRules:
    """Dietary tag name -> keywords, in file order."""
    tags: Mapping[str, Tuple[str, ...]]


def _read_rules(path: Path) -> dict:
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid rule file {path}: expected a mapping at the top level")
    return data


def _string_list(path: Path, key: str, value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Invalid rule file {path}: '{key}' must be a list of strings")
    return tuple(value)


def _keyword_table(path: Path, data: dict) -> Mapping[str, Tuple[str, ...]]:
    table = {}
    for name, keywords in data.items():
        table[str(name)] = _string_list(path, str(name), keywords)
    return MappingProxyType(table)


@lru_cache(maxsize=None)
def _load_vocabulary(path: Path) -> Vocabulary:
    data = _read_rules(path)
    return Vocabulary(
        quantities=_string_list(path, 'quantities', data.get('quantities')),
        units=_string_list(path, 'units', data.get('units'))
    )


@lru_cache(maxsize=None)
def _load_category_rules(path: Path) -> CategoryRules:
    data = _read_rules(path)
    categories = data.get('categories') or {}
    if not isinstance(categories, dict):
        raise ValueError(f"Invalid rule file {path}: 'categories' must be a mapping")
    return CategoryRules(
        cooking_methods=_string_list(path, 'cooking_methods', data.get('cooking_methods')),
        categories=_keyword_table(path, categories)
    )


@lru_cache(maxsize=None)
def _load_dietary_rules(path: Path) -> DietaryRules:
    return DietaryRules(tags=_keyword_table(path, _read_rules(path)))


def load_vocabulary(path=None) -> Vocabulary:
    return _load_vocabulary(Path(path) if path else get_rules_path('measurements'))


def load_category_rules(path=None) -> CategoryRules:
    return _load_category_rules(Path(path) if path else get_rules_path('categories'))


def load_dietary_rules(path=None) -> DietaryRules:
    return _load_dietary_rules(Path(path) if path else get_rules_path('dietary_tags'))
