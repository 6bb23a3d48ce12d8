from dataclasses import dataclass
from typing import Dict, List, Tuple


class CategoryIntegrityError(ValueError):
    """Raised when a scores or weights mapping does not cover exactly the registry keys"""


@dataclass(frozen=True)
class Category:
    key: str
    label: str
    group: str


@dataclass(frozen=True)
class CategoryGroup:
    title: str
    categories: Tuple[Category, ...]


CATEGORY_GROUPS: Tuple[CategoryGroup, ...] = (
    CategoryGroup('Financial', (
        Category('priceFit', 'Price Fit', 'Financial'),
        Category('resalePotential', 'Resale Potential', 'Financial'),
    )),
    CategoryGroup('Home Quality', (
        Category('condition', 'Condition', 'Home Quality'),
        Category('layout', 'Layout', 'Home Quality'),
    )),
    CategoryGroup('Lifestyle', (
        Category('location', 'Location', 'Lifestyle'),
        Category('schools', 'Schools', 'Lifestyle'),
        Category('commute', 'Commute', 'Lifestyle'),
    )),
    CategoryGroup('Emotional', (
        Category('emotionalPull', 'Emotional Pull', 'Emotional'),
    )),
)

# Canonical registry order - rounding remainders and tie-breaks follow it
ALL_CATEGORIES: Tuple[Category, ...] = tuple(
    category for group in CATEGORY_GROUPS for category in group.categories
)

CATEGORY_KEYS: Tuple[str, ...] = tuple(category.key for category in ALL_CATEGORIES)

CATEGORY_LABELS: Dict[str, str] = {category.key: category.label for category in ALL_CATEGORIES}

EMOTIONAL_PULL_KEY = 'emotionalPull'


def category_label(key: str) -> str:
    return CATEGORY_LABELS.get(key, key)


def check_category_keys(mapping: Dict[str, object], context: str = 'scores') -> None:
    """Raise CategoryIntegrityError unless mapping has exactly the registry keys"""
    keys = set(mapping.keys()) if isinstance(mapping, dict) else set()
    missing = [key for key in CATEGORY_KEYS if key not in keys]
    unexpected = sorted(keys - set(CATEGORY_KEYS))

    if missing or unexpected or not isinstance(mapping, dict):
        raise CategoryIntegrityError(
            f"Invalid {context}: missing={missing} unexpected={unexpected}"
        )


def serialize_registry() -> List[Dict[str, object]]:
    """Registry grouped for display, as plain dicts"""
    return [
        {
            'title': group.title,
            'categories': [
                {'key': c.key, 'label': c.label, 'group': c.group}
                for c in group.categories
            ]
        }
        for group in CATEGORY_GROUPS
    ]
