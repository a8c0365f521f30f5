# event_catalogue/schemas/taxonomy.py
"""
Category / subcategory taxonomy.

Single source of truth for the closed category set and the per-category
subcategory lists. The vectoriser derives its feature layout from here and the
merge resolver validates subcategories against it, so every vector built in
the process shares one dimensionality.

Provides functions to:
- Resolve raw category strings (value or label) to a Category
- List and validate subcategories for a category
- Build the flattened (category, subcategory) index used for multi-hot encoding
"""

from enum import Enum
from functools import lru_cache


class Category(str, Enum):
    """
    Main event categories.

    Every event belongs to exactly one. OTHER is the generic fallback.
    """

    MUSIC = "music"
    THEATRE = "theatre"
    SPORTS = "sports"
    ARTS = "arts"
    FAMILY = "family"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human-readable label."""
        return CATEGORY_LABELS[self]


FALLBACK_CATEGORY = Category.OTHER

CATEGORY_LABELS: dict[Category, str] = {
    Category.MUSIC: "Music",
    Category.THEATRE: "Theatre",
    Category.SPORTS: "Sports",
    Category.ARTS: "Arts & Culture",
    Category.FAMILY: "Family",
    Category.OTHER: "Other",
}

SUBCATEGORIES: dict[Category, tuple[str, ...]] = {
    Category.MUSIC: (
        "Rock & Alternative",
        "Pop & Electronic",
        "Hip Hop & R&B",
        "Jazz & Blues",
        "Classical & Orchestra",
        "Country & Folk",
        "Metal & Punk",
        "World Music",
    ),
    Category.THEATRE: (
        "Musicals",
        "Drama",
        "Comedy Shows",
        "Ballet & Dance",
        "Opera",
        "Cabaret",
        "Shakespeare",
        "Experimental",
    ),
    Category.SPORTS: (
        "AFL",
        "Cricket",
        "Soccer",
        "Basketball",
        "Tennis",
        "Rugby",
        "Motorsports",
        "Other Sports",
    ),
    Category.ARTS: (
        "Comedy Festival",
        "Film & Cinema",
        "Art Exhibitions",
        "Literary Events",
        "Cultural Festivals",
        "Markets & Fairs",
    ),
    Category.FAMILY: (
        "Kids Shows",
        "Family Entertainment",
        "Educational",
        "Circus & Magic",
    ),
    Category.OTHER: (
        "Workshops",
        "Networking",
        "Wellness",
        "Community Events",
    ),
}


def all_categories() -> tuple[Category, ...]:
    """Categories in feature-layout order."""
    return tuple(Category)


def get_subcategories(category: Category | str) -> tuple[str, ...]:
    """Return the allowed subcategories for a category (empty for unknown values)."""
    try:
        return SUBCATEGORIES[Category(category)]
    except ValueError:
        return ()


def is_valid_subcategory(category: Category | str, subcategory: str) -> bool:
    """
    Check that a subcategory belongs to a category.

    Example:
        >>> is_valid_subcategory("theatre", "Musicals")
        True
        >>> is_valid_subcategory("music", "Musicals")
        False
    """
    return subcategory in get_subcategories(category)


def is_cross_listing_tag(category: Category | str, tag: str) -> bool:
    """
    Check whether ``tag`` is another category's value kept as a subcategory.

    A merge between listings filed under different categories folds the
    secondary category into the merged record's subcategories. The fallback
    category is never kept this way.
    """
    try:
        tagged = Category(tag)
    except ValueError:
        return False
    return tagged != Category(category) and tagged != FALLBACK_CATEGORY


def resolve_category(value: str | None) -> Category:
    """
    Resolve a raw category value or label to a Category.

    Accepts the enum value ("theatre") or label ("Arts & Culture"), case
    insensitive. Falls back to OTHER when the value cannot be resolved.

    Example:
        >>> resolve_category("Arts & Culture")
        <Category.ARTS: 'arts'>
        >>> resolve_category("unknown")
        <Category.OTHER: 'other'>
    """
    if not value:
        return FALLBACK_CATEGORY

    candidate = value.strip().lower()
    for category in Category:
        if candidate == category.value or candidate == category.label.lower():
            return category
    return FALLBACK_CATEGORY


@lru_cache
def flattened_subcategories() -> tuple[tuple[Category, str], ...]:
    """
    All (category, subcategory) pairs in feature-layout order.

    Returns:
        Tuple ordered by category then by subcategory list position.
    """
    return tuple(
        (category, subcategory)
        for category in all_categories()
        for subcategory in SUBCATEGORIES[category]
    )


@lru_cache
def subcategory_index() -> dict[tuple[Category, str], int]:
    """Map each (category, subcategory) pair to its position in the flattened list."""
    return {pair: i for i, pair in enumerate(flattened_subcategories())}
