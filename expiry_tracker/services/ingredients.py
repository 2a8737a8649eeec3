"""Ingredient normalization and fingerprinting."""

import hashlib
from collections.abc import Iterable

from expiry_tracker.models import FoodItem

INGREDIENT_SEPARATOR = "|"


def normalize_ingredient_name(name: str | None) -> str:
    """Lowercase and trim an ingredient name."""
    return (name or "").strip().lower()


def build_ingredient_list(items: Iterable[FoodItem]) -> list[str]:
    """Build a normalized, deduplicated, sorted ingredient list from food items.

    Names that are blank after trimming are dropped, so the result may be
    empty even for a non-empty input.
    """
    unique = {normalize_ingredient_name(item.name) for item in items}
    unique.discard("")
    return sorted(unique)


def generate_ingredient_hash(ingredients: list[str]) -> str:
    """Generate a deterministic SHA-256 hex digest of an ingredient list.

    The list is expected to come from ``build_ingredient_list`` so that order
    and duplicates are already canonical.
    """
    canonical = INGREDIENT_SEPARATOR.join(ingredients)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
