"""Tests for ingredient normalization and fingerprinting."""

import hashlib
from types import SimpleNamespace

from expiry_tracker.services.ingredients import (
    build_ingredient_list,
    generate_ingredient_hash,
    normalize_ingredient_name,
)


def _items(*names):
    return [SimpleNamespace(name=name) for name in names]


def test_normalize_ingredient_name():
    """Names are trimmed and lowercased."""
    assert normalize_ingredient_name("  Greek Yogurt ") == "greek yogurt"
    assert normalize_ingredient_name(None) == ""


def test_build_ingredient_list_sorts_and_dedupes():
    """Case, whitespace, order and duplicates do not affect the list."""
    assert build_ingredient_list(_items("Spinach", "Eggs", "Milk")) == ["eggs", "milk", "spinach"]
    assert build_ingredient_list(_items("Milk", " milk ", "EGGS")) == ["eggs", "milk"]


def test_build_ingredient_list_drops_blank_names():
    """Blank names are ignored and may leave an empty list."""
    assert build_ingredient_list(_items("  ", "")) == []
    assert build_ingredient_list([]) == []
    assert build_ingredient_list(_items(" ", "Kale")) == ["kale"]


def test_hash_is_stable_across_equivalent_inputs():
    """Equivalent ingredient multisets produce the same fingerprint."""
    first = generate_ingredient_hash(build_ingredient_list(_items("Milk", " milk ", "EGGS")))
    second = generate_ingredient_hash(build_ingredient_list(_items("eggs", "milk")))
    assert first == second


def test_hash_matches_sha256_of_pipe_joined_names():
    """The fingerprint is the SHA-256 hex digest of the pipe-joined list."""
    expected = hashlib.sha256(b"eggs|milk|spinach").hexdigest()
    assert generate_ingredient_hash(["eggs", "milk", "spinach"]) == expected
    assert len(expected) == 64
    assert expected == expected.lower()


def test_hash_changes_with_membership():
    """Adding or removing an ingredient changes the fingerprint."""
    base = generate_ingredient_hash(["eggs", "milk"])
    assert generate_ingredient_hash(["eggs", "milk", "spinach"]) != base
    assert generate_ingredient_hash(["eggs"]) != base
