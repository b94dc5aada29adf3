"""Enumerated domain values and placeholder attributes.

Placed here so the validation tables, the resolvers, and the API layer can
all import them without creating a layer violation.
"""

from __future__ import annotations

UNKNOWN = "Unknown"

MATERIALS: tuple[str, ...] = (
    "Steel",
    "Wood",
    "Stone",
    "Iron",
    "Leather",
    "Cloth",
    "Glass",
    "Bronze",
    "Silver",
    "Gold",
    UNKNOWN,
)

HUNTER_RACES: tuple[str, ...] = (
    "Human",
    "Elf",
    "Dwarf",
    "Halfling",
    "Witcher",
    "Sorcerer",
    UNKNOWN,
)

MERCHANT_TYPES: tuple[str, ...] = (
    "Blacksmith",
    "Alchemist",
    "General Merchant",
    "Armorer",
    "Herbalist",
    UNKNOWN,
)

# Attributes given to records created implicitly by the ledger.
PLACEHOLDER_GOOD: dict[str, object] = {
    "description": "Automatically registered good",
    "material": UNKNOWN,
    "weight": 10.0,
    "value": 100.0,
}
PLACEHOLDER_HUNTER: dict[str, str] = {"race": UNKNOWN, "location": UNKNOWN}
PLACEHOLDER_MERCHANT: dict[str, str] = {"type": UNKNOWN, "location": UNKNOWN}

# Fields the entity update endpoints accept. Good.stock is owned by the ledger.
GOOD_UPDATABLE: frozenset[str] = frozenset({"name", "description", "material", "weight", "value"})
HUNTER_UPDATABLE: frozenset[str] = frozenset({"name", "race", "location"})
MERCHANT_UPDATABLE: frozenset[str] = frozenset({"name", "type", "location"})
