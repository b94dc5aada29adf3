"""Declarative field validation for goods, hunters and merchants.

Each entity has a rule table mapping a field to an ordered list of rules.
A rule is a predicate plus the error kind and message reported when the
predicate fails. Only the first failing rule of a field is reported.

Tables are plain data so they can be tested without a database:

    check("hunter", {"name": "geralt", "race": "Witcher", "location": "Rivia"})
    # [FieldError(field="name", kind="capitalized", message=...)]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from tradepost.core.errors import EntityValidationError, FieldError
from tradepost.models.constants import HUNTER_RACES, MATERIALS, MERCHANT_TYPES

Predicate = Callable[[Any], bool]

# Punctuation allowed in free-text descriptions besides letters, digits and spaces.
_DESCRIPTION_PUNCTUATION = frozenset(",.;:'-!?()")


@dataclass(frozen=True)
class Rule:
    predicate: Predicate
    kind: str
    message: str


# --- Predicates ---


def is_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def starts_with_capital(value: str) -> bool:
    return value[:1].isupper()


def letters_and_spaces(value: str) -> bool:
    return all(ch.isalpha() or ch == " " for ch in value)


def plain_text(value: str) -> bool:
    return all(ch.isalnum() or ch == " " or ch in _DESCRIPTION_PUNCTUATION for ch in value)


def length_between(low: int, high: int) -> Predicate:
    return lambda value: low <= len(value) <= high


def positive(value: float) -> bool:
    return value > 0


def non_negative(value: int) -> bool:
    return value >= 0


def one_of(allowed: Iterable[str]) -> Predicate:
    choices = frozenset(allowed)
    return lambda value: value in choices


# --- Rule tables ---


def _name_rules(label: str) -> list[Rule]:
    return [
        Rule(is_text, "required", f"{label} is required"),
        Rule(starts_with_capital, "capitalized", f"{label} must start with a capital letter"),
        Rule(letters_and_spaces, "alphabetic", f"{label} may only contain letters and spaces"),
        Rule(length_between(2, 30), "length", f"{label} must be 2 to 30 characters long"),
    ]


def _choice_rules(label: str, allowed: Iterable[str], enforce_enums: bool) -> list[Rule]:
    rules = [Rule(is_text, "required", f"{label} is required")]
    if enforce_enums:
        allowed = tuple(allowed)
        rules.append(Rule(one_of(allowed), "enum", f"{label} must be one of: {', '.join(allowed)}"))
    return rules


def _location_rules() -> list[Rule]:
    return [
        Rule(is_text, "required", "Location is required"),
        Rule(length_between(2, 100), "length", "Location must be 2 to 100 characters long"),
    ]


def good_rules(enforce_enums: bool = True) -> dict[str, list[Rule]]:
    return {
        "name": _name_rules("Name"),
        "description": [
            Rule(is_text, "required", "Description is required"),
            Rule(starts_with_capital, "capitalized", "Description must start with a capital letter"),
            Rule(plain_text, "characters", "Description may only contain letters, numbers, spaces and basic punctuation"),
            Rule(length_between(10, 100), "length", "Description must be 10 to 100 characters long"),
        ],
        "material": _choice_rules("Material", MATERIALS, enforce_enums),
        "weight": [
            Rule(is_number, "type", "Weight must be a number"),
            Rule(positive, "positive", "Weight must be greater than 0"),
        ],
        "stock": [
            Rule(is_integer, "type", "Stock must be an integer"),
            Rule(non_negative, "non_negative", "Stock cannot be negative"),
        ],
        "value": [
            Rule(is_number, "type", "Value must be a number"),
            Rule(positive, "positive", "Value must be greater than 0"),
        ],
    }


def hunter_rules(enforce_enums: bool = True) -> dict[str, list[Rule]]:
    return {
        "name": _name_rules("Name"),
        "race": _choice_rules("Race", HUNTER_RACES, enforce_enums),
        "location": _location_rules(),
    }


def merchant_rules(enforce_enums: bool = True) -> dict[str, list[Rule]]:
    return {
        "name": _name_rules("Name"),
        "type": _choice_rules("Type", MERCHANT_TYPES, enforce_enums),
        "location": _location_rules(),
    }


RULE_TABLES: dict[str, Callable[[bool], dict[str, list[Rule]]]] = {
    "good": good_rules,
    "hunter": hunter_rules,
    "merchant": merchant_rules,
}


def normalize(data: dict[str, Any]) -> dict[str, Any]:
    """Strip surrounding whitespace from string fields."""
    return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


def check(
    entity: str,
    data: dict[str, Any],
    *,
    enforce_enums: bool = True,
    partial: bool = False,
) -> list[FieldError]:
    """Evaluate the entity's rule table against *data* and return the failures.

    With ``partial=True`` only the fields present in *data* are checked, which
    is what an update needs.
    """
    table = RULE_TABLES[entity](enforce_enums)
    errors: list[FieldError] = []
    for field, rules in table.items():
        if field not in data:
            if not partial:
                errors.append(FieldError(field, "required", f"{field.capitalize()} is required"))
            continue
        value = data[field]
        for rule in rules:
            if not rule.predicate(value):
                errors.append(FieldError(field, rule.kind, rule.message))
                break
    return errors


def validate(
    entity: str,
    data: dict[str, Any],
    *,
    enforce_enums: bool = True,
    partial: bool = False,
) -> None:
    """Raise EntityValidationError if *data* breaks any rule."""
    errors = check(entity, data, enforce_enums=enforce_enums, partial=partial)
    if errors:
        raise EntityValidationError(entity, errors)
