"""Condition trees for rules and model-definition criteria.

A condition is one of three shapes:

* ``Leaf`` compares one record field against a configured value;
* ``AllOf`` is true when every child is true (vacuously true when empty);
* ``AnyOf`` is true when some child is true (false when empty).

Evaluation is total: malformed leaves, unknown operators and type
mismatches all evaluate to ``False`` and never raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union

from governance.objects import UseCaseRecord


OPERATORS = frozenset(
    {"eq", "neq", "in", "notIn", "contains", "notEmpty", "gt", "lt", "gte", "lte"}
)


@dataclass(frozen=True)
class Leaf:
    field: Optional[str]
    operator: Optional[str]
    value: Any = None


@dataclass(frozen=True)
class AllOf:
    children: Tuple["Condition", ...]


@dataclass(frozen=True)
class AnyOf:
    children: Tuple["Condition", ...]


Condition = Union[Leaf, AllOf, AnyOf]


def parse_condition(raw: Any) -> Condition:
    """Convert a YAML-loaded condition into a Condition tree."""
    if isinstance(raw, list):
        return AllOf(children=tuple(parse_condition(item) for item in raw))
    if not isinstance(raw, dict):
        return Leaf(field=None, operator=None)
    if "all" in raw:
        return AllOf(children=_parse_children(raw["all"]))
    if "any" in raw:
        return AnyOf(children=_parse_children(raw["any"]))
    field_name = raw.get("field")
    operator = raw.get("operator")
    return Leaf(
        field=str(field_name) if field_name else None,
        operator=str(operator) if operator else None,
        value=_freeze(raw.get("value")),
    )


def evaluate_condition(condition: Condition, record: UseCaseRecord) -> bool:
    """Evaluate a condition tree against a record."""
    if isinstance(condition, AllOf):
        return all(evaluate_condition(child, record) for child in condition.children)
    if isinstance(condition, AnyOf):
        return any(evaluate_condition(child, record) for child in condition.children)
    if isinstance(condition, Leaf):
        return _evaluate_leaf(condition, record)
    return False


def condition_fields(condition: Condition) -> Iterator[str]:
    """Yield every field name referenced by the leaves of a condition."""
    if isinstance(condition, (AllOf, AnyOf)):
        for child in condition.children:
            yield from condition_fields(child)
    elif isinstance(condition, Leaf) and condition.field:
        yield condition.field


def _parse_children(raw: Any) -> Tuple[Condition, ...]:
    if not isinstance(raw, list):
        # Malformed combinator: a single leaf that never matches.
        return (Leaf(field=None, operator=None),)
    return tuple(parse_condition(item) for item in raw)


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _evaluate_leaf(leaf: Leaf, record: UseCaseRecord) -> bool:
    if not leaf.field or not leaf.operator:
        return False

    actual = record.get(leaf.field)
    expected = leaf.value
    operator = leaf.operator

    if operator == "eq":
        return _strict_equals(actual, expected)
    if operator == "neq":
        return not _strict_equals(actual, expected)
    if operator == "in":
        if _is_sequence(expected):
            return _includes(expected, actual)
        return False
    if operator == "notIn":
        if _is_sequence(expected):
            return not _includes(expected, actual)
        return True
    if operator == "contains":
        if _is_sequence(actual):
            return _includes(actual, expected)
        if isinstance(actual, str):
            return isinstance(expected, str) and expected in actual
        return False
    if operator == "notEmpty":
        if _is_sequence(actual):
            return len(actual) > 0
        if isinstance(actual, str):
            return len(actual.strip()) > 0
        return actual is not None
    if operator == "gt":
        return _numeric_compare(actual, expected, lambda a, b: a > b)
    if operator == "lt":
        return _numeric_compare(actual, expected, lambda a, b: a < b)
    if operator == "gte":
        return _numeric_compare(actual, expected, lambda a, b: a >= b)
    if operator == "lte":
        return _numeric_compare(actual, expected, lambda a, b: a <= b)
    return False


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(actual: Any, expected: Any) -> bool:
    # No coercion: True != 1 and "1" != 1, but 1 == 1.0.
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    if _is_sequence(actual) or _is_sequence(expected):
        return False
    return type(actual) is type(expected) and actual == expected


def _includes(values: Any, needle: Any) -> bool:
    return any(_strict_equals(item, needle) for item in values)


def _numeric_compare(actual: Any, expected: Any, predicate: Any) -> bool:
    if not _is_number(actual) or not _is_number(expected):
        return False
    return predicate(actual, expected)
