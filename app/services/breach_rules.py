"""Breach condition rules: defaults, serialization and local evaluation.

The breach verdict comes from the model; the serialized rules are its context.
Local evaluation is a heuristic shown next to the model's answer.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Sequence

from app.schemas.domain import BreachConditionRule, ExtractionResult, RuleCheck

DEFAULT_BREACH_RULES: tuple[BreachConditionRule, ...] = (
    BreachConditionRule(
        field="expiration_date",
        operator="exists",
        description="Contract must have an expiration date.",
    ),
    BreachConditionRule(
        field="parties_involved",
        operator="greater_than",
        value=1,
        description="Contract must involve at least two parties.",
    ),
    BreachConditionRule(
        field="financial_terms",
        operator="exists",
        description="Contract should specify financial terms.",
    ),
    BreachConditionRule(
        field="termination_clauses",
        operator="exists",
        description="Contract should include termination clauses.",
    ),
)

_NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def default_rules() -> list[BreachConditionRule]:
    return [rule.model_copy() for rule in DEFAULT_BREACH_RULES]


def serialize_rules(rules: Sequence[BreachConditionRule]) -> str:
    """Serialize rules in order for the breach-detection prompt and audit trail."""
    return json.dumps([rule.model_dump(exclude_none=True) for rule in rules])


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return len(value) > 0
    return True


def _as_items(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, list):
        return float(len(value))
    match = _NUMBER_RE.search(str(value))
    if match is None:
        return None
    return float(match.group(0).replace(",", ""))


def evaluate_rule(rule: BreachConditionRule, extraction: ExtractionResult) -> bool:
    """Return True when the rule's condition holds for the extraction."""
    actual = getattr(extraction, rule.field)
    expected = "" if rule.value is None else str(rule.value).strip().lower()
    items = [item.strip().lower() for item in _as_items(actual)]

    if rule.operator == "exists":
        return _is_present(actual)
    if rule.operator == "not_exists":
        return not _is_present(actual)
    if rule.operator == "contains":
        return bool(expected) and any(expected in item for item in items)
    if rule.operator == "not_contains":
        return not (bool(expected) and any(expected in item for item in items))
    if rule.operator == "equals":
        return any(item == expected for item in items)

    left = _as_number(actual)
    right = _as_number(rule.value)
    if left is None or right is None:
        return False
    if rule.operator == "greater_than":
        return left > right
    return left < right


def evaluate_rules(
    rules: Sequence[BreachConditionRule], extraction: ExtractionResult
) -> list[RuleCheck]:
    return [
        RuleCheck(
            field=rule.field,
            operator=rule.operator,
            description=rule.description,
            satisfied=evaluate_rule(rule, extraction),
        )
        for rule in rules
    ]


__all__ = [
    "DEFAULT_BREACH_RULES",
    "default_rules",
    "evaluate_rule",
    "evaluate_rules",
    "serialize_rules",
]
