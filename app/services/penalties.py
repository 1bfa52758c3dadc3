"""Penalty calculation from user rules and breach-detection output."""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol, Sequence
from uuid import uuid4

from app.schemas.domain import (
    BreachDetectionResult,
    CalculatedPenalty,
    ExtractionResult,
    PenaltyRule,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_AMOUNT = 10000.0
FALLBACK_PENALTY_AMOUNT = 100.0
FALLBACK_PENALTY_DESCRIPTION = "General penalty for detected breaches"
DEFAULT_PENALTY_DESCRIPTION = "Calculated Penalty"


class BaseAmountExtractor(Protocol):
    """Finds the base amount percentage penalties apply to."""

    def extract(self, text: Optional[str]) -> Optional[float]:
        ...


class FirstNumberExtractor:
    """Takes the first integer/decimal token in the text.

    Thousands separators are allowed ("12,500.00"). This is a scan, not a
    money parser: "Net 30, total $50,000" yields 30.
    """

    _pattern = re.compile(r"\d[\d,]*(?:\.\d+)?")

    def extract(self, text: Optional[str]) -> Optional[float]:
        if not text:
            return None
        match = self._pattern.search(text)
        if match is None:
            return None
        return float(match.group(0).replace(",", ""))


def _matching_breach(condition_text: str, breaches: Sequence[str]) -> Optional[int]:
    words = condition_text.lower().split()
    if not words:
        return None
    keyword = words[0]
    for index, breach in enumerate(breaches):
        if keyword in breach.lower():
            return index
    return None


def calculate_penalties(
    rules: Sequence[PenaltyRule],
    extraction: Optional[ExtractionResult],
    breach_result: Optional[BreachDetectionResult],
    *,
    base_amount_extractor: Optional[BaseAmountExtractor] = None,
    default_base_amount: float = DEFAULT_BASE_AMOUNT,
    fallback_amount: float = FALLBACK_PENALTY_AMOUNT,
    currency: str = "USD",
) -> list[CalculatedPenalty]:
    """Compute the penalty list for a document.

    Args:
        rules: User-declared penalty rules, in order.
        extraction: Extraction result; its financial terms supply the base
            amount for percentage rules.
        breach_result: Latest breach-detection result, if any.
        base_amount_extractor: Strategy for reading the base amount.
        default_base_amount: Base used when no amount is found.
        fallback_amount: Amount of the generic line item emitted when no
            rule applies but breaches were detected.
        currency: Currency code for every line item.

    Returns:
        A new list that replaces the document's penalties. Only rules with a
        strictly positive amount are included.
    """
    extractor = base_amount_extractor or FirstNumberExtractor()
    breaches = breach_result.potential_breaches if breach_result else []
    financial_terms = extraction.financial_terms if extraction else None

    penalties: list[CalculatedPenalty] = []
    for rule in rules:
        if rule.penalty_type == "fixed":
            amount = rule.amount or 0.0
        else:
            base = extractor.extract(financial_terms)
            if base is None:
                base = default_base_amount
            amount = (base * (rule.percentage or 0.0)) / 100

        if amount <= 0:
            continue

        penalties.append(
            CalculatedPenalty(
                id=str(uuid4()),
                description=rule.condition_text or DEFAULT_PENALTY_DESCRIPTION,
                amount=amount,
                currency=currency,
                breach_index=_matching_breach(rule.condition_text, breaches),
            )
        )

    if not penalties and breaches:
        penalties.append(
            CalculatedPenalty(
                id=str(uuid4()),
                description=FALLBACK_PENALTY_DESCRIPTION,
                amount=fallback_amount,
                currency=currency,
            )
        )

    logger.info("Calculated %d penalties from %d rules", len(penalties), len(rules))
    return penalties


__all__ = [
    "BaseAmountExtractor",
    "DEFAULT_BASE_AMOUNT",
    "FALLBACK_PENALTY_AMOUNT",
    "FirstNumberExtractor",
    "calculate_penalties",
]
