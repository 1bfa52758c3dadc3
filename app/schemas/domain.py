"""Domain models for contract analysis.

Model outputs (extraction, quality, OCR improvement, breach detection) are
validated in strict mode: a response with the wrong primitive types or an
out-of-range score is rejected rather than coerced.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ConfidenceLevel = Literal["low", "medium", "high"]
Severity = Literal["low", "medium", "high"]
AlertType = Literal["expiration", "payment_due", "custom"]
RuleOperator = Literal[
    "exists",
    "not_exists",
    "contains",
    "not_contains",
    "equals",
    "greater_than",
    "less_than",
]
ExtractionField = Literal[
    "contract_summary",
    "effective_date",
    "expiration_date",
    "parties_involved",
    "financial_terms",
    "conditions",
    "breach_clauses",
    "termination_clauses",
]


class DocumentStatus(str, enum.Enum):
    new = "new"
    processing = "processing"
    analyzed = "analyzed"
    error = "error"


# Allowed forward moves; anything else is a regression of the lifecycle.
STATUS_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.new: frozenset({DocumentStatus.processing}),
    DocumentStatus.processing: frozenset({DocumentStatus.analyzed, DocumentStatus.error}),
    DocumentStatus.analyzed: frozenset(),
    DocumentStatus.error: frozenset(),
}


class OcrImprovement(BaseModel):
    """OCR text corrected for layout issues."""

    model_config = ConfigDict(strict=True)

    improved_ocr_text: str
    layout_assessment: str


class ExtractionResult(BaseModel):
    """Structured fields pulled from contract text."""

    model_config = ConfigDict(strict=True)

    contract_summary: str
    effective_date: Optional[str] = None  # YYYY-MM-DD when resolvable, else verbatim phrase
    expiration_date: Optional[str] = None
    parties_involved: list[str] = Field(default_factory=list)
    financial_terms: Optional[str] = None
    conditions: Optional[list[str]] = None
    breach_clauses: Optional[list[str]] = None
    termination_clauses: Optional[list[str]] = None


class QualityAssessment(BaseModel):
    """Model's assessment of an extraction against the source text."""

    model_config = ConfigDict(strict=True)

    quality_score: float = Field(ge=0.0, le=1.0)
    confidence_level: ConfidenceLevel
    is_complete: bool
    justification: str


class BreachConditionRule(BaseModel):
    """A user-declared condition checked against one extraction field."""

    field: ExtractionField
    operator: RuleOperator
    value: Optional[Union[bool, int, float, str]] = None
    description: str = ""


class RuleCheck(BaseModel):
    """Outcome of evaluating one rule locally against the extraction."""

    field: ExtractionField
    operator: RuleOperator
    description: str
    satisfied: bool


class BreachDetectionResult(BaseModel):
    model_config = ConfigDict(strict=True)

    potential_breaches: list[str]
    summary: str


class BreachDetectionRecord(BaseModel):
    """Rules used for a detection run, kept alongside the result for audit."""

    rules: list[BreachConditionRule]
    conditions: str  # serialized rules as sent to the model
    rule_checks: list[RuleCheck] = Field(default_factory=list)
    result: Optional[BreachDetectionResult] = None


class PenaltyRule(BaseModel):
    """A user-declared penalty rule."""

    condition_text: str = ""
    penalty_type: Literal["fixed", "percentage"] = "fixed"
    amount: Optional[float] = Field(default=None, ge=0)
    percentage: Optional[float] = Field(default=None, ge=0)
    applies_to_field: Optional[str] = None


class CalculatedPenalty(BaseModel):
    id: str
    description: str
    amount: float
    currency: str
    breach_index: Optional[int] = None  # position in potential_breaches


class ContractAlert(BaseModel):
    id: str
    type: AlertType
    message: str
    due_date: Optional[date] = None
    severity: Severity
    triggered_at: Optional[datetime] = None
    acknowledged: bool = False


class ContractDocument(BaseModel):
    """One uploaded contract and everything derived from it."""

    id: str
    name: str
    uploaded_at: datetime
    status: DocumentStatus = DocumentStatus.new
    filename: Optional[str] = None
    page_count: Optional[int] = None
    original_text: Optional[str] = None
    layout_description: Optional[str] = None
    user_instructions: Optional[str] = None
    ocr_improved: Optional[OcrImprovement] = None
    extracted_data: Optional[ExtractionResult] = None
    quality_assessment: Optional[QualityAssessment] = None
    breach_detection: Optional[BreachDetectionRecord] = None
    penalties: list[CalculatedPenalty] = Field(default_factory=list)
    alerts: list[ContractAlert] = Field(default_factory=list)
    error_message: Optional[str] = None
