"""API request and response models."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.domain import (
    AlertType,
    BreachConditionRule,
    CalculatedPenalty,
    DocumentStatus,
    PenaltyRule,
    Severity,
)


class ContractTextRequest(BaseModel):
    """Pasted-text submission (no OCR)."""

    name: str = Field(min_length=3)
    text: str = Field(min_length=1)
    layout_description: Optional[str] = None
    user_instructions: Optional[str] = None


class ContractAccepted(BaseModel):
    """Returned when analysis runs in the background."""

    document_id: str
    name: str
    status: DocumentStatus


class ContractSummary(BaseModel):
    """List entry for the contracts overview."""

    id: str
    name: str
    status: DocumentStatus
    uploaded_at: str
    parties_involved: list[str] = Field(default_factory=list)
    expiration_date: Optional[str] = None
    quality_score: Optional[float] = None
    error_message: Optional[str] = None


class BreachDetectionRequest(BaseModel):
    rules: Optional[list[BreachConditionRule]] = None


class PenaltyRequest(BaseModel):
    rules: list[PenaltyRule] = Field(default_factory=list)


class PenaltyResponse(BaseModel):
    document_id: str
    penalties: list[CalculatedPenalty]
    total: float


class SystemAlertRequest(BaseModel):
    message: str = Field(min_length=1)
    severity: Severity = "medium"
    type: AlertType = "custom"
    due_date: Optional[date] = None


class DashboardSummary(BaseModel):
    total_contracts: int
    contracts_by_status: dict[str, int]
    active_alerts: int
    total_penalties: float
