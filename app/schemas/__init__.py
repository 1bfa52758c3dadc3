"""Domain schemas for contract analysis."""

from app.schemas.domain import (
    BreachConditionRule,
    BreachDetectionRecord,
    BreachDetectionResult,
    CalculatedPenalty,
    ContractAlert,
    ContractDocument,
    DocumentStatus,
    ExtractionResult,
    OcrImprovement,
    PenaltyRule,
    QualityAssessment,
    RuleCheck,
)

__all__ = [
    "BreachConditionRule",
    "BreachDetectionRecord",
    "BreachDetectionResult",
    "CalculatedPenalty",
    "ContractAlert",
    "ContractDocument",
    "DocumentStatus",
    "ExtractionResult",
    "OcrImprovement",
    "PenaltyRule",
    "QualityAssessment",
    "RuleCheck",
]
