"""Pytest configuration and fixtures."""

import os

# Keep settings deterministic regardless of the developer's .env
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("LLM_MAX_ATTEMPTS", "1")

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.deps import get_pipeline, get_store
from app.main import app
from app.schemas.domain import (
    BreachDetectionResult,
    ContractDocument,
    ExtractionResult,
    OcrImprovement,
    QualityAssessment,
)
from app.store.memory import SessionStore
from pipeline.orchestrator import ContractPipeline
from pipeline.prompts import OcrOutput, StageInvokers

CONTRACT_TEXT = (
    "STATEMENT OF WORK between Acme Corp and Widget Inc. "
    "SOW Estimated Start Date: Aug, 5 2024. "
    "SOW Estimated End Date: Four months after start date. "
    "Fees: a total fee of $12,500.00 payable monthly. "
    "Late payment incurs a 5% penalty. Either party may terminate with 30 days notice."
)


def make_extraction(**overrides) -> ExtractionResult:
    data = {
        "contract_summary": "Statement of work between Acme Corp and Widget Inc.",
        "effective_date": "2024-08-05",
        "expiration_date": "Four months after start date",
        "parties_involved": ["Acme Corp", "Widget Inc"],
        "financial_terms": "Total fee of $12,500.00 payable monthly",
        "conditions": ["Monthly status reports"],
        "breach_clauses": ["Late payment incurs a 5% penalty"],
        "termination_clauses": ["Either party may terminate with 30 days notice"],
    }
    data.update(overrides)
    return ExtractionResult(**data)


def make_quality(**overrides) -> QualityAssessment:
    data = {
        "quality_score": 0.9,
        "confidence_level": "high",
        "is_complete": True,
        "justification": "All key fields were found in the text.",
    }
    data.update(overrides)
    return QualityAssessment(**data)


def make_invokers(**overrides) -> StageInvokers:
    """Stage invokers backed by AsyncMocks returning valid outputs."""
    invokers = {
        "ocr": AsyncMock(return_value=OcrOutput(extracted_text=CONTRACT_TEXT)),
        "improve_ocr": AsyncMock(
            return_value=OcrImprovement(
                improved_ocr_text=CONTRACT_TEXT + " (corrected)",
                layout_assessment="Two-column layout merged correctly.",
            )
        ),
        "extract": AsyncMock(return_value=make_extraction()),
        "assess_quality": AsyncMock(return_value=make_quality()),
        "detect_breaches": AsyncMock(
            return_value=BreachDetectionResult(
                potential_breaches=["Late payment of the March invoice"],
                summary="One potential breach found.",
            )
        ),
    }
    invokers.update(overrides)
    return StageInvokers(**invokers)


def make_document(**overrides) -> ContractDocument:
    data = {
        "id": "doc-1",
        "name": "Master Service Agreement",
        "uploaded_at": datetime(2024, 8, 1, 9, 30, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return ContractDocument(**data)


@pytest.fixture
def store():
    """Fresh in-memory session store."""
    return SessionStore()


@pytest.fixture
def invokers():
    """Mocked stage invokers; tweak side effects per test."""
    return make_invokers()


@pytest.fixture
def pipeline(store, invokers):
    return ContractPipeline(store, invokers)


@pytest.fixture
def client(store, pipeline):
    """TestClient wired to the test store and pipeline."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def pdf_pages():
    """Patch pdfplumber so any bytes open as a two-page PDF."""
    pdf = MagicMock()
    pdf.pages = [MagicMock(), MagicMock()]
    pdf.__enter__.return_value = pdf
    with patch("app.services.upload.pdfplumber.open", return_value=pdf) as mock_open:
        yield mock_open
