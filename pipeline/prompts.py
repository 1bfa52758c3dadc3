"""Prompt templates and schemas for the five analysis stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, field_validator

from app.core.config import settings
from app.schemas.domain import (
    BreachDetectionResult,
    ExtractionResult,
    OcrImprovement,
    QualityAssessment,
)
from app.services.upload import UploadValidationError, parse_data_uri
from pipeline.llm_invoker import MessageContent, PromptInvoker, RetryPolicy, truncate_text


class _StageInput(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")


# OCR


class OcrInput(_StageInput):
    pdf_data_uri: str

    @field_validator("pdf_data_uri")
    @classmethod
    def _must_be_base64_data_uri(cls, value: str) -> str:
        try:
            parse_data_uri(value)
        except UploadValidationError as e:
            raise ValueError(str(e)) from e
        return value


class OcrOutput(BaseModel):
    model_config = ConfigDict(strict=True)

    extracted_text: str


OCR_SYSTEM_PROMPT = """You are an Optical Character Recognition (OCR) assistant.
Your task is to extract all textual content from the provided PDF document.
Ensure the output contains only the extracted text."""


def render_ocr(payload: OcrInput) -> MessageContent:
    return [
        {"type": "text", "text": "PDF Document:"},
        {
            "type": "file",
            "file": {"filename": "contract.pdf", "file_data": payload.pdf_data_uri},
        },
    ]


# OCR improvement


class ImproveOcrInput(_StageInput):
    ocr_text: str
    document_layout: str


IMPROVE_OCR_SYSTEM_PROMPT = """You are an AI assistant specialized in improving the accuracy of OCR-extracted text from legal documents. You will receive raw OCR text and a description of the document's layout.

Your goal is to correct errors in the OCR text that may be caused by formatting or layout issues in the document. You should also provide an assessment of the document layout, pointing out any potential problems that could affect OCR accuracy."""


def render_improve_ocr(payload: ImproveOcrInput) -> MessageContent:
    return (
        "Here is the raw OCR text:\n"
        f"{truncate_text(payload.ocr_text, settings.LLM_MAX_CHARS)}\n\n"
        "Here is a description of the document layout:\n"
        f"{payload.document_layout}\n\n"
        "Based on the above information, provide the improved OCR text and layout assessment."
    )


# Extraction


class ExtractInput(_StageInput):
    document_text: str
    user_instructions: Optional[str] = None


EXTRACT_SYSTEM_PROMPT = """You are an AI assistant tasked with extracting key data points from contract documents.

Analyze the contract text and extract a concise summary, the effective and expiration dates, the parties involved, a summary of financial terms (amounts, payment terms), key conditions and obligations, clauses specifying what constitutes a breach, and clauses outlining the conditions for termination.

When extracting dates (like effective date or expiration date), adhere to the following:
- Recognize common date formats (e.g., "Month DD, YYYY", "MM/DD/YYYY", "YYYY-MM-DD", "DD Month YYYY", "MM-DD-YY").
- Interpret natural language descriptions of dates, for example "four months after start date", "the first Monday of June 2025" or "upon signing".
- If a date is relative to another date and that base date is also extracted or clearly identifiable in the text, calculate the absolute date in YYYY-MM-DD format.
- If an absolute date cannot be confidently calculated (e.g., "upon signing" without a clear signing date), return the natural language description exactly as written. Never invent a date.

Example for relative dates:
If "SOW Estimated Start Date" is "Aug, 5 2024" and "SOW Estimated End Date" is "Four months after start date", then effective_date should be "2024-08-05" and expiration_date should be "2024-12-05". If you cannot confidently calculate this, "Four months after start date" is an acceptable fallback.

If a field cannot be determined from the text, leave it as null."""


def render_extract(payload: ExtractInput) -> MessageContent:
    parts = []
    if payload.user_instructions:
        parts.append(
            "Additionally, consider the following specific instructions or questions "
            f"while performing the extraction:\n{payload.user_instructions}"
        )
    parts.append(f"Contract Text: {truncate_text(payload.document_text, settings.LLM_MAX_CHARS)}")
    return "\n\n".join(parts)


# Quality assessment


class QualityInput(_StageInput):
    extracted_data: str
    contract_text: str


QUALITY_SYSTEM_PROMPT = """You are an expert in contract analysis and data extraction quality assessment.

You are provided with the original contract text and the extracted data. Assess the quality and completeness of the extracted data.

Consider:
- Accuracy of the extracted data compared to the original contract text.
- Completeness of the extracted data (whether all key data points have been extracted).
- Consistency of the extracted data.
- Potential ambiguity or errors in the extracted data.

quality_score: a number between 0 and 1 (inclusive), where 1 is perfect.
confidence_level: "low", "medium" or "high".
is_complete: true if the extraction is complete and no manual review is needed.
justification: a brief justification for the score and confidence level."""


def render_quality(payload: QualityInput) -> MessageContent:
    return (
        f"Contract Text: {truncate_text(payload.contract_text, settings.LLM_MAX_CHARS)}\n\n"
        f"Extracted Data: {payload.extracted_data}"
    )


# Breach detection


class BreachInput(_StageInput):
    contract_data: str
    breach_conditions: str


BREACH_SYSTEM_PROMPT = """You are an AI assistant specialized in legal contract analysis.

You will receive extracted data from a contract and a set of predefined rules and conditions for breach detection. Analyze the contract data against these rules and identify any potential breaches or non-compliance issues. List each potential breach as one sentence and provide a summary of your analysis."""


def render_breach(payload: BreachInput) -> MessageContent:
    return (
        f"Contract Data:\n{payload.contract_data}\n\n"
        f"Breach Conditions:\n{payload.breach_conditions}"
    )


@dataclass(frozen=True)
class StageInvokers:
    """The invokers the pipeline runs, one per stage."""

    ocr: PromptInvoker[OcrInput, OcrOutput]
    improve_ocr: PromptInvoker[ImproveOcrInput, OcrImprovement]
    extract: PromptInvoker[ExtractInput, ExtractionResult]
    assess_quality: PromptInvoker[QualityInput, QualityAssessment]
    detect_breaches: PromptInvoker[BreachInput, BreachDetectionResult]


def build_invokers(
    client: Optional[AsyncOpenAI] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> StageInvokers:
    """Create the stage invokers sharing one client and retry policy."""
    common = {"client": client, "retry_policy": retry_policy}
    return StageInvokers(
        ocr=PromptInvoker(
            "ocr_pdf_document",
            system_prompt=OCR_SYSTEM_PROMPT,
            render=render_ocr,
            input_model=OcrInput,
            output_model=OcrOutput,
            **common,
        ),
        improve_ocr=PromptInvoker(
            "improve_ocr_accuracy",
            system_prompt=IMPROVE_OCR_SYSTEM_PROMPT,
            render=render_improve_ocr,
            input_model=ImproveOcrInput,
            output_model=OcrImprovement,
            **common,
        ),
        extract=PromptInvoker(
            "extract_contract_data",
            system_prompt=EXTRACT_SYSTEM_PROMPT,
            render=render_extract,
            input_model=ExtractInput,
            output_model=ExtractionResult,
            **common,
        ),
        assess_quality=PromptInvoker(
            "determine_extraction_quality",
            system_prompt=QUALITY_SYSTEM_PROMPT,
            render=render_quality,
            input_model=QualityInput,
            output_model=QualityAssessment,
            **common,
        ),
        detect_breaches=PromptInvoker(
            "detect_potential_breaches",
            system_prompt=BREACH_SYSTEM_PROMPT,
            render=render_breach,
            input_model=BreachInput,
            output_model=BreachDetectionResult,
            **common,
        ),
    )


__all__ = [
    "BreachInput",
    "ExtractInput",
    "ImproveOcrInput",
    "OcrInput",
    "OcrOutput",
    "QualityInput",
    "StageInvokers",
    "build_invokers",
]
