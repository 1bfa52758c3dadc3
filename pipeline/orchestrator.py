"""Contract analysis pipeline.

Runs the stages for one document in a fixed order:
OCR -> OCR improvement (only with a layout description) -> extraction ->
quality assessment. Each stage's output is written to the session store as
soon as it arrives, so progress is observable. The first failure stops the
run and marks the document ``error``; nothing after the failed stage is
written. There is no retry here; see ``RetryPolicy`` for per-call retries.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from app.core.config import settings
from app.schemas.domain import (
    STATUS_TRANSITIONS,
    BreachConditionRule,
    BreachDetectionRecord,
    ContractDocument,
    DocumentStatus,
)
from app.services.alerts import refresh_document_alerts
from app.services.breach_rules import default_rules, evaluate_rules, serialize_rules
from app.services.dates import normalize_extraction_dates
from app.store.memory import SessionStore
from pipeline.llm_invoker import PromptError
from pipeline.prompts import StageInvokers, build_invokers

logger = logging.getLogger(__name__)


class PipelineStateError(RuntimeError):
    """Document is not in a state that allows the requested run."""

    pass


class MissingExtractionError(PipelineStateError):
    """Breach detection requested before extraction data exists."""

    pass


class ContractPipeline:
    """Orchestrates the analysis stages for documents held in a store."""

    def __init__(self, store: SessionStore, invokers: Optional[StageInvokers] = None):
        self.store = store
        self.invokers = invokers or build_invokers()

    def _set_status(self, document_id: str, status: DocumentStatus, **updates: Any) -> ContractDocument:
        current = self.store.require_document(document_id).status
        if status not in STATUS_TRANSITIONS[current]:
            raise PipelineStateError(
                f"Document {document_id}: cannot move from {current.value} to {status.value}"
            )
        return self.store.update_document(document_id, status=status, **updates)

    async def run(
        self,
        document_id: str,
        *,
        pdf_data_uri: Optional[str] = None,
        text: Optional[str] = None,
        layout_description: Optional[str] = None,
        user_instructions: Optional[str] = None,
    ) -> ContractDocument:
        """Analyze one document from either a PDF data URI or pasted text.

        Returns:
            The stored document, ``analyzed`` on success or ``error`` with
            ``error_message`` set on failure.

        Raises:
            PipelineStateError: The document is not ``new``.
            NotFoundError: Unknown document id.
        """
        if (pdf_data_uri is None) == (text is None):
            raise ValueError("exactly one of pdf_data_uri or text is required")

        self._set_status(document_id, DocumentStatus.processing, error_message=None)
        logger.info("Starting analysis for document %s", document_id)

        stage = "ocr"
        try:
            # Step 1: OCR (skipped for pasted text)
            if pdf_data_uri is not None:
                ocr = await self.invokers.ocr({"pdf_data_uri": pdf_data_uri})
                text = ocr.extracted_text
            self.store.update_document(document_id, original_text=text)
            logger.info("Document %s: %d chars of source text", document_id, len(text))

            # Step 2: OCR improvement, only when the layout is described
            stage = "improve_ocr"
            if layout_description:
                improved = await self.invokers.improve_ocr(
                    {"ocr_text": text, "document_layout": layout_description}
                )
                self.store.update_document(document_id, ocr_improved=improved)
                text = improved.improved_ocr_text

            # Step 3: Extraction
            stage = "extract"
            extracted = await self.invokers.extract(
                {"document_text": text, "user_instructions": user_instructions}
            )
            extracted = normalize_extraction_dates(extracted)
            self.store.update_document(document_id, extracted_data=extracted)

            # Step 4: Quality against the same text used for extraction
            stage = "assess_quality"
            quality = await self.invokers.assess_quality(
                {"extracted_data": extracted.model_dump_json(), "contract_text": text}
            )
            document = self._set_status(
                document_id, DocumentStatus.analyzed, quality_assessment=quality
            )

        except PromptError as e:
            logger.warning("Analysis failed for document %s at %s: %s", document_id, stage, e)
            return self._set_status(document_id, DocumentStatus.error, error_message=str(e))
        except Exception as e:
            logger.exception("Unexpected failure for document %s at %s", document_id, stage)
            return self._set_status(
                document_id, DocumentStatus.error, error_message=f"Unexpected error: {e}"
            )

        logger.info(
            "Document %s analyzed: quality=%.2f confidence=%s",
            document_id,
            quality.quality_score,
            quality.confidence_level,
        )
        refresh_document_alerts(
            self.store, document_id, date.today(), settings.ALERT_EXPIRATION_WINDOW_DAYS
        )
        return self.store.require_document(document_id)

    async def detect_breaches(
        self,
        document_id: str,
        rules: Optional[Sequence[BreachConditionRule]] = None,
    ) -> ContractDocument:
        """Run breach detection with ``rules`` (default rules when None).

        The rules, their local evaluation and the model's result replace the
        document's previous breach-detection record. A failed call leaves the
        previous record untouched and propagates.

        Raises:
            MissingExtractionError: No extraction data yet.
            PromptError: The model call failed.
        """
        document = self.store.require_document(document_id)
        if document.extracted_data is None:
            raise MissingExtractionError("Contract data must be extracted first.")

        rule_list = list(rules) if rules is not None else default_rules()
        conditions = serialize_rules(rule_list)

        result = await self.invokers.detect_breaches(
            {
                "contract_data": document.extracted_data.model_dump_json(),
                "breach_conditions": conditions,
            }
        )
        record = BreachDetectionRecord(
            rules=rule_list,
            conditions=conditions,
            rule_checks=evaluate_rules(rule_list, document.extracted_data),
            result=result,
        )
        logger.info(
            "Breach detection for document %s: %d potential breach(es)",
            document_id,
            len(result.potential_breaches),
        )
        return self.store.update_document(document_id, breach_detection=record)


__all__ = ["ContractPipeline", "MissingExtractionError", "PipelineStateError"]
