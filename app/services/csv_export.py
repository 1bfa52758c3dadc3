"""CSV export of contract documents, one flat row per document."""

from __future__ import annotations

import csv
import io
import re
from typing import Any, Iterable, Optional

from app.schemas.domain import ContractDocument

CSV_HEADERS = (
    "ID",
    "Name",
    "Uploaded At",
    "Status",
    "OCR Improved Text",
    "Layout Assessment",
    "Extracted Summary",
    "Effective Date",
    "Expiration Date",
    "Parties Involved",
    "Financial Terms",
    "Conditions",
    "Breach Clauses",
    "Termination Clauses",
    "Quality Score",
    "Confidence Level",
    "Is Complete",
    "Quality Justification",
    "Breach Detection Conditions",
    "Potential Breaches",
    "Breach Summary",
    "Penalties",
    "Alerts",
)

LIST_SEPARATOR = "; "


def format_value(value: Any) -> str:
    """Render a scalar the way it appears in the export."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _join(values: Optional[Iterable[Any]]) -> str:
    if values is None:
        return ""
    return LIST_SEPARATOR.join(format_value(v) for v in values)


def document_row(document: ContractDocument) -> list[str]:
    ocr = document.ocr_improved
    data = document.extracted_data
    quality = document.quality_assessment
    breach = document.breach_detection
    result = breach.result if breach else None

    row = [
        document.id,
        document.name,
        document.uploaded_at.isoformat(),
        document.status.value,
        ocr.improved_ocr_text if ocr else None,
        ocr.layout_assessment if ocr else None,
        data.contract_summary if data else None,
        data.effective_date if data else None,
        data.expiration_date if data else None,
        _join(data.parties_involved) if data else None,
        data.financial_terms if data else None,
        _join(data.conditions) if data else None,
        _join(data.breach_clauses) if data else None,
        _join(data.termination_clauses) if data else None,
        quality.quality_score if quality else None,
        quality.confidence_level if quality else None,
        quality.is_complete if quality else None,
        quality.justification if quality else None,
        breach.conditions if breach else None,
        _join(result.potential_breaches) if result else None,
        result.summary if result else None,
        _join(f"{p.description}: {format_value(p.amount)} {p.currency}" for p in document.penalties),
        _join(f"{a.type} - {a.message}" for a in document.alerts),
    ]
    return [format_value(value) for value in row]


def export_documents_csv(documents: Iterable[ContractDocument]) -> str:
    """Header plus one row per document.

    Rows end in CRLF. Fields containing a comma, quote, CR or LF are quoted
    with embedded quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    for document in documents:
        writer.writerow(document_row(document))
    return buffer.getvalue()


def export_filename(name: str) -> str:
    stem = re.sub(r"\s+", "_", name)
    return f"{stem}_export.csv"


__all__ = [
    "CSV_HEADERS",
    "document_row",
    "export_documents_csv",
    "export_filename",
    "format_value",
]
