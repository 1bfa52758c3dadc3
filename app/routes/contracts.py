"""Contract upload, analysis, breach detection, penalty and export endpoints."""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
)

from app.core.config import settings
from app.deps import get_pipeline, get_store
from app.schemas.api import (
    BreachDetectionRequest,
    ContractAccepted,
    ContractSummary,
    ContractTextRequest,
    PenaltyRequest,
    PenaltyResponse,
)
from app.schemas.domain import ContractDocument, DocumentStatus
from app.services.csv_export import export_documents_csv, export_filename
from app.services.penalties import calculate_penalties
from app.services.upload import FileTooLargeError, UploadValidationError, prepare_pdf_upload
from app.store.memory import NotFoundError, SessionStore
from pipeline.llm_invoker import PromptError
from pipeline.orchestrator import ContractPipeline, MissingExtractionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contracts", tags=["contracts"])


def _require_document(store: SessionStore, document_id: str) -> ContractDocument:
    try:
        return store.require_document(document_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _start_analysis(
    pipeline: ContractPipeline,
    background_tasks: BackgroundTasks,
    response: Response,
    document: ContractDocument,
    wait: bool,
    **run_kwargs,
):
    if wait:
        response.status_code = 200
        return await pipeline.run(document.id, **run_kwargs)

    background_tasks.add_task(pipeline.run, document.id, **run_kwargs)
    logger.info("Queued analysis for document %s", document.id)
    return ContractAccepted(document_id=document.id, name=document.name, status=document.status)


@router.post("", status_code=202)
async def upload_contract(
    response: Response,
    background_tasks: BackgroundTasks,
    file: UploadFile,
    name: str = Form(..., min_length=3),
    user_instructions: Optional[str] = Form(None),
    layout_description: Optional[str] = Form(None),
    wait: bool = Query(False),
    store: SessionStore = Depends(get_store),
    pipeline: ContractPipeline = Depends(get_pipeline),
):
    """Upload a PDF contract and analyze it.

    Runs in the background (202) unless ``wait=true``, in which case the
    analyzed (or failed) document is returned.
    """
    content = await file.read()
    try:
        prepared = prepare_pdf_upload(
            content,
            content_type=file.content_type,
            max_size_mb=settings.MAX_FILE_SIZE_MB,
            max_pages=settings.PDF_MAX_PAGES,
        )
    except FileTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    document = store.add_document(
        ContractDocument(
            id=str(uuid4()),
            name=name,
            uploaded_at=datetime.now(timezone.utc),
            filename=file.filename or "unnamed.pdf",
            page_count=prepared.page_count,
            layout_description=layout_description or None,
            user_instructions=user_instructions or None,
        )
    )
    return await _start_analysis(
        pipeline,
        background_tasks,
        response,
        document,
        wait,
        pdf_data_uri=prepared.data_uri,
        layout_description=layout_description or None,
        user_instructions=user_instructions or None,
    )


@router.post("/text", status_code=202)
async def submit_contract_text(
    body: ContractTextRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    wait: bool = Query(False),
    store: SessionStore = Depends(get_store),
    pipeline: ContractPipeline = Depends(get_pipeline),
):
    """Analyze pasted contract text, optionally with a layout description."""
    document = store.add_document(
        ContractDocument(
            id=str(uuid4()),
            name=body.name,
            uploaded_at=datetime.now(timezone.utc),
            layout_description=body.layout_description,
            user_instructions=body.user_instructions,
        )
    )
    return await _start_analysis(
        pipeline,
        background_tasks,
        response,
        document,
        wait,
        text=body.text,
        layout_description=body.layout_description,
        user_instructions=body.user_instructions,
    )


@router.get("", response_model=list[ContractSummary])
def list_contracts(
    search: Optional[str] = Query(None),
    status: Optional[DocumentStatus] = Query(None),
    store: SessionStore = Depends(get_store),
):
    """List contracts filtered by name/party search and status."""
    return [
        ContractSummary(
            id=doc.id,
            name=doc.name,
            status=doc.status,
            uploaded_at=doc.uploaded_at.isoformat(),
            parties_involved=doc.extracted_data.parties_involved if doc.extracted_data else [],
            expiration_date=doc.extracted_data.expiration_date if doc.extracted_data else None,
            quality_score=doc.quality_assessment.quality_score if doc.quality_assessment else None,
            error_message=doc.error_message,
        )
        for doc in store.list_documents(search=search, status=status)
    ]


@router.get("/export")
def export_all_contracts(store: SessionStore = Depends(get_store)):
    """CSV export of every contract, one row each."""
    return _csv_response(export_documents_csv(store.list_documents()), "contracts_export.csv")


@router.get("/{document_id}", response_model=ContractDocument)
def get_contract(document_id: str, store: SessionStore = Depends(get_store)):
    return _require_document(store, document_id)


@router.get("/{document_id}/export")
def export_contract(document_id: str, store: SessionStore = Depends(get_store)):
    document = _require_document(store, document_id)
    return _csv_response(export_documents_csv([document]), export_filename(document.name))


@router.post("/{document_id}/breach-detection", response_model=ContractDocument)
async def run_breach_detection(
    document_id: str,
    body: Optional[BreachDetectionRequest] = None,
    store: SessionStore = Depends(get_store),
    pipeline: ContractPipeline = Depends(get_pipeline),
):
    """Check the extracted data against breach rules (default rules if none)."""
    _require_document(store, document_id)
    rules = body.rules if body is not None else None
    try:
        return await pipeline.detect_breaches(document_id, rules)
    except MissingExtractionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PromptError as e:
        logger.warning("Breach detection failed for document %s: %s", document_id, e)
        raise HTTPException(status_code=502, detail=f"Breach detection failed: {e}")


@router.post("/{document_id}/penalties", response_model=PenaltyResponse)
def recalculate_penalties(
    document_id: str,
    body: PenaltyRequest,
    store: SessionStore = Depends(get_store),
):
    """Recalculate penalties; the result replaces the stored list."""
    document = _require_document(store, document_id)
    breach_result = document.breach_detection.result if document.breach_detection else None
    penalties = calculate_penalties(
        body.rules,
        document.extracted_data,
        breach_result,
        default_base_amount=settings.PENALTY_DEFAULT_BASE_AMOUNT,
        fallback_amount=settings.PENALTY_FALLBACK_AMOUNT,
        currency=settings.DEFAULT_CURRENCY,
    )
    store.update_document(document_id, penalties=penalties)
    return PenaltyResponse(
        document_id=document_id,
        penalties=penalties,
        total=sum(p.amount for p in penalties),
    )
