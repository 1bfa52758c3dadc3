"""Alert feed and dashboard endpoints."""

import logging
from collections import Counter
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.config import settings
from app.deps import get_store
from app.schemas.api import DashboardSummary, SystemAlertRequest
from app.schemas.domain import ContractAlert, Severity
from app.services.alerts import (
    AlertView,
    collect_alerts,
    new_system_alert,
    refresh_expiration_alerts,
)
from app.store.memory import NotFoundError, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["alerts"])


@router.get("/alerts", response_model=list[AlertView])
def list_alerts(
    severity: Optional[Severity] = Query(None),
    acknowledged: Optional[bool] = Query(None),
    store: SessionStore = Depends(get_store),
):
    """All alerts, after raising any expiration alerts that are now due."""
    refresh_expiration_alerts(store, date.today(), settings.ALERT_EXPIRATION_WINDOW_DAYS)
    return collect_alerts(store, severity=severity, acknowledged=acknowledged)


@router.post("/alerts", response_model=ContractAlert, status_code=201)
def create_alert(body: SystemAlertRequest, store: SessionStore = Depends(get_store)):
    """Add a system alert not tied to any contract."""
    alert = new_system_alert(
        message=body.message,
        severity=body.severity,
        alert_type=body.type,
        due_date=body.due_date,
    )
    return store.add_alert(alert)


@router.post("/alerts/{alert_id}/acknowledge", response_model=ContractAlert)
def acknowledge_alert(alert_id: str, store: SessionStore = Depends(get_store)):
    try:
        alert = store.update_any_alert(alert_id, acknowledged=True)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")
    logger.info("Alert %s acknowledged", alert_id)
    return alert


@router.get("/dashboard", response_model=DashboardSummary)
def dashboard(store: SessionStore = Depends(get_store)):
    """Headline numbers for the contract landscape."""
    refresh_expiration_alerts(store, date.today(), settings.ALERT_EXPIRATION_WINDOW_DAYS)
    documents = store.list_documents()
    alerts = collect_alerts(store, acknowledged=False)
    return DashboardSummary(
        total_contracts=len(documents),
        contracts_by_status=dict(Counter(doc.status.value for doc in documents)),
        active_alerts=len(alerts),
        total_penalties=sum(p.amount for doc in documents for p in doc.penalties),
    )
