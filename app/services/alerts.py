"""Alert derivation and the combined alert feed."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel

from app.schemas.domain import AlertType, ContractAlert, ContractDocument, Severity
from app.store.memory import SessionStore

logger = logging.getLogger(__name__)

EXPIRATION_WINDOW_DAYS = 30


class AlertView(ContractAlert):
    """Alert plus the contract it belongs to (None for system alerts)."""

    contract_id: Optional[str] = None
    contract_name: Optional[str] = None


def _expiration(document: ContractDocument) -> Optional[date]:
    if document.extracted_data is None or not document.extracted_data.expiration_date:
        return None
    try:
        return date.fromisoformat(document.extracted_data.expiration_date)
    except ValueError:
        # Natural-language phrase that could not be resolved
        return None


def derive_expiration_alert(
    document: ContractDocument,
    today: date,
    window_days: int = EXPIRATION_WINDOW_DAYS,
) -> Optional[ContractAlert]:
    """Build an expiration alert if ``today`` is inside the pre-expiry window.

    Returns None outside the window, for unresolvable dates, or when the
    document already carries an expiration alert for the same due date.
    """
    expiration = _expiration(document)
    if expiration is None:
        return None
    if not (expiration - timedelta(days=window_days) <= today <= expiration):
        return None
    if any(a.type == "expiration" and a.due_date == expiration for a in document.alerts):
        return None

    return ContractAlert(
        id=str(uuid4()),
        type="expiration",
        message=f'Contract "{document.name}" is expiring soon.',
        due_date=expiration,
        severity="high",
        triggered_at=datetime.now(timezone.utc),
        acknowledged=False,
    )


def refresh_document_alerts(
    store: SessionStore,
    document_id: str,
    today: date,
    window_days: int = EXPIRATION_WINDOW_DAYS,
) -> Optional[ContractAlert]:
    """Derive and attach the expiration alert for one document, if due."""
    document = store.require_document(document_id)
    alert = derive_expiration_alert(document, today, window_days)
    if alert is not None:
        store.update_document(document_id, alerts=[*document.alerts, alert])
        logger.info("Expiration alert raised for document %s (due %s)", document_id, alert.due_date)
    return alert


def refresh_expiration_alerts(
    store: SessionStore,
    today: date,
    window_days: int = EXPIRATION_WINDOW_DAYS,
) -> list[ContractAlert]:
    raised = []
    for document in store.list_documents():
        alert = refresh_document_alerts(store, document.id, today, window_days)
        if alert is not None:
            raised.append(alert)
    return raised


def _sort_key(alert: AlertView) -> tuple[bool, int]:
    due = alert.due_date.toordinal() if alert.due_date else 0
    return (alert.acknowledged, -due)


def collect_alerts(
    store: SessionStore,
    *,
    severity: Optional[Severity] = None,
    acknowledged: Optional[bool] = None,
) -> list[AlertView]:
    """System and document alerts, unacknowledged first, then latest due date."""
    combined: dict[str, AlertView] = {}
    for alert in store.list_alerts():
        combined[alert.id] = AlertView(**alert.model_dump())
    for document in store.list_documents():
        for alert in document.alerts:
            combined[alert.id] = AlertView(
                **alert.model_dump(),
                contract_id=document.id,
                contract_name=document.name,
            )

    alerts = [
        alert
        for alert in combined.values()
        if (severity is None or alert.severity == severity)
        and (acknowledged is None or alert.acknowledged == acknowledged)
    ]
    return sorted(alerts, key=_sort_key)


def new_system_alert(
    *,
    message: str,
    severity: Severity,
    alert_type: AlertType = "custom",
    due_date: Optional[date] = None,
) -> ContractAlert:
    return ContractAlert(
        id=str(uuid4()),
        type=alert_type,
        message=message,
        due_date=due_date,
        severity=severity,
        triggered_at=datetime.now(timezone.utc),
    )


__all__ = [
    "AlertView",
    "EXPIRATION_WINDOW_DAYS",
    "collect_alerts",
    "derive_expiration_alert",
    "new_system_alert",
    "refresh_document_alerts",
    "refresh_expiration_alerts",
]
