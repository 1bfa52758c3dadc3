"""In-memory session store for documents and free-standing alerts.

Created once per process (see ``app.main.lifespan``) and injected into
routes and the pipeline. Single writer: each mutation replaces one record in
a single step, so concurrent updates to the same document are last-write-wins.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from app.schemas.domain import ContractAlert, ContractDocument, DocumentStatus

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when a document or alert id is unknown."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class SessionStore:
    """Documents and system alerts for the lifetime of the process."""

    def __init__(self) -> None:
        self._documents: dict[str, ContractDocument] = {}
        self._alerts: dict[str, ContractAlert] = {}

    # Documents

    def add_document(self, document: ContractDocument) -> ContractDocument:
        self._documents[document.id] = document
        logger.info("Added document %s (%s)", document.id, document.name)
        return document

    def get_document(self, document_id: str) -> Optional[ContractDocument]:
        return self._documents.get(document_id)

    def require_document(self, document_id: str) -> ContractDocument:
        document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    def update_document(self, document_id: str, **updates: Any) -> ContractDocument:
        """Shallow-merge ``updates`` over the stored document."""
        current = self.require_document(document_id)
        updated = current.model_copy(update=updates)
        self._documents[document_id] = updated
        return updated

    def list_documents(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[DocumentStatus] = None,
    ) -> list[ContractDocument]:
        """Documents in upload order, filtered by name/party substring and status."""
        documents = list(self._documents.values())
        if search:
            needle = search.lower()
            documents = [
                doc
                for doc in documents
                if needle in doc.name.lower()
                or (
                    doc.extracted_data is not None
                    and any(needle in party.lower() for party in doc.extracted_data.parties_involved)
                )
            ]
        if status is not None:
            documents = [doc for doc in documents if doc.status == status]
        return documents

    # System alerts

    def add_alert(self, alert: ContractAlert) -> ContractAlert:
        self._alerts[alert.id] = alert
        return alert

    def update_alert(self, alert_id: str, **updates: Any) -> ContractAlert:
        current = self._alerts.get(alert_id)
        if current is None:
            raise NotFoundError("Alert", alert_id)
        updated = current.model_copy(update=updates)
        self._alerts[alert_id] = updated
        return updated

    def list_alerts(self) -> list[ContractAlert]:
        return list(self._alerts.values())

    def update_any_alert(self, alert_id: str, **updates: Any) -> ContractAlert:
        """Update a system alert or an alert owned by a document."""
        if alert_id in self._alerts:
            return self.update_alert(alert_id, **updates)

        for document in self._documents.values():
            for index, alert in enumerate(document.alerts):
                if alert.id == alert_id:
                    updated = alert.model_copy(update=updates)
                    alerts = list(document.alerts)
                    alerts[index] = updated
                    self.update_document(document.id, alerts=alerts)
                    return updated

        raise NotFoundError("Alert", alert_id)


__all__ = ["NotFoundError", "SessionStore"]
