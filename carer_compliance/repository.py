"""
Carer/document repository on top of the key/value database.

The repository is the only writer of `Carer.status`: every carer or document
mutation re-derives the carer's status through the compliance engine and
publishes a change event, so cached statuses never outlive the documents
they were computed from.
"""

import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, date, datetime

from carer_compliance.compliance import calculate_agency_stats, calculate_carer_status
from carer_compliance.config import DEFAULT_THRESHOLDS, ComplianceThresholds
from carer_compliance.database import InMemoryKeyValueDatabase
from carer_compliance.errors import CarerNotFoundError, DocumentNotFoundError
from carer_compliance.events import ComplianceEvent, EventBus, EventType
from carer_compliance.models import (
    Carer,
    CarerDocument,
    CarerStatus,
    ComplianceSnapshot,
    DocumentStatus,
)

logger = logging.getLogger(__name__)

Record = Carer | CarerDocument | ComplianceSnapshot
TodayFn = Callable[[], date]


def _carer_key(carer_id: str) -> str:
    return f"carer:{carer_id}"


def _document_key(document_id: str) -> str:
    return f"document:{document_id}"


def _snapshot_key(agency_id: str, snapshot_id: str) -> str:
    return f"snapshot:{agency_id}:{snapshot_id}"


def _matches_search(carer: Carer, search: str | None) -> bool:
    if not search:
        return True
    term = search.lower()
    return any(
        term in field.lower()
        for field in (carer.full_name, carer.email, carer.employee_id)
        if field
    )


class CarerRepository:
    def __init__(
        self,
        db: InMemoryKeyValueDatabase[str, Record],
        events: EventBus,
        *,
        today_fn: TodayFn | None = None,
        thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._db = db
        self._events = events
        self._today_fn = today_fn or (lambda: date.today())
        self._thresholds = thresholds

    # ------------------------------------------------------------------
    # carers
    # ------------------------------------------------------------------

    def get_carer(self, carer_id: str) -> Carer | None:
        carer = self._db.get(_carer_key(carer_id))
        if not isinstance(carer, Carer):
            return None
        return carer.model_copy(update={"documents": self.list_documents(carer_id)})

    def list_carers(self, agency_id: str, *, search: str | None = None) -> list[Carer]:
        """
        Carers of an agency sorted by name. `search` keeps carers whose full
        name, email or employee id contains it, ignoring case.
        """
        carers = [
            c
            for c in self._db.scan("carer:")
            if isinstance(c, Carer)
            and c.agency_id == agency_id
            and _matches_search(c, search)
        ]
        carers.sort(key=lambda c: (c.last_name.lower(), c.first_name.lower(), c.id))

        documents: defaultdict[str, list[CarerDocument]] = defaultdict(list)
        for d in self._db.scan("document:"):
            if isinstance(d, CarerDocument):
                documents[d.carer_id].append(d)

        return [
            c.model_copy(update={"documents": documents.get(c.id, [])})
            for c in carers
        ]

    def save_carer(self, carer: Carer) -> Carer:
        """
        Insert or update a carer. Any documents attached to `carer` are
        upserted too; existing documents not in the list are left alone.
        """
        # status is never taken from the caller
        existing = self._db.get(_carer_key(carer.id))
        status = existing.status if isinstance(existing, Carer) else CarerStatus.RED
        self._db.put(
            _carer_key(carer.id),
            carer.model_copy(update={"documents": [], "status": status}),
        )
        previous_owners = set()
        for document in carer.documents:
            if document.carer_id != carer.id:
                document = document.model_copy(update={"carer_id": carer.id})
            previous = self.get_document(document.id)
            if previous is not None and previous.carer_id != carer.id:
                previous_owners.add(previous.carer_id)
            self._db.put(_document_key(document.id), document)

        logger.info("saved carer %s (%s)", carer.id, carer.full_name)
        self._publish(EventType.CARER_SAVED, carer.agency_id, carer.id)
        self.refresh_status(carer.id)
        for owner_id in sorted(previous_owners):
            self._refresh_if_present(owner_id)
        return self._require_carer(carer.id)

    def delete_carer(self, carer_id: str) -> Carer:
        carer = self._require_carer(carer_id)
        for document in carer.documents:
            self._db.delete(_document_key(document.id))
        self._db.delete(_carer_key(carer_id))

        logger.info(
            "deleted carer %s and %d document(s)", carer_id, len(carer.documents)
        )
        self._publish(EventType.CARER_DELETED, carer.agency_id, carer_id)
        return carer

    # ------------------------------------------------------------------
    # documents
    # ------------------------------------------------------------------

    def list_documents(self, carer_id: str) -> list[CarerDocument]:
        return [
            d
            for d in self._db.scan("document:")
            if isinstance(d, CarerDocument) and d.carer_id == carer_id
        ]

    def get_document(self, document_id: str) -> CarerDocument | None:
        document = self._db.get(_document_key(document_id))
        return document if isinstance(document, CarerDocument) else None

    def save_document(self, document: CarerDocument) -> CarerDocument:
        carer = self._require_carer(document.carer_id)
        previous = self.get_document(document.id)
        self._db.put(_document_key(document.id), document)

        logger.info("saved document %s for carer %s", document.id, carer.id)
        self._publish(
            EventType.DOCUMENT_SAVED,
            carer.agency_id,
            document.id,
            carer_id=carer.id,
        )
        self.refresh_status(carer.id)
        if previous is not None and previous.carer_id != carer.id:
            # document moved between carers
            self._refresh_if_present(previous.carer_id)
        return document

    def update_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        verified_by: str | None = None,
        notes: str | None = None,
    ) -> CarerDocument:
        """Apply a verification workflow decision to a document."""
        document = self._require_document(document_id)
        update: dict = {"status": status}
        if status == DocumentStatus.APPROVED:
            update["verified_by"] = verified_by
            update["verified_at"] = datetime.now(UTC)
        else:
            update["verified_by"] = None
            update["verified_at"] = None
        if notes is not None:
            update["notes"] = notes
        return self.save_document(document.model_copy(update=update))

    def delete_document(self, document_id: str) -> CarerDocument:
        document = self._require_document(document_id)
        self._db.delete(_document_key(document_id))

        carer = self.get_carer(document.carer_id)
        agency_id = carer.agency_id if carer else ""
        logger.info("deleted document %s", document_id)
        self._publish(
            EventType.DOCUMENT_DELETED,
            agency_id,
            document_id,
            carer_id=document.carer_id,
        )
        if carer is not None:
            self.refresh_status(carer.id)
        return document

    # ------------------------------------------------------------------
    # status cache
    # ------------------------------------------------------------------

    def refresh_status(self, carer_id: str) -> CarerStatus:
        """Re-derive and store a carer's status, publishing if it changed."""
        return self._refresh(self._require_carer(carer_id))

    def refresh_statuses(
        self, agency_id: str, *, search: str | None = None
    ) -> list[Carer]:
        """Re-derive every carer's status for today; statuses age with the calendar."""
        for carer in self.list_carers(agency_id):
            self._refresh(carer)
        return self.list_carers(agency_id, search=search)

    def _refresh_if_present(self, carer_id: str) -> None:
        carer = self.get_carer(carer_id)
        if carer is not None:
            self._refresh(carer)

    def _refresh(self, carer: Carer) -> CarerStatus:
        carer_id = carer.id
        status = calculate_carer_status(
            carer, carer.documents, self._today_fn(), self._thresholds
        )
        if status == carer.status:
            return status

        self._db.put(
            _carer_key(carer_id),
            carer.model_copy(update={"status": status, "documents": []}),
        )
        logger.info("carer %s status %s -> %s", carer_id, carer.status, status)
        self._publish(
            EventType.CARER_STATUS_CHANGED,
            carer.agency_id,
            carer_id,
            previous=str(carer.status),
            current=str(status),
        )
        return status

    # ------------------------------------------------------------------
    # snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, agency_id: str) -> ComplianceSnapshot:
        snapshot = ComplianceSnapshot(
            id=str(uuid.uuid4()),
            agency_id=agency_id,
            taken_on=self._today_fn(),
            stats=calculate_agency_stats(self.refresh_statuses(agency_id)),
        )
        self._db.put(_snapshot_key(agency_id, snapshot.id), snapshot)
        logger.info(
            "compliance snapshot for %s: score=%d",
            agency_id,
            snapshot.stats.overall_score,
        )
        return snapshot

    def list_snapshots(self, agency_id: str) -> list[ComplianceSnapshot]:
        snapshots = [
            s
            for s in self._db.scan(f"snapshot:{agency_id}:")
            if isinstance(s, ComplianceSnapshot) and s.agency_id == agency_id
        ]
        return sorted(snapshots, key=lambda s: s.taken_on)

    # ------------------------------------------------------------------

    def clear_agency(self, agency_id: str) -> int:
        """Delete every carer (and their documents) belonging to an agency."""
        carers = self.list_carers(agency_id)
        for carer in carers:
            for document in carer.documents:
                self._db.delete(_document_key(document.id))
            self._db.delete(_carer_key(carer.id))

        logger.info("cleared %d carer(s) from agency %s", len(carers), agency_id)
        self._publish(
            EventType.AGENCY_CLEARED, agency_id, agency_id, removed=len(carers)
        )
        return len(carers)

    def _require_carer(self, carer_id: str) -> Carer:
        carer = self.get_carer(carer_id)
        if carer is None:
            raise CarerNotFoundError(carer_id)
        return carer

    def _require_document(self, document_id: str) -> CarerDocument:
        document = self.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def _publish(
        self, event_type: EventType, agency_id: str, entity_id: str, **payload
    ) -> None:
        self._events.publish(
            ComplianceEvent(
                type=event_type,
                agency_id=agency_id,
                entity_id=entity_id,
                payload=payload,
            )
        )
