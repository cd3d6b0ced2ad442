import logging
import random
import uuid
from collections.abc import Callable
from datetime import UTC, date, datetime

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

from carer_compliance.compliance import (
    calculate_agency_stats,
    classify_document,
    days_until_expiry,
    format_expiry_info,
    get_expired_documents,
    get_expiring_documents,
    score_color,
    score_insight,
    sort_documents_by_urgency,
    status_color,
    status_icon,
)
from carer_compliance.config import ComplianceSettings, get_settings
from carer_compliance.database import InMemoryKeyValueDatabase
from carer_compliance.demo_data import generate_demo_carers
from carer_compliance.errors import (
    CarerNotFoundError,
    DocumentNotFoundError,
    InvalidUploadError,
)
from carer_compliance.events import EventBus
from carer_compliance.models import (
    Carer,
    CarerDocument,
    DocumentStatus,
    DocumentTemplate,
)
from carer_compliance.repository import CarerRepository, Record
from carer_compliance.uploads import build_storage_path, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter()

TodayFn = Callable[[], date]


class CarerRequest(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    employee_id: str | None = None


class DocumentRequest(BaseModel):
    template_id: str
    file_name: str
    file_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    issued_on: date
    expires_on: date
    status: DocumentStatus = DocumentStatus.PENDING
    notes: str | None = None
    template: DocumentTemplate | None = None


class DocumentStatusRequest(BaseModel):
    status: DocumentStatus
    verified_by: str | None = None
    notes: str | None = None


class DemoDataRequest(BaseModel):
    carer_count: int | None = Field(default=None, ge=1, le=500)
    seed: int | None = None


def _repository(request: Request) -> CarerRepository:
    return request.app.state.repository


def _settings(request: Request) -> ComplianceSettings:
    return request.app.state.settings


def _today(request: Request) -> date:
    return request.app.state.today_fn()


def _carer_summary(carer: Carer) -> dict:
    return {
        **carer.model_dump(mode="json", exclude={"documents"}),
        "document_count": len(carer.documents),
        "status_color": status_color(carer.status),
        "status_icon": status_icon(carer.status),
    }


def _document_view(
    document: CarerDocument, today: date, settings: ComplianceSettings
) -> dict:
    thresholds = settings.thresholds()
    compliance = classify_document(document, today, thresholds)
    return {
        **document.model_dump(mode="json"),
        "days_until_expiry": days_until_expiry(document.expires_on, today),
        "expiry_info": format_expiry_info(document.expires_on, today, thresholds),
        "compliance_status": compliance,
        "status_color": status_color(compliance),
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


# ----------------------------------------------------------------------------
# carers
# ----------------------------------------------------------------------------


@router.get("/agencies/{agency_id}/carers")
async def list_carers(
    agency_id: str,
    request: Request,
    search: str | None = Query(default=None),
) -> dict:
    carers = _repository(request).refresh_statuses(agency_id, search=search)
    return {
        "agency_id": agency_id,
        "search": search,
        "carers": [_carer_summary(c) for c in carers],
    }


@router.post("/agencies/{agency_id}/carers", status_code=201)
async def create_carer(agency_id: str, body: CarerRequest, request: Request) -> dict:
    carer = Carer(
        id=str(uuid.uuid4()),
        agency_id=agency_id,
        created_at=datetime.now(UTC),
        **body.model_dump(),
    )
    return _carer_summary(_repository(request).save_carer(carer))


@router.get("/carers/{carer_id}")
async def get_carer(carer_id: str, request: Request) -> dict:
    repo = _repository(request)
    if repo.get_carer(carer_id) is None:
        raise HTTPException(status_code=404, detail="Carer not found")
    repo.refresh_status(carer_id)
    return _carer_summary(repo.get_carer(carer_id))


@router.put("/carers/{carer_id}")
async def update_carer(carer_id: str, body: CarerRequest, request: Request) -> dict:
    repo = _repository(request)
    carer = repo.get_carer(carer_id)
    if carer is None:
        raise HTTPException(status_code=404, detail="Carer not found")

    updated = carer.model_copy(update={**body.model_dump(), "documents": []})
    return _carer_summary(repo.save_carer(updated))


@router.delete("/carers/{carer_id}")
async def delete_carer(carer_id: str, request: Request) -> dict:
    try:
        carer = _repository(request).delete_carer(carer_id)
    except CarerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {
        "status": "deleted",
        "carer_id": carer_id,
        "documents_deleted": len(carer.documents),
    }


# ----------------------------------------------------------------------------
# documents
# ----------------------------------------------------------------------------


@router.get("/carers/{carer_id}/documents")
async def list_carer_documents(carer_id: str, request: Request) -> dict:
    repo = _repository(request)
    carer = repo.get_carer(carer_id)
    if carer is None:
        raise HTTPException(status_code=404, detail="Carer not found")

    today = _today(request)
    settings = _settings(request)
    repo.refresh_status(carer_id)
    documents = sort_documents_by_urgency(carer.documents, today)
    return {
        "carer_id": carer_id,
        "status": repo.get_carer(carer_id).status,
        "documents": [_document_view(d, today, settings) for d in documents],
    }


@router.post("/carers/{carer_id}/documents", status_code=201)
async def upload_document(
    carer_id: str, body: DocumentRequest, request: Request
) -> dict:
    repo = _repository(request)
    settings = _settings(request)
    if repo.get_carer(carer_id) is None:
        raise HTTPException(status_code=404, detail="Carer not found")

    try:
        validate_upload(body.file_name, body.file_size, body.mime_type, settings)
    except InvalidUploadError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if body.issued_on > body.expires_on:
        raise HTTPException(
            status_code=422, detail="issued_on must not be after expires_on"
        )

    now = datetime.now(UTC)
    document = CarerDocument(
        id=str(uuid.uuid4()),
        carer_id=carer_id,
        file_path=build_storage_path(carer_id, body.file_name, now),
        created_at=now,
        **body.model_dump(),
    )
    repo.save_document(document)
    return {
        "document": _document_view(document, _today(request), settings),
        "carer_status": repo.get_carer(carer_id).status,
    }


@router.patch("/documents/{document_id}/status")
async def update_document_status(
    document_id: str, body: DocumentStatusRequest, request: Request
) -> dict:
    repo = _repository(request)
    try:
        document = repo.update_document_status(
            document_id,
            body.status,
            verified_by=body.verified_by,
            notes=body.notes,
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    return {
        "document": _document_view(document, _today(request), _settings(request)),
        "carer_status": repo.get_carer(document.carer_id).status,
    }


@router.delete("/documents/{document_id}")
async def delete_document(document_id: str, request: Request) -> dict:
    repo = _repository(request)
    try:
        document = repo.delete_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    carer = repo.get_carer(document.carer_id)
    return {
        "status": "deleted",
        "document_id": document_id,
        "carer_status": carer.status if carer else None,
    }


# ----------------------------------------------------------------------------
# agency views
# ----------------------------------------------------------------------------


@router.get("/agencies/{agency_id}/dashboard")
async def agency_dashboard(agency_id: str, request: Request) -> dict:
    thresholds = _settings(request).thresholds()
    carers = _repository(request).refresh_statuses(agency_id)
    stats = calculate_agency_stats(carers)

    documents = [d for c in carers for d in c.documents]
    recent = sorted(documents, key=lambda d: d.created_at, reverse=True)[:5]
    return {
        "agency_id": agency_id,
        "stats": stats.model_dump(),
        "score_color": score_color(stats.overall_score, thresholds),
        "insight": score_insight(stats.overall_score, thresholds),
        "recent_documents": [d.model_dump(mode="json") for d in recent],
    }


@router.get("/agencies/{agency_id}/documents/expiring")
async def expiring_documents(
    agency_id: str,
    request: Request,
    days: int | None = Query(default=None, ge=0),
) -> dict:
    settings = _settings(request)
    window = settings.expiring_window_days if days is None else days
    today = _today(request)
    documents = [
        d for c in _repository(request).list_carers(agency_id) for d in c.documents
    ]
    expiring = sort_documents_by_urgency(
        get_expiring_documents(documents, today, window), today
    )
    return {
        "agency_id": agency_id,
        "days": window,
        "documents": [_document_view(d, today, settings) for d in expiring],
    }


@router.get("/agencies/{agency_id}/documents/expired")
async def expired_documents(agency_id: str, request: Request) -> dict:
    settings = _settings(request)
    today = _today(request)
    documents = [
        d for c in _repository(request).list_carers(agency_id) for d in c.documents
    ]
    expired = sort_documents_by_urgency(get_expired_documents(documents, today), today)
    return {
        "agency_id": agency_id,
        "documents": [_document_view(d, today, settings) for d in expired],
    }


@router.post("/agencies/{agency_id}/snapshots", status_code=201)
async def take_snapshot(agency_id: str, request: Request) -> dict:
    snapshot = _repository(request).save_snapshot(agency_id)
    return snapshot.model_dump(mode="json")


@router.get("/agencies/{agency_id}/snapshots")
async def list_snapshots(agency_id: str, request: Request) -> dict:
    snapshots = _repository(request).list_snapshots(agency_id)
    return {
        "agency_id": agency_id,
        "snapshots": [s.model_dump(mode="json") for s in snapshots],
    }


@router.post("/agencies/{agency_id}/demo-data", status_code=201)
async def generate_demo_data(
    agency_id: str, request: Request, body: DemoDataRequest | None = None
) -> dict:
    body = body or DemoDataRequest()
    settings = _settings(request)
    repo = _repository(request)
    count = body.carer_count or settings.demo_carer_count

    repo.clear_agency(agency_id)
    carers = generate_demo_carers(
        agency_id, count, _today(request), random.Random(body.seed)
    )
    for carer in carers:
        repo.save_carer(carer)

    logger.info("generated %d demo carer(s) for %s", count, agency_id)
    stats = calculate_agency_stats(repo.list_carers(agency_id))
    return {"agency_id": agency_id, "carers_created": count, "stats": stats.model_dump()}


@router.delete("/agencies/{agency_id}/demo-data")
async def clear_demo_data(agency_id: str, request: Request) -> dict:
    removed = _repository(request).clear_agency(agency_id)
    return {"agency_id": agency_id, "carers_removed": removed}


def create_app(
    settings: ComplianceSettings | None = None,
    *,
    today_fn: TodayFn | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(title="Carer Compliance")
    app.state.settings = settings
    app.state.today_fn = today_fn or (lambda: date.today())

    db: InMemoryKeyValueDatabase[str, Record] = InMemoryKeyValueDatabase()
    app.state.database = db
    app.state.events = EventBus()
    app.state.repository = CarerRepository(
        db,
        app.state.events,
        # resolved per call; app.state.today_fn may be replaced
        today_fn=lambda: app.state.today_fn(),
        thresholds=settings.thresholds(),
    )

    app.include_router(router)
    return app
