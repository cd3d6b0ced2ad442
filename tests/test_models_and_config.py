import random
import re
from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from carer_compliance.config import ComplianceSettings, ComplianceThresholds
from carer_compliance.demo_data import generate_demo_carers
from carer_compliance.errors import InvalidUploadError
from carer_compliance.models import CarerDocument, CarerStatus, DocumentStatus
from carer_compliance.uploads import build_storage_path, validate_upload

TODAY = date(2025, 7, 2)


def _document_payload(**overrides) -> dict:
    payload = {
        "id": "dbs",
        "carer_id": "alice-id",
        "template_id": "tpl-dbs",
        "file_path": "documents/alice-id/dbs.pdf",
        "file_name": "dbs.pdf",
        "issued_on": "2025-01-01",
        "expires_on": "2026-01-01",
        "status": "approved",
        "created_at": "2025-01-01T09:00:00Z",
    }
    payload.update(overrides)
    return payload


# ----------------------------------------------------------------------------
# models
# ----------------------------------------------------------------------------


def test_document_dates_parse_from_iso_strings() -> None:
    document = CarerDocument.model_validate(_document_payload())
    assert document.expires_on == date(2026, 1, 1)
    assert document.status == DocumentStatus.APPROVED


def test_unparseable_expiry_date_fails_loudly() -> None:
    with pytest.raises(ValidationError):
        CarerDocument.model_validate(_document_payload(expires_on="next tuesday"))


def test_issued_after_expiry_is_rejected() -> None:
    with pytest.raises(ValidationError):
        CarerDocument.model_validate(
            _document_payload(issued_on="2026-02-01", expires_on="2026-01-01")
        )


def test_unknown_lifecycle_status_is_rejected() -> None:
    with pytest.raises(ValidationError):
        CarerDocument.model_validate(_document_payload(status="lost"))


def test_status_severity_order() -> None:
    assert CarerStatus.RED.severity > CarerStatus.AMBER.severity > CarerStatus.GREEN.severity


# ----------------------------------------------------------------------------
# config
# ----------------------------------------------------------------------------


def test_default_thresholds() -> None:
    settings = ComplianceSettings()
    assert settings.thresholds() == ComplianceThresholds()
    assert settings.thresholds().amber_threshold_days == 60
    assert settings.thresholds().red_threshold_days == 0


def test_thresholds_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CARER_COMPLIANCE_AMBER_THRESHOLD_DAYS", "30")
    monkeypatch.setenv("CARER_COMPLIANCE_EXPIRING_WINDOW_DAYS", "30")

    thresholds = ComplianceSettings().thresholds()

    assert thresholds.amber_threshold_days == 30
    assert thresholds.expiring_window_days == 30


def test_amber_threshold_below_red_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ComplianceSettings(amber_threshold_days=5, red_threshold_days=10)


def test_score_bands_must_be_ordered() -> None:
    with pytest.raises(ValidationError):
        ComplianceSettings(score_green_band=50, score_amber_band=70)


# ----------------------------------------------------------------------------
# uploads
# ----------------------------------------------------------------------------


def test_valid_upload_passes() -> None:
    validate_upload("dbs.pdf", 2_000_000, "application/pdf", ComplianceSettings())
    validate_upload("dbs.png", None, "IMAGE/PNG", ComplianceSettings())


def test_oversized_upload_is_rejected() -> None:
    with pytest.raises(InvalidUploadError, match="10MB"):
        validate_upload("dbs.pdf", 11 * 1024 * 1024, "application/pdf", ComplianceSettings())


@pytest.mark.parametrize("mime_type", ["text/plain", "application/zip", None])
def test_disallowed_type_is_rejected(mime_type: str | None) -> None:
    with pytest.raises(InvalidUploadError, match="PDF, JPEG, and PNG"):
        validate_upload("dbs.bin", 100, mime_type, ComplianceSettings())


def test_storage_path_layout() -> None:
    now = datetime(2025, 7, 2, 9, 0, tzinfo=UTC)
    path = build_storage_path("alice-id", "My DBS.PDF", now)

    assert re.fullmatch(r"documents/alice-id/\d+-[0-9a-f]{10}\.pdf", path)
    assert build_storage_path("alice-id", "My DBS.PDF", now) != path


# ----------------------------------------------------------------------------
# demo data
# ----------------------------------------------------------------------------


def test_demo_carers_have_three_to_six_valid_documents() -> None:
    carers = generate_demo_carers("demo", 25, TODAY, random.Random(7))

    assert len(carers) == 25
    assert len({c.id for c in carers}) == 25
    for carer in carers:
        assert 3 <= len(carer.documents) <= 6
        assert len({d.template_id for d in carer.documents}) == len(carer.documents)
        for document in carer.documents:
            assert document.carer_id == carer.id
            assert document.issued_on <= document.expires_on
            if document.expires_on < TODAY:
                assert document.status in {DocumentStatus.EXPIRED, DocumentStatus.REJECTED}


def test_demo_data_is_reproducible_with_a_seed() -> None:
    first = generate_demo_carers("demo", 5, TODAY, random.Random(42))
    second = generate_demo_carers("demo", 5, TODAY, random.Random(42))

    def expiries(carers):
        return [[d.expires_on for d in c.documents] for c in carers]

    assert expiries(first) == expiries(second)
    assert [c.last_name for c in first] == [c.last_name for c in second]
