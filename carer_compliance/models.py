"""
Domain models for carers, their compliance documents and agency statistics.
"""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class CarerStatus(StrEnum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {CarerStatus.GREEN: 0, CarerStatus.AMBER: 1, CarerStatus.RED: 2}


class DocumentStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    EXPIRED = "expired"
    REJECTED = "rejected"


class DocumentTemplate(BaseModel):
    id: str
    name: str
    category: str
    description: str | None = None
    is_required: bool = True
    validity_days: int = Field(default=365, gt=0)
    is_active: bool = True


class CarerDocument(BaseModel):
    id: str
    carer_id: str
    template_id: str
    file_path: str
    file_name: str
    file_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    issued_on: date
    expires_on: date
    status: DocumentStatus = DocumentStatus.PENDING
    verified_by: str | None = None
    verified_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    template: DocumentTemplate | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "CarerDocument":
        if self.issued_on > self.expires_on:
            raise ValueError("issued_on must not be after expires_on")
        return self


class Carer(BaseModel):
    id: str
    agency_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    employee_id: str | None = None
    # cache of calculate_carer_status(); the repository keeps it current
    status: CarerStatus = CarerStatus.RED
    created_at: datetime
    documents: list[CarerDocument] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ComplianceStats(BaseModel):
    overall_score: int = Field(default=0, ge=0, le=100)
    green_count: int = Field(default=0, ge=0)
    amber_count: int = Field(default=0, ge=0)
    red_count: int = Field(default=0, ge=0)
    total_carers: int = Field(default=0, ge=0)
    expiring_soon: int = Field(default=0, ge=0)
    overdue: int = Field(default=0, ge=0)


class ComplianceSnapshot(BaseModel):
    id: str
    agency_id: str
    taken_on: date
    stats: ComplianceStats
