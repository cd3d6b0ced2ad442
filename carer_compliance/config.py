"""
Service settings, loaded from environment variables with pydantic-settings.

Every threshold the compliance engine uses is declared here once and handed
to the engine as a `ComplianceThresholds` value.

Environment variable prefix: CARER_COMPLIANCE_
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ComplianceThresholds:
    """Engine-facing view of the settings (all values in days or percent)."""

    red_threshold_days: int = 0
    amber_threshold_days: int = 60
    expiring_window_days: int = 60
    score_green_band: int = 80
    score_amber_band: int = 60


DEFAULT_THRESHOLDS = ComplianceThresholds()


class ComplianceSettings(BaseSettings):
    # -------------------------------------------------------------------------
    # Classification thresholds
    # -------------------------------------------------------------------------

    red_threshold_days: int = Field(
        default=0,
        description="A document with this many days (or fewer) left is red. "
        "0 means a document expiring today is already non-compliant.",
    )
    amber_threshold_days: int = Field(
        default=60,
        ge=0,
        description="A document with this many days (or fewer) left is amber.",
    )
    expiring_window_days: int = Field(
        default=60,
        ge=0,
        description="Default look-ahead window for expiring document listings.",
    )

    # -------------------------------------------------------------------------
    # Dashboard score bands
    # -------------------------------------------------------------------------

    score_green_band: int = Field(default=80, ge=0, le=100)
    score_amber_band: int = Field(default=60, ge=0, le=100)

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    allowed_mime_types: list[str] = Field(
        default=["application/pdf", "image/jpeg", "image/jpg", "image/png"],
    )

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------

    demo_carer_count: int = Field(default=50, ge=1, le=500)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="CARER_COMPLIANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_ordering(self) -> "ComplianceSettings":
        if self.amber_threshold_days < self.red_threshold_days:
            raise ValueError("amber_threshold_days must be >= red_threshold_days")
        if self.score_green_band < self.score_amber_band:
            raise ValueError("score_green_band must be >= score_amber_band")
        return self

    def thresholds(self) -> ComplianceThresholds:
        return ComplianceThresholds(
            red_threshold_days=self.red_threshold_days,
            amber_threshold_days=self.amber_threshold_days,
            expiring_window_days=self.expiring_window_days,
            score_green_band=self.score_green_band,
            score_amber_band=self.score_amber_band,
        )


@lru_cache
def get_settings() -> ComplianceSettings:
    return ComplianceSettings()
