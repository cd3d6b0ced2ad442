"""
Upload metadata checks for compliance documents.

Blob storage itself lives in the hosted backend; this module only decides
whether a file may be attached and where it should be stored.
"""

import secrets
from datetime import datetime
from pathlib import PurePosixPath

from carer_compliance.config import ComplianceSettings
from carer_compliance.errors import InvalidUploadError

BUCKET_PREFIX = "documents"


def validate_upload(
    file_name: str,
    file_size: int | None,
    mime_type: str | None,
    settings: ComplianceSettings,
) -> None:
    if file_size is not None and file_size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise InvalidUploadError(
            f"{file_name}: file size must be less than {limit_mb}MB"
        )
    if mime_type is None or mime_type.lower() not in settings.allowed_mime_types:
        raise InvalidUploadError(
            f"{file_name}: only PDF, JPEG, and PNG files are allowed"
        )


def build_storage_path(carer_id: str, file_name: str, now: datetime) -> str:
    """documents/<carer_id>/<epoch-ms>-<token>.<ext>"""
    ext = PurePosixPath(file_name).suffix.lstrip(".").lower() or "bin"
    stamp = int(now.timestamp() * 1000)
    token = secrets.token_hex(5)
    return f"{BUCKET_PREFIX}/{carer_id}/{stamp}-{token}.{ext}"
