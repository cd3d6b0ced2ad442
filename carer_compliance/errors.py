"""
Errors raised by the repository and upload validation.
"""


class ComplianceError(Exception):
    """Base class for carer-compliance errors."""


class CarerNotFoundError(ComplianceError):
    def __init__(self, carer_id: str) -> None:
        super().__init__(f"Carer not found: {carer_id}")
        self.carer_id = carer_id


class DocumentNotFoundError(ComplianceError):
    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class InvalidUploadError(ComplianceError):
    """Uploaded file metadata failed size or type validation."""
