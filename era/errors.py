from __future__ import annotations

from typing import Optional


class ERAError(Exception):
    """Base class for failures surfaced to API callers as a JSON error envelope."""

    status_code = 500


class ValidationError(ERAError):
    """A required part of the submission is missing."""

    status_code = 400


class UploadRejectedError(ERAError):
    """The uploaded file has the wrong type or exceeds the size ceiling."""


class ConfigurationError(ERAError):
    """A required credential or setting is not configured."""


class ProviderError(ERAError):
    """The generation provider did not return a usable success response."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class EmailError(ERAError):
    pass


class FilesystemError(ERAError):
    pass
