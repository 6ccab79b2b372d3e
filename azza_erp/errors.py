# azza_erp/errors.py
from __future__ import annotations


class ErpError(Exception):
    """Base for every error an action can surface to the user."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(ErpError):
    """Required input missing or malformed. Raised before any write."""

    status_code = 400
    kind = "validation_error"


class NotFoundError(ErpError):
    status_code = 404
    kind = "not_found"


class DependencyWriteError(ErpError):
    """A store (or file storage) write failed; the action's transaction was rolled back."""

    status_code = 500
    kind = "write_failed"


class MissingRelationError(ErpError):
    """A document was requested for a record lacking a required relation."""

    status_code = 422
    kind = "missing_relation"
