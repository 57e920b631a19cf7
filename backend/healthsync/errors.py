"""Exceptions shared by the ingest services and routers."""

from __future__ import annotations

from typing import Any, Optional


class HealthSyncError(Exception):
    """Base exception for everything the sync pipeline raises on purpose."""

    code = "healthsync_error"
    http_status = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the ``detail`` shape the routers return."""
        return {"message": self.message, "code": self.code}


class PayloadValidationError(HealthSyncError):
    """Inbound payload is missing a required field or has the wrong shape.

    Always raised before any Notion call is made.
    """

    code = "invalid_payload"
    http_status = 400

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        detail = super().to_dict()
        if self.errors:
            detail["errors"] = self.errors
        return detail


class NotionStoreError(HealthSyncError):
    """A Notion API call failed. Never retried."""

    code = "notion_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        notion_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.notion_code = notion_code
