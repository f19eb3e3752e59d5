"""Base error type rendered by the API as ``{"error": message, "code": code}``."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi import status


class ServiceError(Exception):
    """Represents an actionable failure surfaced to API callers."""

    code = "service_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed."

    def __init__(self, message: Optional[str] = None, *, detail: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.detail = dict(detail or {})
        super().__init__(self.message)

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @property
    def payload(self) -> Dict[str, Any]:
        """Serialized representation suitable for JSON responses."""

        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.detail:
            body["detail"] = self.detail
        return body


class InvalidRequest(ServiceError):
    code = "invalid_request"
    default_message = "Invalid request body."
