"""
Error taxonomy of the core. Each error carries an HTTP status and a stable code
so the HTTP layer can render {error, message} without knowing the domain.
"""
from typing import Any


class HttpError(Exception):
    """Base error: status_code + code + human readable message."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class BadRequest(HttpError):
    """Invalid or ineligible input: unknown product, insufficient tokens, expired link."""

    status_code = 400
    code = "BAD_REQUEST"


class Forbidden(HttpError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(HttpError):
    status_code = 404
    code = "NOT_FOUND"


class InternalServerError(HttpError):
    """External tool failure, persistence failure, missing master file."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
