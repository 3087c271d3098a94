"""Error taxonomy shared by the HTTP and real-time boundaries.

Services raise these exceptions; the API layer converts them into a
structured ``{"detail", "code"}`` payload and the socket layer into an
outbound ``error`` event. Raw internal exceptions never cross either
boundary.
"""

from __future__ import annotations

from fastapi import status


class NyxError(Exception):
    """Base class for errors that are safe to report to clients."""

    code = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, *, code: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code

    def to_payload(self) -> dict[str, str]:
        """Return the client-facing representation of the error."""
        return {"detail": self.detail, "code": self.code}


class ValidationError(NyxError):
    """Missing or malformed request fields, rejected before touching the store."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(NyxError):
    """Credentials were missing, invalid or did not match."""

    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(NyxError):
    """The caller is known but may not act on the target chat."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(NyxError):
    """Unknown user, chat or message."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(NyxError):
    """A uniqueness constraint would be violated."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StoreError(NyxError):
    """Persistence was unavailable or a query failed."""

    code = "store_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, detail: str = "Storage is unavailable", *, code: str | None = None) -> None:
        super().__init__(detail, code=code)
