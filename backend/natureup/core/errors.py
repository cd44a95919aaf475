"""
Error taxonomy for the excursion-planning core.

Components raise these internally; the orchestrator and the excursion graph
turn them into an ``ErrorInfo`` on their result objects, and the API maps
those onto HTTP status codes in one place.
"""
from __future__ import annotations

from enum import Enum

from fastapi import HTTPException
from pydantic import BaseModel


class ErrorCode(str, Enum):
    configuration = "CONFIGURATION_ERROR"
    network = "NETWORK_ERROR"
    malformed_reply = "MALFORMED_REPLY"
    invalid_transition = "INVALID_TRANSITION"
    no_candidates = "NO_CANDIDATES"
    session_not_found = "SESSION_NOT_FOUND"


class ErrorInfo(BaseModel):
    code: ErrorCode
    message: str


class NatureUpError(Exception):
    code: ErrorCode = ErrorCode.network

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(code=self.code, message=str(self))


class ConfigurationError(NatureUpError):
    """Required credentials or settings are missing; raised before any network call."""

    code = ErrorCode.configuration


class ProviderError(NatureUpError):
    """A completion, search or other upstream call could not be completed."""

    code = ErrorCode.network


class MalformedReplyError(NatureUpError):
    """The completion endpoint answered, but not with a usable JSON reply."""

    code = ErrorCode.malformed_reply


class InvalidTransitionError(NatureUpError):
    code = ErrorCode.invalid_transition

    def __init__(self, from_phase: str, to_phase: str, reason: str | None = None) -> None:
        self.from_phase = from_phase
        self.to_phase = to_phase
        message = f"Cannot move session from {from_phase} to {to_phase}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoCandidatesError(NatureUpError):
    """No nearby place to build an excursion around; ask the user for a location instead."""

    code = ErrorCode.no_candidates


class SessionNotFoundError(NatureUpError):
    code = ErrorCode.session_not_found

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.configuration: 500,
    ErrorCode.network: 503,
    ErrorCode.malformed_reply: 502,
    ErrorCode.invalid_transition: 409,
    ErrorCode.no_candidates: 422,
    ErrorCode.session_not_found: 404,
}


def error_to_http(error: ErrorInfo) -> HTTPException:
    """Map a typed error onto an HTTPException carrying the code and message."""
    status_code = ERROR_STATUS.get(error.code, 500)
    return HTTPException(status_code=status_code, detail=error.model_dump(mode="json"))
