"""Error taxonomy and failure classification - no I/O dependencies."""

import json
from enum import Enum


class ErrorKind(Enum):
    """What went wrong, as far as the board is concerned."""

    AUTH_CANCELLED = "auth_cancelled"
    IDENTITY_PROVIDER = "identity_provider"
    PERSISTENCE = "persistence"
    NOT_FOUND = "not_found"
    EXPIRED_CREDENTIAL = "expired_credential"
    INTEGRATION = "integration"


class NotedashError(Exception):
    """Base class for errors raised across the store and integration boundary."""

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthCancelled(NotedashError):
    """The user dismissed the sign-in flow."""

    kind = ErrorKind.AUTH_CANCELLED


class IdentityProviderError(NotedashError):
    """The identity provider failed for a reason other than cancellation."""

    kind = ErrorKind.IDENTITY_PROVIDER


class PersistenceError(NotedashError):
    """A write to the document store was rejected."""

    kind = ErrorKind.PERSISTENCE


class NotFound(NotedashError):
    """A mutation targeted a task absent from the current snapshot."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class IntegrationError(NotedashError):
    """An external API call failed."""

    kind = ErrorKind.INTEGRATION

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ExpiredCredential(IntegrationError):
    """The external API rejected the bearer credential."""

    kind = ErrorKind.EXPIRED_CREDENTIAL


_EXPIRY_MARKERS = ("invalid", "expired")


def _parse_body(body) -> dict | str | None:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        text = body.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text
    return body


def extract_error_message(body) -> str:
    """
    Pull the provider's human-readable message out of an error body.

    Accepts a parsed dict, a JSON string/bytes, or plain text.
    """
    payload = _parse_body(body)
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
            status = error.get("status")
            if isinstance(status, str) and status.strip():
                return status
        if isinstance(error, str) and error.strip():
            description = payload.get("error_description")
            if isinstance(description, str) and description.strip():
                return f"{error}: {description}"[:200]
            return error[:200]
    if isinstance(payload, str):
        return " ".join(payload.split())[:200]
    return "Request failed without an error payload"


def classify_failure(status_code: int | None, body=None) -> ErrorKind:
    """
    Classify an external API failure.

    401, or an error body mentioning an invalid/expired credential, means the
    credential is gone. Everything else is a generic integration failure.
    """
    if status_code == 401:
        return ErrorKind.EXPIRED_CREDENTIAL

    payload = _parse_body(body)
    candidates: list[str] = []
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            candidates.extend(str(error.get(k, "")) for k in ("message", "status"))
            for detail in error.get("errors", []) or []:
                if isinstance(detail, dict):
                    candidates.append(str(detail.get("reason", "")))
        elif isinstance(error, str):
            candidates.append(error)
    elif isinstance(payload, str):
        candidates.append(payload)

    text = " ".join(candidates).lower()
    if any(marker in text for marker in _EXPIRY_MARKERS):
        return ErrorKind.EXPIRED_CREDENTIAL
    return ErrorKind.INTEGRATION


def error_from_response(status_code: int | None, body=None) -> IntegrationError:
    """Build the exception matching classify_failure()."""
    message = extract_error_message(body)
    if classify_failure(status_code, body) is ErrorKind.EXPIRED_CREDENTIAL:
        return ExpiredCredential(message, status_code)
    return IntegrationError(message, status_code)
