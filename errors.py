# errors.py
# Description: Error taxonomy shared by the chat engine. Exceptions are raised
# where an operation cannot continue; ChatFailure is the value handed to the
# terminal layer so every failure can be rendered in place of a reply.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    API_ERROR = "api_error"
    UNPARSEABLE_RESPONSE = "unparseable_response"
    TRANSPORT_FAILURE = "transport_failure"
    INVALID_MODEL = "invalid_model"
    UPLOAD_REJECTED = "upload_rejected"
    LOCATION_UNAVAILABLE = "location_unavailable"


# ---------------------------------------------------------------------------
# custom exceptions
# ---------------------------------------------------------------------------

class CohereChatError(Exception):
    """Base exception for the chat client."""

    kind: Optional[ErrorKind] = None


class TransportFailure(CohereChatError):
    """Raised when the request never produced a response body."""

    kind = ErrorKind.TRANSPORT_FAILURE


class ConnectionFailure(TransportFailure):
    """Raised for network, DNS or TLS failures."""


class TimeoutFailure(TransportFailure):
    """Raised when a request to the API times out."""


class InvalidModel(CohereChatError):
    """Raised when a model name cannot be resolved or the API rejects it."""

    kind = ErrorKind.INVALID_MODEL


class UploadRejected(CohereChatError):
    """Raised when a file cannot be used as conversation context."""

    kind = ErrorKind.UPLOAD_REJECTED


class StorageError(CohereChatError):
    """Raised when the config or transcript location cannot be written."""


# ---------------------------------------------------------------------------
# renderable failure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatFailure:
    """A failure shown to the user instead of an assistant turn.

    `detail` holds raw diagnostic content (e.g. the unparsed response) and is
    only displayed when debug mode is on.
    """

    kind: ErrorKind
    message: str
    detail: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: CohereChatError) -> "ChatFailure":
        kind = exc.kind or ErrorKind.TRANSPORT_FAILURE
        cause = exc.__cause__
        return cls(kind=kind, message=str(exc), detail=repr(cause) if cause else None)
