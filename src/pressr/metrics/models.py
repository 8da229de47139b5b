from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    INVALID_RESPONSE = "invalid_response"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of one dispatched request.

    ``status`` and ``error`` are mutually exclusive: a request either got an
    HTTP status back or failed before one arrived. ``message`` carries the
    detail for ``ErrorKind.OTHER``.
    """

    elapsed_ms: float
    status: int | None = None
    bytes_received: int | None = None
    error: ErrorKind | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.status is not None and self.error is not None:
            msg = "an outcome cannot carry both a status and an error"
            raise ValueError(msg)
        if self.status is None and self.error is None:
            msg = "an outcome needs either a status or an error"
            raise ValueError(msg)

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def response(cls, status: int, elapsed_ms: float, bytes_received: int | None = None) -> Outcome:
        return cls(elapsed_ms=elapsed_ms, status=status, bytes_received=bytes_received)

    @classmethod
    def failure(cls, error: ErrorKind, elapsed_ms: float, message: str | None = None) -> Outcome:
        return cls(elapsed_ms=elapsed_ms, error=error, message=message)
