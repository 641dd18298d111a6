"""Error taxonomy shared by every asynchronous boundary of a form session.

Lower layers raise their own ``RuntimeError`` subclasses; the session converts
them into one of the tagged :class:`SessionError` kinds below and hands them to
its caller as a :class:`Result`.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    LOAD = "load"
    EXTRACTION = "extraction"
    PREFILL = "prefill"
    DECLINED = "declined"
    SUBMISSION = "submission"
    STATE = "state"


class SessionError(RuntimeError):
    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def terminal(self) -> bool:
        """Whether the failure ends the current load attempt."""
        return self.kind in (ErrorKind.LOAD, ErrorKind.EXTRACTION)


class LoadError(SessionError):
    kind = ErrorKind.LOAD


class ExtractionError(SessionError):
    kind = ErrorKind.EXTRACTION


class PrefillWarning(SessionError):
    kind = ErrorKind.PREFILL


class ConfirmationDeclined(SessionError):
    kind = ErrorKind.DECLINED


class SubmissionError(SessionError):
    kind = ErrorKind.SUBMISSION


class WorkflowStateError(SessionError):
    """An operation was requested in a workflow state that does not allow it."""

    kind = ErrorKind.STATE


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    value: T | None = None
    error: SessionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


async def capture(awaitable: Awaitable[T], error_type: type[SessionError]) -> Result[T]:
    """Await ``awaitable`` and fold any other exception into ``error_type``."""
    try:
        return Result(value=await awaitable)
    except SessionError as exc:
        return Result(error=exc)
    except Exception as exc:
        error = error_type(str(exc) or exc.__class__.__name__)
        error.__cause__ = exc
        return Result(error=error)
