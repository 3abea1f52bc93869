"""Tagged results returned by moderation, report and appeal operations.

Expected domain conditions (missing community, missing role, duplicate report)
are returned as ``Err`` values instead of being raised, so callers branch on
``result.kind`` rather than catching exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar


T = TypeVar("T")


class ErrorKind(str, Enum):
    """Error categories every operation may return."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    VALIDATION_FAILED = "validation_failed"
    STORAGE_FAILURE = "storage_failure"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome with a kind, a machine code and a readable message."""

    kind: ErrorKind
    code: str
    message: str

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"kind": self.kind.value, "code": self.code, "message": self.message}


Result = Ok[T] | Err


# ==============================================================================
# Constructors
# ==============================================================================


def not_found(code: str, message: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, code, message)


def unauthorized(code: str, message: str) -> Err:
    return Err(ErrorKind.UNAUTHORIZED, code, message)


def conflict(code: str, message: str) -> Err:
    return Err(ErrorKind.CONFLICT, code, message)


def validation_failed(code: str, message: str) -> Err:
    return Err(ErrorKind.VALIDATION_FAILED, code, message)


def storage_failure(error: Exception | str, code: str = "storage_failure") -> Err:
    """Wrap a persistence error, keeping the underlying message."""
    return Err(ErrorKind.STORAGE_FAILURE, code, str(error))


# Codes shared across modules
COMMUNITY_NOT_FOUND = "community_not_found"
UPDATE_FAILED = "update_failed"


def community_not_found() -> Err:
    return not_found(COMMUNITY_NOT_FOUND, "Community not found")


def update_failed() -> Err:
    return storage_failure("Community update returned no document", UPDATE_FAILED)
