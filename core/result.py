import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar, Union

from appwrite.exception import AppwriteException
from pydantic import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    MISSING_TOKEN = "missing_token"
    CANCELLED = "cancelled"
    MISSING_PARAMS = "missing_params"
    INVALID_RECORD = "invalid_record"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    code: Optional[int] = None
    response: Any = None

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_exception(cls, exc: Exception) -> "Err":
        """Classifies an exception raised by a remote call or by record validation."""
        if isinstance(exc, AppwriteException):
            kind = ErrorKind.NOT_FOUND if exc.code == 404 else ErrorKind.TRANSPORT
            return cls(kind, exc.message, code=exc.code, response=exc.response)
        if isinstance(exc, ValidationError):
            return cls(ErrorKind.INVALID_RECORD, str(exc))
        return cls(ErrorKind.TRANSPORT, f"{type(exc).__name__}: {exc}")


Result = Union[Ok[T], Err]


async def capture(operation: str, call: Awaitable[T]) -> Result:
    """
    Awaits a remote call and converts whatever it raises into an Err,
    logging the failure with enough detail to diagnose it afterwards.
    """
    try:
        return Ok(await call)
    except AppwriteException as e:
        error = Err.from_exception(e)
        logger.error(
            "%s failed: message=%s code=%s response=%s",
            operation, error.message, error.code, error.response,
        )
        return error
    except Exception as e:
        error = Err.from_exception(e)
        logger.error("%s failed: %s", operation, error.message)
        return error
