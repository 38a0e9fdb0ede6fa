"""
Tagged operation results.

Public operations of the session store and the payment workflow return a
Result instead of raising for expected validation failures. The error slot
always holds a DomainException subclass so callers can branch on
error_code or on the exception type.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from krishimitr.core.exceptions import DomainException

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[DomainException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainException) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value
