"""
Typed outcome of a settlement or deposit operation.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import ContractbookError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a success value or the error that stopped the operation."""

    value: Optional[T] = None
    error: Optional[ContractbookError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ContractbookError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.value
