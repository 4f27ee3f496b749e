"""
Error taxonomy for contractbook.

Every failure surfaced by the settlement engine, the deposit guard or the
read-side queries is a ContractbookError carrying a kind, a human-readable
reason and the HTTP-style status code an adapter would map it to.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a caller can observe."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    INVALID_ARGUMENT = "invalid_argument"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class ContractbookError(Exception):
    """Base class for all contractbook errors."""

    kind = ErrorKind.INTERNAL
    status_code = 500

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.reason}"


class NotFoundError(ContractbookError):
    """Job, contract or profile does not exist."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class UnauthorizedError(ContractbookError):
    """Acting profile is not a party to the contract."""

    kind = ErrorKind.UNAUTHORIZED
    status_code = 401


class ConflictError(ContractbookError):
    """Business rule violation (inactive contract, already paid, funds, cap)."""

    kind = ErrorKind.CONFLICT
    status_code = 409


class InvalidArgumentError(ContractbookError):
    """Missing or malformed input."""

    kind = ErrorKind.INVALID_ARGUMENT
    status_code = 400


class TransientError(ContractbookError):
    """Storage timeout or contention. Safe to retry the whole operation."""

    kind = ErrorKind.TRANSIENT
    status_code = 503


class InternalError(ContractbookError):
    """Unexpected storage failure."""


class ConfigError(ContractbookError):
    """Missing or invalid configuration value."""
