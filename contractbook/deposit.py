"""
Deposit guard: credits a client's balance, capped at a quarter of the prices
of the jobs on the client's non-terminated contracts.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from .database import CENT, ROLE_CLIENT
from .errors import (
    ConflictError,
    ContractbookError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    TransientError,
)
from .logger import StructuredLogger, get_logger
from .repository import UnitOfWorkFactory
from .result import Result
from .retry import RetryError, exponential_backoff

DEPOSIT_CAP_RATIO = Decimal("0.25")


def parse_amount(amount) -> Decimal:
    """
    Coerce a deposit amount to a positive, finite Decimal.

    Raises:
        InvalidArgumentError: If the amount is missing, not numeric,
            not finite, not positive or finer than a cent
    """
    if amount is None or isinstance(amount, bool):
        raise InvalidArgumentError("amount to deposit not provided")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except InvalidOperation:
        raise InvalidArgumentError(f"amount is not a number: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise InvalidArgumentError(f"amount must be positive, got {amount!r}")
    if value % CENT:
        raise InvalidArgumentError(f"amount has more than two decimal places: {amount!r}")
    return value


class DepositGuard:
    """Executes Deposit against an injected unit-of-work factory."""

    operation = "deposit"

    def __init__(
        self,
        unit_of_work: UnitOfWorkFactory,
        cap_ratio: Decimal = DEPOSIT_CAP_RATIO,
        max_retries: int = 0,
        retry_delay: float = 0.05,
        logger: Optional[StructuredLogger] = None,
    ):
        self._unit_of_work = unit_of_work
        self._cap_ratio = cap_ratio
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._logger = logger

    @property
    def logger(self) -> StructuredLogger:
        return self._logger or get_logger()

    def deposit(self, client_id: int, amount) -> Result[Decimal]:
        """
        Credit a client's balance.

        Args:
            client_id: Client profile to credit
            amount: Positive amount (Decimal, int, or numeric string)

        Returns:
            Result holding the new balance, or the InvalidArgument, NotFound,
            Conflict, Transient or Internal error that stopped it
        """
        self.logger.record_attempt(self.operation)
        attempt = exponential_backoff(
            max_retries=self._max_retries,
            base_delay=self._retry_delay,
            exceptions=(TransientError,),
            on_retry=self._on_retry,
        )(self._credit)

        try:
            value = parse_amount(amount)
            balance = attempt(client_id, value)
        except RetryError as e:
            return self._fail(e.last_exception, client_id, amount)
        except ContractbookError as e:
            return self._fail(e, client_id, amount)
        except Exception as e:
            error = InternalError(f"unexpected failure: {type(e).__name__}: {e}")
            error.__cause__ = e
            return self._fail(error, client_id, amount)

        self.logger.record_success(self.operation)
        self.logger.info("Deposit credited", client_id=client_id, amount=value, balance=balance)
        return Result.success(balance)

    def _credit(self, client_id: int, amount: Decimal) -> Decimal:
        with self._unit_of_work() as repo:
            client = repo.get_profile(client_id)
            if client is None or client.role != ROLE_CLIENT:
                raise NotFoundError(f"client {client_id} not found")

            outstanding = repo.outstanding_total(client_id)
            # Zero outstanding means a zero cap: no deposit is accepted
            if amount > outstanding * self._cap_ratio:
                percent = format((self._cap_ratio * 100).normalize(), "f")
                raise ConflictError(f"deposit exceeds {percent}% cap")

            return repo.credit(client_id, amount)

    def _on_retry(self, attempt: int, error: Exception, delay: float):
        self.logger.record_retry()
        self.logger.warning(
            "Retrying deposit after transient failure",
            attempt=attempt,
            delay=delay,
            error=str(error),
        )

    def _fail(self, error: ContractbookError, client_id: int, amount) -> Result:
        self.logger.record_failure(self.operation, error.kind.value)
        log = self.logger.error if error.status_code >= 500 else self.logger.info
        log(
            "Deposit rejected",
            client_id=client_id,
            amount=amount,
            kind=error.kind.value,
            reason=error.reason,
        )
        return Result.failure(error)
