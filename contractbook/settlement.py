"""
Settlement engine: pays a job by moving its price from the client's balance
to the contractor's balance.

The transfer, the payment flag and the payment date are written in one unit
of work. Preconditions are checked against a locked snapshot before any
write, and the writes themselves are conditional, so a concurrent payment of
the same job cannot slip in between the check and the update.
"""

from datetime import datetime
from typing import Callable, Optional

from .database import STATUS_IN_PROGRESS
from .errors import (
    ConflictError,
    ContractbookError,
    InternalError,
    NotFoundError,
    TransientError,
    UnauthorizedError,
)
from .logger import StructuredLogger, get_logger
from .repository import JobRecord, UnitOfWorkFactory
from .result import Result
from .retry import RetryError, exponential_backoff


class SettlementEngine:
    """Executes PayJob against an injected unit-of-work factory."""

    operation = "pay_job"

    def __init__(
        self,
        unit_of_work: UnitOfWorkFactory,
        clock: Callable[[], datetime] = datetime.now,
        max_retries: int = 0,
        retry_delay: float = 0.05,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            unit_of_work: Zero-argument callable returning a repository context
            clock: Source of the payment timestamp
            max_retries: Extra attempts after a TransientError
            retry_delay: Initial backoff delay in seconds
            logger: StructuredLogger (default: the global logger)
        """
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._logger = logger

    @property
    def logger(self) -> StructuredLogger:
        return self._logger or get_logger()

    def pay_job(self, acting_profile_id: int, job_id: int) -> Result[JobRecord]:
        """
        Pay for a job on behalf of a party to its contract.

        Args:
            acting_profile_id: Profile requesting the payment
            job_id: Job to pay

        Returns:
            Result holding the paid JobRecord, or the NotFound, Unauthorized,
            Conflict, Transient or Internal error that stopped it
        """
        self.logger.record_attempt(self.operation)
        attempt = exponential_backoff(
            max_retries=self._max_retries,
            base_delay=self._retry_delay,
            exceptions=(TransientError,),
            on_retry=self._on_retry,
        )(self._settle)

        try:
            job = attempt(acting_profile_id, job_id)
        except RetryError as e:
            return self._fail(e.last_exception, acting_profile_id, job_id)
        except ContractbookError as e:
            return self._fail(e, acting_profile_id, job_id)
        except Exception as e:
            error = InternalError(f"unexpected failure: {type(e).__name__}: {e}")
            error.__cause__ = e
            return self._fail(error, acting_profile_id, job_id)

        self.logger.record_success(self.operation)
        self.logger.info(
            "Job paid",
            job_id=job.id,
            profile_id=acting_profile_id,
            amount=job.price,
            payment_date=job.payment_date,
        )
        return Result.success(job)

    def _settle(self, acting_profile_id: int, job_id: int) -> JobRecord:
        with self._unit_of_work() as repo:
            snapshot = repo.load_settlement(job_id)
            if snapshot is None:
                raise NotFoundError(f"job {job_id} not found")

            contract = snapshot.contract
            if contract is None or snapshot.client is None or snapshot.contractor is None:
                raise NotFoundError(f"contract for job {job_id} not found")

            if acting_profile_id not in (contract.client_id, contract.contractor_id):
                raise UnauthorizedError(
                    f"profile {acting_profile_id} is not a party to contract {contract.id}"
                )
            if contract.status != STATUS_IN_PROGRESS:
                raise ConflictError("contract not active")
            if snapshot.job.paid:
                raise ConflictError("already paid")

            price = snapshot.job.price
            if snapshot.client.balance < price:
                raise ConflictError("insufficient balance")

            # Re-checked by the writes themselves in case the snapshot went stale
            if not repo.mark_paid(job_id, self._clock()):
                raise ConflictError("already paid")
            if not repo.debit(snapshot.client.id, price):
                raise ConflictError("insufficient balance")
            repo.credit(snapshot.contractor.id, price)

            return repo.get_job(job_id)

    def _on_retry(self, attempt: int, error: Exception, delay: float):
        self.logger.record_retry()
        self.logger.warning(
            "Retrying job payment after transient failure",
            attempt=attempt,
            delay=delay,
            error=str(error),
        )

    def _fail(self, error: ContractbookError, acting_profile_id: int, job_id: int) -> Result:
        self.logger.record_failure(self.operation, error.kind.value)
        log = self.logger.error if error.status_code >= 500 else self.logger.info
        log(
            "Job payment rejected",
            job_id=job_id,
            profile_id=acting_profile_id,
            kind=error.kind.value,
            reason=error.reason,
        )
        return Result.failure(error)
