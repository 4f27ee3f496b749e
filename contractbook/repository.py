"""
Ledger Repository.

Responsibilities:
- Transactional reads of jobs, contracts and profiles as immutable records.
- Conditional balance and payment writes.
- Commit/rollback of a scoped unit of work.

Non-Responsibilities:
- No business rules: the settlement engine and deposit guard decide,
  the repository only reports what the rows allowed.

Invariant:
Every write happens inside a unit of work, and a unit of work either
commits all of its writes or none of them.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, ContextManager, Iterator, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .database import Contract, Job, Profile, STATUS_TERMINATED
from .errors import ContractbookError, InternalError, TransientError
from .retry import is_transient_error


def to_decimal(value) -> Decimal:
    """Normalise a stored amount (Decimal, float, int or None) to Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class ProfileRecord:
    id: int
    role: str
    balance: Decimal
    first_name: str = ""
    last_name: str = ""
    profession: str = ""


@dataclass(frozen=True)
class ContractRecord:
    id: int
    client_id: int
    contractor_id: int
    status: str


@dataclass(frozen=True)
class JobRecord:
    id: int
    contract_id: int
    price: Decimal
    paid: bool
    payment_date: Optional[datetime] = None
    description: str = ""


@dataclass(frozen=True)
class SettlementSnapshot:
    """A job with its contract and both parties, read in one go.

    The contract and profiles are None when the rows they point at are gone.
    """

    job: JobRecord
    contract: Optional[ContractRecord]
    client: Optional[ProfileRecord]
    contractor: Optional[ProfileRecord]


class LedgerRepository(Protocol):
    """Reads and writes available inside one unit of work."""

    def load_settlement(self, job_id: int) -> Optional[SettlementSnapshot]:
        ...

    def get_profile(self, profile_id: int) -> Optional[ProfileRecord]:
        ...

    def get_job(self, job_id: int) -> Optional[JobRecord]:
        ...

    def outstanding_total(self, client_id: int) -> Decimal:
        ...

    def debit(self, profile_id: int, amount: Decimal) -> bool:
        ...

    def credit(self, profile_id: int, amount: Decimal) -> Decimal:
        ...

    def mark_paid(self, job_id: int, paid_at: datetime) -> bool:
        ...


UnitOfWorkFactory = Callable[[], ContextManager[LedgerRepository]]


def _profile_record(profile: Optional[Profile]) -> Optional[ProfileRecord]:
    if profile is None:
        return None
    return ProfileRecord(
        id=profile.id,
        role=profile.role,
        balance=to_decimal(profile.balance),
        first_name=profile.first_name,
        last_name=profile.last_name,
        profession=profile.profession,
    )


def _job_record(job: Job) -> JobRecord:
    return JobRecord(
        id=job.id,
        contract_id=job.contract_id,
        price=to_decimal(job.price),
        paid=bool(job.paid),
        payment_date=job.payment_date,
        description=job.description,
    )


class SqlAlchemyLedgerRepository:
    """LedgerRepository over a SQLAlchemy session the caller owns."""

    def __init__(self, session: Session):
        self.session = session

    def load_settlement(self, job_id: int) -> Optional[SettlementSnapshot]:
        job = self.session.query(Job).filter(Job.id == job_id).with_for_update().first()
        if job is None:
            return None

        contract = (
            self.session.query(Contract)
            .filter(Contract.id == job.contract_id)
            .first()
        )
        client = contractor = None
        if contract is not None:
            parties = (
                self.session.query(Profile)
                .filter(Profile.id.in_([contract.client_id, contract.contractor_id]))
                .with_for_update()
                .all()
            )
            by_id = {p.id: p for p in parties}
            client = by_id.get(contract.client_id)
            contractor = by_id.get(contract.contractor_id)

        return SettlementSnapshot(
            job=_job_record(job),
            contract=None if contract is None else ContractRecord(
                id=contract.id,
                client_id=contract.client_id,
                contractor_id=contract.contractor_id,
                status=contract.status,
            ),
            client=_profile_record(client),
            contractor=_profile_record(contractor),
        )

    def get_profile(self, profile_id: int) -> Optional[ProfileRecord]:
        return _profile_record(self.session.get(Profile, profile_id))

    def get_job(self, job_id: int) -> Optional[JobRecord]:
        job = self.session.get(Job, job_id)
        return None if job is None else _job_record(job)

    def outstanding_total(self, client_id: int) -> Decimal:
        total = (
            self.session.query(func.coalesce(func.sum(Job.price), 0))
            .join(Contract, Job.contract_id == Contract.id)
            .filter(Contract.client_id == client_id)
            .filter(Contract.status != STATUS_TERMINATED)
            .scalar()
        )
        return to_decimal(total)

    def debit(self, profile_id: int, amount: Decimal) -> bool:
        """Subtract amount only if the balance covers it. False if it does not."""
        updated = (
            self.session.query(Profile)
            .filter(Profile.id == profile_id, Profile.balance >= amount)
            .update(
                {Profile.balance: Profile.balance - amount, Profile.updated_at: datetime.now()},
                synchronize_session=False,
            )
        )
        return updated == 1

    def credit(self, profile_id: int, amount: Decimal) -> Decimal:
        self.session.query(Profile).filter(Profile.id == profile_id).update(
            {Profile.balance: Profile.balance + amount, Profile.updated_at: datetime.now()},
            synchronize_session=False,
        )
        balance = (
            self.session.query(Profile.balance).filter(Profile.id == profile_id).scalar()
        )
        return to_decimal(balance)

    def mark_paid(self, job_id: int, paid_at: datetime) -> bool:
        """Flip an unpaid job to paid. False if it was already paid."""
        updated = (
            self.session.query(Job)
            .filter(Job.id == job_id, Job.paid.is_(False))
            .update(
                {Job.paid: True, Job.payment_date: paid_at, Job.updated_at: datetime.now()},
                synchronize_session=False,
            )
        )
        if updated == 1:
            # Refresh so get_job() sees the new row state
            self.session.expire_all()
        return updated == 1


@contextmanager
def unit_of_work(
    session_factory: sessionmaker,
    repository_class=SqlAlchemyLedgerRepository,
) -> Iterator[SqlAlchemyLedgerRepository]:
    """
    Scoped transaction: commit when the block exits cleanly, roll back otherwise.

    Storage errors are translated: lock and timeout failures become
    TransientError, anything else from SQLAlchemy becomes InternalError.

    Args:
        session_factory: sessionmaker bound to the ledger database
        repository_class: Repository type to bind to the session

    Yields:
        Repository bound to the transaction's session
    """
    session = session_factory()
    try:
        yield repository_class(session)
        session.commit()
    except ContractbookError:
        session.rollback()
        raise
    except OperationalError as e:
        session.rollback()
        if is_transient_error(e):
            raise TransientError(f"storage busy, retry the operation: {e.orig}") from e
        raise InternalError(f"storage failure: {e.orig}") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise InternalError(f"storage failure: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def unit_of_work_factory(
    session_factory: sessionmaker,
    repository_class=SqlAlchemyLedgerRepository,
) -> UnitOfWorkFactory:
    """Bind a sessionmaker so engines can open units of work without arguments."""
    return lambda: unit_of_work(session_factory, repository_class)
