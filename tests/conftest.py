"""
Pytest configuration and shared fixtures.
"""

import pytest
from decimal import Decimal
from pathlib import Path
from typing import Callable

from contractbook.database import (
    Contract,
    Job,
    Profile,
    ROLE_CLIENT,
    ROLE_CONTRACTOR,
    STATUS_IN_PROGRESS,
    STATUS_NEW,
    STATUS_TERMINATED,
    create_db_engine,
    get_session_factory,
    init_database,
)
from contractbook.logger import get_logger, reset_logger
from contractbook.repository import unit_of_work_factory
from contractbook.seed import seed_database

from fake_repository import InMemoryLedger


@pytest.fixture(autouse=True)
def quiet_logger():
    """Global logger without console or file output."""
    reset_logger()
    logger = get_logger(enable_file=False, enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized, empty SQLite database."""
    path = tmp_path / "ledger.db"
    init_database(path)
    return path


@pytest.fixture
def session_factory(db_path):
    return get_session_factory(create_db_engine(db_path, timeout=5.0))


@pytest.fixture
def uow(session_factory):
    return unit_of_work_factory(session_factory)


@pytest.fixture
def add_rows(session_factory) -> Callable:
    """Insert profiles, contracts and jobs given as tuples.

    profiles: (id, role, balance)
    contracts: (id, client_id, contractor_id, status)
    jobs: (id, contract_id, price, paid)
    """
    def _add(profiles=(), contracts=(), jobs=()):
        with session_factory() as session:
            for pid, role, balance in profiles:
                session.add(Profile(
                    id=pid,
                    first_name=f"first{pid}",
                    last_name=f"last{pid}",
                    profession="Programmer" if role == ROLE_CONTRACTOR else "Client",
                    role=role,
                    balance=Decimal(balance),
                ))
            session.flush()
            for cid, client_id, contractor_id, status in contracts:
                session.add(Contract(
                    id=cid, client_id=client_id, contractor_id=contractor_id, status=status
                ))
            session.flush()
            for jid, contract_id, price, paid in jobs:
                session.add(Job(id=jid, contract_id=contract_id, price=Decimal(price), paid=paid))
            session.commit()
    return _add


@pytest.fixture
def scenario_db(add_rows, session_factory):
    """Contract 2 in progress between client 1 and contractor 7, job 1 priced 200."""
    add_rows(
        profiles=[
            (1, ROLE_CLIENT, "1000"),
            (7, ROLE_CONTRACTOR, "50"),
            (99, ROLE_CLIENT, "500"),
            (3, ROLE_CLIENT, "100"),
        ],
        contracts=[
            (2, 1, 7, STATUS_IN_PROGRESS),
            (4, 1, 7, STATUS_NEW),
            (5, 1, 7, STATUS_TERMINATED),
            (6, 3, 7, STATUS_IN_PROGRESS),
        ],
        jobs=[
            (1, 2, "200", False),
            (2, 4, "150", False),
            (3, 5, "300", False),
            (4, 6, "200", False),
            (5, 2, "100", True),
        ],
    )
    return session_factory


@pytest.fixture
def seeded_session(session_factory):
    """Session on a database holding the sample data set."""
    with session_factory() as session:
        seed_database(session)
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_ledger() -> InMemoryLedger:
    """In-memory ledger holding the same scenario as scenario_db."""
    ledger = InMemoryLedger()
    ledger.add_profile(1, ROLE_CLIENT, "1000")
    ledger.add_profile(7, ROLE_CONTRACTOR, "50")
    ledger.add_profile(99, ROLE_CLIENT, "500")
    ledger.add_profile(3, ROLE_CLIENT, "100")
    ledger.add_contract(2, 1, 7, STATUS_IN_PROGRESS)
    ledger.add_contract(4, 1, 7, STATUS_NEW)
    ledger.add_contract(5, 1, 7, STATUS_TERMINATED)
    ledger.add_contract(6, 3, 7, STATUS_IN_PROGRESS)
    ledger.add_job(1, 2, "200")
    ledger.add_job(2, 4, "150")
    ledger.add_job(3, 5, "300")
    ledger.add_job(4, 6, "200")
    ledger.add_job(5, 2, "100", paid=True)
    return ledger
