"""
Sample data for trying contractbook against a fresh database.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from .database import (
    Contract,
    Job,
    Profile,
    ROLE_CLIENT,
    ROLE_CONTRACTOR,
    STATUS_IN_PROGRESS,
    STATUS_NEW,
    STATUS_TERMINATED,
)

PROFILES = [
    # id, first_name, last_name, profession, role, balance
    (1, "Harriet", "Vane", "Novelist", ROLE_CLIENT, "1150"),
    (2, "Nils", "Okafor", "Architect", ROLE_CLIENT, "231.11"),
    (3, "Priya", "Raman", "Physician", ROLE_CLIENT, "451.30"),
    (4, "Tomas", "Reyes", "Pilot", ROLE_CLIENT, "1.30"),
    (5, "Ines", "Duarte", "Musician", ROLE_CONTRACTOR, "64"),
    (6, "Kenji", "Sato", "Programmer", ROLE_CONTRACTOR, "1214"),
    (7, "Mara", "Lind", "Programmer", ROLE_CONTRACTOR, "22"),
    (8, "Oskar", "Brandt", "Carpenter", ROLE_CONTRACTOR, "314"),
]

CONTRACTS = [
    # id, client_id, contractor_id, status
    (1, 1, 5, STATUS_TERMINATED),
    (2, 1, 6, STATUS_IN_PROGRESS),
    (3, 2, 6, STATUS_IN_PROGRESS),
    (4, 2, 7, STATUS_IN_PROGRESS),
    (5, 3, 8, STATUS_NEW),
    (6, 3, 7, STATUS_IN_PROGRESS),
    (7, 4, 7, STATUS_IN_PROGRESS),
    (8, 4, 6, STATUS_IN_PROGRESS),
    (9, 4, 8, STATUS_IN_PROGRESS),
]

JOBS = [
    # id, contract_id, description, price, payment_date (None = unpaid)
    (1, 1, "work", "200", None),
    (2, 2, "work", "201", None),
    (3, 3, "work", "202", None),
    (4, 4, "work", "200", None),
    (5, 7, "work", "200", None),
    (6, 7, "work", "2020", datetime(2020, 8, 15, 19, 11, 26)),
    (7, 7, "work", "200", datetime(2020, 8, 15, 19, 11, 26)),
    (8, 6, "work", "200", datetime(2020, 8, 16, 19, 11, 26)),
    (9, 5, "work", "200", datetime(2020, 8, 17, 19, 11, 26)),
    (10, 2, "work", "200", datetime(2020, 8, 17, 19, 11, 26)),
    (11, 8, "work", "21", datetime(2020, 8, 10, 19, 11, 26)),
    (12, 3, "work", "21", datetime(2020, 8, 15, 19, 11, 26)),
    (13, 9, "work", "121", datetime(2020, 8, 15, 19, 11, 26)),
    (14, 9, "work", "121", datetime(2020, 8, 14, 23, 11, 26)),
]


def seed_database(session: Session) -> dict:
    """
    Replace all rows with the sample data set.

    Args:
        session: Session on an initialized database

    Returns:
        Counts of inserted profiles, contracts and jobs
    """
    session.query(Job).delete()
    session.query(Contract).delete()
    session.query(Profile).delete()

    for pid, first, last, profession, role, balance in PROFILES:
        session.add(Profile(
            id=pid,
            first_name=first,
            last_name=last,
            profession=profession,
            role=role,
            balance=Decimal(balance),
        ))
    session.flush()

    for cid, client_id, contractor_id, status in CONTRACTS:
        session.add(Contract(
            id=cid,
            terms="bla bla bla",
            status=status,
            client_id=client_id,
            contractor_id=contractor_id,
        ))
    session.flush()

    for jid, contract_id, description, price, paid_at in JOBS:
        session.add(Job(
            id=jid,
            contract_id=contract_id,
            description=description,
            price=Decimal(price),
            paid=paid_at is not None,
            payment_date=paid_at,
        ))
    session.commit()

    return {"profiles": len(PROFILES), "contracts": len(CONTRACTS), "jobs": len(JOBS)}
