"""
Admin reporting over paid jobs.

Both reports only count jobs whose payment date falls inside the inclusive
[start, end] window.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .database import Contract, Job, Profile
from .errors import InvalidArgumentError
from .repository import to_decimal

DEFAULT_BEST_CLIENTS_LIMIT = 2


def _check_window(start: datetime, end: datetime) -> None:
    if start is None or end is None:
        raise InvalidArgumentError("start and end dates are required")
    if start > end:
        raise InvalidArgumentError(f"start {start.isoformat()} is after end {end.isoformat()}")


def best_profession(session: Session, start: datetime, end: datetime) -> Optional[str]:
    """
    Profession whose contractors earned the most in the window.

    Returns:
        The profession, or None if no job was paid in the window
    """
    _check_window(start, end)
    earned = func.sum(Job.price)
    row = (
        session.query(Profile.profession, earned.label("earned"))
        .join(Contract, Contract.contractor_id == Profile.id)
        .join(Job, Job.contract_id == Contract.id)
        .filter(Job.paid.is_(True), Job.payment_date.between(start, end))
        .group_by(Profile.profession)
        .order_by(earned.desc(), Profile.profession)
        .first()
    )
    return None if row is None else row.profession


def best_clients(
    session: Session,
    start: datetime,
    end: datetime,
    limit: int = DEFAULT_BEST_CLIENTS_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Clients who paid the most in the window, highest first.

    Returns:
        Up to `limit` dicts with id, full_name and paid
    """
    _check_window(start, end)
    if limit is None or limit < 1:
        raise InvalidArgumentError(f"limit must be at least 1, got {limit!r}")

    paid = func.sum(Job.price)
    rows = (
        session.query(Profile.id, Profile.first_name, Profile.last_name, paid.label("paid"))
        .join(Contract, Contract.client_id == Profile.id)
        .join(Job, Job.contract_id == Contract.id)
        .filter(Job.paid.is_(True), Job.payment_date.between(start, end))
        .group_by(Profile.id, Profile.first_name, Profile.last_name)
        .order_by(paid.desc(), Profile.id)
        .limit(limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "full_name": f"{row.first_name} {row.last_name}",
            "paid": to_decimal(row.paid),
        }
        for row in rows
    ]
