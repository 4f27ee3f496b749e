"""
Read-side lookups over profiles, contracts and jobs.

A profile only ever sees contracts it is a party to.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .database import Contract, Job, Profile, STATUS_TERMINATED


def _party_to(profile_id: int):
    return or_(Contract.client_id == profile_id, Contract.contractor_id == profile_id)


def get_profile(session: Session, profile_id: int) -> Optional[Profile]:
    return session.get(Profile, profile_id)


def get_contract(session: Session, contract_id: int, profile_id: int) -> Optional[Contract]:
    """Return the contract if profile_id is its client or contractor, else None."""
    return (
        session.query(Contract)
        .filter(Contract.id == contract_id, _party_to(profile_id))
        .first()
    )


def list_contracts(session: Session, profile_id: int) -> List[Contract]:
    """Non-terminated contracts the profile is a party to."""
    return (
        session.query(Contract)
        .filter(_party_to(profile_id), Contract.status != STATUS_TERMINATED)
        .order_by(Contract.id)
        .all()
    )


def unpaid_jobs(session: Session, profile_id: int) -> List[Job]:
    """Unpaid jobs on the profile's non-terminated contracts."""
    return (
        session.query(Job)
        .join(Contract, Job.contract_id == Contract.id)
        .filter(
            Job.paid.is_(False),
            _party_to(profile_id),
            Contract.status != STATUS_TERMINATED,
        )
        .order_by(Job.id)
        .all()
    )
