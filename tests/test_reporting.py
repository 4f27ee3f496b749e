"""
Tests for registry.py and reporting.py against the sample data set.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from contractbook.errors import InvalidArgumentError
from contractbook.registry import get_contract, get_profile, list_contracts, unpaid_jobs
from contractbook.reporting import best_clients, best_profession

AUGUST_START = datetime(2020, 8, 1)
AUGUST_END = datetime(2020, 8, 31, 23, 59, 59)


class TestRegistry:
    """Profiles only see contracts they are a party to."""

    def test_get_profile(self, seeded_session):
        profile = get_profile(seeded_session, 1)
        assert profile.full_name == "Harriet Vane"
        assert get_profile(seeded_session, 404) is None

    def test_get_contract_as_party(self, seeded_session):
        contract = get_contract(seeded_session, 1, 1)
        assert contract is not None
        assert contract.contractor_id == 5

    def test_get_contract_as_outsider(self, seeded_session):
        assert get_contract(seeded_session, 1, 6) is None

    def test_list_contracts_skips_terminated(self, seeded_session):
        assert [c.id for c in list_contracts(seeded_session, 1)] == [2]

    def test_list_contracts_for_contractor(self, seeded_session):
        assert [c.id for c in list_contracts(seeded_session, 6)] == [2, 3, 8]

    def test_unpaid_jobs_for_client(self, seeded_session):
        assert [j.id for j in unpaid_jobs(seeded_session, 1)] == [2]

    def test_unpaid_jobs_for_contractor(self, seeded_session):
        assert [j.id for j in unpaid_jobs(seeded_session, 7)] == [4, 5]


class TestBestProfession:
    def test_over_whole_month(self, seeded_session):
        assert best_profession(seeded_session, AUGUST_START, AUGUST_END) == "Programmer"

    def test_narrow_window(self, seeded_session):
        """Up to the 14th only job 11 (Programmer, 21) and job 14 (Carpenter, 121) count."""
        end = datetime(2020, 8, 14, 23, 59, 59)
        assert best_profession(seeded_session, AUGUST_START, end) == "Carpenter"

    def test_nothing_paid(self, seeded_session):
        assert best_profession(seeded_session, datetime(2021, 1, 1), datetime(2021, 2, 1)) is None

    def test_reversed_window(self, seeded_session):
        with pytest.raises(InvalidArgumentError):
            best_profession(seeded_session, AUGUST_END, AUGUST_START)


class TestBestClients:
    def test_default_limit(self, seeded_session):
        clients = best_clients(seeded_session, AUGUST_START, AUGUST_END)

        assert [c["id"] for c in clients] == [4, 3]
        assert clients[0]["full_name"] == "Tomas Reyes"
        assert clients[0]["paid"] == Decimal("2483")
        assert clients[1]["paid"] == Decimal("400")

    def test_custom_limit(self, seeded_session):
        clients = best_clients(seeded_session, AUGUST_START, AUGUST_END, limit=3)

        assert [c["id"] for c in clients] == [4, 3, 1]

    def test_empty_window(self, seeded_session):
        assert best_clients(seeded_session, datetime(2021, 1, 1), datetime(2021, 2, 1)) == []

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, seeded_session, limit):
        with pytest.raises(InvalidArgumentError):
            best_clients(seeded_session, AUGUST_START, AUGUST_END, limit=limit)
