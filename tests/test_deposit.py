"""
Tests for deposit.py - the 25% deposit cap.
"""

from decimal import Decimal

import pytest

from contractbook.deposit import DepositGuard, parse_amount
from contractbook.errors import ErrorKind, InvalidArgumentError, TransientError

from fake_repository import InMemoryLedger


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Client 1 owes 1000 across non-terminated contracts, 5000 on a terminated one."""
    ledger = InMemoryLedger()
    ledger.add_profile(1, "client", "10")
    ledger.add_profile(2, "client", "0")
    ledger.add_profile(7, "contractor", "0")
    ledger.add_contract(10, 1, 7, "in_progress")
    ledger.add_contract(11, 1, 7, "new")
    ledger.add_contract(12, 1, 7, "terminated")
    ledger.add_job(1, 10, "400")
    ledger.add_job(2, 10, "350", paid=True)
    ledger.add_job(3, 11, "250")
    ledger.add_job(4, 12, "5000")
    return ledger


@pytest.fixture
def guard(ledger):
    return DepositGuard(ledger.unit_of_work)


class TestDepositCap:
    """Deposits are capped at 25% of outstanding job prices."""

    def test_deposit_at_cap_succeeds(self, guard, ledger):
        result = guard.deposit(1, 250)

        assert result.ok
        assert result.value == Decimal("260")
        assert ledger.balance(1) == Decimal("260")

    def test_deposit_over_cap_fails(self, guard, ledger):
        result = guard.deposit(1, 251)

        assert result.kind is ErrorKind.CONFLICT
        assert result.reason == "deposit exceeds 25% cap"
        assert result.error.status_code == 409
        assert ledger.balance(1) == Decimal("10")

    def test_smallest_step_over_cap_fails(self, guard):
        assert guard.deposit(1, Decimal("250.01")).kind is ErrorKind.CONFLICT

    def test_cap_is_not_cumulative(self, guard, ledger):
        """Each deposit is checked on its own against the current obligations."""
        assert guard.deposit(1, 250).ok
        assert guard.deposit(1, 250).ok
        assert ledger.balance(1) == Decimal("510")

    def test_terminated_contracts_do_not_count(self, ledger, guard):
        ledger.add_contract(11, 1, 7, "terminated")

        # Only contract 10 remains open: (400 + 350) * 0.25
        assert guard.deposit(1, Decimal("187.50")).ok
        assert guard.deposit(1, Decimal("187.51")).kind is ErrorKind.CONFLICT

    def test_zero_outstanding_forbids_any_deposit(self, guard, ledger):
        result = guard.deposit(2, Decimal("0.01"))

        assert result.kind is ErrorKind.CONFLICT
        assert ledger.balance(2) == Decimal("0")

    def test_custom_cap_ratio_in_message(self, ledger):
        guard = DepositGuard(ledger.unit_of_work, cap_ratio=Decimal("0.5"))

        assert guard.deposit(1, 500).ok
        assert guard.deposit(1, 501).reason == "deposit exceeds 50% cap"


class TestDepositValidation:
    @pytest.mark.parametrize("amount", [None, 0, -5, "abc", "", "NaN", "Infinity", True])
    def test_invalid_amounts(self, guard, ledger, amount):
        result = guard.deposit(1, amount)

        assert result.kind is ErrorKind.INVALID_ARGUMENT
        assert result.error.status_code == 400
        assert ledger.commits == 0
        assert ledger.rollbacks == 0

    def test_unknown_client(self, guard):
        assert guard.deposit(404, 10).kind is ErrorKind.NOT_FOUND

    def test_contractor_cannot_deposit(self, guard):
        assert guard.deposit(7, 10).kind is ErrorKind.NOT_FOUND

    def test_validation_precedes_lookup(self, guard):
        assert guard.deposit(404, -1).kind is ErrorKind.INVALID_ARGUMENT


class TestParseAmount:
    def test_accepts_numeric_strings(self):
        assert parse_amount("12.50") == Decimal("12.50")
        assert parse_amount(" 3 ") == Decimal("3")

    def test_accepts_floats_by_their_repr(self):
        assert parse_amount(0.1) == Decimal("0.1")

    def test_rejects_negative_zero(self):
        with pytest.raises(InvalidArgumentError):
            parse_amount("-0")

    @pytest.mark.parametrize("amount", ["0.001", "12.345", Decimal("1.005")])
    def test_rejects_fractions_of_a_cent(self, amount):
        with pytest.raises(InvalidArgumentError):
            parse_amount(amount)

    def test_trailing_zeros_are_whole_cents(self):
        assert parse_amount("1.500") == Decimal("1.5")


class TestDepositAtomicity:
    def test_transient_failure_leaves_balance(self, guard, ledger):
        ledger.inject_failure("credit", TransientError("database is locked"))

        result = guard.deposit(1, 100)

        assert result.kind is ErrorKind.TRANSIENT
        assert ledger.balance(1) == Decimal("10")

    def test_unexpected_exception_becomes_internal_result(self, guard, ledger):
        ledger.inject_failure("credit", KeyError(1))

        result = guard.deposit(1, 100)

        assert result.kind is ErrorKind.INTERNAL
        assert result.error.status_code == 500
        assert ledger.balance(1) == Decimal("10")
        assert ledger.rollbacks == 1

    def test_retry_then_succeed(self, ledger, quiet_logger):
        ledger.inject_failure("outstanding_total", TransientError("database is locked"), times=1)
        guard = DepositGuard(ledger.unit_of_work, max_retries=1, retry_delay=0.001)

        assert guard.deposit(1, 100).ok
        assert ledger.balance(1) == Decimal("110")
        assert quiet_logger.metrics["transient_retries"] == 1
