import os

# The web module opens its store at import time; keep it in memory for tests
os.environ.setdefault("LOAN_TRACKER_DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import Loan, Payment
from loan_tracker.store import LoanStore

AS_OF = date(2024, 1, 15)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def make_loan():
    """Factory for loans with sensible defaults and Decimal conversion."""

    def _make(
        name="Loan",
        principal="10000",
        rate="5",
        term=60,
        start=date(2020, 1, 1),
        minimum="188.71",
        payments=None,
        loan_id=None,
        **extra,
    ):
        return Loan(
            id=loan_id or name.lower().replace(" ", "-"),
            name=name,
            principal=Decimal(principal),
            interest_rate=Decimal(rate),
            loan_term=term,
            start_date=start,
            minimum_payment=Decimal(minimum),
            payments_made=list(payments or []),
            **extra,
        )

    return _make


@pytest.fixture
def make_payment():
    def _make(principal, interest="0", on=date(2023, 6, 1), payment_id="p1"):
        principal = Decimal(principal)
        interest = Decimal(interest)
        return Payment(id=payment_id, date=on, amount=principal + interest, principal=principal, interest=interest)

    return _make


@pytest.fixture
def sample_loan(make_loan):
    return make_loan(name="Stafford")


@pytest.fixture
def store(tmp_path):
    return LoanStore(f"sqlite:///{tmp_path / 'loans.sqlite3'}")
