"""Data models for the loan tracker.

This module defines dataclasses representing the different entities used by the
tracker: loans and the payments recorded against them, rows of an amortization
schedule, and the summary and strategy records derived from them. Using
dataclasses makes it easy to construct, inspect and serialize these
structures.

All records are treated as immutable by convention. The engine never changes
a ``Loan`` it is given; helpers that "add" a payment return a new ``Loan``.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterator, List, Optional

AVALANCHE = "avalanche"
SNOWBALL = "snowball"
REPAYMENT_METHODS = (AVALANCHE, SNOWBALL)

LOAN_CATEGORIES = ("federal", "private", "personal", "other")


@dataclass
class Payment:
    """A payment recorded against a loan.

    Attributes
    ----------
    id: str
        Identifier, unique within the loan's history.
    date: date
        The day the payment was applied.
    amount: Decimal
        Total cash paid. Equals ``principal + interest``.
    principal: Decimal
        Portion that reduced the balance.
    interest: Decimal
        Portion that covered accrued interest. Extra payments made by the
        strategy simulator carry zero interest.
    """

    id: str
    date: date
    amount: Decimal
    principal: Decimal
    interest: Decimal


@dataclass
class Loan:
    """A single loan and its payment history.

    ``category``, ``due_day`` and ``notes`` are carried for the benefit of
    callers; no calculation reads them.
    """

    id: str
    name: str
    principal: Decimal
    interest_rate: Decimal  # annual nominal interest rate in percent
    loan_term: int  # term in months
    start_date: date
    minimum_payment: Decimal
    payments_made: List[Payment] = field(default_factory=list)
    category: Optional[str] = None
    due_day: Optional[int] = None
    notes: Optional[str] = None

    @property
    def paid_principal(self) -> Decimal:
        return sum((p.principal for p in self.payments_made), Decimal("0"))

    @property
    def paid_interest(self) -> Decimal:
        return sum((p.interest for p in self.payments_made), Decimal("0"))

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments_made), Decimal("0"))

    @property
    def current_balance(self) -> Decimal:
        return self.principal - self.paid_principal


@dataclass
class AmortizationData:
    """One month of a projected amortization schedule."""

    date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    remaining_balance: Decimal


@dataclass
class AmortizationSchedule:
    """Ordered schedule rows plus a flag telling whether the row cap was hit.

    The object behaves like a read-only sequence of ``AmortizationData``, so
    callers can iterate, index and take ``len()`` directly. ``truncated`` is
    True when the projection stopped at the safety cap with a balance still
    outstanding (the payment never covered the accruing interest).
    """

    rows: List[AmortizationData] = field(default_factory=list)
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[AmortizationData]:
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]


@dataclass
class LoanSummary:
    """Aggregate metrics for one loan: history plus projection."""

    total_principal: Decimal
    total_interest: Decimal
    total_payments: Decimal
    payoff_date: date
    monthly_payment: Decimal
    remaining_balance: Decimal
    progress_percentage: Decimal
    truncated: bool = False


@dataclass
class RepaymentStrategy:
    """Outcome of simulating a portfolio payoff under one method.

    ``loan_payoff_order`` lists loan names in the order they reached a zero
    balance. ``months`` is the number of simulated months.
    """

    name: str
    description: str
    total_interest_paid: Decimal
    payoff_date: date
    loan_payoff_order: List[str]
    months: int = 0
    truncated: bool = False


@dataclass
class ExtraPaymentImpact:
    """Effect of an additional monthly payment on the whole portfolio.

    Both summaries are computed on the merged portfolio loan. A positive
    ``months_saved`` means the enhanced plan finishes earlier.
    """

    baseline: LoanSummary
    enhanced: LoanSummary
    interest_saved: Decimal
    months_saved: int
    suggested_max_additional: Decimal


@dataclass
class StrategyComparison:
    """Avalanche and snowball results side by side."""

    avalanche: RepaymentStrategy
    snowball: RepaymentStrategy
    recommended: str  # "avalanche" or "snowball"
    interest_savings: Decimal


@dataclass
class PaymentBreakdown:
    """Lifetime principal/interest split across all loans."""

    total_principal: Decimal
    total_interest: Decimal
    paid_principal: Decimal
    paid_interest: Decimal
    remaining_principal: Decimal
