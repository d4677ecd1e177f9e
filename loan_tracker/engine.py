"""Core calculation engine for the loan tracker.

This module implements the financial logic of the tracker: the fixed monthly
payment of an amortized loan, the month-by-month projection of a loan's
remaining balance, the summary that merges payment history with that
projection, and the simulation of paying down several loans at once under the
avalanche or snowball method.

Every function is a pure calculation over its arguments. The only ambient
input, the current date, is passed explicitly as ``as_of`` and defaults to
``date.today()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, getcontext
from typing import List, Optional, Sequence
from uuid import uuid4

from .data_models import (
    AVALANCHE,
    SNOWBALL,
    AmortizationData,
    AmortizationSchedule,
    Loan,
    LoanSummary,
    Payment,
    RepaymentStrategy,
)
from .utils import add_months

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

MAX_SCHEDULE_MONTHS = 1200  # 100 years
MAX_TOTAL_INTEREST = Decimal("1000000000")
RESIDUAL_BALANCE = Decimal("0.005")

STRATEGY_DESCRIPTIONS = {
    AVALANCHE: ("Avalanche Method", "Pays off loans with highest interest rate first"),
    SNOWBALL: ("Snowball Method", "Pays off loans with lowest balance first"),
}


def _monthly_rate(annual_rate: Decimal) -> Decimal:
    return (annual_rate / Decimal(100)) / Decimal(12)


def calculate_monthly_payment(principal: Decimal, annual_rate: Decimal, term: int) -> Decimal:
    """Return the equal monthly installment that amortizes a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate
    (``annual_rate / 100 / 12``) and ``n`` is the number of payments. When the
    interest rate is zero, the payment simplifies to ``P / n``.

    No validation is done; a zero ``term`` raises ``decimal.DivisionByZero``.
    """
    rate_per_month = _monthly_rate(annual_rate)
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def generate_amortization_schedule(
    loan: Loan,
    additional_payment: Decimal = Decimal("0"),
    as_of: Optional[date] = None,
) -> AmortizationSchedule:
    """Project the remaining payments of ``loan``.

    Parameters
    ----------
    loan: Loan
        The loan to project. Principal already repaid through
        ``loan.payments_made`` is subtracted from the starting balance.
    additional_payment: Decimal
        Amount paid on top of the computed installment every month.
    as_of: date, optional
        The current date. Projections never start in the past: the first row
        is dated ``max(loan.start_date, as_of)``.

    Returns
    -------
    AmortizationSchedule
        One row per month until the balance reaches zero. Empty when the loan
        is already paid off. The projection stops after
        ``MAX_SCHEDULE_MONTHS`` rows; in that case ``truncated`` is set.
    """
    today = as_of or date.today()
    rate_per_month = _monthly_rate(loan.interest_rate)
    base_payment = calculate_monthly_payment(loan.principal, loan.interest_rate, loan.loan_term)
    total_payment = base_payment + additional_payment

    balance = loan.current_balance
    if balance <= 0:
        return AmortizationSchedule()

    first_date = max(loan.start_date, today)
    rows: List[AmortizationData] = []
    while balance > 0 and len(rows) < MAX_SCHEDULE_MONTHS:
        interest_payment = balance * rate_per_month
        # The last installment only pays what is left
        principal_payment = min(total_payment - interest_payment, balance)
        # A sub-cent leftover would otherwise become a phantom extra period
        if balance - principal_payment < RESIDUAL_BALANCE:
            principal_payment = balance
        balance -= principal_payment
        rows.append(
            AmortizationData(
                date=add_months(first_date, len(rows)),
                payment=principal_payment + interest_payment,
                principal=principal_payment,
                interest=interest_payment,
                remaining_balance=balance,
            )
        )

    truncated = balance > 0
    if truncated:
        logger.warning(
            "Schedule for loan %s stopped after %d months with %.2f still outstanding",
            loan.id,
            len(rows),
            balance,
        )
    return AmortizationSchedule(rows=rows, truncated=truncated)


def calculate_loan_summary(
    loan: Loan,
    additional_payment: Decimal = Decimal("0"),
    as_of: Optional[date] = None,
) -> LoanSummary:
    """Combine a loan's payment history with its projected schedule.

    ``progress_percentage`` divides by ``loan.principal``; callers must not
    pass a zero-principal loan.
    """
    today = as_of or date.today()
    schedule = generate_amortization_schedule(loan, additional_payment, today)
    paid_principal = loan.paid_principal
    future_interest = sum((row.interest for row in schedule), Decimal("0"))
    total_interest = loan.paid_interest + future_interest

    if schedule.rows:
        payoff_date = schedule.rows[-1].date
    elif loan.payments_made:
        payoff_date = loan.payments_made[-1].date
    else:
        payoff_date = today

    return LoanSummary(
        total_principal=loan.principal,
        total_interest=total_interest,
        total_payments=loan.principal + total_interest,
        payoff_date=payoff_date,
        monthly_payment=loan.minimum_payment + additional_payment,
        remaining_balance=loan.principal - paid_principal,
        progress_percentage=paid_principal / loan.principal * 100,
        truncated=schedule.truncated,
    )


@dataclass
class _ActiveLoan:
    """Working copy of a loan during a strategy simulation."""

    loan: Loan
    balance: Decimal

    def apply(self, on: date, principal: Decimal, interest: Decimal) -> None:
        self.loan.payments_made.append(
            Payment(
                id=uuid4().hex,
                date=on,
                amount=principal + interest,
                principal=principal,
                interest=interest,
            )
        )
        self.balance -= principal


def _prioritize(loans: Sequence[Loan], method: str) -> List[Loan]:
    """Order loans by the method's priority. Ties keep portfolio order."""
    if method == AVALANCHE:
        return sorted(loans, key=lambda loan: loan.interest_rate, reverse=True)
    return sorted(loans, key=lambda loan: loan.current_balance)


def simulate_repayment_strategy(
    loans: Sequence[Loan],
    method: str,
    additional_payment: Decimal = Decimal("0"),
    as_of: Optional[date] = None,
) -> RepaymentStrategy:
    """Simulate paying off ``loans`` month by month under ``method``.

    Every month each active loan receives its minimum payment. Whatever is in
    the extra pool (``additional_payment`` plus the minimum payments of loans
    already retired) then goes to the principal of the highest-priority loan
    as a zero-interest payment. Priority is fixed once at the start: highest
    interest rate first for avalanche, lowest balance first for snowball.

    The caller's loans are never modified. The simulation stops early, with
    ``truncated`` set, once total interest exceeds ``MAX_TOTAL_INTEREST`` or
    after a month in which no active balance went down. Portfolios that keep
    shrinking run until every loan is paid, however long that takes.
    """
    if method not in STRATEGY_DESCRIPTIONS:
        raise ValueError(f"Unknown repayment method: {method}")
    name, description = STRATEGY_DESCRIPTIONS[method]
    start_date = as_of or date.today()
    current_date = start_date

    payoff_order: List[str] = []
    extra_payment = additional_payment
    total_interest_paid = Decimal("0")

    active: List[_ActiveLoan] = []
    for loan in _prioritize(loans, method):
        copy = replace(loan, payments_made=list(loan.payments_made))
        balance = copy.current_balance
        if balance <= 0:
            payoff_order.append(copy.name)
            extra_payment += copy.minimum_payment
        else:
            active.append(_ActiveLoan(loan=copy, balance=balance))

    months = 0
    truncated = False
    while active:
        if total_interest_paid > MAX_TOTAL_INTEREST:
            truncated = True
            break

        starting = {id(state): state.balance for state in active}
        still_active: List[_ActiveLoan] = []
        for state in active:
            interest_payment = state.balance * _monthly_rate(state.loan.interest_rate)
            principal_payment = min(state.loan.minimum_payment - interest_payment, state.balance)
            state.apply(current_date, principal_payment, interest_payment)
            total_interest_paid += interest_payment
            if state.balance <= 0:
                payoff_order.append(state.loan.name)
                extra_payment += state.loan.minimum_payment
            else:
                still_active.append(state)
        active = still_active

        if active and extra_payment > 0:
            target = active[0]
            target.apply(current_date, min(extra_payment, target.balance), Decimal("0"))
            if target.balance <= 0:
                payoff_order.append(target.loan.name)
                extra_payment += target.loan.minimum_payment
                active.pop(0)

        months += 1
        current_date = add_months(start_date, months)
        if active and len(active) == len(starting) and all(
            state.balance >= starting[id(state)] for state in active
        ):
            # No balance went down this month so none ever will
            truncated = True
            break

    if truncated:
        logger.warning(
            "%s simulation stopped after %d months with %d loan(s) unpaid",
            name,
            months,
            len(active),
        )

    return RepaymentStrategy(
        name=name,
        description=description,
        total_interest_paid=total_interest_paid,
        payoff_date=current_date,
        loan_payoff_order=payoff_order,
        months=months,
        truncated=truncated,
    )
