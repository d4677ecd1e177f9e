"""Portfolio-level helpers built on top of the calculation engine.

These functions answer the questions a dashboard asks about a whole set of
loans: what the combined debt looks like, how much an extra monthly payment
saves, which repayment method is cheaper and how lifetime payments split
between principal and interest. ``record_payment`` turns a cash payment into a
``Payment`` split between interest and principal.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence
from uuid import uuid4

from .data_models import (
    AVALANCHE,
    SNOWBALL,
    ExtraPaymentImpact,
    Loan,
    Payment,
    PaymentBreakdown,
    StrategyComparison,
)
from .engine import (
    calculate_loan_summary,
    generate_amortization_schedule,
    simulate_repayment_strategy,
)
from .utils import months_between

COMBINED_LOAN_ID = "combined"
COMBINED_LOAN_NAME = "All Loans"


def combine_loans(loans: Sequence[Loan]) -> Loan:
    """Merge a portfolio into one synthetic loan.

    The merged loan has the summed principal and minimum payment, the
    principal-weighted average interest rate, the longest term, the earliest
    start date and every payment of every loan.
    """
    if not loans:
        raise ValueError("Cannot combine an empty list of loans")
    principal = sum((loan.principal for loan in loans), Decimal("0"))
    weighted_rate = sum((loan.principal * loan.interest_rate for loan in loans), Decimal("0")) / principal
    return Loan(
        id=COMBINED_LOAN_ID,
        name=COMBINED_LOAN_NAME,
        principal=principal,
        interest_rate=weighted_rate,
        loan_term=max(loan.loan_term for loan in loans),
        start_date=min(loan.start_date for loan in loans),
        minimum_payment=sum((loan.minimum_payment for loan in loans), Decimal("0")),
        payments_made=[payment for loan in loans for payment in loan.payments_made],
    )


def extra_payment_impact(
    loans: Sequence[Loan],
    additional_payment: Decimal,
    as_of: Optional[date] = None,
) -> ExtraPaymentImpact:
    """Compare the merged portfolio with and without ``additional_payment``."""
    today = as_of or date.today()
    combined = combine_loans(loans)
    baseline = calculate_loan_summary(combined, Decimal("0"), today)
    enhanced = calculate_loan_summary(combined, additional_payment, today)
    return ExtraPaymentImpact(
        baseline=baseline,
        enhanced=enhanced,
        interest_saved=baseline.total_interest - enhanced.total_interest,
        months_saved=months_between(enhanced.payoff_date, baseline.payoff_date),
        # Suggested ceiling: half the combined minimum payment
        suggested_max_additional=combined.minimum_payment * Decimal("0.5"),
    )


def compare_strategies(
    loans: Sequence[Loan],
    additional_payment: Decimal = Decimal("0"),
    as_of: Optional[date] = None,
) -> StrategyComparison:
    """Run both repayment methods and recommend the cheaper one.

    Avalanche is recommended only when it pays strictly less interest.
    """
    today = as_of or date.today()
    avalanche = simulate_repayment_strategy(loans, AVALANCHE, additional_payment, today)
    snowball = simulate_repayment_strategy(loans, SNOWBALL, additional_payment, today)
    if avalanche.total_interest_paid < snowball.total_interest_paid:
        recommended = AVALANCHE
    else:
        recommended = SNOWBALL
    return StrategyComparison(
        avalanche=avalanche,
        snowball=snowball,
        recommended=recommended,
        interest_savings=abs(avalanche.total_interest_paid - snowball.total_interest_paid),
    )


def record_payment(
    loan: Loan,
    amount: Decimal,
    on: Optional[date] = None,
    payment_id: Optional[str] = None,
) -> Loan:
    """Return a copy of ``loan`` with a payment of ``amount`` appended.

    One month of interest on the current balance is covered first; the rest
    goes to principal, capped at the balance. Any overpayment beyond the
    balance is booked as interest so that ``amount == principal + interest``.
    """
    remaining_principal = loan.current_balance
    interest = remaining_principal * (loan.interest_rate / Decimal(100)) / Decimal(12)
    principal = min(amount - interest, remaining_principal)
    payment = Payment(
        id=payment_id or uuid4().hex,
        date=on or date.today(),
        amount=amount,
        principal=principal,
        interest=amount - principal,
    )
    return replace(loan, payments_made=[*loan.payments_made, payment])


def payment_breakdown(
    loans: Sequence[Loan],
    additional_payment: Decimal = Decimal("0"),
    as_of: Optional[date] = None,
) -> PaymentBreakdown:
    """Split lifetime payments of all loans into principal and interest."""
    today = as_of or date.today()
    paid_principal = Decimal("0")
    paid_interest = Decimal("0")
    future_principal = Decimal("0")
    future_interest = Decimal("0")
    for loan in loans:
        paid_principal += loan.paid_principal
        paid_interest += loan.paid_interest
        for row in generate_amortization_schedule(loan, additional_payment, today):
            future_principal += row.principal
            future_interest += row.interest
    total_principal = paid_principal + future_principal
    return PaymentBreakdown(
        total_principal=total_principal,
        total_interest=paid_interest + future_interest,
        paid_principal=paid_principal,
        paid_interest=paid_interest,
        remaining_principal=total_principal - paid_principal,
    )
