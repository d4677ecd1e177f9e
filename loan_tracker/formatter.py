"""Output helpers for the loan tracker.

This module provides display formatting for money, dates and percentages, and
simple functions that render schedules, summaries and strategy comparisons in
a tabular text format using built-in printing.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from .data_models import (
    AVALANCHE,
    AmortizationData,
    ExtraPaymentImpact,
    Loan,
    LoanSummary,
    StrategyComparison,
)

CENT = Decimal("0.01")


def format_currency(amount: Decimal) -> str:
    """Format a money amount as US dollars, e.g. ``$1,234.57``."""
    rounded = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def format_date(value: date) -> str:
    """Format a date as ``January 5, 2024``."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_percentage(value: Decimal) -> str:
    """Format a value already expressed in percent, e.g. ``12.35%``."""
    rounded = Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{rounded:.2f}%"


def print_summary(summary: LoanSummary, title: str = "Summary") -> None:
    """Print a loan summary in a human-readable format."""
    print(title)
    print("-" * 72)
    print(f"Total principal    : {format_currency(summary.total_principal)}")
    print(f"Total interest     : {format_currency(summary.total_interest)}")
    print(f"Total payments     : {format_currency(summary.total_payments)}")
    print(f"Monthly payment    : {format_currency(summary.monthly_payment)}")
    print(f"Remaining balance  : {format_currency(summary.remaining_balance)}")
    print(f"Progress           : {format_percentage(summary.progress_percentage)}")
    print(f"Payoff date        : {format_date(summary.payoff_date)}")
    if summary.truncated:
        print("Warning            : payment does not cover interest; projection stopped at 100 years")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationData]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Month", "Date", "Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for month, row in enumerate(schedule, start=1):
        print(
            "\t".join(
                [
                    str(month),
                    row.date.isoformat(),
                    f"{row.payment:.2f}",
                    f"{row.principal:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.remaining_balance:.2f}",
                ]
            )
        )


def print_loans(loans: Sequence[Loan], summaries: Sequence[LoanSummary]) -> None:
    """Print one line per loan with its balance, paid amount and progress."""
    print(f"{'Id':34s} {'Name':20s} {'Rate':>7s} {'Balance':>14s} {'Paid':>14s} {'Progress':>9s}")
    for loan, summary in zip(loans, summaries):
        print(
            f"{loan.id:34s} {loan.name[:20]:20s} {loan.interest_rate:6.2f}% "
            f"{format_currency(summary.remaining_balance):>14s} "
            f"{format_currency(loan.total_paid):>14s} "
            f"{format_percentage(summary.progress_percentage):>9s}"
        )


def print_strategy_comparison(comparison: StrategyComparison) -> None:
    """Print avalanche and snowball results side by side."""
    avalanche = comparison.avalanche
    snowball = comparison.snowball
    print("Repayment strategies")
    print("=" * 72)
    print(f"{'Metric':20s} {avalanche.name:>24s} {snowball.name:>24s}")
    print(
        f"{'Total interest':20s} {format_currency(avalanche.total_interest_paid):>24s} "
        f"{format_currency(snowball.total_interest_paid):>24s}"
    )
    print(f"{'Payoff date':20s} {format_date(avalanche.payoff_date):>24s} {format_date(snowball.payoff_date):>24s}")
    print(f"{'Months':20s} {avalanche.months:>24d} {snowball.months:>24d}")
    print("-" * 72)
    for strategy in (avalanche, snowball):
        print(f"{strategy.name}: {strategy.description}")
        for position, name in enumerate(strategy.loan_payoff_order, start=1):
            print(f"  {position}. {name}")
        if strategy.truncated:
            print("  Simulation stopped early: minimum payments do not cover interest")
    print("=" * 72)
    recommended = avalanche if comparison.recommended == AVALANCHE else snowball
    print(f"Recommended: {recommended.name} (saves {format_currency(comparison.interest_savings)})")


def print_impact(impact: ExtraPaymentImpact) -> None:
    """Print how an extra monthly payment changes the combined payoff."""
    print("Extra payment impact")
    print("-" * 72)
    print(f"Baseline payoff    : {format_date(impact.baseline.payoff_date)}")
    print(f"New payoff         : {format_date(impact.enhanced.payoff_date)}")
    print(f"Months saved       : {impact.months_saved}")
    print(f"Interest saved     : {format_currency(impact.interest_saved)}")
    print(f"Suggested maximum  : {format_currency(impact.suggested_max_additional)}")
    print("-" * 72)
