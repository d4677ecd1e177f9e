"""Command-line interface for the loan tracker.

This module uses the ``click`` library to implement a multi-command interface.
Users can compute payments, schedules and summaries for an ad-hoc loan, keep a
portfolio of loans in a database, record payments against them and compare
repayment strategies across the whole portfolio. Schedules can be exported to
JSON/CSV files and portfolios imported from or exported to JSON.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import click

from .data_models import LOAN_CATEGORIES, AmortizationSchedule, Loan, LoanSummary
from .engine import calculate_loan_summary, calculate_monthly_payment, generate_amortization_schedule
from .formatter import (
    format_currency,
    print_impact,
    print_loans,
    print_schedule,
    print_strategy_comparison,
    print_summary,
)
from .portfolio import combine_loans, compare_strategies, extra_payment_impact, record_payment
from .serialization import export_loans, import_loans
from .store import LoanNotFoundError, LoanStore, create_store_from_env
from .utils import decimal_from_str, parse_iso_date

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("25000") and shorthand with ``k``/``m`` suffixes
    (e.g., "25k" meaning 25_000). Returns a Decimal.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def _amount_callback(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    return parse_amount(value)


def _date_callback(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_loan_from_options(
    principal: Decimal,
    rate: Decimal,
    term: int,
    start_date: date,
    minimum_payment: Optional[Decimal] = None,
    name: str = "Loan",
    loan_id: Optional[str] = None,
    category: Optional[str] = None,
    due_day: Optional[int] = None,
    notes: Optional[str] = None,
) -> Loan:
    """Build a ``Loan`` from parsed command-line values.

    When no minimum payment is given, the amortized monthly payment rounded to
    cents is used.
    """
    if principal <= 0:
        raise click.BadParameter("Principal must be positive")
    if rate < 0:
        raise click.BadParameter("Interest rate cannot be negative")
    if term <= 0:
        raise click.BadParameter("Term must be a positive number of months")
    if minimum_payment is None:
        minimum_payment = calculate_monthly_payment(principal, rate, term).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    elif minimum_payment <= 0:
        raise click.BadParameter("Minimum payment must be positive")
    return Loan(
        id=loan_id or uuid4().hex,
        name=name,
        principal=principal,
        interest_rate=rate,
        loan_term=term,
        start_date=start_date,
        minimum_payment=minimum_payment,
        category=category,
        due_day=due_day,
        notes=notes,
    )


def loan_options(func):
    """Attach the options that describe a single loan."""
    options = [
        click.option("--principal", "-p", "principal", required=True, callback=_amount_callback, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, callback=_amount_callback, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=click.IntRange(min=1), help="Loan term in months"),
        click.option("--start-date", "-s", "start_date", required=True, callback=_date_callback, help="Loan start date (YYYY-MM-DD)"),
        click.option("--minimum-payment", "-m", "minimum_payment", callback=_amount_callback, help="Minimum monthly payment (defaults to the amortized payment)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def projection_options(func):
    """Attach the extra-payment and reference-date options."""
    func = click.option(
        "--as-of", "as_of", callback=_date_callback, help="Reference date for projections (YYYY-MM-DD, default today)"
    )(func)
    func = click.option(
        "--extra", "-e", "extra", default="0", callback=_amount_callback, help="Additional payment every month"
    )(func)
    return func


def schedule_to_dicts(schedule: AmortizationSchedule) -> list:
    return [
        {
            "date": row.date.isoformat(),
            "payment": float(row.payment),
            "principal": float(row.principal),
            "interest": float(row.interest),
            "remaining_balance": float(row.remaining_balance),
        }
        for row in schedule
    ]


def summary_to_dict(summary: LoanSummary) -> Dict[str, Any]:
    return {
        "total_principal": float(summary.total_principal),
        "total_interest": float(summary.total_interest),
        "total_payments": float(summary.total_payments),
        "payoff_date": summary.payoff_date.isoformat(),
        "monthly_payment": float(summary.monthly_payment),
        "remaining_balance": float(summary.remaining_balance),
        "progress_percentage": float(summary.progress_percentage),
        "truncated": summary.truncated,
    }


def export_to_json(path: Path, schedule: AmortizationSchedule, summary: LoanSummary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary_to_dict(summary), "schedule": schedule_to_dicts(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: AmortizationSchedule) -> None:
    """Export schedule to a CSV file."""
    header = ["Month", "Date", "Payment", "Principal", "Interest", "Remaining_Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for month, row in enumerate(schedule, start=1):
            writer.writerow(
                [
                    month,
                    row.date.isoformat(),
                    float(row.payment),
                    float(row.principal),
                    float(row.interest),
                    float(row.remaining_balance),
                ]
            )


def _echo_schedule(schedule: AmortizationSchedule) -> None:
    # Limit schedule length printed to avoid flooding the terminal
    if len(schedule) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(schedule)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(schedule.rows[:MAX_PRINTED_ROWS])
    else:
        print_schedule(schedule)


def _get_store(ctx: click.Context) -> LoanStore:
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        obj["store"] = create_store_from_env(obj.get("database"))
    return obj["store"]


def _load_portfolio(ctx: click.Context) -> list:
    loans = _get_store(ctx).load_loans()
    if not loans:
        raise click.ClickException("No loans stored; add one with 'loan-tracker add'")
    return loans


@click.group()
@click.option(
    "--database",
    "database",
    envvar="LOAN_TRACKER_DATABASE_URL",
    help="SQLAlchemy URL of the portfolio store (default: local SQLite file)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, database: Optional[str], verbose: bool) -> None:
    """Track loans, project payoff dates and compare repayment strategies."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["database"] = database


@cli.command()
@click.option("--principal", "-p", "principal", required=True, callback=_amount_callback, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, callback=_amount_callback, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=click.IntRange(min=1), help="Loan term in months")
def payment(principal: Decimal, rate: Decimal, term: int) -> None:
    """Compute the monthly payment of an amortized loan."""
    click.echo(f"Monthly payment: {format_currency(calculate_monthly_payment(principal, rate, term))}")


@cli.command()
@loan_options
@projection_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: Decimal,
    rate: Decimal,
    term: int,
    start_date: date,
    minimum_payment: Optional[Decimal],
    extra: Decimal,
    as_of: Optional[date],
    output: Optional[str],
) -> None:
    """Compute and print the amortization schedule of a loan."""
    loan = build_loan_from_options(principal, rate, term, start_date, minimum_payment)
    schedule_data = generate_amortization_schedule(loan, extra, as_of)
    summary_data = calculate_loan_summary(loan, extra, as_of)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_data, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule_data)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(summary_data)
        _echo_schedule(schedule_data)


@cli.command()
@loan_options
@projection_options
def summary(
    principal: Decimal,
    rate: Decimal,
    term: int,
    start_date: date,
    minimum_payment: Optional[Decimal],
    extra: Decimal,
    as_of: Optional[date],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    loan = build_loan_from_options(principal, rate, term, start_date, minimum_payment)
    print_summary(calculate_loan_summary(loan, extra, as_of))


@cli.command()
@click.option("--name", "-n", "name", required=True, help="Display name of the loan")
@loan_options
@click.option("--category", type=click.Choice(LOAN_CATEGORIES), help="Loan category")
@click.option("--due-day", "due_day", type=click.IntRange(1, 31), help="Day of month the payment is due")
@click.option("--notes", help="Free-form notes")
@click.pass_context
def add(
    ctx: click.Context,
    name: str,
    principal: Decimal,
    rate: Decimal,
    term: int,
    start_date: date,
    minimum_payment: Optional[Decimal],
    category: Optional[str],
    due_day: Optional[int],
    notes: Optional[str],
) -> None:
    """Add a loan to the stored portfolio."""
    loan = build_loan_from_options(
        principal,
        rate,
        term,
        start_date,
        minimum_payment,
        name=name,
        category=category,
        due_day=due_day,
        notes=notes,
    )
    _get_store(ctx).add_loan(loan)
    logger.info("Added loan %s (%s)", loan.id, loan.name)
    click.echo(f"Added loan {loan.id} with minimum payment {format_currency(loan.minimum_payment)}")


@cli.command(name="list")
@click.option("--as-of", "as_of", callback=_date_callback, help="Reference date (YYYY-MM-DD, default today)")
@click.pass_context
def list_loans(ctx: click.Context, as_of: Optional[date]) -> None:
    """List stored loans with their balance and progress."""
    loans = _get_store(ctx).load_loans()
    if not loans:
        click.echo("No loans stored.")
        return
    print_loans(loans, [calculate_loan_summary(loan, Decimal("0"), as_of) for loan in loans])


@cli.command()
@click.argument("loan_id")
@projection_options
@click.pass_context
def show(ctx: click.Context, loan_id: str, extra: Decimal, as_of: Optional[date]) -> None:
    """Show the summary and remaining schedule of a stored loan."""
    try:
        loan = _get_store(ctx).get_loan(loan_id)
    except LoanNotFoundError as exc:
        raise click.ClickException(str(exc))
    print_summary(calculate_loan_summary(loan, extra, as_of), title=loan.name)
    _echo_schedule(generate_amortization_schedule(loan, extra, as_of))


@cli.command()
@click.argument("loan_id")
@click.argument("amount", callback=_amount_callback)
@click.option("--date", "paid_on", callback=_date_callback, help="Payment date (YYYY-MM-DD, default today)")
@click.pass_context
def pay(ctx: click.Context, loan_id: str, amount: Decimal, paid_on: Optional[date]) -> None:
    """Record a payment against a stored loan."""
    if amount <= 0:
        raise click.BadParameter("Payment amount must be positive")
    store = _get_store(ctx)
    try:
        loan = record_payment(store.get_loan(loan_id), amount, paid_on)
        store.update_loan(loan)
    except LoanNotFoundError as exc:
        raise click.ClickException(str(exc))
    recorded = loan.payments_made[-1]
    click.echo(
        f"Recorded {format_currency(recorded.amount)}: "
        f"{format_currency(recorded.principal)} principal, {format_currency(recorded.interest)} interest"
    )


@cli.command()
@click.argument("loan_id")
@click.pass_context
def remove(ctx: click.Context, loan_id: str) -> None:
    """Remove a loan from the stored portfolio."""
    try:
        _get_store(ctx).remove_loan(loan_id)
    except LoanNotFoundError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Removed loan {loan_id}")


@cli.command()
@click.confirmation_option(prompt="Delete every stored loan?")
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Delete the whole stored portfolio."""
    _get_store(ctx).clear_loans()
    click.echo("All loans cleared")


@cli.command()
@projection_options
@click.pass_context
def dashboard(ctx: click.Context, extra: Decimal, as_of: Optional[date]) -> None:
    """Summarize the whole portfolio as one combined loan."""
    loans = _load_portfolio(ctx)
    print_summary(calculate_loan_summary(combine_loans(loans), extra, as_of), title="All Loans")
    print_loans(loans, [calculate_loan_summary(loan, Decimal("0"), as_of) for loan in loans])


@cli.command()
@projection_options
@click.pass_context
def strategies(ctx: click.Context, extra: Decimal, as_of: Optional[date]) -> None:
    """Compare the avalanche and snowball repayment methods."""
    print_strategy_comparison(compare_strategies(_load_portfolio(ctx), extra, as_of))


@cli.command()
@projection_options
@click.pass_context
def impact(ctx: click.Context, extra: Decimal, as_of: Optional[date]) -> None:
    """Show how an extra monthly payment changes the combined payoff."""
    print_impact(extra_payment_impact(_load_portfolio(ctx), extra, as_of))


@cli.command(name="export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_command(ctx: click.Context, path: Path) -> None:
    """Export the stored portfolio to a JSON file."""
    loans = _get_store(ctx).load_loans()
    export_loans(path, loans)
    click.echo(f"Exported {len(loans)} loan(s) to {path}")


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_command(ctx: click.Context, path: Path) -> None:
    """Replace the stored portfolio with loans from a JSON file."""
    try:
        loans = import_loans(path)
    except (ValueError, KeyError, TypeError) as exc:
        raise click.ClickException(f"Could not import {path}: {exc}")
    _get_store(ctx).save_loans(loans)
    click.echo(f"Imported {len(loans)} loan(s) from {path}")


if __name__ == "__main__":
    cli()
