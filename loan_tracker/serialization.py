"""JSON interchange format for loan portfolios.

Loans are stored as plain dictionaries with camelCase keys, the layout used by
exported portfolio files and by the persistence layer. Money values are
written as JSON numbers and read back into ``Decimal`` through their string
form, dates as ISO ``YYYY-MM-DD`` strings.

Loading performs no structural validation: a missing key raises ``KeyError``
and a malformed value raises ``ValueError``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .data_models import Loan, Payment
from .utils import decimal_from_str, parse_iso_date


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "date": payment.date.isoformat(),
        "amount": float(payment.amount),
        "principal": float(payment.principal),
        "interest": float(payment.interest),
    }


def payment_from_dict(data: Dict[str, Any]) -> Payment:
    return Payment(
        id=str(data["id"]),
        date=parse_iso_date(data["date"]),
        amount=decimal_from_str(str(data["amount"])),
        principal=decimal_from_str(str(data["principal"])),
        interest=decimal_from_str(str(data["interest"])),
    )


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    """Convert a ``Loan`` into a JSON-serialisable dictionary."""
    data: Dict[str, Any] = {
        "id": loan.id,
        "name": loan.name,
        "principal": float(loan.principal),
        "interestRate": float(loan.interest_rate),
        "loanTerm": loan.loan_term,
        "startDate": loan.start_date.isoformat(),
        "minimumPayment": float(loan.minimum_payment),
        "paymentsMade": [payment_to_dict(p) for p in loan.payments_made],
    }
    # Optional metadata is only written when present
    if loan.category is not None:
        data["category"] = loan.category
    if loan.due_day is not None:
        data["dueDay"] = loan.due_day
    if loan.notes is not None:
        data["notes"] = loan.notes
    return data


def loan_from_dict(data: Dict[str, Any]) -> Loan:
    """Build a ``Loan`` from a dictionary produced by ``loan_to_dict``."""
    due_day = data.get("dueDay")
    return Loan(
        id=str(data["id"]),
        name=str(data["name"]),
        principal=decimal_from_str(str(data["principal"])),
        interest_rate=decimal_from_str(str(data["interestRate"])),
        loan_term=int(data["loanTerm"]),
        start_date=parse_iso_date(data["startDate"]),
        minimum_payment=decimal_from_str(str(data["minimumPayment"])),
        payments_made=[payment_from_dict(p) for p in data.get("paymentsMade", [])],
        category=data.get("category"),
        due_day=int(due_day) if due_day is not None else None,
        notes=data.get("notes"),
    )


def dumps_loans(loans: Iterable[Loan], indent: int | None = None) -> str:
    return json.dumps([loan_to_dict(loan) for loan in loans], indent=indent)


def loans_from_payload(data: Any) -> List[Loan]:
    """Build loans from already-decoded JSON data (a list of loan dicts)."""
    if not isinstance(data, list):
        raise ValueError("Loan data must be a JSON array")
    return [loan_from_dict(item) for item in data]


def loads_loans(text: str) -> List[Loan]:
    """Parse a JSON array of loans.

    Raises
    ------
    ValueError
        If the text is not valid JSON or the top-level value is not an array.
    """
    return loans_from_payload(json.loads(text))


def export_loans(path: Path, loans: Iterable[Loan]) -> None:
    """Write loans to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        f.write(dumps_loans(loans, indent=2))


def import_loans(path: Path) -> List[Loan]:
    """Read loans from a JSON file written by ``export_loans``."""
    with path.open("r", encoding="utf-8") as f:
        return loads_loans(f.read())
