import logging
import os
from decimal import Decimal
from uuid import uuid4

from flask import Flask, abort, jsonify, request

from loan_tracker.engine import (
    calculate_loan_summary,
    calculate_monthly_payment,
    generate_amortization_schedule,
)
from loan_tracker.main import schedule_to_dicts, summary_to_dict
from loan_tracker.portfolio import (
    combine_loans,
    compare_strategies,
    extra_payment_impact,
    payment_breakdown,
    record_payment,
)
from loan_tracker.serialization import loan_from_dict, loan_to_dict, loans_from_payload
from loan_tracker.store import LoanNotFoundError, create_store_from_env
from loan_tracker.utils import decimal_from_str, parse_iso_date

logger = logging.getLogger(__name__)

app = Flask(__name__)
loan_store = create_store_from_env(os.environ.get("LOAN_TRACKER_DATABASE_URL"))


def _decimal_arg(name: str, default: str = "0") -> Decimal:
    return decimal_from_str(request.args.get(name, default))


def _as_of_arg():
    value = request.args.get("as_of")
    return parse_iso_date(value) if value else None


def _strategy_to_dict(strategy) -> dict:
    return {
        "name": strategy.name,
        "description": strategy.description,
        "total_interest_paid": float(strategy.total_interest_paid),
        "payoff_date": strategy.payoff_date.isoformat(),
        "loan_payoff_order": list(strategy.loan_payoff_order),
        "months": strategy.months,
        "truncated": strategy.truncated,
    }


def _get_loan_or_404(loan_id: str):
    try:
        return loan_store.get_loan(loan_id)
    except LoanNotFoundError:
        abort(404, description=f"Loan not found: {loan_id}")


def _portfolio_or_400():
    loans = loan_store.load_loans()
    if not loans:
        abort(400, description="No loans stored")
    return loans


@app.errorhandler(ValueError)
def handle_value_error(exc):
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(400)
@app.errorhandler(404)
def handle_http_error(exc):
    return jsonify({"error": exc.description}), exc.code


@app.get("/api/payment")
def monthly_payment():
    principal = _decimal_arg("principal")
    rate = _decimal_arg("rate")
    term = int(request.args.get("term", 0))
    if principal <= 0 or term <= 0:
        raise ValueError("principal and term must be positive")
    return jsonify({"monthly_payment": float(calculate_monthly_payment(principal, rate, term))})


@app.get("/api/loans")
def list_loans():
    as_of = _as_of_arg()
    loans = loan_store.load_loans()
    return jsonify(
        [
            {**loan_to_dict(loan), "summary": summary_to_dict(calculate_loan_summary(loan, Decimal("0"), as_of))}
            for loan in loans
        ]
    )


@app.post("/api/loans")
def create_loan():
    payload = request.get_json(force=True) or {}
    if not isinstance(payload, dict):
        raise ValueError("Loan data must be a JSON object")
    data = dict(payload)
    missing = [key for key in ("name", "principal", "interestRate", "loanTerm", "startDate") if key not in data]
    if missing:
        raise ValueError(f"Missing loan field(s): {', '.join(missing)}")
    principal = decimal_from_str(str(data["principal"]))
    rate = decimal_from_str(str(data["interestRate"]))
    term = int(str(data["loanTerm"]))
    if principal <= 0 or term <= 0:
        raise ValueError("principal and loanTerm must be positive")
    if rate < 0:
        raise ValueError("interestRate cannot be negative")
    data.setdefault("id", uuid4().hex)
    data.setdefault("paymentsMade", [])
    if "minimumPayment" not in data:
        suggested = calculate_monthly_payment(principal, rate, term)
        data["minimumPayment"] = str(suggested.quantize(Decimal("0.01")))
    loan = loan_from_dict(data)
    if loan.minimum_payment <= 0:
        raise ValueError("minimumPayment must be positive")
    loan_store.add_loan(loan)
    logger.info("Created loan %s", loan.id)
    return jsonify(loan_to_dict(loan)), 201


@app.delete("/api/loans/<loan_id>")
def delete_loan(loan_id: str):
    try:
        loan_store.remove_loan(loan_id)
    except LoanNotFoundError:
        abort(404, description=f"Loan not found: {loan_id}")
    return "", 204


@app.post("/api/loans/<loan_id>/payments")
def add_payment(loan_id: str):
    data = request.get_json(force=True) or {}
    amount = decimal_from_str(str(data.get("amount", "")))
    if amount <= 0:
        raise ValueError("amount must be positive")
    paid_on = parse_iso_date(data["date"]) if data.get("date") else None
    loan = record_payment(_get_loan_or_404(loan_id), amount, paid_on)
    loan_store.update_loan(loan)
    return jsonify(loan_to_dict(loan)), 201


@app.get("/api/loans/<loan_id>/schedule")
def loan_schedule(loan_id: str):
    loan = _get_loan_or_404(loan_id)
    extra = _decimal_arg("extra")
    as_of = _as_of_arg()
    schedule = generate_amortization_schedule(loan, extra, as_of)
    return jsonify(
        {
            "summary": summary_to_dict(calculate_loan_summary(loan, extra, as_of)),
            "schedule": schedule_to_dicts(schedule),
            "truncated": schedule.truncated,
        }
    )


@app.get("/api/dashboard")
def dashboard():
    loans = _portfolio_or_400()
    extra = _decimal_arg("extra")
    as_of = _as_of_arg()
    breakdown = payment_breakdown(loans, extra, as_of)
    return jsonify(
        {
            "combined": summary_to_dict(calculate_loan_summary(combine_loans(loans), extra, as_of)),
            "breakdown": {
                "total_principal": float(breakdown.total_principal),
                "total_interest": float(breakdown.total_interest),
                "paid_principal": float(breakdown.paid_principal),
                "paid_interest": float(breakdown.paid_interest),
                "remaining_principal": float(breakdown.remaining_principal),
            },
        }
    )


@app.get("/api/strategies")
def strategies():
    comparison = compare_strategies(_portfolio_or_400(), _decimal_arg("extra"), _as_of_arg())
    return jsonify(
        {
            "avalanche": _strategy_to_dict(comparison.avalanche),
            "snowball": _strategy_to_dict(comparison.snowball),
            "recommended": comparison.recommended,
            "interest_savings": float(comparison.interest_savings),
        }
    )


@app.get("/api/extra-payment")
def extra_payment():
    impact = extra_payment_impact(_portfolio_or_400(), _decimal_arg("extra"), _as_of_arg())
    return jsonify(
        {
            "baseline": summary_to_dict(impact.baseline),
            "enhanced": summary_to_dict(impact.enhanced),
            "interest_saved": float(impact.interest_saved),
            "months_saved": impact.months_saved,
            "suggested_max_additional": float(impact.suggested_max_additional),
        }
    )


@app.get("/api/export")
def export_portfolio():
    return jsonify([loan_to_dict(loan) for loan in loan_store.load_loans()])


@app.post("/api/import")
def import_portfolio():
    try:
        loans = loans_from_payload(request.get_json(force=True))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid loan data: {exc}") from exc
    loan_store.save_loans(loans)
    return jsonify({"imported": len(loans)})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Loan Tracker web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
