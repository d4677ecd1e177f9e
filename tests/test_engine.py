"""Tests for loan_tracker.engine: payments, schedules and summaries."""

from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.engine import (
    MAX_SCHEDULE_MONTHS,
    calculate_loan_summary,
    calculate_monthly_payment,
    generate_amortization_schedule,
)
from loan_tracker.portfolio import combine_loans

TOLERANCE = Decimal("0.000001")


class TestMonthlyPayment:
    def test_standard_loan(self):
        payment = calculate_monthly_payment(Decimal("10000"), Decimal("5"), 60)
        assert payment.quantize(Decimal("0.01")) == Decimal("188.71")

    @pytest.mark.parametrize("principal,term", [("1200", 12), ("5000", 7), ("250000", 360)])
    def test_zero_rate_is_straight_line(self, principal, term):
        principal = Decimal(principal)
        assert calculate_monthly_payment(principal, Decimal("0"), term) == principal / term

    @pytest.mark.parametrize("rate", ["0.5", "3.75", "18"])
    def test_interest_makes_total_exceed_principal(self, rate):
        principal = Decimal("20000")
        term = 120
        assert calculate_monthly_payment(principal, Decimal(rate), term) * term > principal

    def test_zero_term_is_not_guarded(self):
        with pytest.raises(ZeroDivisionError):
            calculate_monthly_payment(Decimal("1000"), Decimal("0"), 0)


class TestAmortizationSchedule:
    def test_first_row_split(self, sample_loan, as_of):
        schedule = generate_amortization_schedule(sample_loan, as_of=as_of)
        first = schedule[0]
        assert first.interest.quantize(Decimal("0.01")) == Decimal("41.67")
        assert abs(first.principal - Decimal("147.04")) < Decimal("0.01")
        assert first.payment == first.principal + first.interest

    def test_projection_starts_no_earlier_than_as_of(self, sample_loan, as_of):
        schedule = generate_amortization_schedule(sample_loan, as_of=as_of)
        assert schedule[0].date == as_of
        assert schedule[1].date == date(2024, 2, 15)

    def test_future_start_date_is_kept_and_month_end_clamped(self, make_loan, as_of):
        loan = make_loan(start=date(2025, 1, 31))
        schedule = generate_amortization_schedule(loan, as_of=as_of)
        assert [row.date for row in schedule.rows[:3]] == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
        ]

    def test_length_bounded_by_term(self, sample_loan, as_of):
        schedule = generate_amortization_schedule(sample_loan, as_of=as_of)
        assert len(schedule) <= sample_loan.loan_term + 1
        assert not schedule.truncated

    def test_balance_strictly_decreases_to_zero(self, sample_loan, as_of):
        schedule = generate_amortization_schedule(sample_loan, Decimal("25"), as_of)
        balances = [row.remaining_balance for row in schedule]
        assert all(later < earlier for earlier, later in zip(balances, balances[1:]))
        assert balances[-1] == 0

    def test_principal_sums_back_to_loan_principal(self, make_loan, make_payment, as_of):
        loan = make_loan(payments=[make_payment("1500", "200")])
        schedule = generate_amortization_schedule(loan, Decimal("40"), as_of)
        projected = sum((row.principal for row in schedule), Decimal("0"))
        assert abs(projected + loan.paid_principal - loan.principal) < TOLERANCE

    def test_history_reduces_starting_balance(self, make_loan, make_payment, as_of):
        loan = make_loan(payments=[make_payment("4000")])
        schedule = generate_amortization_schedule(loan, as_of=as_of)
        first = schedule[0]
        assert first.remaining_balance == Decimal("6000") - first.principal

    def test_fully_paid_loan_has_empty_schedule(self, make_loan, make_payment, as_of):
        loan = make_loan(principal="1000", payments=[make_payment("1000")])
        schedule = generate_amortization_schedule(loan, as_of=as_of)
        assert len(schedule) == 0
        assert not schedule.truncated

    def test_extra_payment_never_slows_payoff(self, sample_loan, as_of):
        previous = None
        for extra in ("0", "50", "200", "1000"):
            schedule = generate_amortization_schedule(sample_loan, Decimal(extra), as_of)
            interest = sum((row.interest for row in schedule), Decimal("0"))
            current = (len(schedule), interest, schedule[-1].date)
            if previous is not None:
                assert current[0] <= previous[0]
                assert current[1] <= previous[1]
                assert current[2] <= previous[2]
            previous = current

    def test_last_installment_is_capped(self, sample_loan, as_of):
        schedule = generate_amortization_schedule(sample_loan, Decimal("3000"), as_of)
        full = schedule[0].payment
        assert schedule[-1].payment < full
        assert schedule[-1].remaining_balance == 0

    def test_slow_loan_stops_at_row_cap(self, make_loan, as_of):
        loan = make_loan(principal="24000", rate="0", term=2400, minimum="10")
        schedule = generate_amortization_schedule(loan, as_of=as_of)
        assert len(schedule) == MAX_SCHEDULE_MONTHS
        assert schedule.truncated
        assert schedule[-1].remaining_balance == Decimal("12000")

    def test_payment_below_interest_stops_at_row_cap(self, make_loan, as_of, caplog):
        loan = make_loan(principal="10000", rate="12", term=60, minimum="222.44")
        schedule = generate_amortization_schedule(loan, Decimal("-150"), as_of)
        assert len(schedule) == MAX_SCHEDULE_MONTHS
        assert schedule.truncated
        assert schedule[-1].remaining_balance > loan.principal
        assert "stopped after 1200 months" in caplog.text

    def test_caller_loan_untouched(self, make_loan, make_payment, as_of):
        payments = [make_payment("100", "20")]
        loan = make_loan(payments=payments)
        generate_amortization_schedule(loan, Decimal("10"), as_of)
        assert loan.payments_made == payments
        assert len(loan.payments_made) == 1


class TestLoanSummary:
    def test_new_loan(self, sample_loan, as_of):
        summary = calculate_loan_summary(sample_loan, as_of=as_of)
        schedule = generate_amortization_schedule(sample_loan, as_of=as_of)
        assert summary.total_principal == Decimal("10000")
        assert summary.remaining_balance == Decimal("10000")
        assert summary.progress_percentage == 0
        assert summary.payoff_date == schedule[-1].date
        assert summary.total_payments == summary.total_principal + summary.total_interest
        assert summary.monthly_payment == Decimal("188.71")

    def test_history_feeds_totals_and_progress(self, make_loan, make_payment, as_of):
        loan = make_loan(payments=[make_payment("1000", "100")])
        summary = calculate_loan_summary(loan, Decimal("50"), as_of)
        future_interest = sum(
            (row.interest for row in generate_amortization_schedule(loan, Decimal("50"), as_of)), Decimal("0")
        )
        assert summary.remaining_balance == Decimal("9000")
        assert summary.progress_percentage == Decimal("10")
        assert summary.total_interest == Decimal("100") + future_interest
        assert summary.monthly_payment == Decimal("238.71")

    def test_paid_off_loan_uses_last_payment_date(self, make_loan, make_payment, as_of):
        loan = make_loan(
            principal="1000",
            payments=[
                make_payment("600", on=date(2023, 1, 1), payment_id="a"),
                make_payment("400", on=date(2023, 2, 1), payment_id="b"),
            ],
        )
        summary = calculate_loan_summary(loan, as_of=as_of)
        assert summary.payoff_date == date(2023, 2, 1)
        assert summary.remaining_balance == 0
        assert summary.progress_percentage == 100

    def test_extra_payment_reduces_interest(self, sample_loan, as_of):
        baseline = calculate_loan_summary(sample_loan, as_of=as_of)
        enhanced = calculate_loan_summary(sample_loan, Decimal("100"), as_of)
        assert enhanced.total_interest < baseline.total_interest
        assert enhanced.payoff_date < baseline.payoff_date

    def test_truncation_flag_is_carried(self, make_loan, as_of):
        loan = make_loan(principal="24000", rate="0", term=2400, minimum="10")
        assert calculate_loan_summary(loan, as_of=as_of).truncated

    def test_accepts_merged_portfolio_loan(self, make_loan, as_of):
        merged = combine_loans(
            [
                make_loan(name="A", principal="3000", rate="6", term=36, minimum="91.27"),
                make_loan(name="B", principal="7000", rate="4", term=120, minimum="70.87"),
            ]
        )
        summary = calculate_loan_summary(merged, as_of=as_of)
        assert summary.total_principal == Decimal("10000")
        assert summary.monthly_payment == Decimal("162.14")
        assert summary.total_interest > 0
