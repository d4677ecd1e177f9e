from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.engine import calculate_loan_summary
from loan_tracker.formatter import (
    format_currency,
    format_date,
    format_percentage,
    print_strategy_comparison,
    print_summary,
)
from loan_tracker.portfolio import compare_strategies


@pytest.mark.parametrize(
    "amount,expected",
    [
        ("1234.567", "$1,234.57"),
        ("0", "$0.00"),
        ("0.005", "$0.01"),
        ("-5", "-$5.00"),
        ("1000000", "$1,000,000.00"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(Decimal(amount)) == expected


def test_format_date():
    assert format_date(date(2024, 1, 5)) == "January 5, 2024"
    assert format_date(date(2031, 11, 30)) == "November 30, 2031"


@pytest.mark.parametrize("value,expected", [("12.345", "12.35%"), ("0", "0.00%"), ("100", "100.00%")])
def test_format_percentage(value, expected):
    assert format_percentage(Decimal(value)) == expected


def test_print_summary(sample_loan, as_of, capsys):
    print_summary(calculate_loan_summary(sample_loan, as_of=as_of), title="Stafford")
    out = capsys.readouterr().out
    assert out.startswith("Stafford")
    assert "$10,000.00" in out
    assert "$188.71" in out
    assert "Warning" not in out


def test_print_strategy_comparison_names_recommendation(make_loan, as_of, capsys):
    loans = [
        make_loan(name="Private", principal="5000", rate="10", minimum="100"),
        make_loan(name="Federal", principal="1000", rate="3", minimum="10"),
    ]
    print_strategy_comparison(compare_strategies(loans, Decimal("100"), as_of))
    out = capsys.readouterr().out
    assert "Avalanche Method" in out
    assert "Snowball Method" in out
    assert "Recommended: Avalanche Method" in out
    assert "  1. Private" in out
