"""
Tests for deposit output rendering.
"""
import asyncio

import pytest

from depositor.output import format_line, format_token_amount, standard_deposit_output
from depositor.states import DepositState

from fakes import DEPOSIT_A, FakeDeposit


def test_format_line():
    assert format_line("a", 1, None) == "a\t1\tNone"


def test_standard_output_fetches_missing_fields():
    deposit = FakeDeposit(DEPOSIT_A, state=DepositState.ACTIVE, lot_size=500)
    assert asyncio.run(standard_deposit_output(deposit)) == f"{DEPOSIT_A}\tACTIVE\t500"


def test_standard_output_uses_resolved_fields():
    deposit = FakeDeposit(DEPOSIT_A, state=DepositState.ACTIVE, lot_size=500)
    result = asyncio.run(standard_deposit_output(
        deposit, state=DepositState.REDEEMED, lot_size=7, extra=["tx"]
    ))
    assert result == f"{DEPOSIT_A}\tREDEEMED\t7\ttx"


@pytest.mark.parametrize("raw,expected", [
    (0, "0.000000000000000000"),
    (1, "0.000000000000000001"),
    (1_500_000_000_000_000_000, "1.500000000000000000"),
    ("2000000000000000000000", "2000.000000000000000000"),
])
def test_format_token_amount(raw, expected):
    assert format_token_amount(raw) == expected
