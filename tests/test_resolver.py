"""
Tests for command resolution.

Resolution never touches the ledger; the returned action does. Every
"no match" case returns None and, where the operator can be told what went
wrong, logs a warning.
"""
import asyncio
import io

import pytest

from depositor.commands import resolve_command
from depositor.observability import DepositorLayer, DepositorLogger, LogLevel

from fakes import (
    DEPOSIT_A,
    OTHER_OWNER,
    FakeClient,
    FakeDeposit,
    FakeFactory,
)


def _resolve(*tokens):
    stream = io.StringIO()
    logger = DepositorLogger("test", DepositorLayer.RESOLVER, level=LogLevel.DEBUG, stream=stream)
    return resolve_command(list(tokens), logger=logger), stream.getvalue()


def _no_match(*tokens):
    action, log = _resolve(*tokens)
    assert action is None, f"{tokens} unexpectedly resolved"
    return log


class TestTopLevel:

    def test_empty(self):
        _no_match()

    def test_unknown_command(self):
        _no_match("frobnicate")

    def test_deposit_alone(self):
        _no_match("deposit")

    @pytest.mark.parametrize("command", ["lot-sizes", "supply", "supply-cap"])
    def test_system_commands(self, command):
        action, _ = _resolve(command)
        assert action is not None

    @pytest.mark.parametrize("command", ["lot-sizes", "supply", "supply-cap"])
    def test_system_commands_take_no_arguments(self, command):
        _no_match(command, "extra")


class TestNew:

    def test_lot_size(self):
        action, _ = _resolve("deposit", "new", "100")
        assert action is not None

    def test_no_mint_anywhere(self):
        action, _ = _resolve("deposit", "new", "100", "--no-mint")
        assert action is not None

    def test_missing_lot_size(self):
        log = _no_match("deposit", "new")
        assert "No lot size specified. Use lot-sizes to find available lot sizes." in log

    def test_non_numeric_lot_size(self):
        _no_match("deposit", "new", "lots")

    def test_non_ascii_digit_lot_size(self):
        log = _no_match("deposit", "new", "\u00b2")
        assert "No lot size specified" in log

    def test_trailing_tokens(self):
        _no_match("deposit", "new", "100", "200")


class TestList:

    def test_bare(self):
        action, _ = _resolve("deposit", "list")
        assert action is not None

    def test_vending_machine_with_address(self):
        log = _no_match("deposit", "list", "--vending-machine", "--address", OTHER_OWNER)
        assert "Vending machine and address flag cannot be specified together." in log

    def test_invalid_address(self):
        log = _no_match("deposit", "list", "--address", "0x123")
        assert "Address 0x123 is not a valid address." in log

    def test_address_without_value(self):
        log = _no_match("deposit", "list", "--address")
        assert "--address requires a value" in log

    def test_trailing_tokens(self):
        _no_match("deposit", "list", "extra")

    def test_default_owner_read_when_action_runs(self):
        factory = FakeFactory()
        factory.add(FakeDeposit(DEPOSIT_A), owner=OTHER_OWNER)
        client = FakeClient(factory=factory)

        action, _ = _resolve("deposit", "list")
        client.ledger.default_account = OTHER_OWNER
        assert asyncio.run(action(client)).startswith(DEPOSIT_A)


class TestDepositAddress:

    def test_describe(self):
        action, _ = _resolve("deposit", DEPOSIT_A)
        assert action is not None

    def test_invalid_deposit_address(self):
        log = _no_match("deposit", "0xnope")
        assert "Deposit address 0xnope is not a valid address." in log

    def test_unknown_subcommand(self):
        log = _no_match("deposit", DEPOSIT_A, "explode")
        assert "redeem, withdraw, resume, courtesy-call, liquidate" in log

    def test_redeem_requires_bitcoin_address(self):
        log = _no_match("deposit", DEPOSIT_A, "redeem")
        assert "Bitcoin address required for redemption." in log

    @pytest.mark.parametrize("tokens", [
        ("redeem", "tb1q", "extra"),
        ("withdraw", "extra"),
        ("withdraw", "--dry-run", "extra"),
        ("resume", "extra"),
        ("courtesy-call", "extra"),
        ("liquidate", "extra"),
        ("liquidate", "for", "funding-timeout", "extra"),
    ])
    def test_trailing_tokens_rejected(self, tokens):
        _no_match("deposit", DEPOSIT_A, *tokens)

    @pytest.mark.parametrize("tokens", [
        ("redeem", "tb1q"),
        ("withdraw",),
        ("withdraw", "--dry-run"),
        ("resume",),
        ("resume", "--funding"),
        ("resume", "--redemption"),
        ("resume", "--funding", "--no-mint"),
        ("courtesy-call",),
        ("liquidate",),
    ])
    def test_valid_subcommands(self, tokens):
        action, _ = _resolve("deposit", DEPOSIT_A, *tokens)
        assert action is not None


class TestResume:

    def test_funding_and_redemption(self):
        log = _no_match("deposit", DEPOSIT_A, "resume", "--funding", "--redemption")
        assert "--funding and --redemption cannot both be specified" in log

    def test_funding_and_redemption_with_anything_else(self):
        _no_match("deposit", DEPOSIT_A, "resume", "--redemption", "--no-mint", "--funding")

    def test_redemption_no_mint(self):
        log = _no_match("deposit", DEPOSIT_A, "resume", "--redemption", "--no-mint")
        assert "redemption cannot mint" in log


class TestLiquidate:

    @pytest.mark.parametrize("reason", [
        "setup-timeout",
        "funding-timeout",
        "undercollateralization",
        "courtesy-timeout",
        "redemption-signature-timeout",
        "redemption-proof-timeout",
    ])
    def test_known_reason_resolves(self, reason):
        action, log = _resolve("deposit", DEPOSIT_A, "liquidate", "for", reason)
        assert action is not None
        assert "Invalid liquidation reason" not in log

    def test_unknown_reason_rejected(self):
        log = _no_match("deposit", DEPOSIT_A, "liquidate", "for", "boredom")
        assert "Invalid liquidation reason; only one of these is allowed:" in log
        assert "setup-timeout, funding-timeout" in log

    def test_for_without_reason(self):
        _no_match("deposit", DEPOSIT_A, "liquidate", "for")
