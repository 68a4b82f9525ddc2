#!/usr/bin/env python3
"""
Depositor CLI

Command-line interface for driving deposits through funding, redemption and
liquidation.

Usage:
    depositor [global flags] <command> [subcommand] [options]

Exit codes:
    0   command completed, result on stdout
    1   bad command line (usage on stdout) or command failure (stderr)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import asyncio
import sys
from typing import List, Optional, Sequence, TextIO

from depositor import __version__
from depositor.args import (
    ACCOUNT,
    CONFIG,
    DEBUG,
    MNEMONIC,
    RPC,
    MalformedArgumentError,
    consume_existences,
    consume_values,
)
from depositor.collaborators import Connector, load_connector
from depositor.commands import CommandAction, resolve_command
from depositor.config import ConfigError, ConfigManager, ConfigValidationError
from depositor.events import DepositActivated, Event, EventBus, FundingAddressAvailable
from depositor.observability import (
    DepositorLayer,
    DepositorLogger,
    LogLevel,
    bind_invocation_id,
)

USAGE = f"""
depositor {__version__}

Unknown command or bad parameters.

Supported flags:
    --debug
        Enable debug output.

    --rpc <rpc-url>
        Set RPC URL to the specified value.

    --mnemonic <mnemonic>
        Use the specified mnemonic for the operating account. Also supports
        private key strings.

    --account <account>
        Use the specified account for all transactions. If --mnemonic is
        specified, it must be able to sign for this account in order for
        mutating transactions to be sent. If this is left off, the first
        account for the key is used.

    --config <path>
        Read configuration from the given YAML file instead of
        ./depositor.yaml or ~/.depositor/config.yaml.

Supported commands:
    deposit new [--no-mint] <lot-size-satoshis>
        Initiates a deposit funding flow. Takes the lot size in satoshis.
        Will prompt with a Bitcoin address when funding needs to be
        submitted. When the flow completes, outputs the deposit as a single
        tab-delimited line with the deposit address, current deposit state,
        the deposit lot size in satoshis, and, when applicable, the minted
        amount of TBTC.

        --no-mint
            Specifies not to mint TBTC once the deposit is qualified.

    deposit list [--vending-machine] [--address <address>]
        With no options, lists the deposits currently owned by the operating
        account. Deposits are output as tab-delimited lines that include the
        deposit address, current deposit state, and deposit lot size in
        satoshis.

        --vending-machine
            Lists the deposits currently owned by the vending machine.

        --address <address>
            Lists the deposits currently owned by the specified address.

    deposit <address> [<resume|redeem|courtesy-call|liquidate|withdraw>]
        Operations on a particular deposit. If no command is provided,
        outputs the deposit as a single tab-delimited line with the deposit
        address, current deposit state, and deposit lot size in satoshis.

        resume [--funding|--redemption] [--no-mint]
            Resumes a funding or redemption flow, depending on the deposit's
            current state. When the flow completes, outputs the deposit as a
            single tab-delimited line.

            --funding
                Only resumes a funding flow; fails if the deposit is past
                funding.

            --redemption
                Only resumes a redemption flow; fails if the deposit is not
                mid-redemption. Cannot be combined with --no-mint.

            --no-mint
                When resuming a funding flow, do not mint TBTC once the
                deposit is qualified.

        redeem <bitcoin-address>
            Initiates a redemption flow that redeems the deposit's BTC to the
            specified Bitcoin address. When the flow completes, outputs the
            deposit line followed by the redemption Bitcoin transaction id.

        courtesy-call
            Notifies the deposit it is undercollateralized and should
            transition into courtesy call.

        liquidate [for <setup-timeout|funding-timeout|undercollateralization|courtesy-timeout|redemption-signature-timeout|redemption-proof-timeout>]
            Liquidates the deposit. By default, picks the first liquidation
            reason that applies to the deposit's current state. With `for`,
            only liquidates for the given reason and fails if it does not
            apply.

        withdraw [--dry-run]
            Withdraws the operating account's allowance from the deposit and
            outputs the withdrawn amount in wei and the transaction hash.

            --dry-run
                Outputs the amount that would be withdrawn in wei, but does
                not send the withdrawal.

    lot-sizes
        Returns a list of the currently available lot sizes, one per line.

    supply
        Returns the current supply as a decimal amount in TBTC.

    supply-cap
        Returns the current supply cap as a decimal amount in TBTC.
"""


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class DepositorCLI:
    """Main CLI application."""

    def __init__(
        self,
        connector: Optional[Connector] = None,
        config_manager: Optional[ConfigManager] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ):
        self._connector = connector
        self._config_manager = config_manager
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    def _load_config(self, config_path: Optional[str]) -> ConfigManager:
        manager = self._config_manager or ConfigManager()
        if config_path is not None:
            manager.load_from_file(config_path)
        elif self._config_manager is None:
            manager.load_defaults()
        return manager

    def _build_logger(self, manager: ConfigManager, debug: bool) -> DepositorLogger:
        level = LogLevel.DEBUG if debug else LogLevel(manager.get("observability.log_level"))
        return DepositorLogger(
            "cli",
            DepositorLayer.CLI,
            level=level,
            fmt=manager.get("observability.log_format"),
            stream=self.stderr,
        )

    def _event_trace(self, bus: EventBus, logger: DepositorLogger) -> None:
        @bus.subscribe(priority=10)
        def trace(event: Event) -> None:
            logger.debug(f"Published {event.event_type}", event=event.to_json())

    def _operator_prompts(self, bus: EventBus) -> None:
        @bus.subscribe(FundingAddressAvailable)
        def funding_prompt(event: FundingAddressAvailable) -> None:
            print(
                f"\tGot deposit address: {event.bitcoin_address} ; "
                f"fund with: {event.lot_size_satoshis} satoshis please.",
                file=self.stderr,
            )
            print("Now monitoring for deposit transaction...", file=self.stderr)

        @bus.subscribe(DepositActivated, filter_func=lambda e: e.minting)
        def minting_notice(event: DepositActivated) -> None:
            print("Deposit is active, minting...", file=self.stderr)

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Run the CLI."""
        args: List[str] = list(sys.argv[1:] if argv is None else argv)
        bind_invocation_id()

        try:
            flags, remaining = consume_existences(args, DEBUG)
            values, command_args = consume_values(remaining, MNEMONIC, ACCOUNT, RPC, CONFIG)
        except MalformedArgumentError as e:
            print(f"Error: {e}", file=self.stderr)
            print(USAGE, file=self.stdout)
            return 1

        try:
            manager = self._load_config(values["config"])
            manager.apply_overrides({
                "network.rpc_url": values["rpc"],
                "network.mnemonic": values["mnemonic"],
                "network.account": values["account"],
            })
            problems = manager.validate()
            if problems:
                raise ConfigValidationError("; ".join(problems))
        except ConfigError as e:
            print(f"ERROR {e}", file=self.stderr)
            return 1

        debug = bool(flags["debug"])
        logger = self._build_logger(manager, debug)
        logger.debug(
            "Configuration loaded",
            files=",".join(str(p) for p in manager.loaded_paths) or "none",
            rpc_url_from=manager.source_of("network.rpc_url"),
        )
        bus = EventBus()
        if debug:
            logger.debug("Effective configuration\n" + manager.config.to_yaml().rstrip())
            self._event_trace(bus, logger)
        self._operator_prompts(bus)

        action = resolve_command(command_args, logger=logger, bus=bus)
        if action is None:
            print(USAGE, file=self.stdout)
            return 1

        try:
            result = asyncio.run(self._run_action(action, manager, logger))
        except Exception as e:
            logger.debug("Command failed", exc_info=True)
            logger.debug("Event bus", **bus.metrics)
            print(f"ERROR {e}", file=self.stderr)
            return getattr(e, "exit_code", 1)

        logger.debug("Event bus", **bus.metrics)
        print(result, file=self.stdout)
        return 0

    def _resolve_connector(self, manager: ConfigManager) -> Connector:
        if self._connector is not None:
            return self._connector

        path = manager.get("network.connector")
        if not path:
            raise ConfigError(
                "No ledger connector configured; set network.connector in the "
                "config file or DEPOSITOR_CONNECTOR."
            )
        return load_connector(path)

    async def _run_action(
        self,
        action: CommandAction,
        manager: ConfigManager,
        logger: DepositorLogger,
    ) -> str:
        connector = self._resolve_connector(manager)
        ledger = await connector.connect(
            manager.get("network.rpc_url"),
            manager.get("network.mnemonic") or None,
        )
        try:
            account = manager.get("network.account")
            if not account:
                accounts = await ledger.accounts()
                if not accounts:
                    raise CLIError("The connected key controls no accounts.")
                account = accounts[0]
            ledger.default_account = account

            chain_id = await ledger.chain_id()
            profile = manager.network_profile(chain_id)
            logger.debug(
                "Connected",
                account=account,
                chain_id=chain_id,
                bitcoin_network=profile.bitcoin_network,
            )

            client = await connector.load_client(ledger, profile)
            return await action(client)
        finally:
            await connector.disconnect(ledger)


def main() -> int:
    """CLI entry point."""
    cli = DepositorCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
