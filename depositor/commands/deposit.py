"""
``deposit`` command resolution.

Turns the tokens after ``deposit`` into a single ``CommandAction`` or
``None`` when they do not form a valid command. Nothing touches the ledger
while resolving: every lookup (including the default account for
``deposit list``) happens inside the returned action.

    deposit new [--no-mint] <lot-size-satoshis>
    deposit list [--vending-machine] [--address <address>]
    deposit <address>
    deposit <address> redeem <bitcoin-address>
    deposit <address> withdraw [--dry-run]
    deposit <address> resume [--funding|--redemption] [--no-mint]
    deposit <address> courtesy-call
    deposit <address> liquidate [for <reason>]

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

from depositor.addresses import is_address
from depositor.args import (
    ADDRESS,
    DRY_RUN,
    FUNDING,
    LIQUIDATION_REASON,
    NO_MINT,
    REDEMPTION,
    VENDING_MACHINE,
    MalformedArgumentError,
    consume_existences,
    consume_value,
)
from depositor.collaborators import DepositorClient
from depositor.events import EventBus
from depositor.liquidation import reason_for_key, reason_keys
from depositor.observability import DepositorLayer, DepositorLogger, quiet_logger
from depositor.orchestrator import LifecycleOrchestrator
from depositor.query import QueryService
from depositor.commands.types import CommandAction

SubcommandParser = Callable[[str, Sequence[str]], Optional[CommandAction]]


class DepositCommandResolver:
    """Resolves ``deposit ...`` tokens into a deferred action."""

    def __init__(
        self,
        logger: Optional[DepositorLogger] = None,
        bus: Optional[EventBus] = None,
        address_validator: Callable[[str], bool] = is_address,
    ):
        self.logger = logger or quiet_logger("resolver", DepositorLayer.RESOLVER)
        self.bus = bus
        self.is_address = address_validator
        self.subcommands: Dict[str, SubcommandParser] = {
            "redeem": self._parse_redeem,
            "withdraw": self._parse_withdraw,
            "resume": self._parse_resume,
            "courtesy-call": self._parse_courtesy_call,
            "liquidate": self._parse_liquidate,
        }

    def _orchestrator(self, client: DepositorClient) -> LifecycleOrchestrator:
        return LifecycleOrchestrator(
            client,
            logger=self.logger.child("orchestrator", DepositorLayer.ORCHESTRATOR),
            bus=self.bus,
        )

    def resolve(self, args: Sequence[str]) -> Optional[CommandAction]:
        if not args:
            return None

        command, *command_args = args
        try:
            if command == "new":
                return self._parse_new(command_args)
            if command == "list":
                return self._parse_list(command_args)
            return self._parse_deposit_address(command, command_args)
        except MalformedArgumentError as e:
            self.logger.warning(str(e))
            return None

    # -------------------------------------------------------------------------
    # Top-level forms
    # -------------------------------------------------------------------------

    def _parse_new(self, args: Sequence[str]) -> Optional[CommandAction]:
        found, remaining = consume_existences(args, NO_MINT)
        if len(remaining) != 1 or not (remaining[0].isascii() and remaining[0].isdigit()):
            self.logger.warning(
                "No lot size specified. Use lot-sizes to find available lot sizes."
            )
            return None

        lot_size = int(remaining[0])
        mint_on_active = not found["no_mint"]

        async def action(client: DepositorClient) -> str:
            return await self._orchestrator(client).create_deposit(lot_size, mint_on_active)

        return action

    def _parse_list(self, args: Sequence[str]) -> Optional[CommandAction]:
        found, remaining = consume_existences(args, VENDING_MACHINE)
        address, remaining = consume_value(remaining, ADDRESS)
        list_vending_machine = bool(found["vending_machine"])

        if remaining:
            return None
        if address is not None and list_vending_machine:
            self.logger.warning("Vending machine and address flag cannot be specified together.")
            return None
        if address is not None and not self.is_address(address):
            self.logger.warning(f"Address {address} is not a valid address.")
            return None

        explicit_address = address

        async def action(client: DepositorClient) -> str:
            if list_vending_machine:
                owner = client.deposits.vending_machine().address
            elif explicit_address is not None:
                owner = explicit_address
            else:
                owner = client.ledger.default_account or ""
            query = QueryService(client, self.logger.child("query", DepositorLayer.QUERY))
            return await query.list_deposits(owner)

        return action

    def _parse_deposit_address(
        self, deposit_address: str, args: Sequence[str]
    ) -> Optional[CommandAction]:
        if not self.is_address(deposit_address):
            self.logger.warning(f"Deposit address {deposit_address} is not a valid address.")
            return None

        if not args:
            async def describe(client: DepositorClient) -> str:
                return await self._orchestrator(client).describe_deposit(deposit_address)

            return describe

        subcommand, *subcommand_args = args
        parser = self.subcommands.get(subcommand)
        if parser is None:
            self.logger.warning(
                "Invalid command after deposit address; command can be one of:\n"
                f"    {', '.join(self.subcommands)}"
            )
            return None

        return parser(deposit_address, subcommand_args)

    # -------------------------------------------------------------------------
    # Subcommands
    # -------------------------------------------------------------------------

    def _parse_redeem(self, deposit_address: str, args: Sequence[str]) -> Optional[CommandAction]:
        if not args:
            self.logger.warning("Bitcoin address required for redemption.")
            return None
        if len(args) > 1:
            return None

        bitcoin_address = args[0]

        async def action(client: DepositorClient) -> str:
            deposit = await client.deposits.with_address(deposit_address)
            return await self._orchestrator(client).redeem_deposit(deposit, bitcoin_address)

        return action

    def _parse_withdraw(self, deposit_address: str, args: Sequence[str]) -> Optional[CommandAction]:
        found, remaining = consume_existences(args, DRY_RUN)
        if remaining:
            return None

        dry_run = bool(found["dry_run"])

        async def action(client: DepositorClient) -> str:
            return await self._orchestrator(client).withdraw_from_deposit(deposit_address, dry_run)

        return action

    def _parse_resume(self, deposit_address: str, args: Sequence[str]) -> Optional[CommandAction]:
        found, remaining = consume_existences(args, NO_MINT, FUNDING, REDEMPTION)
        no_mint = bool(found["no_mint"])
        only_funding = bool(found["funding"])
        only_redemption = bool(found["redemption"])

        if only_funding and only_redemption:
            self.logger.warning(
                "--funding and --redemption cannot both be specified. Specify neither\n"
                "if you want to resume all flows no matter the deposit state."
            )
            return None
        if only_redemption and no_mint:
            self.logger.warning("--redemption specified with --no-mint, but redemption cannot mint.")
            return None
        if remaining:
            return None

        async def action(client: DepositorClient) -> str:
            return await self._orchestrator(client).resume_deposit(
                deposit_address, only_funding, only_redemption, not no_mint
            )

        return action

    def _parse_courtesy_call(
        self, deposit_address: str, args: Sequence[str]
    ) -> Optional[CommandAction]:
        if args:
            return None

        async def action(client: DepositorClient) -> str:
            return await self._orchestrator(client).courtesy_call(deposit_address)

        return action

    def _parse_liquidate(self, deposit_address: str, args: Sequence[str]) -> Optional[CommandAction]:
        key, remaining = consume_value(args, LIQUIDATION_REASON)

        reason = None
        if key is not None:
            reason = reason_for_key(key)
            if reason is None:
                self.logger.warning(
                    "Invalid liquidation reason; only one of these is allowed:\n"
                    f"    {', '.join(reason_keys())}"
                )
                return None
        if remaining:
            return None

        async def action(client: DepositorClient) -> str:
            return await self._orchestrator(client).liquidate_deposit(deposit_address, reason)

        return action
