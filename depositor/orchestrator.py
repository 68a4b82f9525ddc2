"""
Deposit Lifecycle Orchestrator

Drives a single deposit through funding, redemption or liquidation by
calling trigger operations on the deposit handle and then waiting for the
handle to report the lifecycle event that completes the flow.

Flows:

    funding       auto-submit ─▶ bitcoin address available (operator funds)
                              ─▶ active ─▶ [mint] ─▶ done
    redemption    request / reattach ─▶ auto-submit ─▶ withdrawn ─▶ done
    resume        state gate ─▶ redemption if one is recorded, else funding
    liquidation   reason (explicit or resolved from state) ─▶ remedial send
    withdraw      estimate [─▶ send]
    courtesy call notify ─▶ done

Each waiting flow owns exactly one ``FlowCompletion``; a second flow of the
same kind on the same deposit inside one orchestrator is refused.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set, Tuple, Union

from depositor.collaborators import (
    DepositHandle,
    DepositorClient,
    RedemptionDetails,
)
from depositor.events import (
    DepositActivated,
    DepositMinted,
    EventBus,
    FlowCompletion,
    FundingAddressAvailable,
    LiquidationTriggered,
    RedemptionWithdrawn,
)
from depositor.liquidation import (
    LiquidationReason,
    resolve_liquidation,
)
from depositor.observability import (
    DepositorLayer,
    DepositorLogger,
    current_invocation_id,
    quiet_logger,
)
from depositor.output import format_line, standard_deposit_output
from depositor.states import DepositState, state_name


# =============================================================================
# ERRORS
# =============================================================================

class StateGateViolation(Exception):
    """The deposit's current state does not permit the requested flow."""

    def __init__(self, message: str, deposit_address: str = "", state: Optional[int] = None):
        super().__init__(message)
        self.deposit_address = deposit_address
        self.state = state


class FlowConflictError(RuntimeError):
    """A flow of the same kind is already waiting on this deposit."""


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class LifecycleOrchestrator:
    """Runs deposit flows against one connected client."""

    def __init__(
        self,
        client: DepositorClient,
        logger: Optional[DepositorLogger] = None,
        bus: Optional[EventBus] = None,
    ):
        self.client = client
        self.logger = logger or quiet_logger("orchestrator", DepositorLayer.ORCHESTRATOR)
        self.bus = bus or EventBus()
        self._active_flows: Set[Tuple[str, str]] = set()

    @property
    def _sender(self) -> Optional[str]:
        return self.client.ledger.default_account or None

    @asynccontextmanager
    async def _flow(self, name: str, deposit: DepositHandle) -> AsyncIterator[FlowCompletion]:
        key = (name, deposit.address.lower())
        if key in self._active_flows:
            raise FlowConflictError(f"A {name} flow is already running for deposit {deposit.address}.")

        self._active_flows.add(key)
        start = time.monotonic()
        success = False
        try:
            async with FlowCompletion(name, deposit.address) as flow:
                yield flow
            success = True
        finally:
            self._active_flows.discard(key)
            self.logger.operation(
                f"{name}_flow",
                (time.monotonic() - start) * 1000,
                success=success,
                deposit=deposit.address,
            )

    # -------------------------------------------------------------------------
    # Describe / courtesy call
    # -------------------------------------------------------------------------

    async def describe_deposit(self, deposit_address: str) -> str:
        deposit = await self.client.deposits.with_address(deposit_address)
        return await standard_deposit_output(deposit)

    async def courtesy_call(self, deposit_address: str) -> str:
        deposit = await self.client.deposits.with_address(deposit_address)
        await deposit.notify_courtesy_call()
        return await standard_deposit_output(deposit)

    # -------------------------------------------------------------------------
    # Funding
    # -------------------------------------------------------------------------

    async def create_deposit(self, lot_size_satoshis: int, mint_on_active: bool) -> str:
        deposit = await self.client.deposits.with_satoshi_lot_size(lot_size_satoshis)
        self.logger.debug("Opened deposit", deposit=deposit.address, lot_size=lot_size_satoshis)
        return await self.run_deposit(deposit, mint_on_active)

    async def run_deposit(self, deposit: DepositHandle, mint_on_active: bool) -> str:
        """
        Funding flow. Completes once the deposit is active (and minted, when
        ``mint_on_active``); the bitcoin address is surfaced on the way.
        """
        async with self._flow("funding", deposit) as flow:
            deposit.auto_submit()

            async def on_address(bitcoin_address: str) -> None:
                lot_size = await deposit.get_lot_size_satoshis()
                self.logger.debug(
                    "Deposit funding address available",
                    deposit=deposit.address,
                    bitcoin_address=bitcoin_address,
                    lot_size=lot_size,
                )
                self.bus.publish(FundingAddressAvailable(
                    deposit_address=deposit.address,
                    bitcoin_address=bitcoin_address,
                    lot_size_satoshis=lot_size,
                    correlation_id=current_invocation_id(),
                ))

            async def on_active() -> None:
                self.bus.publish(DepositActivated(
                    deposit_address=deposit.address,
                    minting=mint_on_active,
                    correlation_id=current_invocation_id(),
                ))
                if not mint_on_active:
                    flow.resolve(await standard_deposit_output(deposit))
                    return

                minted = await deposit.mint_tbtc()
                self.bus.publish(DepositMinted(
                    deposit_address=deposit.address,
                    minted_amount=minted,
                    correlation_id=current_invocation_id(),
                ))
                flow.resolve(await standard_deposit_output(deposit, extra=[minted]))

            deposit.on_bitcoin_address_available(flow.listener(on_address))
            deposit.on_active(flow.listener(on_active))
            return await flow.wait()

    async def resume_deposit(
        self,
        deposit_address: str,
        only_funding: bool,
        only_redemption: bool,
        mint_on_active: bool,
    ) -> str:
        deposit = await self.client.deposits.with_address(deposit_address)
        state = DepositState(await deposit.get_current_state())

        if (only_funding and state.is_past_funding()) or (
            only_redemption and not state.is_past_funding()
        ):
            raise StateGateViolation("Nothing to resume for deposit.", deposit.address, state)

        details = await deposit.get_latest_redemption_details()
        if details is not None:
            self.logger.debug("Resuming redemption", deposit=deposit.address, state=state.name)
            return await self.redeem_deposit(deposit, details)
        if only_redemption:
            raise StateGateViolation("Nothing to resume for deposit.", deposit.address, state)

        self.logger.debug("Resuming funding", deposit=deposit.address, state=state.name)
        return await self.run_deposit(deposit, mint_on_active)

    # -------------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------------

    async def redeem_deposit(
        self,
        deposit: DepositHandle,
        redemption: Union[str, RedemptionDetails],
    ) -> str:
        """
        Redemption flow.

        ``redemption`` is either the Bitcoin address to redeem to (a new
        redemption) or the details of one already in flight (resumed).
        """
        async with self._flow("redemption", deposit) as flow:
            if isinstance(redemption, str):
                handle = await deposit.request_redemption(redemption)
            else:
                handle = deposit.resume_redemption(redemption)
            handle.auto_submit()

            async def on_withdrawn(transaction_id: str) -> None:
                self.bus.publish(RedemptionWithdrawn(
                    deposit_address=deposit.address,
                    transaction_id=transaction_id,
                    correlation_id=current_invocation_id(),
                ))
                flow.resolve(await standard_deposit_output(deposit, extra=[transaction_id]))

            handle.on_withdrawn(flow.listener(on_withdrawn))
            return await flow.wait()

    # -------------------------------------------------------------------------
    # Liquidation
    # -------------------------------------------------------------------------

    async def liquidate_deposit(
        self,
        deposit_address: str,
        reason: Optional[LiquidationReason] = None,
    ) -> str:
        deposit = await self.client.deposits.with_address(deposit_address)
        state = await deposit.get_current_state()

        if reason is not None:
            if not reason.applies_to(state):
                raise StateGateViolation(
                    f"Deposit is not in a state that allows {reason.key} liquidation.",
                    deposit.address,
                    state,
                )
        else:
            reason = resolve_liquidation(state)
            if reason is None:
                raise StateGateViolation(
                    f"Could not find a possible liquidation strategy for deposit state {state_name(state)}.",
                    deposit.address,
                    state,
                )
            self.logger.debug(
                f"Attempting to liquidate deposit based on state {state_name(state)} using {reason.method}.",
                deposit=deposit.address,
            )

        receipt = await self.client.ledger.send_safely(
            deposit.contract, reason.method, sender=self._sender
        )
        self.bus.publish(LiquidationTriggered(
            deposit_address=deposit.address,
            reason=reason.key,
            method=reason.method,
            transaction_hash=receipt.transaction_hash,
            correlation_id=current_invocation_id(),
        ))
        return await standard_deposit_output(deposit)

    # -------------------------------------------------------------------------
    # Withdrawal
    # -------------------------------------------------------------------------

    async def withdraw_from_deposit(self, deposit_address: str, dry_run: bool) -> str:
        """
        Withdraw the ETH the current account may take from a deposit.

        A dry run only reports the withdrawable amount. Otherwise the
        withdrawal is sent and ``<amount>\\t<transaction-hash>`` returned.
        """
        deposit = await self.client.deposits.with_address(deposit_address)
        amount = await self.client.ledger.call(deposit.contract, "withdrawFunds")
        if dry_run:
            return str(amount)

        receipt = await self.client.ledger.send_safely(
            deposit.contract, "withdrawFunds", sender=self._sender
        )
        return format_line(amount, receipt.transaction_hash)
