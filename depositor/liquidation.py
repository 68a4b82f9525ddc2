"""
Liquidation Reasons

Fixed, ordered table of the reasons a deposit can be liquidated, the states
in which each reason applies, and the contract method that triggers it.

State sets overlap (a deposit in COURTESY_CALL can be liquidated either for
undercollateralization or because the courtesy period expired). When a
reason has to be picked from state alone, the first entry in declaration
order wins.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from depositor.states import DepositState


@dataclass(frozen=True)
class LiquidationReason:
    """A liquidation trigger and the states it is valid in."""
    key: str
    states: FrozenSet[DepositState]
    method: str

    def applies_to(self, state: int) -> bool:
        return state in self.states


LIQUIDATION_REASONS: Tuple[LiquidationReason, ...] = (
    LiquidationReason(
        key="setup-timeout",
        states=frozenset({DepositState.AWAITING_SIGNER_SETUP}),
        method="notifySignerSetupFailed",
    ),
    LiquidationReason(
        key="funding-timeout",
        states=frozenset({DepositState.AWAITING_BTC_FUNDING_PROOF}),
        method="notifyFundingTimedOut",
    ),
    LiquidationReason(
        key="undercollateralization",
        states=frozenset({DepositState.ACTIVE, DepositState.COURTESY_CALL}),
        method="notifyUndercollateralizedLiquidation",
    ),
    LiquidationReason(
        key="courtesy-timeout",
        states=frozenset({DepositState.COURTESY_CALL}),
        method="notifyCourtesyCallExpired",
    ),
    LiquidationReason(
        key="redemption-signature-timeout",
        states=frozenset({DepositState.AWAITING_WITHDRAWAL_SIGNATURE}),
        method="notifyRedemptionSignatureTimedOut",
    ),
    LiquidationReason(
        key="redemption-proof-timeout",
        states=frozenset({DepositState.AWAITING_WITHDRAWAL_PROOF}),
        method="notifyRedemptionProofTimedOut",
    ),
)

_BY_KEY: Dict[str, LiquidationReason] = {r.key: r for r in LIQUIDATION_REASONS}


def reason_keys() -> Tuple[str, ...]:
    return tuple(r.key for r in LIQUIDATION_REASONS)


def reason_for_key(key: str) -> Optional[LiquidationReason]:
    return _BY_KEY.get(key)


def resolve_liquidation(state: int) -> Optional[LiquidationReason]:
    """First reason, in declaration order, whose state set contains ``state``."""
    for reason in LIQUIDATION_REASONS:
        if reason.applies_to(state):
            return reason
    return None
