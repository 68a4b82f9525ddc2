"""
Deposit State Machine

Instrument states in ledger order. The numeric order matters: everything
at or after ACTIVE is past the funding boundary.

    START ──▶ AWAITING_SIGNER_SETUP ──▶ AWAITING_BTC_FUNDING_PROOF ──▶ ACTIVE
                     │                            │                    │  ▲
                     ▼                            ▼                    ▼  │
                FAILED_SETUP                 FAILED_SETUP          COURTESY_CALL
                                                                       │
    ACTIVE ──▶ AWAITING_WITHDRAWAL_SIGNATURE ──▶ AWAITING_WITHDRAWAL_PROOF ──▶ REDEEMED

    ACTIVE / COURTESY_CALL / redemption states ──▶ LIQUIDATION_IN_PROGRESS ──▶ LIQUIDATED

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Union


class DepositState(IntEnum):
    """States of a deposit as reported by the ledger."""
    START = 0

    # Funding flow
    AWAITING_SIGNER_SETUP = 1
    AWAITING_BTC_FUNDING_PROOF = 2

    # Failed setup
    FAILED_SETUP = 3

    # Active
    ACTIVE = 4

    # Redemption flow
    AWAITING_WITHDRAWAL_SIGNATURE = 5
    AWAITING_WITHDRAWAL_PROOF = 6
    REDEEMED = 7

    # Signer liquidation flow
    COURTESY_CALL = 8
    FRAUD_LIQUIDATION_IN_PROGRESS = 9
    LIQUIDATION_IN_PROGRESS = 10
    LIQUIDATED = 11

    def is_past_funding(self) -> bool:
        return self >= DepositState.ACTIVE


def state_by_id(state: Union[int, DepositState]) -> DepositState:
    """Resolve a raw ledger state id. Unknown ids raise ``ValueError``."""
    return DepositState(int(state))


def state_name(state: Union[int, DepositState]) -> str:
    return state_by_id(state).name
