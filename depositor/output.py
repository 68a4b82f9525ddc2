"""
Deposit output rendering.

Every command prints a deposit as one tab-delimited line:

    <deposit-address>\t<STATE_NAME>\t<lot-size-satoshis>[\t<extra>...]
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Optional

from depositor.collaborators import DepositHandle
from depositor.states import state_name

TOKEN_DECIMALS = 18


def format_line(*fields: Any) -> str:
    return "\t".join(str(f) for f in fields)


async def standard_deposit_output(
    deposit: DepositHandle,
    state: Optional[int] = None,
    lot_size: Optional[int] = None,
    extra: Iterable[Any] = (),
) -> str:
    """Render a deposit, fetching only the fields not already resolved."""
    if state is None:
        state = await deposit.get_current_state()
    if lot_size is None:
        lot_size = await deposit.get_lot_size_satoshis()

    return format_line(deposit.address, state_name(state), lot_size, *extra)


def format_token_amount(raw: Any, decimals: int = TOKEN_DECIMALS) -> str:
    """Render an integer base-unit amount with a decimal point, e.g. ``1.500000000000000000``."""
    amount = Decimal(int(raw)).scaleb(-decimals)
    return f"{amount:.{decimals}f}"
