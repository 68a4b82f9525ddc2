"""
System-wide read-only commands.

    lot-sizes     available lot sizes in satoshis, one per line
    supply        minted token supply
    supply-cap    maximum token supply
"""

from __future__ import annotations

from typing import Optional, Sequence

from depositor.collaborators import DepositorClient
from depositor.commands.types import CommandAction
from depositor.output import format_token_amount


async def lot_sizes(client: DepositorClient) -> str:
    sizes = await client.deposits.available_satoshi_lot_sizes()
    return "\n".join(str(s) for s in sizes)


async def supply(client: DepositorClient) -> str:
    raw = await client.ledger.call(client.deposits.vending_machine(), "getMintedSupply")
    return format_token_amount(raw)


async def supply_cap(client: DepositorClient) -> str:
    raw = await client.ledger.call(client.deposits.vending_machine(), "getMaxSupply")
    return format_token_amount(raw)


SYSTEM_COMMANDS = {
    "lot-sizes": lot_sizes,
    "supply": supply,
    "supply-cap": supply_cap,
}


def resolve_system_command(command: str, args: Sequence[str]) -> Optional[CommandAction]:
    """System commands take no arguments; anything extra is no match."""
    if args:
        return None
    return SYSTEM_COMMANDS.get(command)
