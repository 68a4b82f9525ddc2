"""
Command resolution.

``resolve_command`` maps the command tokens (global flags already removed)
to one deferred ``CommandAction`` or ``None``.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from depositor.addresses import is_address
from depositor.commands.deposit import DepositCommandResolver
from depositor.commands.system import SYSTEM_COMMANDS, resolve_system_command
from depositor.commands.types import CommandAction
from depositor.events import EventBus
from depositor.observability import DepositorLogger

__all__ = [
    "CommandAction",
    "DepositCommandResolver",
    "SYSTEM_COMMANDS",
    "resolve_command",
]


def resolve_command(
    args: Sequence[str],
    logger: Optional[DepositorLogger] = None,
    bus: Optional[EventBus] = None,
    address_validator: Callable[[str], bool] = is_address,
) -> Optional[CommandAction]:
    if not args:
        return None

    command, *rest = args
    if command == "deposit":
        resolver = DepositCommandResolver(logger=logger, bus=bus, address_validator=address_validator)
        return resolver.resolve(rest)
    if command in SYSTEM_COMMANDS:
        return resolve_system_command(command, rest)
    return None
