"""Shared command types."""

from __future__ import annotations

from typing import Awaitable, Callable

from depositor.collaborators import DepositorClient

# A resolved command: runs against a connected client, returns console output.
CommandAction = Callable[[DepositorClient], Awaitable[str]]
