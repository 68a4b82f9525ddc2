"""
Collaborator Interfaces

The deposit lifecycle is driven through objects this package does not
implement: the deposit handle that exposes state and trigger operations,
the ledger context that signs and broadcasts, and the connector that
builds both. They are described here as abstract base classes so the
orchestrator can be written (and tested) against the interface alone.

A connector is plugged in by dotted path, ``package.module:attribute``,
where the attribute is a ``Connector`` instance or a zero-argument callable
returning one.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class RedemptionDetails:
    """Details recorded on the ledger for a redemption already in flight."""
    utxo_value: int
    redeemer_output_script: str
    requested_fee: int
    outpoint: str
    digest: str


@dataclass(frozen=True)
class TransactionReceipt:
    """Outcome of a submitted ledger transaction."""
    transaction_hash: str
    status: bool = True
    block_number: Optional[int] = None
    events: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NetworkProfile:
    """Per-chain settings the deposit client needs."""
    chain_id: int
    bitcoin_network: str
    electrum: Dict[str, Any] = field(default_factory=dict)


class Contract(ABC):
    """Opaque reference to a deployed contract."""

    @property
    @abstractmethod
    def address(self) -> str:
        ...


# =============================================================================
# DEPOSIT HANDLES
# =============================================================================

class RedemptionHandle(ABC):
    """An in-flight redemption of a deposit."""

    @abstractmethod
    def auto_submit(self) -> None:
        """Submit each redemption step as soon as it becomes possible."""

    @abstractmethod
    def on_withdrawn(self, callback: Callable[[str], Any]) -> None:
        """Call ``callback(transaction_id)`` once the BTC is released."""


class DepositHandle(ABC):
    """A single deposit instrument."""

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @property
    @abstractmethod
    def contract(self) -> Contract:
        ...

    @abstractmethod
    async def get_current_state(self) -> int:
        ...

    @abstractmethod
    async def get_lot_size_satoshis(self) -> int:
        ...

    @abstractmethod
    async def get_latest_redemption_details(self) -> Optional[RedemptionDetails]:
        ...

    @abstractmethod
    async def request_redemption(self, bitcoin_address: str) -> RedemptionHandle:
        ...

    @abstractmethod
    def resume_redemption(self, details: RedemptionDetails) -> RedemptionHandle:
        ...

    @abstractmethod
    def auto_submit(self) -> None:
        """Submit each funding step as soon as it becomes possible."""

    @abstractmethod
    def on_bitcoin_address_available(self, callback: Callable[[str], Any]) -> None:
        ...

    @abstractmethod
    def on_active(self, callback: Callable[[], Any]) -> None:
        ...

    @abstractmethod
    async def mint_tbtc(self) -> int:
        """Mint against an active deposit, returning the minted amount."""

    @abstractmethod
    async def notify_courtesy_call(self) -> None:
        ...


class DepositFactory(ABC):
    """Looks up existing deposits and opens new ones."""

    @abstractmethod
    async def with_address(self, address: str) -> DepositHandle:
        ...

    @abstractmethod
    async def with_satoshi_lot_size(self, lot_size: int) -> DepositHandle:
        ...

    @abstractmethod
    async def with_tdt_id(self, token_id: str) -> DepositHandle:
        ...

    @abstractmethod
    async def available_satoshi_lot_sizes(self) -> List[int]:
        ...

    @abstractmethod
    def deposit_token(self) -> Contract:
        """The ownership token contract; one token per deposit."""

    @abstractmethod
    def vending_machine(self) -> Contract:
        ...


# =============================================================================
# LEDGER
# =============================================================================

class LedgerContext(ABC):
    """
    Account context on the ledger.

    ``send_safely`` is send-or-raise: it either returns a receipt for a
    mined transaction or raises, and never retries on its own.
    """

    default_account: Optional[str] = None

    @abstractmethod
    async def accounts(self) -> List[str]:
        ...

    @abstractmethod
    async def chain_id(self) -> int:
        ...

    @abstractmethod
    async def call(self, contract: Contract, method: str, *args: Any) -> Any:
        """Read-only contract call."""

    @abstractmethod
    async def send_safely(
        self,
        contract: Contract,
        method: str,
        *args: Any,
        sender: Optional[str] = None,
    ) -> TransactionReceipt:
        ...

    @abstractmethod
    async def get_past_events(
        self,
        contract: Contract,
        event_name: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Sequence[Dict[str, Any]]:
        """Historical events, each a dict with a ``return_values`` mapping."""


class DepositorClient(ABC):
    """A connected client: ledger context plus deposit factory."""

    @property
    @abstractmethod
    def ledger(self) -> LedgerContext:
        ...

    @property
    @abstractmethod
    def deposits(self) -> DepositFactory:
        ...


class Connector(ABC):
    """Builds the ledger context and deposit client for one invocation."""

    @abstractmethod
    async def connect(self, rpc_url: str, mnemonic: Optional[str]) -> LedgerContext:
        ...

    @abstractmethod
    async def load_client(self, ledger: LedgerContext, profile: NetworkProfile) -> DepositorClient:
        ...

    async def disconnect(self, ledger: LedgerContext) -> None:
        """Release transport resources. Default: nothing to release."""


def load_connector(path: str) -> Connector:
    """
    Load a connector from ``package.module:attribute``.

    Raises ``ImportError`` for a bad module and ``TypeError`` if the
    attribute does not produce a ``Connector``.
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Connector path must look like 'module:attribute', got {path!r}")

    module = importlib.import_module(module_name)
    target = getattr(module, attribute)
    connector = target if isinstance(target, Connector) else target()
    if not isinstance(connector, Connector):
        raise TypeError(f"{path} did not produce a Connector (got {type(connector).__name__})")
    return connector
