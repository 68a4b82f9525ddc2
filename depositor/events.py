"""
Deposit Lifecycle Events

Typed events describing what the orchestrator observed, an in-process bus
to fan them out (the CLI subscribes to surface operator prompts), and the
``FlowCompletion`` waiter that turns handle callbacks into a single awaited
result per flow.

Usage
─────

    bus = EventBus()

    @bus.subscribe(FundingAddressAvailable)
    def prompt(event):
        print(f"fund {event.bitcoin_address} with {event.lot_size_satoshis}")

    async with FlowCompletion("funding", deposit.address) as flow:
        deposit.on_active(flow.listener(on_active))
        return await flow.wait()

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    Type,
)

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
# EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class Event:
    """
    Something the orchestrator saw happen to a deposit.

    ``correlation_id`` carries the invocation id so events and log lines
    from one command can be matched up.
    """

    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.event_type, **asdict(self)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


@dataclass
class FundingAddressAvailable(Event):
    """The signers produced a Bitcoin address; the operator must fund it."""
    deposit_address: str = ""
    bitcoin_address: str = ""
    lot_size_satoshis: int = 0


@dataclass
class DepositActivated(Event):
    """Funding proof accepted; the deposit is ACTIVE."""
    deposit_address: str = ""
    minting: bool = False


@dataclass
class DepositMinted(Event):
    deposit_address: str = ""
    minted_amount: int = 0


@dataclass
class RedemptionWithdrawn(Event):
    """The redemption transaction released the BTC."""
    deposit_address: str = ""
    transaction_id: str = ""


@dataclass
class LiquidationTriggered(Event):
    deposit_address: str = ""
    reason: str = ""
    method: str = ""
    transaction_hash: str = ""


# ════════════════════════════════════════════════════════════════════════════
# EVENT BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass(frozen=True)
class Subscription:
    handler: EventHandler
    event_types: Tuple[Type[Event], ...]
    priority: int = 0
    filter_func: Optional[Callable[[Event], bool]] = None

    def wants(self, event: Event) -> bool:
        if not isinstance(event, self.event_types):
            return False
        return self.filter_func is None or self.filter_func(event)


class EventHandlerError(Exception):
    """A subscriber raised while handling an event."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


class EventBus:
    """
    Synchronous, in-process event bus.

    Events are published from the flow's event loop, so handlers run there,
    higher priority first and in subscription order within a priority. A
    failing handler never breaks the flow that published: the error goes to
    ``on_error`` or, when none is given, to the module logger.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._subscriptions: List[Subscription] = []
        self._on_error = on_error
        self._counts: Counter = Counter()

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
        filter_func: Optional[Callable[[Event], bool]] = None,
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator; with no event types the handler receives every event."""
        def register(handler: EventHandler) -> EventHandler:
            self._subscriptions.append(Subscription(
                handler=handler,
                event_types=event_types or (Event,),
                priority=priority,
                filter_func=filter_func,
            ))
            self._subscriptions.sort(key=lambda s: -s.priority)
            return handler
        return register

    def publish(self, event: Event) -> int:
        """Deliver ``event``; returns how many handlers completed."""
        self._counts["published"] += 1
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.wants(event):
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                self._counts["errors"] += 1
                error = EventHandlerError(event, subscription.handler, e)
                if self._on_error is not None:
                    self._on_error(error)
                else:
                    logger.warning("%s", error)
                continue
            delivered += 1
            self._counts["handled"] += 1
        return delivered

    @property
    def metrics(self) -> Dict[str, int]:
        return {
            "published_count": self._counts["published"],
            "handled_count": self._counts["handled"],
            "error_count": self._counts["errors"],
            "handler_count": len(self._subscriptions),
        }


# ════════════════════════════════════════════════════════════════════════════
# FLOW COMPLETION
# ════════════════════════════════════════════════════════════════════════════


class FlowCompletion:
    """
    One awaited result for one flow.

    Handle callbacks are wrapped with ``listener``; the wrapped coroutine runs
    on the flow's event loop (callbacks may fire from any thread) and either
    calls ``resolve`` or raises, which rejects the flow. The first outcome
    wins; later ones are ignored. Leaving the ``async with`` block cancels
    listener tasks that are still running.
    """

    def __init__(self, name: str, deposit_address: str):
        self.name = name
        self.deposit_address = deposit_address
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._future: Optional[asyncio.Future] = None
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "FlowCompletion":
        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        self._tasks.clear()

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def resolve(self, result: str) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_result(result)

    def reject(self, error: BaseException) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_exception(error)

    def listener(self, handler: Callable[..., Awaitable[None]]) -> Callable[..., None]:
        """Wrap an async handler as a plain callback suitable for a handle."""
        if self._loop is None:
            raise RuntimeError(f"{self.name} flow for {self.deposit_address} is not open")
        loop = self._loop

        def callback(*args: Any) -> None:
            loop.call_soon_threadsafe(self._spawn, handler, args)

        return callback

    def _spawn(self, handler: Callable[..., Awaitable[None]], args: tuple) -> None:
        if self.done:
            return
        task = asyncio.ensure_future(self._run(handler, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, handler: Callable[..., Awaitable[None]], args: tuple) -> None:
        try:
            await handler(*args)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.reject(e)

    async def wait(self) -> str:
        if self._future is None:
            raise RuntimeError(f"{self.name} flow for {self.deposit_address} is not open")
        return await self._future
