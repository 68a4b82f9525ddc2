"""
Deposit ownership queries.

Deposits are owned through a non-fungible deposit token, one token per
deposit, with the deposit address as token id. The current holdings of an
owner are recovered by replaying every ``Transfer`` to that owner and then
keeping only the tokens the owner still holds.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import asyncio
import time
from typing import List, Optional

from depositor.addresses import same_address
from depositor.collaborators import DepositorClient
from depositor.observability import DepositorLayer, DepositorLogger, quiet_logger
from depositor.output import standard_deposit_output


class QueryService:
    """Read-only deposit lookups for one connected client."""

    def __init__(self, client: DepositorClient, logger: Optional[DepositorLogger] = None):
        self.client = client
        self.logger = logger or quiet_logger("query", DepositorLayer.QUERY)

    async def tokens_transferred_to(self, owner: str) -> List[str]:
        """Token ids ever transferred to ``owner``, deduplicated, first-seen order."""
        token = self.client.deposits.deposit_token()
        events = await self.client.ledger.get_past_events(token, "Transfer", {"to": owner})

        seen: List[str] = []
        for event in events:
            token_id = str(event["return_values"]["tokenId"])
            if token_id not in seen:
                seen.append(token_id)
        return seen

    async def still_owned(self, owner: str, token_ids: List[str]) -> List[str]:
        token = self.client.deposits.deposit_token()

        async def check(token_id: str) -> bool:
            current = await self.client.ledger.call(token, "ownerOf", token_id)
            return same_address(str(current), owner)

        owned = await asyncio.gather(*(check(t) for t in token_ids))
        return [t for t, is_owned in zip(token_ids, owned) if is_owned]

    async def list_deposits(self, owner: str) -> str:
        """One standard output line per deposit currently owned by ``owner``."""
        start = time.monotonic()

        candidates = await self.tokens_transferred_to(owner)
        owned = await self.still_owned(owner, candidates)
        self.logger.debug(
            "Resolved deposit ownership",
            owner=owner,
            transferred=len(candidates),
            owned=len(owned),
        )

        deposits = await asyncio.gather(
            *(self.client.deposits.with_tdt_id(t) for t in owned)
        )
        lines = await asyncio.gather(*(standard_deposit_output(d) for d in deposits))

        self.logger.operation("list_deposits", (time.monotonic() - start) * 1000, owner=owner)
        return "\n".join(lines)
