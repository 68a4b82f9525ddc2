"""
Tests for deposit ownership queries.
"""
import asyncio

from depositor.query import QueryService
from depositor.states import DepositState

from fakes import (
    DEPOSIT_A,
    DEPOSIT_B,
    OPERATOR,
    OTHER_OWNER,
    FakeClient,
    FakeDeposit,
)


def _client():
    client = FakeClient()
    client.deposits.add(FakeDeposit(DEPOSIT_A, state=DepositState.ACTIVE), owner=OPERATOR)
    client.deposits.add(FakeDeposit(DEPOSIT_B, lot_size=1000), owner=OPERATOR)
    return client


def test_lists_owned_deposits_in_transfer_order():
    query = QueryService(_client())
    result = asyncio.run(query.list_deposits(OPERATOR))
    assert result.split("\n") == [
        f"{DEPOSIT_A}\tACTIVE\t100",
        f"{DEPOSIT_B}\tAWAITING_SIGNER_SETUP\t1000",
    ]


def test_transferred_away_deposit_is_excluded():
    client = _client()
    client.deposits.transfer(DEPOSIT_A, OTHER_OWNER)

    result = asyncio.run(QueryService(client).list_deposits(OPERATOR))
    assert result == f"{DEPOSIT_B}\tAWAITING_SIGNER_SETUP\t1000"


def test_transfer_away_and_back_lists_once():
    client = _client()
    before = asyncio.run(QueryService(client).list_deposits(OPERATOR))

    client.deposits.transfer(DEPOSIT_A, OTHER_OWNER)
    client.deposits.transfer(DEPOSIT_A, OPERATOR)

    after = asyncio.run(QueryService(client).list_deposits(OPERATOR))
    assert after == before


def test_token_ids_deduplicated():
    client = _client()
    client.deposits.transfer(DEPOSIT_A, OPERATOR)

    ids = asyncio.run(QueryService(client).tokens_transferred_to(OPERATOR))
    assert ids == [DEPOSIT_A, DEPOSIT_B]


def test_owner_comparison_ignores_case():
    client = _client()
    client.deposits.owners[DEPOSIT_A] = OPERATOR.upper().replace("0X", "0x")

    owned = asyncio.run(QueryService(client).still_owned(OPERATOR, [DEPOSIT_A]))
    assert owned == [DEPOSIT_A]


def test_nothing_owned():
    result = asyncio.run(QueryService(FakeClient()).list_deposits(OTHER_OWNER))
    assert result == ""
