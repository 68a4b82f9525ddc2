"""
In-memory stand-ins for the ledger, the deposit factory and deposit handles.

Handles fire lifecycle callbacks as soon as they are registered, which is
how a real handle behaves when the event has already happened on chain.
Every trigger operation is recorded in ``calls`` so tests can assert that
nothing was invoked.
"""

from typing import Any, Callable, Dict, List, Optional

from depositor.collaborators import (
    Connector,
    Contract,
    DepositFactory,
    DepositHandle,
    DepositorClient,
    LedgerContext,
    NetworkProfile,
    RedemptionDetails,
    RedemptionHandle,
    TransactionReceipt,
)
from depositor.states import DepositState

OPERATOR = "0x" + "1" * 40
OTHER_OWNER = "0x" + "2" * 40
VENDING_MACHINE = "0x" + "3" * 40
DEPOSIT_TOKEN = "0x" + "4" * 40
DEPOSIT_A = "0x" + "a" * 40
DEPOSIT_B = "0x" + "b" * 40
DEPOSIT_C = "0x" + "c" * 40

BITCOIN_ADDRESS = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
MINTED = 95_000_000_000_000_000


class FakeContract(Contract):

    def __init__(self, address: str, methods: Optional[Dict[str, Any]] = None):
        self._address = address
        self.methods: Dict[str, Any] = dict(methods or {})
        self.events: List[Dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address


class FakeRedemption(RedemptionHandle):

    def __init__(self, deposit: "FakeDeposit", transaction_id: Optional[str]):
        self.deposit = deposit
        self.transaction_id = transaction_id
        self.submitted = False

    def auto_submit(self) -> None:
        self.submitted = True
        self.deposit.calls.append(("redemption_auto_submit",))

    def on_withdrawn(self, callback: Callable[[str], Any]) -> None:
        if self.submitted and self.transaction_id is not None:
            self.deposit.state = DepositState.REDEEMED
            callback(self.transaction_id)


class FakeDeposit(DepositHandle):

    def __init__(
        self,
        address: str,
        state: DepositState = DepositState.AWAITING_SIGNER_SETUP,
        lot_size: int = 100,
        bitcoin_address: Optional[str] = BITCOIN_ADDRESS,
        activates: bool = True,
        minted: int = MINTED,
        redemption_details: Optional[RedemptionDetails] = None,
        withdrawal_txid: Optional[str] = "btc-tx-1",
        withdrawable: int = 0,
    ):
        self._address = address
        self.state = state
        self.lot_size = lot_size
        self.bitcoin_address = bitcoin_address
        self.activates = activates
        self.minted = minted
        self.redemption_details = redemption_details
        self.withdrawal_txid = withdrawal_txid
        self.mint_error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self._contract = FakeContract(address, {"withdrawFunds": withdrawable})

    @property
    def address(self) -> str:
        return self._address

    @property
    def contract(self) -> FakeContract:
        return self._contract

    async def get_current_state(self) -> int:
        return int(self.state)

    async def get_lot_size_satoshis(self) -> int:
        return self.lot_size

    async def get_latest_redemption_details(self) -> Optional[RedemptionDetails]:
        return self.redemption_details

    async def request_redemption(self, bitcoin_address: str) -> RedemptionHandle:
        self.calls.append(("request_redemption", bitcoin_address))
        self.state = DepositState.AWAITING_WITHDRAWAL_SIGNATURE
        return FakeRedemption(self, self.withdrawal_txid)

    def resume_redemption(self, details: RedemptionDetails) -> RedemptionHandle:
        self.calls.append(("resume_redemption", details))
        return FakeRedemption(self, self.withdrawal_txid)

    def auto_submit(self) -> None:
        self.calls.append(("auto_submit",))

    def on_bitcoin_address_available(self, callback: Callable[[str], Any]) -> None:
        if self.bitcoin_address is not None and not self.state.is_past_funding():
            callback(self.bitcoin_address)

    def on_active(self, callback: Callable[[], Any]) -> None:
        if self.activates:
            self.state = DepositState.ACTIVE
            callback()

    async def mint_tbtc(self) -> int:
        self.calls.append(("mint_tbtc",))
        if self.mint_error is not None:
            raise self.mint_error
        return self.minted

    async def notify_courtesy_call(self) -> None:
        self.calls.append(("notify_courtesy_call",))
        self.state = DepositState.COURTESY_CALL


class FakeFactory(DepositFactory):

    def __init__(self, lot_sizes: Optional[List[int]] = None):
        self.deposits: Dict[str, FakeDeposit] = {}
        self.lot_sizes = list(lot_sizes or [100_000, 1_000_000, 10_000_000])
        self.token = FakeContract(DEPOSIT_TOKEN, {"ownerOf": self._owner_of})
        self.machine = FakeContract(VENDING_MACHINE, {
            "getMintedSupply": 1_500_000_000_000_000_000,
            "getMaxSupply": 2_000_000_000_000_000_000_000,
        })
        self.owners: Dict[str, str] = {}
        self.next_address = DEPOSIT_C

    def add(self, deposit: FakeDeposit, owner: Optional[str] = None) -> FakeDeposit:
        self.deposits[deposit.address.lower()] = deposit
        if owner is not None:
            self.transfer(deposit.address, owner)
        return deposit

    def transfer(self, token_id: str, to: str) -> None:
        self.owners[token_id.lower()] = to
        self.token.events.append({
            "event": "Transfer",
            "return_values": {"to": to, "tokenId": token_id},
        })

    def _owner_of(self, token_id: str) -> str:
        return self.owners[str(token_id).lower()]

    async def with_address(self, address: str) -> FakeDeposit:
        return self.deposits[address.lower()]

    async def with_satoshi_lot_size(self, lot_size: int) -> FakeDeposit:
        deposit = FakeDeposit(self.next_address, lot_size=lot_size)
        return self.add(deposit)

    async def with_tdt_id(self, token_id: str) -> FakeDeposit:
        return self.deposits[str(token_id).lower()]

    async def available_satoshi_lot_sizes(self) -> List[int]:
        return list(self.lot_sizes)

    def deposit_token(self) -> FakeContract:
        return self.token

    def vending_machine(self) -> FakeContract:
        return self.machine


class FakeLedger(LedgerContext):

    def __init__(self, accounts: Optional[List[str]] = None, chain_id: int = 3):
        self._accounts = list(accounts if accounts is not None else [OPERATOR])
        self._chain_id = chain_id
        self.sends: List[tuple] = []
        self.reads: List[tuple] = []
        self.send_error: Optional[Exception] = None

    async def accounts(self) -> List[str]:
        return list(self._accounts)

    async def chain_id(self) -> int:
        return self._chain_id

    async def call(self, contract: FakeContract, method: str, *args: Any) -> Any:
        self.reads.append((contract.address, method) + args)
        value = contract.methods[method]
        return value(*args) if callable(value) else value

    async def send_safely(
        self,
        contract: FakeContract,
        method: str,
        *args: Any,
        sender: Optional[str] = None,
    ) -> TransactionReceipt:
        if self.send_error is not None:
            raise self.send_error
        self.sends.append((contract.address, method, args, sender))
        return TransactionReceipt(transaction_hash=f"0xhash{len(self.sends)}")

    async def get_past_events(
        self,
        contract: FakeContract,
        event_name: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        return [
            e for e in contract.events
            if e["event"] == event_name
            and all(e["return_values"].get(k) == v for k, v in filters.items())
        ]


class FakeClient(DepositorClient):

    def __init__(self, ledger: Optional[FakeLedger] = None, factory: Optional[FakeFactory] = None):
        self._ledger = ledger or FakeLedger()
        self._factory = factory or FakeFactory()
        if self._ledger.default_account is None:
            self._ledger.default_account = OPERATOR

    @property
    def ledger(self) -> FakeLedger:
        return self._ledger

    @property
    def deposits(self) -> FakeFactory:
        return self._factory


class FakeConnector(Connector):

    def __init__(self, client: FakeClient):
        self.client = client
        self.connected_with: Optional[tuple] = None
        self.profile: Optional[NetworkProfile] = None
        self.disconnected = False

    async def connect(self, rpc_url: str, mnemonic: Optional[str]) -> FakeLedger:
        self.connected_with = (rpc_url, mnemonic)
        return self.client.ledger

    async def load_client(self, ledger: LedgerContext, profile: NetworkProfile) -> FakeClient:
        self.profile = profile
        return self.client

    async def disconnect(self, ledger: LedgerContext) -> None:
        self.disconnected = True


def default_connector() -> FakeConnector:
    """Zero-argument factory, loadable as ``fakes:default_connector``."""
    return FakeConnector(FakeClient())
