"""FlareTool transaction path against an in-memory web3 eth namespace"""

import pytest
from web3.exceptions import TimeExhausted

from flarestarter.core.exceptions import TransactionError
from flarestarter.tools.crypto.base import FlareTool

from conftest import TEST_ADDRESS, make_settings

TX_HASH = "0x" + "12" * 32
RECIPIENT = "0x" + "34" * 20


class StubEth:
    def __init__(self, receipt=None, error=None, blocks=(10,)):
        self.receipt = receipt
        self.error = error
        self.blocks = list(blocks)
        self.block_polls = 0
        self.raw_transactions = []
        self.nonce_requests = []

    async def get_transaction_count(self, address, block_identifier):
        self.nonce_requests.append((address, block_identifier))
        return 7

    async def send_raw_transaction(self, raw):
        self.raw_transactions.append(raw)
        return bytes.fromhex(TX_HASH[2:])

    async def wait_for_transaction_receipt(self, tx_hash, timeout, poll_latency):
        if self.error is not None:
            raise self.error
        return self.receipt

    async def _next_block(self):
        self.block_polls += 1
        return self.blocks.pop(0) if len(self.blocks) > 1 else self.blocks[0]

    @property
    def block_number(self):
        return self._next_block()


class StubWeb3:
    def __init__(self, eth):
        self.eth = eth


class StubFunction:
    fn_name = "ping"

    async def build_transaction(self, params):
        return {**params, "to": RECIPIENT, "gas": 21000, "gasPrice": 1, "data": "0x"}


def chain(tmp_path, eth, network="coston2", **overrides):
    settings = make_settings(tmp_path, poll_interval=0, **overrides)
    return FlareTool(network=network, settings=settings, w3=StubWeb3(eth))


def receipt(status=1, block=10):
    return {"status": status, "blockNumber": block, "gasUsed": 21000, "contractAddress": None, "logs": []}


@pytest.mark.asyncio
async def test_mined_transaction_waits_for_confirmations(tmp_path):
    eth = StubEth(receipt=receipt(), blocks=[10, 11])
    flare = chain(tmp_path, eth)

    result = await flare.send_transaction(StubFunction())

    assert result.hash == TX_HASH
    assert result.block_number == 10
    assert result.explorer_url == f"https://coston2-explorer.flare.network/tx/{TX_HASH}"
    assert eth.nonce_requests == [(TEST_ADDRESS, "pending")]
    assert len(eth.raw_transactions) == 1
    # coston2 requires two confirmations: block 10 gives one, block 11 the second
    assert eth.block_polls == 2
    (metrics,) = flare.analytics.transactions
    assert metrics.success and metrics.operation == "ping" and metrics.gas_used == 21000


@pytest.mark.asyncio
async def test_single_confirmation_network_skips_block_polling(tmp_path):
    eth = StubEth(receipt=receipt())
    flare = chain(tmp_path, eth, network="coston")

    await flare.send_transaction(StubFunction(), operation="transfer")

    assert eth.block_polls == 0
    assert flare.analytics.transactions[-1].operation == "transfer"


@pytest.mark.asyncio
async def test_reverted_receipt_raises_and_records_failure(tmp_path):
    flare = chain(tmp_path, StubEth(receipt=receipt(status=0)))

    with pytest.raises(TransactionError, match="reverted") as exc:
        await flare.send_transaction(StubFunction())

    assert exc.value.tx_hash == TX_HASH
    (metrics,) = flare.analytics.transactions
    assert metrics.success is False
    assert metrics.tx_hash == TX_HASH
    assert flare.analytics.get_success_rate() == 0.0


@pytest.mark.asyncio
async def test_receipt_timeout_becomes_transaction_error(tmp_path):
    eth = StubEth(error=TimeExhausted("timed out"))
    flare = chain(tmp_path, eth, tx_timeout=5)

    with pytest.raises(TransactionError, match="not mined within 5.0s"):
        await flare.send_transaction(StubFunction())

    assert flare.analytics.transactions[-1].success is False


@pytest.mark.asyncio
async def test_missing_confirmations_time_out(tmp_path):
    eth = StubEth(receipt=receipt(), blocks=[10])
    flare = chain(tmp_path, eth, tx_timeout=0)

    with pytest.raises(TransactionError, match="did not reach 2 confirmations"):
        await flare.send_transaction(StubFunction())

    assert flare.analytics.transactions[-1].success is False


@pytest.mark.asyncio
async def test_build_failure_is_a_transaction_error(tmp_path):
    class Failing(StubFunction):
        async def build_transaction(self, params):
            raise ValueError("execution reverted: paused")

    eth = StubEth(receipt=receipt())
    flare = chain(tmp_path, eth)

    with pytest.raises(TransactionError, match="ping failed while building transaction"):
        await flare.send_transaction(Failing())
    assert eth.raw_transactions == []
