import pytest
from web3.exceptions import ContractLogicError

from flarestarter.tools.crypto.contract_registry import FeedValue, feed_id
from flarestarter.tools.crypto.price_feed_adapters import (
    BTC_USD_FEED_ID,
    PriceFeedAdapterTool,
    constructor_args,
)

from conftest import FakeContract

ADAPTER = "0x" + "ad" * 20


class FakeRefreshed:
    def __init__(self, args):
        self.args = args

    def process_receipt(self, receipt, errors=None):
        return [{"args": self.args}] if self.args else []


class FakeEvents:
    def __init__(self, args):
        self._args = args

    def Refreshed(self):
        return FakeRefreshed(self._args)


def test_feed_id_layout():
    assert BTC_USD_FEED_ID == "0x01" + b"BTC/USD".hex().ljust(40, "0")
    assert feed_id("EUR/USD", category=2).startswith("0x02")
    with pytest.raises(ValueError):
        feed_id("X" * 21)


def test_feed_value_price():
    assert str(FeedValue(feed_id=BTC_USD_FEED_ID, value=6543210, decimals=2, timestamp=1).price) == "65432.1"


def test_constructor_args_follow_adapter_order():
    chainlink = constructor_args("chainlink")
    assert chainlink[0] == bytes.fromhex(BTC_USD_FEED_ID[2:])
    assert chainlink[1:] == [8, "FTSOv2 BTC/USD adapted for Chainlink", 3600]

    pyth = constructor_args("pyth", description="custom")
    assert len(pyth[1]) == 32
    assert pyth[2] == "custom"

    with pytest.raises(ValueError):
        constructor_args("band")


@pytest.mark.asyncio
async def test_read_chainlink_round(flare):
    flare.add_contract(FakeContract(ADAPTER, reads={
        "latestRoundData": (5, 6_500_000_000_000, 1_700_000_000, 1_700_000_000, 5),
    }))
    tool = PriceFeedAdapterTool(flare)

    data = await tool.read("chainlink", ADAPTER)

    assert data.answer == 6_500_000_000_000
    assert "Round ID: 5" in data.format("Cached data")


@pytest.mark.asyncio
async def test_read_without_cached_data_returns_none(flare):
    flare.add_contract(FakeContract(ADAPTER, reads={
        "read": ContractLogicError("execution reverted: NO_DATA"),
        "getPriceNoOlderThan": (0, 0, -8, 0),
    }))
    tool = PriceFeedAdapterTool(flare)

    assert await tool.read("api3", ADAPTER) is None
    assert await tool.read("pyth", ADAPTER) is None
    assert await tool._arun(f"read api3 {ADAPTER}") == "No data has been cached yet."


@pytest.mark.asyncio
async def test_other_revert_reasons_propagate(flare):
    flare.add_contract(FakeContract(ADAPTER, reads={"read": ContractLogicError("execution reverted: STALE")}))
    with pytest.raises(ContractLogicError):
        await PriceFeedAdapterTool(flare).read("api3", ADAPTER)


@pytest.mark.asyncio
async def test_refresh_decodes_event(flare):
    flare.add_contract(FakeContract(
        ADAPTER,
        events=FakeEvents({"feedId": b"\x01" * 21, "scaledAnswer": 42, "ftsoTimestamp": 7, "extra": 1}),
    ))
    tool = PriceFeedAdapterTool(flare)

    tx, event = await tool.refresh("chainlink", ADAPTER)

    assert flare.writes_to("refresh")[0].operation == "refresh chainlink"
    assert event == {"feedId": b"\x01" * 21, "scaledAnswer": 42, "ftsoTimestamp": 7}
    assert "scaledAnswer: 42" in tool.format_event(event)


@pytest.mark.asyncio
async def test_refresh_without_event(flare):
    flare.add_contract(FakeContract(ADAPTER, events=FakeEvents(None)))
    _, event = await PriceFeedAdapterTool(flare).refresh("api3", ADAPTER)
    assert event is None
    assert PriceFeedAdapterTool.format_event(event) == "No Refreshed event found"


@pytest.mark.asyncio
async def test_deploy_uses_artifact(flare):
    address = await PriceFeedAdapterTool(flare).deploy("pyth")
    assert flare.deployed[0][0] == "FtsoPythAdapter"
    assert address.startswith("0x")
