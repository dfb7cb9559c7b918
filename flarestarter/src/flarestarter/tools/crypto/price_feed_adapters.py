"""FTSOv2 price feeds exposed through Chainlink, Pyth and API3 consumer interfaces"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from web3.exceptions import ContractLogicError
from web3.logs import DISCARD

from ...core.types import TransactionResult
from ..base import FlareBaseTool, handle_command_errors
from .abis import API3_ADAPTER_ABI, CHAINLINK_ADAPTER_ABI, PYTH_ADAPTER_ABI
from .base import FlareTool
from .contract_registry import feed_id

logger = logging.getLogger(__name__)

BTC_USD_FEED_ID = feed_id("BTC/USD")
BTC_USD_PYTH_PRICE_ID = "0x4254432f55534400000000000000000000000000000000000000000000000001"
CHAINLINK_DECIMALS = 8
MAX_AGE_SECONDS = 3600


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


@dataclass
class ChainlinkRound:
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int

    def format(self, label: str) -> str:
        return "\n".join([
            f"{label}:",
            f"  - Round ID: {self.round_id}",
            f"  - Answer: {self.answer}",
            f"  - Started At: {_iso(self.started_at)}",
            f"  - Updated At: {_iso(self.updated_at)}",
            f"  - Answered In Round: {self.answered_in_round}",
        ])


@dataclass
class PythPrice:
    price: int
    conf: int
    expo: int
    publish_time: int

    def format(self, label: str) -> str:
        return "\n".join([
            f"{label}:",
            f"  - Price: {self.price}",
            f"  - Confidence: {self.conf}",
            f"  - Exponent: {self.expo}",
            f"  - Publish Time: {_iso(self.publish_time)}",
        ])


@dataclass
class Api3Reading:
    value: int
    timestamp: int

    def format(self, label: str) -> str:
        return "\n".join([
            f"{label}:",
            f"  - Value: {self.value}",
            f"  - Timestamp: {_iso(self.timestamp)}",
        ])


@dataclass
class AdapterKind:
    """How to deploy and read one adapter flavour"""
    name: str
    label: str
    artifact_name: str
    abi: List[Dict[str, Any]]
    event_fields: List[str]
    constructor_params: List[str] = field(default_factory=list)


class AdapterRegistry:
    """Supported adapter kinds"""

    def __init__(self):
        self.kinds: Dict[str, AdapterKind] = {
            "chainlink": AdapterKind(
                name="chainlink",
                label="Chainlink",
                artifact_name="FtsoChainlinkAdapter",
                abi=CHAINLINK_ADAPTER_ABI,
                event_fields=["feedId", "scaledAnswer", "ftsoTimestamp"],
                constructor_params=["feed_id", "decimals", "description", "max_age"],
            ),
            "pyth": AdapterKind(
                name="pyth",
                label="Pyth",
                artifact_name="FtsoPythAdapter",
                abi=PYTH_ADAPTER_ABI,
                event_fields=["feedId", "priceId", "price", "expo", "publishTime"],
                constructor_params=["feed_id", "price_id", "description"],
            ),
            "api3": AdapterKind(
                name="api3",
                label="API3",
                artifact_name="FtsoApi3Adapter",
                abi=API3_ADAPTER_ABI,
                event_fields=["feedId", "scaledValue", "timestamp"],
                constructor_params=["feed_id", "description", "max_age"],
            ),
        }

    def get(self, kind: str) -> AdapterKind:
        key = kind.lower()
        if key not in self.kinds:
            raise ValueError(f"Unknown adapter kind {kind}. Use one of: {', '.join(self.kinds)}")
        return self.kinds[key]


def constructor_args(kind: str, feed: str = BTC_USD_FEED_ID, description: Optional[str] = None,
                     decimals: int = CHAINLINK_DECIMALS, max_age: int = MAX_AGE_SECONDS,
                     price_id: str = BTC_USD_PYTH_PRICE_ID) -> List[Any]:
    """Constructor arguments in the order each adapter contract expects"""
    adapter = AdapterRegistry().get(kind)
    description = description or f"FTSOv2 BTC/USD adapted for {adapter.label}"
    values = {
        "feed_id": bytes.fromhex(feed[2:]),
        "price_id": bytes.fromhex(price_id[2:]),
        "decimals": decimals,
        "description": description,
        "max_age": max_age,
    }
    return [values[p] for p in adapter.constructor_params]


class PriceFeedAdapterTool(FlareBaseTool):
    """Tool for deploying and reading FTSO price-feed adapters"""

    name: str = "price_feed_adapter"
    description: str = """Deploy and query FTSOv2 adapters. Available commands:
    - deploy <chainlink|pyth|api3>
    - read <chainlink|pyth|api3> <address>
    - refresh <chainlink|pyth|api3> <address>
    Example: 'read chainlink 0x...'"""

    flare: FlareTool = None
    registry: AdapterRegistry = None
    price_id: str = BTC_USD_PYTH_PRICE_ID
    max_age: int = MAX_AGE_SECONDS

    def __init__(self, flare_tool: FlareTool):
        super().__init__()
        self.flare = flare_tool
        self.registry = AdapterRegistry()

    @handle_command_errors("Adapter")
    async def _arun(self, command: str) -> str:
        """Execute adapter operation"""
        parts = command.split()
        if len(parts) < 2:
            return "Invalid command format. Use: <deploy|read|refresh> <kind> [address]"
        action, kind = parts[0].lower(), parts[1].lower()

        if action == "deploy":
            address = await self.deploy(kind)
            return f"{self.registry.get(kind).artifact_name} deployed to: {address}"

        if len(parts) < 3:
            return f"Invalid command format. Use: {action} {kind} <address>"
        address = parts[2]

        if action == "read":
            data = await self.read(kind, address)
            return data.format("Cached data") if data else "No data has been cached yet."
        elif action == "refresh":
            tx, event = await self.refresh(kind, address)
            return f"Refresh transaction successful! Hash: {tx.hash}\n{self.format_event(event)}"
        else:
            return f"Unsupported action: {action}"

    def get_adapter(self, kind: str, address: str) -> Any:
        adapter = self.registry.get(kind)
        abi = self.flare.contract_abi(adapter.artifact_name, adapter.abi)
        return self.flare.get_contract(address, abi)

    async def deploy(self, kind: str, **kwargs: Any) -> str:
        adapter = self.registry.get(kind)
        args = constructor_args(kind, **kwargs)
        logger.info(f"Deploying {adapter.artifact_name} with arguments: {[_hex(a) for a in args]}")
        artifact = self.flare.load_artifact(adapter.artifact_name)
        result = await self.flare.deploy_contract(artifact, *args)
        return result.contract_address

    async def read(self, kind: str, address: str):
        """Read the cached price; None when the adapter has no data yet"""
        contract = self.get_adapter(kind, address)
        readers: Dict[str, Callable] = {
            "chainlink": self._read_chainlink,
            "pyth": self._read_pyth,
            "api3": self._read_api3,
        }
        try:
            return await readers[self.registry.get(kind).name](contract)
        except ContractLogicError as e:
            if "NO_DATA" in str(e):
                return None
            raise

    async def _read_chainlink(self, contract: Any) -> Optional[ChainlinkRound]:
        data = ChainlinkRound(*await self.flare.call(contract.functions.latestRoundData()))
        return data if data.updated_at else None

    async def _read_pyth(self, contract: Any) -> Optional[PythPrice]:
        price_id = bytes.fromhex(self.price_id[2:])
        raw = await self.flare.call(contract.functions.getPriceNoOlderThan(price_id, self.max_age))
        data = PythPrice(*raw)
        return data if data.publish_time else None

    async def _read_api3(self, contract: Any) -> Optional[Api3Reading]:
        data = Api3Reading(*await self.flare.call(contract.functions.read()))
        return data if data.timestamp else None

    async def refresh(self, kind: str, address: str):
        """Pull the latest FTSO value into the adapter and decode the Refreshed event"""
        adapter = self.registry.get(kind)
        contract = self.get_adapter(kind, address)
        tx: TransactionResult = await self.flare.send_transaction(
            contract.functions.refresh(), operation=f"refresh {adapter.name}"
        )
        events = contract.events.Refreshed().process_receipt(tx.receipt, errors=DISCARD)
        if not events:
            return tx, None
        args = events[0]["args"]
        return tx, {name: args[name] for name in adapter.event_fields if name in args}

    @staticmethod
    def format_event(event: Optional[Dict[str, Any]]) -> str:
        if not event:
            return "No Refreshed event found"
        lines = ["Refreshed Event Details:"]
        lines += [f"  - {name}: {_hex(value)}" for name, value in event.items()]
        return "\n".join(lines)
