"""Flare contract registry lookups and FTSOv2 feed reads"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Union

from .abis import FLARE_CONTRACT_REGISTRY_ABI, FTSO_V2_ABI
from .base import FlareTool
from ...core.exceptions import ContractNotFoundError

logger = logging.getLogger(__name__)

FLARE_CONTRACT_REGISTRY_ADDRESS = "0xaD67FE66660Fb8dFE9d6b1b4240d8650e30F6019"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# FTSO feed categories
CRYPTO = 1
FOREX = 2
COMMODITY = 3
STOCK = 4


def feed_id(name: str, category: int = CRYPTO) -> str:
    """21-byte FTSO feed id: category byte followed by the right-padded feed name"""
    encoded = name.encode("utf-8")
    if len(encoded) > 20:
        raise ValueError(f"Feed name too long: {name}")
    return "0x" + bytes([category]).hex() + encoded.hex().ljust(40, "0")


@dataclass
class FeedValue:
    """Single FTSOv2 feed reading"""
    feed_id: str
    value: int
    decimals: int
    timestamp: int

    @property
    def price(self) -> Decimal:
        return Decimal(self.value) / (Decimal(10) ** self.decimals)


class FlareContractRegistry:
    """Resolves protocol contract addresses by name, caching results"""

    def __init__(self, flare: FlareTool, address: str = FLARE_CONTRACT_REGISTRY_ADDRESS):
        self.flare = flare
        self.contract = flare.get_contract(address, FLARE_CONTRACT_REGISTRY_ABI)
        self._cache: Dict[str, str] = {}

    async def get_contract_address_by_name(self, name: str) -> str:
        if name in self._cache:
            return self._cache[name]

        address = await self.flare.call(self.contract.functions.getContractAddressByName(name))
        if not address or int(address, 16) == 0:
            raise ContractNotFoundError(f"{name} is not registered on {self.flare.network.name}")

        logger.debug(f"Registry: {name} -> {address}")
        self._cache[name] = address
        return address

    async def get_contract(self, name: str, abi):
        address = await self.get_contract_address_by_name(name)
        return self.flare.get_contract(address, abi)

    async def get_ftso_v2(self):
        return await self.get_contract("FtsoV2", FTSO_V2_ABI)

    async def get_ftso_v2_feed(self, feed: Union[str, bytes]) -> FeedValue:
        """Read a feed value from FtsoV2"""
        if isinstance(feed, str):
            feed = bytes.fromhex(feed[2:] if feed.startswith("0x") else feed)
        ftso = await self.get_ftso_v2()
        value, decimals, timestamp = await self.flare.call(ftso.functions.getFeedById(feed))
        return FeedValue(feed_id="0x" + feed.hex(), value=value, decimals=decimals, timestamp=timestamp)
