"""LayerZero V2 endpoint ids, keyed the way lz-definitions names them"""

from enum import IntEnum
from typing import List, Optional, Tuple

TESTNET_SUFFIX = "_V2_TESTNET"
MAINNET_SUFFIX = "_V2_MAINNET"

# EndpointV2 is deployed at the same address on every testnet and every mainnet
ENDPOINT_V2_TESTNET = "0x6EDCE65403992e310A62460808c4b910D972f10f"
ENDPOINT_V2_MAINNET = "0x1a44076050125825900e736c501f859c50fE728c"

LAYERZERO_SCAN_TESTNET = "https://testnet.layerzeroscan.com"
LAYERZERO_SCAN_MAINNET = "https://layerzeroscan.com"


class EndpointId(IntEnum):
    # V2 testnets
    BSC_V2_TESTNET = 40102
    AVALANCHE_V2_TESTNET = 40106
    FANTOM_V2_TESTNET = 40112
    CELO_V2_TESTNET = 40125
    SEPOLIA_V2_TESTNET = 40161
    SCROLL_V2_TESTNET = 40170
    HOLESKY_V2_TESTNET = 40217
    ARBSEP_V2_TESTNET = 40231
    OPTSEP_V2_TESTNET = 40232
    BASESEP_V2_TESTNET = 40245
    MANTLESEP_V2_TESTNET = 40246
    AMOY_V2_TESTNET = 40267
    LINEASEP_V2_TESTNET = 40287
    FLARE_V2_TESTNET = 40294
    HYPERLIQUID_V2_TESTNET = 40362

    # V2 mainnets
    ETHEREUM_V2_MAINNET = 30101
    BSC_V2_MAINNET = 30102
    AVALANCHE_V2_MAINNET = 30106
    POLYGON_V2_MAINNET = 30109
    ARBITRUM_V2_MAINNET = 30110
    OPTIMISM_V2_MAINNET = 30111
    BASE_V2_MAINNET = 30184
    FLARE_V2_MAINNET = 30295
    HYPERLIQUID_V2_MAINNET = 30367


def display_name(key: str) -> str:
    """SEPOLIA_V2_TESTNET -> Sepolia, ARBSEP_V2_TESTNET -> Arbsep"""
    for suffix in (TESTNET_SUFFIX, MAINNET_SUFFIX):
        if key.endswith(suffix):
            key = key[: -len(suffix)]
    return " ".join(word[:1] + word[1:].lower() for word in key.split("_"))


def _endpoints(suffix: str) -> List[Tuple[str, int]]:
    found = [(display_name(e.name), int(e.value)) for e in EndpointId if e.name.endswith(suffix)]
    return sorted(found, key=lambda item: item[1])


def v2_testnet_endpoints() -> List[Tuple[str, int]]:
    """All V2 testnet endpoints as (name, eid), sorted by eid"""
    return _endpoints(TESTNET_SUFFIX)


def v2_mainnet_endpoints() -> List[Tuple[str, int]]:
    return _endpoints(MAINNET_SUFFIX)


def endpoint_v2_address(testnet: bool = True) -> str:
    return ENDPOINT_V2_TESTNET if testnet else ENDPOINT_V2_MAINNET


def layerzero_scan_url(tx_hash: str, testnet: bool = True) -> str:
    base = LAYERZERO_SCAN_TESTNET if testnet else LAYERZERO_SCAN_MAINNET
    return f"{base}/tx/{tx_hash}"


def endpoint_name(eid: int) -> Optional[str]:
    try:
        return display_name(EndpointId(eid).name)
    except ValueError:
        return None
