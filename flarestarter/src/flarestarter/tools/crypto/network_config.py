from dataclasses import dataclass, field
from typing import Dict, List, Optional

@dataclass
class RedeemComposerConfig:
    """FAsset redemption composer deployment settings"""
    fasset_token: str
    asset_manager: str

@dataclass
class NetworkConfig:
    """Network configuration"""
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    native_symbol: str
    eid: Optional[int] = None
    confirmations_required: int = 1
    is_flare: bool = False
    is_testnet: bool = True
    oft_adapter_token: Optional[str] = None
    redeem_composer: Optional[RedeemComposerConfig] = None
    systems_explorer_url: Optional[str] = None

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/address/{address}"

class NetworkRegistry:
    """Registry of the networks the scripts can talk to"""

    def __init__(self):
        self.networks: Dict[str, NetworkConfig] = {
            "coston": NetworkConfig(
                name="coston",
                chain_id=16,
                rpc_url="https://coston-api.flare.network/ext/bc/C/rpc",
                explorer_url="https://coston-explorer.flare.network",
                native_symbol="CFLR",
                is_flare=True,
                systems_explorer_url="https://coston-systems-explorer.flare.rocks",
            ),
            "coston2": NetworkConfig(
                name="coston2",
                chain_id=114,
                rpc_url="https://coston2-api.flare.network/ext/C/rpc",
                explorer_url="https://coston2-explorer.flare.network",
                native_symbol="C2FLR",
                eid=40294,
                confirmations_required=2,
                is_flare=True,
                oft_adapter_token="0x8b4abA9C4BD7DD961659b02129beE20c6286e17F",
                redeem_composer=RedeemComposerConfig(
                    fasset_token="0x8b4abA9C4BD7DD961659b02129beE20c6286e17F",
                    asset_manager="0xc1Ca88b937d0b528842F95d5731ffB586f4fbDFA",
                ),
                systems_explorer_url="https://coston2-systems-explorer.flare.rocks",
            ),
            "songbird": NetworkConfig(
                name="songbird",
                chain_id=19,
                rpc_url="https://songbird-api.flare.network/ext/bc/C/rpc",
                explorer_url="https://songbird-explorer.flare.network",
                native_symbol="SGB",
                is_flare=True,
                is_testnet=False,
                systems_explorer_url="https://songbird-systems-explorer.flare.rocks",
            ),
            "flare": NetworkConfig(
                name="flare",
                chain_id=14,
                rpc_url="https://flare-api.flare.network/ext/C/rpc",
                explorer_url="https://flare-explorer.flare.network",
                native_symbol="FLR",
                eid=30295,
                confirmations_required=2,
                is_flare=True,
                is_testnet=False,
                oft_adapter_token="0xAd552A648C74D49E10027AB8a618A3ad4901c5bE",
                systems_explorer_url="https://flare-systems-explorer.flare.rocks",
            ),
            "sepolia": NetworkConfig(
                name="sepolia",
                chain_id=11155111,
                rpc_url="https://ethereum-sepolia-rpc.publicnode.com",
                explorer_url="https://sepolia.etherscan.io",
                native_symbol="ETH",
                eid=40161,
                confirmations_required=6,
            ),
            "bsc_testnet": NetworkConfig(
                name="bsc_testnet",
                chain_id=97,
                rpc_url="https://bsc-testnet-rpc.publicnode.com",
                explorer_url="https://testnet.bscscan.com",
                native_symbol="tBNB",
                eid=40102,
                confirmations_required=6,
            ),
            "hyperliquid_testnet": NetworkConfig(
                name="hyperliquid_testnet",
                chain_id=998,
                rpc_url="https://rpc.hyperliquid-testnet.xyz/evm",
                explorer_url="https://testnet.purrsec.com",
                native_symbol="HYPE",
                eid=40362,
                confirmations_required=2,
            ),
        }

    def get(self, name: str) -> NetworkConfig:
        """Get network by name; accepts camelCase names like bscTestnet"""
        key = self._normalize(name)
        if key not in self.networks:
            raise ValueError(
                f"Unknown network {name}. Available: {', '.join(sorted(self.networks))}"
            )
        return self.networks[key]

    def is_supported(self, name: str) -> bool:
        return self._normalize(name) in self.networks

    def by_eid(self, eid: int) -> Optional[NetworkConfig]:
        for network in self.networks.values():
            if network.eid == eid:
                return network
        return None

    def flare_networks(self) -> List[NetworkConfig]:
        return [n for n in self.networks.values() if n.is_flare]

    @staticmethod
    def _normalize(name: str) -> str:
        out = []
        for char in name.strip():
            if char.isupper():
                out.append("_")
            out.append(char.lower())
        return "".join(out).replace("-", "_").lstrip("_")
