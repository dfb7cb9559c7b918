"""Hardhat artifacts and deployment address records"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ...core.exceptions import ConfigurationError, ContractNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ContractArtifact:
    """Compiled contract as emitted by Hardhat"""
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source_name: Optional[str] = None

    @property
    def deployable(self) -> bool:
        return bool(self.bytecode) and self.bytecode not in ("0x", "0x0")


def load_artifact(name: str, artifacts_dir: Union[str, Path] = "./artifacts") -> ContractArtifact:
    """Find <name>.json anywhere below the artifacts tree"""
    root = Path(artifacts_dir)
    if not root.exists():
        raise ContractNotFoundError(f"Artifacts directory not found: {root}")

    candidates = [
        p for p in root.rglob(f"{name}.json")
        if not p.name.endswith(".dbg.json") and "build-info" not in p.parts
    ]
    if not candidates:
        raise ContractNotFoundError(f"Artifact {name} not found under {root}")
    if len(candidates) > 1:
        logger.warning(f"Multiple artifacts named {name}, using {candidates[0]}")

    with open(candidates[0], "r") as f:
        data = json.load(f)

    return ContractArtifact(
        name=data.get("contractName", name),
        abi=data["abi"],
        bytecode=data.get("bytecode", "0x"),
        source_name=data.get("sourceName"),
    )


class DeploymentStore:
    """JSON record of deployed contracts, keyed by network then contract name"""

    def __init__(self, path: Union[str, Path] = "./deployments.json"):
        self.path = Path(path)
        self._data: Dict[str, Dict[str, str]] = {}
        if self.path.exists():
            with open(self.path, "r") as f:
                self._data = json.load(f)

    def get(self, network: str, contract: str) -> Optional[str]:
        return self._data.get(network, {}).get(contract)

    def require(self, network: str, contract: str) -> str:
        address = self.get(network, contract)
        if not address:
            raise ContractNotFoundError(
                f"No {contract} deployment recorded for {network} in {self.path}"
            )
        return address

    def set(self, network: str, contract: str, address: str) -> None:
        self._data.setdefault(network, {})[contract] = address
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        logger.info(f"Recorded {contract} on {network} at {address}")

    def all(self, network: str) -> Dict[str, str]:
        return dict(self._data.get(network, {}))


@dataclass
class VaultDeployment:
    """Addresses from deployment-addresses.json"""
    boring_vault: str
    teller: str
    accountant: str
    assets: Dict[str, str] = field(default_factory=dict)

    _CORE_KEYS = ("boringVault", "teller", "accountant")

    @classmethod
    def from_file(cls, path: Union[str, Path] = "./deployment-addresses.json") -> "VaultDeployment":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"{path} not found. Deploy the vault first.")
        with open(path, "r") as f:
            data = json.load(f)

        addresses = data.get("addresses", {})
        missing = [k for k in cls._CORE_KEYS if not addresses.get(k)]
        if missing:
            raise ConfigurationError(f"{path} is missing addresses: {', '.join(missing)}")

        assets = {k.upper(): v for k, v in addresses.items() if k not in cls._CORE_KEYS}
        return cls(
            boring_vault=addresses["boringVault"],
            teller=addresses["teller"],
            accountant=addresses["accountant"],
            assets=assets,
        )

    def asset(self, symbol: str) -> str:
        try:
            return self.assets[symbol.upper()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown asset {symbol}. Available: {', '.join(sorted(self.assets))}"
            )
