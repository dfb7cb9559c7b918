"""Shared fixtures: an in-memory stand-in for contracts behind FlareTool"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest
from eth_account import Account
from pydantic import Field

from flarestarter.core.config import FlareStarterConfig
from flarestarter.core.exceptions import TransactionError
from flarestarter.core.types import TransactionResult
from flarestarter.tools.crypto.artifacts import ContractArtifact
from flarestarter.tools.crypto.base import FlareTool

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = Account.from_key(TEST_PRIVATE_KEY).address


class FakeFunction:
    def __init__(self, contract: "FakeContract", name: str, args: tuple):
        self.contract = contract
        self.fn_name = name
        self.args = args

    async def call(self):
        if self.fn_name not in self.contract.reads:
            raise AttributeError(f"{self.fn_name} is not stubbed on {self.contract.address}")
        result = self.contract.reads[self.fn_name]
        if isinstance(result, Exception):
            raise result
        return result(*self.args) if callable(result) else result


class FakeFunctions:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    def __getattr__(self, name: str):
        return lambda *args: FakeFunction(self._contract, name, args)


class FakeContract:
    """Contract whose reads come from a dict and whose writes run optional hooks"""

    def __init__(self, address: str, reads: Optional[Dict[str, Any]] = None,
                 writes: Optional[Dict[str, Any]] = None, events: Any = None):
        self.address = address
        self.reads = reads or {}
        self.writes = writes or {}
        self.events = events
        self.functions = FakeFunctions(self)


@dataclass
class SentTransaction:
    contract: str
    fn_name: str
    args: tuple
    value: int
    operation: Optional[str]


class FakeFlareTool(FlareTool):
    contracts: Dict[str, Any] = Field(default_factory=dict)
    sent: List[Any] = Field(default_factory=list)
    deployed: List[Any] = Field(default_factory=list)
    block_timestamp: int = 1_700_000_000
    receipt: Dict[str, Any] = Field(default_factory=dict)

    def add_contract(self, contract: FakeContract) -> FakeContract:
        self.contracts[contract.address.lower()] = contract
        return contract

    def get_contract(self, address, abi):
        try:
            return self.contracts[address.lower()]
        except KeyError:
            raise ValueError(f"No fake contract at {address}")

    async def send_transaction(self, fn, value=0, operation=None):
        hook = fn.contract.writes.get(fn.fn_name)
        if isinstance(hook, Exception):
            raise hook
        if hook is not None:
            hook(*fn.args, value=value)
        self.sent.append(SentTransaction(fn.contract.address, fn.fn_name, fn.args, value, operation))
        tx_hash = "0x" + format(len(self.sent), "064x")
        return TransactionResult(
            hash=tx_hash,
            success=True,
            block_number=100 + len(self.sent),
            gas_used=21000,
            receipt=self.receipt,
        )

    async def deploy_contract(self, artifact, *args):
        self.deployed.append((artifact.name, args))
        address = "0x" + format(0xC0DE0000 + len(self.deployed), "040x")
        return TransactionResult(hash="0x" + "ab" * 32, success=True, contract_address=address)

    def load_artifact(self, name):
        return ContractArtifact(name=name, abi=[], bytecode="0x6080")

    def contract_abi(self, artifact_name, fallback):
        return list(fallback)

    async def get_block_timestamp(self, block="latest"):
        return self.block_timestamp

    async def get_chain_id(self):
        return self.network.chain_id

    async def get_code_size(self, address):
        return 1234

    async def get_native_balance(self, address=None):
        return 10 ** 18

    async def sleep(self, seconds):
        return None

    def writes_to(self, fn_name: str) -> List[SentTransaction]:
        return [tx for tx in self.sent if tx.fn_name == fn_name]


def make_settings(tmp_path, **overrides) -> FlareStarterConfig:
    values = {
        "private_key": TEST_PRIVATE_KEY,
        "deployments_file": str(tmp_path / "deployments.json"),
        "vault_deployment_file": str(tmp_path / "deployment-addresses.json"),
        "artifacts_dir": str(tmp_path / "artifacts"),
        "open_weather_api_key": "weather-key",
    }
    values.update(overrides)
    return FlareStarterConfig(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def flare(settings):
    return FakeFlareTool(network="coston2", settings=settings)


@pytest.fixture
def reverted():
    return TransactionError("execution reverted")
