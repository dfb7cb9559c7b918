import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from pydantic import BaseModel, ConfigDict, Field
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted

from ...analytics import OperationAnalytics, TransactionMetrics
from ...core.config import FlareStarterConfig, get_config
from ...core.exceptions import ConfigurationError, ContractNotFoundError, TransactionError
from ...core.types import TransactionResult
from ..base import FlareBaseTool, handle_command_errors
from .artifacts import ContractArtifact, load_artifact
from .network_config import NetworkConfig

logger = logging.getLogger(__name__)


class FlareConfig(BaseModel):
    """Configuration for Flare/EVM tool"""
    network: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    private_key: Optional[str] = None
    artifacts_dir: str = "./artifacts"
    tx_timeout: float = 180.0
    poll_interval: float = 2.0


class FlareTool(FlareBaseTool):
    """Base tool for EVM operations on Flare and LayerZero peer chains"""

    name: str = "flare"
    description: str = "Execute contract reads, writes and deployments on Flare networks"
    config: Optional[FlareConfig] = None
    network: Optional[NetworkConfig] = None
    w3: Any = None
    account: Any = None
    analytics: OperationAnalytics = Field(default_factory=OperationAnalytics)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(
        self,
        network: Optional[str] = None,
        private_key: Optional[str] = None,
        settings: Optional[FlareStarterConfig] = None,
        w3: Any = None,
    ):
        """Initialize Flare tool"""
        super().__init__()

        settings = settings or get_config()
        try:
            self.network = settings.network(network)
        except ValueError as e:
            raise ConfigurationError(str(e))

        self.config = FlareConfig(
            network=self.network.name,
            chain_id=self.network.chain_id,
            rpc_url=self.network.rpc_url,
            explorer_url=self.network.explorer_url,
            private_key=private_key or settings.private_key,
            artifacts_dir=settings.artifacts_dir,
            tx_timeout=settings.tx_timeout,
            poll_interval=settings.poll_interval,
        )
        self.w3 = w3
        self._initialize()

    def _initialize(self):
        """Initialize provider and signer"""
        if self.w3 is None:
            self.w3 = AsyncWeb3(AsyncHTTPProvider(self.config.rpc_url))

        if self.config.private_key:
            key = self.config.private_key
            if not key.startswith("0x"):
                key = "0x" + key
            try:
                self.account = Account.from_key(key)
            except Exception as e:
                raise ConfigurationError(f"Invalid private key: {str(e)}")

    @handle_command_errors("Chain")
    async def _arun(self, command: str) -> str:
        """Execute basic chain queries"""
        parts = command.split()
        if not parts:
            return "Empty command. Use: balance [address] | chain_id | code_size <address>"
        action = parts[0]

        if action == "balance":
            address = parts[1] if len(parts) > 1 else self.address
            balance = await self.get_native_balance(address)
            return f"Balance of {address}: {self.w3.from_wei(balance, 'ether')} {self.network.native_symbol}"
        elif action == "chain_id":
            return f"Chain ID: {await self.get_chain_id()}"
        elif action == "code_size":
            return f"Code size of {parts[1]}: {await self.get_code_size(parts[1])} bytes"
        else:
            return f"Unknown action: {action}"

    @property
    def address(self) -> str:
        if self.account is None:
            raise ConfigurationError("PRIVATE_KEY is not set; a signer is required for this operation")
        return self.account.address

    def to_checksum(self, address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    def get_contract(self, address: str, abi: Sequence[Dict[str, Any]]) -> Any:
        """Get contract instance bound to the provider"""
        try:
            return self.w3.eth.contract(address=self.to_checksum(address), abi=list(abi))
        except Exception as e:
            raise ValueError(f"Failed to create contract: {str(e)}")

    def load_artifact(self, name: str) -> ContractArtifact:
        return load_artifact(name, self.config.artifacts_dir)

    def contract_abi(self, artifact_name: str, fallback: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """ABI from the Hardhat artifact when present, else the built-in one"""
        try:
            return self.load_artifact(artifact_name).abi
        except ContractNotFoundError:
            return list(fallback)

    async def call(self, fn: Any) -> Any:
        """Run a read-only contract function"""
        return await fn.call()

    async def send_transaction(self, fn: Any, value: int = 0, operation: Optional[str] = None) -> TransactionResult:
        """Build, sign and send a contract function call, then wait for its receipt"""
        operation = operation or getattr(fn, "fn_name", "transaction")
        params = await self._tx_params(value)
        try:
            tx = await fn.build_transaction(params)
        except Exception as e:
            raise TransactionError(f"{operation} failed while building transaction: {str(e)}")
        return await self._sign_and_send(tx, operation, value)

    async def deploy_contract(self, artifact: ContractArtifact, *args: Any) -> TransactionResult:
        """Deploy a contract from its artifact with constructor args"""
        if not artifact.deployable:
            raise ContractNotFoundError(f"Artifact {artifact.name} has no bytecode to deploy")

        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        params = await self._tx_params(0)
        try:
            tx = await factory.constructor(*args).build_transaction(params)
        except Exception as e:
            raise TransactionError(f"Deploying {artifact.name} failed: {str(e)}")

        result = await self._sign_and_send(tx, f"deploy {artifact.name}", 0)
        if not result.contract_address:
            raise TransactionError(f"Deployment of {artifact.name} returned no address", result.hash)
        logger.info(f"{artifact.name} deployed at {result.contract_address}")
        return result

    async def _tx_params(self, value: int) -> Dict[str, Any]:
        sender = self.address
        return {
            "from": sender,
            "value": value,
            "nonce": await self.w3.eth.get_transaction_count(sender, "pending"),
            "chainId": self.config.chain_id,
        }

    async def _sign_and_send(self, tx: Dict[str, Any], operation: str, value: int) -> TransactionResult:
        start = time.time()
        signed = self.account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info(f"{operation} sent: {tx_hash_hex}")

        try:
            receipt = await self.wait_until_tx_finished(tx_hash_hex)
        except TransactionError:
            self._record(operation, False, start, 0, tx_hash_hex, value)
            raise

        result = TransactionResult(
            hash=tx_hash_hex,
            success=True,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            contract_address=receipt.get("contractAddress"),
            explorer_url=self.explorer_tx_url(tx_hash_hex),
            logs=list(receipt.get("logs", [])),
            receipt=receipt,
        )
        self._record(operation, True, start, result.gas_used or 0, tx_hash_hex, value)
        return result

    def _record(self, operation: str, success: bool, start: float, gas_used: int, tx_hash: str, value: int):
        self.analytics.log_transaction(TransactionMetrics(
            operation=operation,
            network=self.network.name,
            success=success,
            execution_time=time.time() - start,
            gas_used=gas_used,
            tx_hash=tx_hash,
            value=value,
        ))

    async def wait_until_tx_finished(self, tx_hash: str) -> Dict[str, Any]:
        """Wait until the transaction is mined; a reverted receipt raises"""
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.config.tx_timeout,
                poll_latency=self.config.poll_interval,
            )
        except TimeExhausted:
            raise TransactionError(
                f"Transaction {tx_hash} not mined within {self.config.tx_timeout}s", tx_hash
            )

        if receipt.get("status") == 0:
            raise TransactionError(f"Transaction {tx_hash} reverted", tx_hash)

        await self.wait_for_confirmations(tx_hash, receipt.get("blockNumber"))
        return receipt

    async def wait_for_confirmations(self, tx_hash: str, block_number: Optional[int]) -> None:
        """Block until the network's confirmation depth is reached above the receipt block"""
        required = self.network.confirmations_required
        if required <= 1 or block_number is None:
            return

        deadline = time.monotonic() + self.config.tx_timeout
        while True:
            latest = await self.w3.eth.block_number
            if latest - block_number + 1 >= required:
                return
            if time.monotonic() >= deadline:
                raise TransactionError(
                    f"Transaction {tx_hash} did not reach {required} confirmations within {self.config.tx_timeout}s",
                    tx_hash,
                )
            await self.sleep(self.config.poll_interval)

    async def get_native_balance(self, address: Optional[str] = None) -> int:
        return await self.w3.eth.get_balance(self.to_checksum(address or self.address))

    async def get_chain_id(self) -> int:
        return await self.w3.eth.chain_id

    async def get_code_size(self, address: str) -> int:
        code = await self.w3.eth.get_code(self.to_checksum(address))
        return len(code)

    async def get_block_timestamp(self, block: Any = "latest") -> int:
        data = await self.w3.eth.get_block(block)
        return data["timestamp"]

    def explorer_tx_url(self, tx_hash: str) -> str:
        return self.network.tx_url(tx_hash)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
