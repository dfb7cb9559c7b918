"""FXRP lot sizing and direct redemption through the FAssets AssetManager"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from eth_abi import decode
from eth_utils import keccak, to_checksum_address

from ...core.exceptions import ConfigurationError, ContractNotFoundError, InsufficientBalanceError
from ...core.types import TransactionResult
from ...utils.units import format_units
from ..base import FlareBaseTool, handle_command_errors
from .abis import ASSET_MANAGER_ABI, ERC20_ABI, REDEMPTION_REQUESTED_INPUTS
from .base import FlareTool
from .contract_registry import ZERO_ADDRESS, FlareContractRegistry
from .oft_bridge import DEFAULT_UNDERLYING_ADDRESS

logger = logging.getLogger(__name__)

ASSET_MANAGER_FXRP = "AssetManagerFXRP"
FASSETS_NETWORKS = ("coston", "coston2", "songbird", "flare")

INDEXED_FIELDS = ("agentVault", "redeemer", "requestId")
REDEMPTION_REQUESTED_SIGNATURE = "RedemptionRequested({})".format(
    ",".join(p[1] for p in REDEMPTION_REQUESTED_INPUTS)
)
REDEMPTION_REQUESTED_TOPIC = "0x" + keccak(text=REDEMPTION_REQUESTED_SIGNATURE).hex()


def _hex(value: Union[str, bytes]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value if value.startswith("0x") else "0x" + value


def _raw(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


@dataclass
class LotSize:
    """Smallest redeemable FXRP amount, in UBA"""
    uba: int
    decimals: int

    @property
    def formatted(self) -> str:
        return format_units(self.uba, self.decimals)

    def amount_for(self, lots: int) -> int:
        return self.uba * lots


@dataclass
class RedemptionRequest:
    """Decoded RedemptionRequested event"""
    agent_vault: str
    redeemer: str
    request_id: int
    payment_address: str
    value_uba: int
    fee_uba: int
    first_underlying_block: int
    last_underlying_block: int
    last_underlying_timestamp: int
    payment_reference: str
    executor: str
    executor_fee_nat_wei: int


def parse_redemption_requested(logs: List[Dict[str, Any]]) -> List[RedemptionRequest]:
    """RedemptionRequested entries among raw receipt logs; other events are skipped"""
    indexed = [p for p in REDEMPTION_REQUESTED_INPUTS if p[0] in INDEXED_FIELDS]
    body = [p for p in REDEMPTION_REQUESTED_INPUTS if p[0] not in INDEXED_FIELDS]

    requests = []
    for log in logs:
        topics = [_hex(t) for t in log.get("topics", [])]
        if not topics or topics[0].lower() != REDEMPTION_REQUESTED_TOPIC:
            continue

        values = {
            name: decode([type_], _raw(topic))[0]
            for (name, type_), topic in zip(indexed, topics[1:])
        }
        values.update(zip([p[0] for p in body], decode([p[1] for p in body], _raw(log["data"]))))
        requests.append(RedemptionRequest(
            agent_vault=to_checksum_address(values["agentVault"]),
            redeemer=to_checksum_address(values["redeemer"]),
            request_id=values["requestId"],
            payment_address=values["paymentAddress"],
            value_uba=values["valueUBA"],
            fee_uba=values["feeUBA"],
            first_underlying_block=values["firstUnderlyingBlock"],
            last_underlying_block=values["lastUnderlyingBlock"],
            last_underlying_timestamp=values["lastUnderlyingTimestamp"],
            payment_reference=_hex(values["paymentReference"]),
            executor=to_checksum_address(values["executor"]),
            executor_fee_nat_wei=values["executorFeeNatWei"],
        ))
    return requests


@dataclass
class RedeemResult:
    transaction: TransactionResult
    lots: int
    amount: int
    requests: List[RedemptionRequest]


class FAssetsTool(FlareBaseTool):
    """Tool for FXRP settings and redemptions to the XRP Ledger"""

    name: str = "fassets"
    description: str = """Work with FXRP on Flare networks. Available commands:
    - asset_manager: FXRP AssetManager address
    - fasset: FXRP token address
    - lot_size: redemption lot size
    - redeem <lots> [xrp_address]
    Example: 'redeem 1 rpHuw4bKSjonKRrKKVYUZYYVedg1jyPrmp'"""

    flare: FlareTool = None
    registry: Any = None

    def __init__(self, flare_tool: FlareTool, registry: Optional[FlareContractRegistry] = None):
        super().__init__()
        self.flare = flare_tool
        self.registry = registry

    @handle_command_errors("FAssets")
    async def _arun(self, command: str) -> str:
        """Execute FAssets operation"""
        parts = command.split()
        if not parts:
            return "Empty command"
        action = parts[0].lower()

        if action == "asset_manager":
            return f"AssetManagerFXRP: {await self.asset_manager_address()}"
        elif action == "fasset":
            return f"FXRP address: {await self.fasset_address()}"
        elif action == "lot_size":
            lot = await self.lot_size()
            return f"Lot size: {lot.uba} UBA ({lot.formatted} FXRP, {lot.decimals} decimals)"
        elif action == "redeem":
            if len(parts) < 2:
                return "Invalid command format. Use: redeem <lots> [xrp_address]"
            underlying = parts[2] if len(parts) > 2 else DEFAULT_UNDERLYING_ADDRESS
            result = await self.redeem(int(parts[1]), underlying)
            lines = [f"Redeemed {result.lots} lot(s). Transaction: {result.transaction.hash}"]
            lines += [
                f"Request {r.request_id}: {r.value_uba} UBA from agent {r.agent_vault} to {r.payment_address}"
                for r in result.requests
            ]
            return "\n".join(lines)
        else:
            return f"Unknown action: {action}"

    async def asset_manager_address(self) -> str:
        """Registry entry first, then the network's configured AssetManager"""
        network = self.flare.network
        if network.name not in FASSETS_NETWORKS:
            raise ConfigurationError(f"FAssets are not available on {network.name}")

        if self.registry is None:
            self.registry = FlareContractRegistry(self.flare)
        try:
            return await self.registry.get_contract_address_by_name(ASSET_MANAGER_FXRP)
        except ContractNotFoundError:
            if network.redeem_composer is None:
                raise
            logger.info(f"{ASSET_MANAGER_FXRP} not registered, using configured AssetManager")
            return network.redeem_composer.asset_manager

    async def asset_manager(self) -> Any:
        return self.flare.get_contract(await self.asset_manager_address(), ASSET_MANAGER_ABI)

    async def fasset_address(self) -> str:
        manager = await self.asset_manager()
        return await self.flare.call(manager.functions.fAsset())

    async def lot_size(self) -> LotSize:
        manager = await self.asset_manager()
        uba = await self.flare.call(manager.functions.lotSize())
        decimals = await self.flare.call(manager.functions.assetMintingDecimals())
        return LotSize(uba=uba, decimals=decimals)

    async def redeem(self, lots: int, underlying_address: str = DEFAULT_UNDERLYING_ADDRESS,
                     executor: str = ZERO_ADDRESS, executor_fee: int = 0) -> RedeemResult:
        """Burn lots of FXRP and request the XRP payment to underlying_address"""
        if lots <= 0:
            raise ValueError("Lots must be greater than 0")

        manager = await self.asset_manager()
        lot = await self.lot_size()
        amount = lot.amount_for(lots)

        fasset = self.flare.get_contract(await self.flare.call(manager.functions.fAsset()), ERC20_ABI)
        balance = await self.flare.call(fasset.functions.balanceOf(self.flare.address))
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient FXRP balance: have {format_units(balance, lot.decimals)}, "
                f"need {format_units(amount, lot.decimals)} for {lots} lot(s)",
                required=amount, available=balance,
            )

        logger.info(f"Redeeming {lots} lot(s) ({format_units(amount, lot.decimals)} FXRP) to {underlying_address}")
        tx = await self.flare.send_transaction(
            manager.functions.redeem(lots, underlying_address, executor),
            value=executor_fee,
            operation="fassets_redeem",
        )

        requests = parse_redemption_requested(tx.logs or (tx.receipt or {}).get("logs", []))
        for request in requests:
            logger.info(f"Redemption request {request.request_id} assigned to agent {request.agent_vault}")
        return RedeemResult(transaction=tx, lots=lots, amount=amount, requests=requests)
