import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi import encode

from ...core.config import FlareStarterConfig, get_config
from ...core.exceptions import ConfigurationError, InsufficientBalanceError
from ...core.types import TransactionResult
from ...utils.units import (
    address_to_bytes32,
    bytes32_to_address,
    format_units,
    is_zero_bytes32,
    parse_units,
)
from ..base import FlareBaseTool, handle_command_errors
from .abis import ERC20_ABI, OFT_ABI
from .base import FlareTool
from .layerzero_endpoints import (
    endpoint_v2_address,
    layerzero_scan_url,
    v2_testnet_endpoints,
)
from .layerzero_options import new_options
from .network_config import NetworkRegistry

logger = logging.getLogger(__name__)

FXRP_DECIMALS = 6
EXECUTOR_GAS = 200_000
COMPOSE_GAS = 300_000
DEFAULT_UNDERLYING_ADDRESS = "rpHuw4bKSjonKRrKKVYUZYYVedg1jyPrmp"


@dataclass
class PeerInfo:
    name: str
    eid: int
    peer: str


@dataclass
class PeerScanResult:
    """Peers configured on an OApp across the scanned endpoints"""
    oapp: str
    scanned: int
    peers: List[PeerInfo] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_markdown_table(self) -> str:
        lines = ["| Chain | EID | Peer Address |", "|-------|-----|--------------|"]
        lines += [f"| {p.name} | {p.eid} | {p.peer} |" for p in self.peers]
        return "\n".join(lines)

    def to_json(self) -> str:
        return json.dumps([asdict(p) for p in self.peers], indent=2)

    @property
    def routes(self) -> List[str]:
        return [p.name for p in self.peers]


@dataclass
class BridgeResult:
    """Outcome of an OFT send"""
    transaction: TransactionResult
    amount: int
    dst_eid: int
    native_fee: int
    layerzero_scan_url: str
    approval: Optional[TransactionResult] = None


def build_send_param(
    dst_eid: int,
    to: str,
    amount: int,
    min_amount: Optional[int] = None,
    options: bytes = b"",
    compose_msg: bytes = b"",
    oft_cmd: bytes = b"",
) -> Tuple[int, bytes, int, int, bytes, bytes, bytes]:
    """SendParam tuple with the recipient left-padded to bytes32"""
    if amount <= 0:
        raise ValueError("Amount must be greater than 0")
    return (
        dst_eid,
        address_to_bytes32(to),
        amount,
        amount if min_amount is None else min_amount,
        options,
        compose_msg,
        oft_cmd,
    )


def encode_redeem_compose_msg(amount: int, underlying_address: str, redeemer: str) -> bytes:
    """Compose payload read by FAssetRedeemComposer: (amount, underlying address, redeemer)"""
    return encode(["uint256", "string", "address"], [amount, underlying_address, redeemer])


class OFTBridgeTool(FlareBaseTool):
    """Tool for LayerZero OFT bridging of FAssets"""

    name: str = "oft_bridge"
    description: str = """Bridge FXRP over LayerZero. Available commands:
    - peers [oapp_address]
    - balance [oft_address] [holder]
    - quote <amount> <dst_network> [recipient]
    - bridge <amount> <dst_network> [recipient]
    - send_and_redeem <amount> [xrp_address]
    - deploy_composer
    Example: 'bridge 20 sepolia'"""

    flare: FlareTool = None
    settings: Any = None

    def __init__(self, flare_tool: FlareTool, settings: Optional[FlareStarterConfig] = None):
        super().__init__()
        self.flare = flare_tool
        self.settings = settings or get_config()

    @handle_command_errors("Bridge")
    async def _arun(self, command: str) -> str:
        """Execute bridge operation"""
        parts = command.split()
        if not parts:
            return "Empty command"
        action = parts[0].lower()

        if action == "peers":
            oapp = parts[1] if len(parts) > 1 else self.settings.coston2_oft_adapter
            result = await self.scan_peers(oapp)
            summary = f"Found {len(result.peers)} configured peer(s) out of {result.scanned} endpoints"
            return f"{summary}\n\n{result.to_markdown_table()}\n\n{result.to_json()}"

        elif action == "balance":
            oft = parts[1] if len(parts) > 1 else self.settings.sepolia_fxrp_oft
            holder = parts[2] if len(parts) > 2 else None
            balance = await self.oft_balance(oft, holder)
            return f"Balance: {format_units(balance, FXRP_DECIMALS)} FXRP (raw {balance})"

        elif action in ("quote", "bridge"):
            if len(parts) < 3:
                return f"Invalid command format. Use: {action} <amount> <dst_network> [recipient]"
            amount = parse_units(parts[1], FXRP_DECIMALS)
            dst = NetworkRegistry().get(parts[2])
            if dst.eid is None:
                raise ConfigurationError(f"Network {dst.name} has no LayerZero endpoint id")
            recipient = parts[3] if len(parts) > 3 else None

            if action == "quote":
                native_fee, _ = await self.quote_bridge(amount, dst.eid, recipient=recipient)
                return (
                    f"LayerZero fee for {parts[1]} FXRP to {dst.name}: "
                    f"{self.flare.w3.from_wei(native_fee, 'ether')} {self.flare.network.native_symbol}"
                )
            result = await self.bridge(amount, dst.eid, recipient=recipient)
            return (
                f"Bridged {format_units(amount, FXRP_DECIMALS)} FXRP to {dst.name}. "
                f"Transaction: {result.transaction.hash}. Track: {result.layerzero_scan_url}"
            )

        elif action == "send_and_redeem":
            if len(parts) < 2:
                return "Invalid command format. Use: send_and_redeem <amount> [xrp_address]"
            amount = parse_units(parts[1], FXRP_DECIMALS)
            underlying = parts[2] if len(parts) > 2 else DEFAULT_UNDERLYING_ADDRESS
            result = await self.send_and_redeem(amount, underlying)
            return (
                f"Sent {parts[1]} FXRP to Coston2 with auto-redeem to {underlying}. "
                f"Transaction: {result.transaction.hash}. Track: {result.layerzero_scan_url}"
            )

        elif action == "deploy_composer":
            address = await self.deploy_redeem_composer()
            if address is None:
                return f"redeem_composer not configured for {self.flare.network.name}, skipped"
            return f"FAssetRedeemComposer deployed at {address}. Set COSTON2_COMPOSER={address}"

        else:
            return f"Unknown action: {action}"

    async def scan_peers(self, oapp_address: str,
                         endpoints: Optional[Sequence[Tuple[str, int]]] = None) -> PeerScanResult:
        """Query peers(eid) for every endpoint; failures are collected, not raised"""
        endpoints = endpoints if endpoints is not None else v2_testnet_endpoints()
        oapp = self.flare.get_contract(oapp_address, OFT_ABI)
        result = PeerScanResult(oapp=oapp_address, scanned=len(endpoints))
        logger.info(f"Scanning {len(endpoints)} LayerZero endpoints for peers of {oapp_address}")

        for name, eid in endpoints:
            try:
                peer = await self.flare.call(oapp.functions.peers(eid))
            except Exception as e:
                result.errors.append({"name": name, "eid": eid, "error": str(e)[:50]})
                continue
            if peer and not is_zero_bytes32(peer):
                info = PeerInfo(name=name, eid=eid, peer=bytes32_to_address(peer))
                result.peers.append(info)
                logger.info(f"{name} (EID: {eid}): {info.peer}")

        if result.errors:
            logger.debug(f"{len(result.errors)} endpoints had errors or are not available")
        return result

    async def oft_balance(self, oft_address: str, holder: Optional[str] = None) -> int:
        oft = self.flare.get_contract(oft_address, OFT_ABI)
        return await self.flare.call(oft.functions.balanceOf(holder or self.flare.address))

    async def quote_send(self, oft: Any, send_param: Tuple) -> Tuple[int, int]:
        native_fee, lz_token_fee = await self.flare.call(oft.functions.quoteSend(send_param, False))
        return native_fee, lz_token_fee

    async def quote_bridge(self, amount: int, dst_eid: int, recipient: Optional[str] = None,
                           oft_address: Optional[str] = None) -> Tuple[int, int]:
        oft = self.flare.get_contract(oft_address or self.settings.coston2_oft_adapter, OFT_ABI)
        options = new_options().add_executor_lz_receive_option(EXECUTOR_GAS, 0)
        send_param = build_send_param(dst_eid, recipient or self.flare.address, amount,
                                      options=options.to_bytes())
        return await self.quote_send(oft, send_param)

    async def bridge(
        self,
        amount: int,
        dst_eid: int,
        recipient: Optional[str] = None,
        oft_address: Optional[str] = None,
        via_adapter: bool = True,
        executor_gas: int = EXECUTOR_GAS,
    ) -> BridgeResult:
        """Send tokens to another chain; an adapter pulls the underlying token so it is approved first"""
        oft_address = oft_address or self.settings.coston2_oft_adapter
        if not oft_address or int(oft_address, 16) == 0:
            raise ConfigurationError("COSTON2_OFT_ADAPTER not configured. Deploy an OFT adapter first.")

        sender = self.flare.address
        recipient = recipient or sender
        oft = self.flare.get_contract(oft_address, OFT_ABI)

        token = oft
        if via_adapter:
            token_address = await self.flare.call(oft.functions.token())
            token = self.flare.get_contract(token_address, ERC20_ABI)

        balance = await self.flare.call(token.functions.balanceOf(sender))
        logger.info(f"Token balance: {format_units(balance, FXRP_DECIMALS)}")
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient balance: have {format_units(balance, FXRP_DECIMALS)}, "
                f"need {format_units(amount, FXRP_DECIMALS)}",
                required=amount, available=balance,
            )

        approval = None
        if via_adapter:
            approval = await self.flare.send_transaction(
                token.functions.approve(oft.address, amount), operation="approve"
            )
            logger.info(f"Approved {oft.address} for {amount}")

        options = new_options().add_executor_lz_receive_option(executor_gas, 0)
        send_param = build_send_param(dst_eid, recipient, amount, options=options.to_bytes())
        native_fee, _ = await self.quote_send(oft, send_param)
        logger.info(f"LayerZero fee: {native_fee}")

        tx = await self.flare.send_transaction(
            oft.functions.send(send_param, (native_fee, 0), sender),
            value=native_fee,
            operation="oft_send",
        )
        return BridgeResult(
            transaction=tx,
            amount=amount,
            dst_eid=dst_eid,
            native_fee=native_fee,
            layerzero_scan_url=layerzero_scan_url(tx.hash, self.flare.network.is_testnet),
            approval=approval,
        )

    async def send_and_redeem(
        self,
        amount: int,
        underlying_address: str = DEFAULT_UNDERLYING_ADDRESS,
        oft_address: Optional[str] = None,
        composer: Optional[str] = None,
        redeemer: Optional[str] = None,
    ) -> BridgeResult:
        """Send FXRP to the Coston2 composer, which redeems it to the underlying XRP address"""
        composer = composer or self.settings.coston2_composer
        if not composer:
            raise ConfigurationError(
                "COSTON2_COMPOSER not set. Deploy FAssetRedeemComposer on coston2 first."
            )

        sender = self.flare.address
        redeemer = redeemer or sender
        dst_eid = NetworkRegistry().get("coston2").eid
        oft = self.flare.get_contract(oft_address or self.settings.sepolia_fxrp_oft, OFT_ABI)

        compose_msg = encode_redeem_compose_msg(amount, underlying_address, redeemer)
        options = (
            new_options()
            .add_executor_lz_receive_option(EXECUTOR_GAS, 0)
            .add_executor_compose_option(0, COMPOSE_GAS, 0)
        )
        send_param = build_send_param(
            dst_eid, composer, amount, options=options.to_bytes(), compose_msg=compose_msg
        )

        native_fee, lz_token_fee = await self.quote_send(oft, send_param)
        logger.info(f"Native fee: {self.flare.w3.from_wei(native_fee, 'ether')}")

        balance = await self.flare.call(oft.functions.balanceOf(sender))
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient FXRP balance: have {format_units(balance, FXRP_DECIMALS)}, "
                f"need {format_units(amount, FXRP_DECIMALS)}",
                required=amount, available=balance,
            )

        logger.info(f"Sending {format_units(amount, FXRP_DECIMALS)} FXRP to {composer} for redemption to {underlying_address}")
        tx = await self.flare.send_transaction(
            oft.functions.send(send_param, (native_fee, lz_token_fee), sender),
            value=native_fee,
            operation="oft_send_and_redeem",
        )
        return BridgeResult(
            transaction=tx,
            amount=amount,
            dst_eid=dst_eid,
            native_fee=native_fee,
            layerzero_scan_url=layerzero_scan_url(tx.hash, self.flare.network.is_testnet),
        )

    async def deploy_redeem_composer(self) -> Optional[str]:
        """Deploy FAssetRedeemComposer with the network's endpoint, fAsset token and asset manager"""
        composer_config = self.flare.network.redeem_composer
        if composer_config is None:
            logger.warning(
                f"redeem_composer not configured on {self.flare.network.name}, "
                "skipping FAssetRedeemComposer deployment"
            )
            return None

        artifact = self.flare.load_artifact("FAssetRedeemComposer")
        result = await self.flare.deploy_contract(
            artifact,
            endpoint_v2_address(self.flare.network.is_testnet),
            self.flare.to_checksum(composer_config.fasset_token),
            self.flare.to_checksum(composer_config.asset_manager),
        )
        return result.contract_address
