import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...core.config import FlareStarterConfig, get_config
from ...core.exceptions import InsufficientBalanceError, TransactionError
from ...core.types import TransactionResult
from ...utils.units import format_units, parse_units
from ..base import FlareBaseTool, handle_command_errors
from .abis import ACCOUNTANT_ABI, BORING_VAULT_ABI, ERC20_ABI, TELLER_ABI
from .artifacts import VaultDeployment
from .base import FlareTool
from .vault_math import (
    DEFAULT_SLIPPAGE_BPS,
    MAX_UINT256,
    apply_slippage,
    assets_to_shares,
    realized_rate,
    shares_to_assets,
)

logger = logging.getLogger(__name__)


@dataclass
class VaultInfo:
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: int
    owner: str
    authority: str
    chain_id: int
    code_size: int

    @property
    def formatted_supply(self) -> str:
        return format_units(self.total_supply, self.decimals)


@dataclass
class AssetRate:
    symbol: str
    address: str
    decimals: int
    rate: Optional[int]

    def example_conversions(self, vault_decimals: int) -> Dict[str, int]:
        """100 tokens to shares and 10 shares to tokens at this rate"""
        if not self.rate:
            return {}
        return {
            "shares_for_100": assets_to_shares(100 * 10 ** self.decimals, self.rate, vault_decimals),
            "assets_for_10_shares": shares_to_assets(10 * 10 ** vault_decimals, self.rate, vault_decimals),
        }


@dataclass
class UserPosition:
    address: str
    shares: int
    share_unlock_time: int
    asset_balances: Dict[str, int] = field(default_factory=dict)

    @property
    def is_unlocked(self) -> bool:
        return time.time() >= self.share_unlock_time


@dataclass
class VaultOperationResult:
    transaction: TransactionResult
    expected: int
    minimum: int
    received: int
    approval: Optional[TransactionResult] = None
    share_unlock_time: Optional[int] = None


class BoringVaultTool(FlareBaseTool):
    """Tool for BoringVault deposits and withdrawals through the Teller"""

    name: str = "boring_vault"
    description: str = """Interact with a BoringVault. Available commands:
    - info
    - position [address]
    - rates
    - approve <asset> <amount|max>
    - revoke <asset>
    - deposit <asset> <amount> [slippage_bps]
    - withdraw <asset> <shares> [slippage_bps]
    Example: 'deposit TUSD 100'"""

    flare: FlareTool = None
    deployment: VaultDeployment = None

    def __init__(self, flare_tool: FlareTool, deployment: Optional[VaultDeployment] = None,
                 settings: Optional[FlareStarterConfig] = None):
        super().__init__()
        self.flare = flare_tool
        settings = settings or get_config()
        self.deployment = deployment or VaultDeployment.from_file(settings.vault_deployment_file)

    @handle_command_errors("Vault")
    async def _arun(self, command: str) -> str:
        """Execute vault operation"""
        parts = command.split()
        if not parts:
            return "Empty command"
        action = parts[0].lower()

        if action == "info":
            info = await self.read_vault_info()
            return (
                f"{info.name} ({info.symbol}), {info.decimals} decimals\n"
                f"Total Supply: {info.formatted_supply} {info.symbol}\n"
                f"Owner: {info.owner}\nAuthority: {info.authority}\n"
                f"Chain ID: {info.chain_id}, code size {info.code_size} bytes"
            )
        elif action == "position":
            position = await self.check_user_balance(parts[1] if len(parts) > 1 else None)
            decimals = await self._vault_decimals()
            state = "unlocked" if position.is_unlocked else "locked"
            return (
                f"Shares: {format_units(position.shares, decimals)} ({state} after "
                f"{datetime.fromtimestamp(position.share_unlock_time, tz=timezone.utc).isoformat()})"
            )
        elif action == "rates":
            rates = await self.exchange_rates()
            lines = []
            for r in rates:
                if r.rate is None:
                    lines.append(f"{r.symbol}: rate not configured")
                else:
                    lines.append(f"{r.symbol}: {format_units(r.rate, r.decimals)} per share")
            return "\n".join(lines)
        elif action == "approve":
            symbol = parts[1]
            asset = self._asset(symbol)
            decimals = await self.flare.call(asset.functions.decimals())
            amount = MAX_UINT256 if parts[2].lower() == "max" else parse_units(parts[2], decimals)
            tx = await self.ensure_allowance(symbol, amount)
            return f"Approval transaction: {tx.hash}" if tx else "Sufficient allowance already set"
        elif action == "revoke":
            tx = await self.revoke_allowance(parts[1])
            return f"Allowance revoked: {tx.hash}"
        elif action == "deposit":
            symbol = parts[1]
            decimals = await self.flare.call(self._asset(symbol).functions.decimals())
            slippage = int(parts[3]) if len(parts) > 3 else DEFAULT_SLIPPAGE_BPS
            result = await self.deposit(symbol, parse_units(parts[2], decimals), slippage)
            vault_decimals = await self._vault_decimals()
            return (
                f"Deposited {parts[2]} {symbol.upper()}, received "
                f"{format_units(result.received, vault_decimals)} shares. Transaction: {result.transaction.hash}"
            )
        elif action == "withdraw":
            symbol = parts[1]
            vault_decimals = await self._vault_decimals()
            slippage = int(parts[3]) if len(parts) > 3 else DEFAULT_SLIPPAGE_BPS
            result = await self.withdraw(symbol, parse_units(parts[2], vault_decimals), slippage)
            return f"Withdrew {parts[2]} shares, received {result.received} base units of {symbol.upper()}. Transaction: {result.transaction.hash}"
        else:
            return f"Unknown action: {action}"

    @property
    def vault(self) -> Any:
        return self.flare.get_contract(self.deployment.boring_vault, BORING_VAULT_ABI)

    @property
    def teller(self) -> Any:
        return self.flare.get_contract(self.deployment.teller, TELLER_ABI)

    @property
    def accountant(self) -> Any:
        return self.flare.get_contract(self.deployment.accountant, ACCOUNTANT_ABI)

    def _asset(self, symbol: str) -> Any:
        return self.flare.get_contract(self.deployment.asset(symbol), ERC20_ABI)

    async def _vault_decimals(self) -> int:
        return await self.flare.call(self.vault.functions.decimals())

    async def read_vault_info(self) -> VaultInfo:
        vault = self.vault
        return VaultInfo(
            address=self.deployment.boring_vault,
            name=await self.flare.call(vault.functions.name()),
            symbol=await self.flare.call(vault.functions.symbol()),
            decimals=await self.flare.call(vault.functions.decimals()),
            total_supply=await self.flare.call(vault.functions.totalSupply()),
            owner=await self.flare.call(vault.functions.owner()),
            authority=await self.flare.call(vault.functions.authority()),
            chain_id=await self.flare.get_chain_id(),
            code_size=await self.flare.get_code_size(self.deployment.boring_vault),
        )

    async def check_user_balance(self, address: Optional[str] = None) -> UserPosition:
        address = address or self.flare.address
        position = UserPosition(
            address=address,
            shares=await self.flare.call(self.vault.functions.balanceOf(address)),
            share_unlock_time=await self.flare.call(self.teller.functions.shareUnlockTime(address)),
        )
        for symbol in self.deployment.assets:
            position.asset_balances[symbol] = await self.flare.call(
                self._asset(symbol).functions.balanceOf(address)
            )
        return position

    async def exchange_rates(self, symbols: Optional[List[str]] = None) -> List[AssetRate]:
        """Rate in quote for each asset; None where the accountant has no rate"""
        rates = []
        for symbol in symbols or list(self.deployment.assets):
            address = self.deployment.asset(symbol)
            decimals = await self.flare.call(self._asset(symbol).functions.decimals())
            try:
                rate = await self.flare.call(self.accountant.functions.getRateInQuote(address))
            except Exception as e:
                logger.warning(f"Rate not configured for {symbol}: {str(e)}")
                rate = None
            rates.append(AssetRate(symbol=symbol.upper(), address=address, decimals=decimals, rate=rate))
        return rates

    async def base_asset(self) -> str:
        return await self.flare.call(self.accountant.functions.base())

    async def ensure_allowance(self, symbol: str, amount: int) -> Optional[TransactionResult]:
        """Approve the vault (not the teller) when the current allowance is below amount"""
        asset = self._asset(symbol)
        owner = self.flare.address
        current = await self.flare.call(asset.functions.allowance(owner, self.deployment.boring_vault))
        if current >= amount:
            logger.info("Sufficient allowance already set")
            return None
        logger.info(f"Insufficient allowance ({current}), approving vault for {amount}")
        return await self.flare.send_transaction(
            asset.functions.approve(self.deployment.boring_vault, amount), operation="approve"
        )

    async def revoke_allowance(self, symbol: str) -> TransactionResult:
        return await self.flare.send_transaction(
            self._asset(symbol).functions.approve(self.deployment.boring_vault, 0), operation="revoke"
        )

    async def deposit(self, symbol: str, amount: int,
                      slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> VaultOperationResult:
        owner = self.flare.address
        asset_address = self.deployment.asset(symbol)
        asset = self._asset(symbol)

        balance = await self.flare.call(asset.functions.balanceOf(owner))
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient {symbol.upper()} balance", required=amount, available=balance
            )

        approval = await self.ensure_allowance(symbol, amount)

        vault_decimals = await self._vault_decimals()
        rate = await self.flare.call(self.accountant.functions.getRateInQuote(asset_address))
        expected = assets_to_shares(amount, rate, vault_decimals)
        minimum = apply_slippage(expected, slippage_bps)
        logger.info(f"Expected shares: {expected}, minimum: {minimum} ({slippage_bps} bps)")

        if await self.flare.call(self.teller.functions.isPaused()):
            raise TransactionError("Teller is paused! Cannot deposit.")

        shares_before = await self.flare.call(self.vault.functions.balanceOf(owner))
        tx = await self.flare.send_transaction(
            self.teller.functions.deposit(asset_address, amount, minimum), operation="vault_deposit"
        )
        shares_after = await self.flare.call(self.vault.functions.balanceOf(owner))
        unlock = await self.flare.call(self.teller.functions.shareUnlockTime(owner))

        return VaultOperationResult(
            transaction=tx,
            expected=expected,
            minimum=minimum,
            received=shares_after - shares_before,
            approval=approval,
            share_unlock_time=unlock,
        )

    async def withdraw(self, symbol: str, shares: int,
                       slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> VaultOperationResult:
        owner = self.flare.address
        asset_address = self.deployment.asset(symbol)
        asset = self._asset(symbol)

        share_balance = await self.flare.call(self.vault.functions.balanceOf(owner))
        if share_balance < shares:
            raise InsufficientBalanceError("Insufficient share balance", required=shares, available=share_balance)

        unlock = await self.flare.call(self.teller.functions.shareUnlockTime(owner))
        now = int(time.time())
        if now < unlock:
            remaining = unlock - now
            raise TransactionError(
                f"Shares are locked for {remaining // 3600}h {(remaining % 3600) // 60}m more"
            )

        vault_decimals = await self._vault_decimals()
        rate = await self.flare.call(self.accountant.functions.getRateInQuote(asset_address))
        expected = shares_to_assets(shares, rate, vault_decimals)
        minimum = apply_slippage(expected, slippage_bps)
        logger.info(f"Expected assets: {expected}, minimum: {minimum} ({slippage_bps} bps)")

        if await self.flare.call(self.teller.functions.isPaused()):
            raise TransactionError("Teller is paused! Cannot withdraw.")

        assets_before = await self.flare.call(asset.functions.balanceOf(owner))
        tx = await self.flare.send_transaction(
            self.teller.functions.bulkWithdraw(asset_address, shares, minimum, owner),
            operation="vault_withdraw",
        )
        assets_after = await self.flare.call(asset.functions.balanceOf(owner))
        received = assets_after - assets_before
        logger.info(f"Actual rate: {realized_rate(received, shares, vault_decimals)}")

        return VaultOperationResult(transaction=tx, expected=expected, minimum=minimum, received=received)
