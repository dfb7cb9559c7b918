"""Flare Tool Adapter for the unified flarestarter interface

Routes command strings to the LangChain tools of each feature area and
wraps their output in `AgentResponse`.
"""

import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...core.config import FlareStarterConfig, get_config
from ...core.plugin import BaseTool
from ...core.types import AgentResponse, ToolCapability
from ..crypto.base import FlareTool
from ..crypto.boring_vault import BoringVaultTool
from ..crypto.fassets import FAssetsTool
from ..crypto.network_config import NetworkRegistry
from ..crypto.oft_bridge import OFTBridgeTool
from ..crypto.price_feed_adapters import PriceFeedAdapterTool
from ..crypto.weather_insurance import WeatherInsuranceTool
from ..crypto.x402 import X402PaymentTool

FAILURE_MARKERS = ("error:", "Unknown action", "Unsupported action", "Invalid command", "Empty command")

AREA_ALIASES = {
    "bridge": "bridge",
    "oft": "bridge",
    "fassets": "fassets",
    "fxrp": "fassets",
    "adapter": "adapters",
    "adapters": "adapters",
    "feed": "adapters",
    "vault": "vault",
    "insurance": "insurance",
    "weather": "insurance",
    "x402": "x402",
    "pay": "x402",
}


class ModernFlareTool(BaseTool):
    """Flare tool adapter for the unified framework"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.name = "FlareTool"
        self.settings: FlareStarterConfig = self.config.get("settings") or get_config()
        self.flare_tool: Optional[FlareTool] = self.config.get("flare_tool")
        self.tools: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}

    async def initialize(self) -> None:
        """Connect to the network; feature tools are built on first use"""
        try:
            if self.flare_tool is None:
                self.flare_tool = FlareTool(
                    network=self.config.get("network"),
                    private_key=self.config.get("private_key"),
                    settings=self.settings,
                )
        except Exception as e:
            raise RuntimeError(f"Failed to initialize Flare tool: {e}")

        self._factories = {
            "bridge": lambda: OFTBridgeTool(self.flare_tool, self.settings),
            "fassets": lambda: FAssetsTool(self.flare_tool),
            "adapters": lambda: PriceFeedAdapterTool(self.flare_tool),
            "vault": lambda: BoringVaultTool(self.flare_tool, settings=self.settings),
            "insurance": lambda: WeatherInsuranceTool(self.flare_tool, self.settings),
            "x402": lambda: X402PaymentTool(self.flare_tool, self.settings),
        }
        self.initialized = True

    def get_tool(self, area: str) -> Any:
        if area not in self.tools:
            self.tools[area] = self._factories[area]()
        return self.tools[area]

    async def execute(self, command: str, **kwargs) -> AgentResponse:
        """Execute Flare commands with unified response format"""
        if not self.initialized:
            await self.initialize()

        try:
            parts = command.strip().split()
            if not parts:
                return AgentResponse(
                    success=False,
                    error="Empty command",
                    metadata={"tool": "flare"}
                )

            action = parts[0].lower()

            if action in AREA_ALIASES:
                return await self._handle_area(AREA_ALIASES[action], " ".join(parts[1:]))
            elif action in ["balance", "chain_id", "code_size"]:
                return await self._handle_chain_query(command)
            elif action in ["status", "info"]:
                return await self._handle_status_query()
            else:
                return AgentResponse(
                    success=False,
                    error=f"Unknown action: {action}",
                    metadata={"tool": "flare", "available_actions": sorted(set(AREA_ALIASES)) + [
                        "balance", "chain_id", "code_size", "status"
                    ]}
                )

        except Exception as e:
            return AgentResponse(
                success=False,
                error=str(e),
                metadata={"tool": "flare", "command": command}
            )

    @staticmethod
    def _to_response(result: str, tool: str, command: str) -> AgentResponse:
        if any(marker in result for marker in FAILURE_MARKERS):
            return AgentResponse(
                success=False,
                error=result,
                metadata={"tool": tool, "command": command}
            )

        try:
            data = json.loads(result)
        except json.JSONDecodeError:
            data = {"result": result}
        return AgentResponse(
            success=True,
            data=data,
            message=result,
            metadata={"tool": tool, "operation_type": command.split()[0] if command else tool}
        )

    async def _handle_area(self, area: str, command: str) -> AgentResponse:
        if not command:
            return AgentResponse(
                success=False,
                error=f"Missing {area} command",
                metadata={"tool": area, "help": self.get_tool(area).description}
            )
        result = await self.get_tool(area)._arun(command)
        self.flare_tool.analytics.log_interaction(f"{area} {command}", result)
        return self._to_response(result, area, command)

    async def _handle_chain_query(self, command: str) -> AgentResponse:
        result = await self.flare_tool._arun(command)
        self.flare_tool.analytics.log_interaction(command, result)
        return self._to_response(result, "flare", command)

    async def _handle_status_query(self) -> AgentResponse:
        network = self.flare_tool.network
        status_info = {
            "account_address": self.flare_tool.account.address if self.flare_tool.account else None,
            "network": network.name,
            "chain_id": network.chain_id,
            "eid": network.eid,
            "rpc_url": self.flare_tool.config.rpc_url,
            "initialized": self.initialized,
            "tools_loaded": sorted(self.tools),
            "transactions": self.flare_tool.analytics.get_transaction_summary(),
            "timestamp": datetime.now().isoformat()
        }
        return AgentResponse(
            success=True,
            data=status_info,
            message="Flare tool status retrieved",
            metadata={"tool": "flare", "operation_type": "status"}
        )

    def get_capabilities(self) -> List[ToolCapability]:
        return [
            ToolCapability.BLOCKCHAIN_READ,
            ToolCapability.BLOCKCHAIN_WRITE,
            ToolCapability.CONTRACT_DEPLOY,
            ToolCapability.BRIDGING,
            ToolCapability.MARKET_DATA,
            ToolCapability.ATTESTATION,
            ToolCapability.PAYMENTS,
        ]

    def validate_command(self, command: str) -> bool:
        """Validate if command is supported"""
        if not command or not command.strip():
            return False

        action = command.strip().split()[0].lower()
        return action in AREA_ALIASES or action in ["balance", "chain_id", "code_size", "status", "info"]

    def get_help_text(self) -> str:
        return """
Flare Tool Commands:

Bridging:
- bridge peers <oapp>                 # Scan LayerZero peers
- bridge quote <amount> <network>     # Quote an OFT send
- bridge send_and_redeem <amount>     # Bridge FXRP back and redeem

FAssets:
- fassets lot_size                    # FXRP redemption lot size
- fassets redeem 1 <xrp_address>      # Redeem lots to the XRP Ledger

Price feed adapters:
- adapter deploy chainlink            # Deploy an FTSOv2 adapter
- adapter read pyth <address>         # Read the latest price

Vault:
- vault info                          # Vault, teller and accountant state
- vault deposit FTestXRP 10           # Deposit into the BoringVault

Weather insurance:
- insurance create min_temp           # Register a policy
- insurance resolve min_temp 0        # Resolve with an FDC proof

Payments:
- x402 pay /api/premium-data          # Pay for a resource

Chain:
- balance                             # Native balance
- status                              # Tool status
"""


class FlareToolRegistry:
    """Registry for Flare tools and utilities"""

    @staticmethod
    def create_tool(config: Dict[str, Any]) -> ModernFlareTool:
        return ModernFlareTool(config)

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> Tuple[bool, str]:
        private_key = config.get("private_key")
        if not private_key:
            return False, "Missing required field: private_key"

        key = private_key[2:] if private_key.startswith("0x") else private_key
        if len(key) != 64:
            return False, "Invalid private key format"
        try:
            int(key, 16)
        except ValueError:
            return False, "Invalid private key format"

        network = config.get("network")
        if network and not NetworkRegistry().is_supported(network):
            return False, f"Unsupported network: {network}"

        return True, "Configuration valid"

    @staticmethod
    def get_default_config() -> Dict[str, Any]:
        return {
            "private_key": "",  # Required
            "network": "coston2",
            "rpc_url": NetworkRegistry().get("coston2").rpc_url,
            "tx_timeout": 180,
            "retry_attempts": 3
        }
