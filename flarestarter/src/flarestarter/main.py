from typing import Optional, Dict, Any, List
from dotenv import load_dotenv
import logging

from flarestarter.analytics import OperationAnalytics
from flarestarter.core.config import FlareStarterConfig, get_config, setup_logging
from flarestarter.tools.adapters import ModernFlareTool
from flarestarter.tools.crypto import (
    FlareTool,
    OFTBridgeTool,
    FAssetsTool,
    PriceFeedAdapterTool,
    BoringVaultTool,
    WeatherInsuranceTool,
    X402PaymentTool,
    X402Server,
)
from flarestarter.tools.crypto.x402 import FacilitatorClient

logger = logging.getLogger(__name__)


class FlareStarter:
    """
    Main class for initializing and managing flarestarter functionality.
    Provides access to the bridging, price feed, vault, insurance and payment tools.
    """

    TOOL_TYPES = ["flare", "bridge", "fassets", "adapters", "vault", "insurance", "x402"]

    def __init__(self, config: Optional[FlareStarterConfig] = None, network: Optional[str] = None):
        """Initialize flarestarter with optional configuration"""
        load_dotenv()

        self.config = config or get_config()
        setup_logging(self.config.logging)
        self.network = network or self.config.default_network
        self.analytics = OperationAnalytics()
        self.flare_tools: Dict[str, FlareTool] = {}
        self.tools: Dict[str, Any] = {}

    def flare(self, network: Optional[str] = None) -> FlareTool:
        """Chain tool for a network, shared by every feature tool on it"""
        network = network or self.network
        if network not in self.flare_tools:
            tool = FlareTool(network=network, settings=self.config)
            tool.analytics = self.analytics
            self.flare_tools[network] = tool
        return self.flare_tools[network]

    async def create_tools(self, tool_types: List[str], network: Optional[str] = None) -> Dict[str, Any]:
        """Create specified tools"""
        flare_tool = self.flare(network)
        tools = {}

        for tool_type in tool_types:
            if tool_type == "flare":
                tools["flare"] = flare_tool
            elif tool_type == "bridge":
                tools["bridge"] = OFTBridgeTool(flare_tool, self.config)
            elif tool_type == "fassets":
                tools["fassets"] = FAssetsTool(flare_tool)
            elif tool_type == "adapters":
                tools["adapters"] = PriceFeedAdapterTool(flare_tool)
            elif tool_type == "vault":
                tools["vault"] = BoringVaultTool(flare_tool, settings=self.config)
            elif tool_type == "insurance":
                tools["insurance"] = WeatherInsuranceTool(flare_tool, self.config)
            elif tool_type == "x402":
                tools["x402"] = X402PaymentTool(flare_tool, self.config)
            else:
                raise ValueError(f"Unknown tool type: {tool_type}. Use one of: {', '.join(self.TOOL_TYPES)}")

        self.tools.update(tools)
        return tools

    def create_unified_tool(self, network: Optional[str] = None) -> ModernFlareTool:
        return ModernFlareTool({"settings": self.config, "flare_tool": self.flare(network)})

    def create_x402_server(self) -> X402Server:
        flare_tool = self.flare("coston2")
        facilitator = FacilitatorClient(flare_tool, self.config.x402_facilitator_address)
        return X402Server(self.config, facilitator, chain_id=flare_tool.network.chain_id)

    def get_analytics(self) -> Dict[str, Any]:
        return self.analytics.get_transaction_summary()


if __name__ == "__main__":
    print("flarestarter loaded. Import and use the FlareStarter class to create tools.")
