from typing import List

from langchain_core.tools import BaseTool

from .base import FlareBaseTool
from .crypto import (
    FlareTool,
    OFTBridgeTool,
    FAssetsTool,
    PriceFeedAdapterTool,
    BoringVaultTool,
    WeatherInsuranceTool,
    X402PaymentTool,
)


def get_all_tools(flare_tool: FlareTool) -> List[BaseTool]:
    """Instantiate every feature tool that works without extra deployment config."""
    return [
        flare_tool,
        OFTBridgeTool(flare_tool),
        FAssetsTool(flare_tool),
        PriceFeedAdapterTool(flare_tool),
        WeatherInsuranceTool(flare_tool),
        # BoringVaultTool and X402PaymentTool need deployed contract addresses
        # and are instantiated where needed
    ]


__all__ = [
    "FlareBaseTool",
    "FlareTool",
    "OFTBridgeTool",
    "FAssetsTool",
    "PriceFeedAdapterTool",
    "BoringVaultTool",
    "WeatherInsuranceTool",
    "X402PaymentTool",
    "get_all_tools",
]
