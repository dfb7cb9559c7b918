from .base import FlareTool, FlareConfig
from .network_config import NetworkConfig, NetworkRegistry
from .contract_registry import FlareContractRegistry
from .oft_bridge import OFTBridgeTool
from .price_feed_adapters import PriceFeedAdapterTool
from .boring_vault import BoringVaultTool
from .fdc_client import FdcClient
from .fassets import FAssetsTool
from .openweather_client import OpenWeatherClient, OpenWeatherConfig
from .weather_insurance import WeatherInsuranceTool
from .x402 import X402PaymentTool, X402Server

__all__ = [
    'FlareTool',
    'FlareConfig',
    'NetworkConfig',
    'NetworkRegistry',
    'FlareContractRegistry',
    'OFTBridgeTool',
    'PriceFeedAdapterTool',
    'BoringVaultTool',
    'FdcClient',
    'FAssetsTool',
    'OpenWeatherClient',
    'OpenWeatherConfig',
    'WeatherInsuranceTool',
    'X402PaymentTool',
    'X402Server',
]
