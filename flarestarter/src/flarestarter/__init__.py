"""flarestarter: Flare developer starter tools

LayerZero OFT bridging with FAsset redemption, FTSOv2 price feed adapters,
BoringVault deposits, FDC weather insurance and x402 payments.
"""

from .core.config import FlareStarterConfig, get_config, load_config
from .main import FlareStarter

__version__ = "0.1.0"

__all__ = ["FlareStarter", "FlareStarterConfig", "get_config", "load_config"]
