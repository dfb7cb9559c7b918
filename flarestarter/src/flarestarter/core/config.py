"""Configuration System for flarestarter

Settings come from the environment (and a local .env file), optionally
overlaid by a YAML or JSON file. Every script resolves its network, signer,
service URLs and contract addresses from here.
"""

import json
import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Any, Union

import yaml
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file first
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_enabled: bool = False
    file_path: str = "logs/flarestarter.log"
    file_max_bytes: int = 10 * 1024 * 1024
    file_backup_count: int = 5


class FlareStarterConfig(BaseSettings):
    """Main flarestarter configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Signer
    private_key: Optional[str] = None

    # Networks
    default_network: str = "coston2"
    flare_rpc_api_key: Optional[str] = None
    coston_rpc: Optional[str] = None
    coston2_rpc: Optional[str] = None
    songbird_rpc: Optional[str] = None
    flare_rpc: Optional[str] = None
    sepolia_rpc: Optional[str] = None
    bsc_testnet_rpc: Optional[str] = None
    hyperliquid_testnet_rpc: Optional[str] = None

    # Contract artifacts and deployment records
    artifacts_dir: str = "./artifacts"
    deployments_file: str = "./deployments.json"
    vault_deployment_file: str = "./deployment-addresses.json"

    # Flare Data Connector
    web2json_verifier_url: str = Field(
        "https://fdc-verifiers-testnet.flare.network/verifier/",
        validation_alias="WEB2JSON_VERIFIER_URL_TESTNET",
    )
    jq_verifier_url: str = Field(
        "https://jq-verifier-test.flare.rocks/",
        validation_alias="JQ_VERIFIER_URL_TESTNET",
    )
    verifier_api_key: str = Field("00000000-0000-0000-0000-000000000000", validation_alias="VERIFIER_API_KEY_TESTNET")
    jq_verifier_api_key: str = Field("00000000-0000-0000-0000-000000000000", validation_alias="JQ_VERIFIER_API_KEY_TESTNET")
    da_layer_url: str = Field(
        "https://ctn2-data-availability.flare.network/",
        validation_alias="COSTON2_DA_LAYER_URL",
    )
    open_weather_api_key: str = ""

    # LayerZero / FAssets
    sepolia_fxrp_oft: str = "0x81672c5d42F3573aD95A0bdfBE824FaaC547d4E6"
    coston2_composer: Optional[str] = None
    coston2_oft_adapter: str = "0xCd3d2127935Ae82Af54Fc31cCD9D3440dbF46639"

    # x402
    x402_port: int = 3402
    x402_token_address: Optional[str] = None
    x402_facilitator_address: Optional[str] = None
    x402_payee_address: Optional[str] = None
    x402_backend_url: str = "http://localhost:3402"

    # Retry / waiting
    max_retries: int = 10
    resolve_attempts: int = 30
    base_delay: float = 20.0
    tx_timeout: float = 180.0
    poll_interval: float = 2.0

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def network(self, name: Optional[str] = None) -> "NetworkConfig":
        """Resolve a network with any RPC override applied"""
        from ..tools.crypto.network_config import NetworkRegistry

        registry = NetworkRegistry()
        network = registry.get(name or self.default_network)
        override = getattr(self, f"{network.name}_rpc", None)
        if override:
            network.rpc_url = override
        if network.is_flare and self.flare_rpc_api_key:
            network.rpc_url = f"{network.rpc_url}?x-apikey={self.flare_rpc_api_key}"
        return network

    def validate_credentials(self) -> Dict[str, bool]:
        """Report which optional integrations are configured"""
        return {
            "signer": bool(self.private_key),
            "open_weather": bool(self.open_weather_api_key),
            "x402": bool(
                self.x402_token_address
                and self.x402_facilitator_address
                and self.x402_payee_address
            ),
            "redeem_composer": bool(self.coston2_composer),
        }

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'FlareStarterConfig':
        """Load configuration from file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() in ('.yaml', '.yml'):
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        elif config_path.suffix.lower() == '.json':
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        if isinstance(config_data.get("logging"), dict):
            config_data["logging"] = LoggingConfig(**config_data["logging"])
        return cls(**config_data)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig"""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    formatter = logging.Formatter(config.format)

    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if config.file_enabled:
        path = Path(config.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=config.file_max_bytes, backupCount=config.file_backup_count
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Disable noisy library logging
    logging.getLogger('web3').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)


# Global configuration instance
_global_config: Optional[FlareStarterConfig] = None


def get_config() -> FlareStarterConfig:
    """Get global configuration instance"""
    global _global_config
    if _global_config is None:
        _global_config = FlareStarterConfig()
    return _global_config


def set_config(config: FlareStarterConfig) -> None:
    """Set global configuration instance"""
    global _global_config
    _global_config = config


def load_config(config_path: Optional[Union[str, Path]] = None, **overrides: Any) -> FlareStarterConfig:
    """Load configuration from file or environment"""
    if config_path:
        config = FlareStarterConfig.from_file(config_path)
        if overrides:
            config = config.model_copy(update=overrides)
    else:
        config = FlareStarterConfig(**overrides)

    set_config(config)
    return config
