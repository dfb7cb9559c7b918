"""flarestarter core

Configuration, exception hierarchy, shared types and the plugin interface.
"""

from .config import FlareStarterConfig, LoggingConfig, get_config, load_config, set_config, setup_logging
from .exceptions import (
    AttestationError,
    ConfigurationError,
    ContractNotFoundError,
    FlareStarterError,
    InsufficientBalanceError,
    PaymentError,
    TransactionError,
)
from .plugin import BaseTool, PluginMetadata, PluginRegistry
from .types import AgentResponse, ToolCapability, TransactionResult

__all__ = [
    # Configuration
    "FlareStarterConfig",
    "LoggingConfig",
    "get_config",
    "load_config",
    "set_config",
    "setup_logging",

    # Errors
    "FlareStarterError",
    "ConfigurationError",
    "ContractNotFoundError",
    "TransactionError",
    "InsufficientBalanceError",
    "AttestationError",
    "PaymentError",

    # Plugin Architecture
    "BaseTool",
    "PluginMetadata",
    "PluginRegistry",

    # Types
    "AgentResponse",
    "ToolCapability",
    "TransactionResult",
]
