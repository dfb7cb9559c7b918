"""Plugin interface for flarestarter tools

Tools implementing `BaseTool` expose a command string interface returning
`AgentResponse` and can be registered by name and capability.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from .types import AgentResponse, ToolCapability

logger = logging.getLogger(__name__)


@dataclass
class PluginMetadata:
    """Plugin metadata"""
    name: str
    version: str
    description: str
    capabilities: List[ToolCapability]
    tags: List[str] = field(default_factory=list)


class BaseTool(ABC):
    """Base class for unified flarestarter tools"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.id = str(uuid.uuid4())
        self.name = self.__class__.__name__
        self.initialized = False

    @abstractmethod
    async def execute(self, command: str, **kwargs) -> AgentResponse:
        """Execute a command with this tool"""
        pass

    @abstractmethod
    def get_capabilities(self) -> List[ToolCapability]:
        pass

    @abstractmethod
    def validate_command(self, command: str) -> bool:
        """Validate if command is supported by this tool"""
        pass

    async def initialize(self) -> None:
        self.initialized = True
        logger.info(f"Tool {self.name} initialized")

    async def shutdown(self) -> None:
        self.initialized = False
        logger.info(f"Tool {self.name} shutdown")

    def get_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            name=self.name,
            version="0.1.0",
            description=self.__doc__ or "No description provided",
            capabilities=self.get_capabilities(),
        )


class PluginRegistry:
    """Registry for managing plugins"""

    def __init__(self):
        self.plugins: Dict[str, Type[BaseTool]] = {}
        self.metadata: Dict[str, PluginMetadata] = {}

    def register(self, plugin_class: Type[BaseTool]) -> None:
        """Register a plugin class"""
        # Constructors only store config, so a throwaway instance is safe
        metadata = plugin_class({}).get_metadata()
        self.plugins[metadata.name] = plugin_class
        self.metadata[metadata.name] = metadata
        logger.info(f"Registered plugin: {metadata.name}")

    def get_plugin(self, name: str) -> Optional[Type[BaseTool]]:
        return self.plugins.get(name)

    def get_all_plugins(self) -> Dict[str, Type[BaseTool]]:
        return self.plugins.copy()

    def get_plugins_by_capability(self, capability: ToolCapability) -> List[Type[BaseTool]]:
        return [
            self.plugins[name]
            for name, metadata in self.metadata.items()
            if capability in metadata.capabilities
        ]
