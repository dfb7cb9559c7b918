"""Core type definitions for flarestarter"""

from typing import Dict, List, Optional, Any
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime


class ToolCapability(Enum):
    """Tool capabilities"""
    BLOCKCHAIN_READ = "blockchain_read"
    BLOCKCHAIN_WRITE = "blockchain_write"
    CONTRACT_DEPLOY = "contract_deploy"
    BRIDGING = "bridging"
    MARKET_DATA = "market_data"
    ATTESTATION = "attestation"
    PAYMENTS = "payments"


@dataclass
class AgentResponse:
    """Standardized tool response"""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    execution_time: Optional[float] = None


@dataclass
class TransactionResult:
    """Mined transaction outcome"""
    hash: str
    success: bool
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    contract_address: Optional[str] = None
    explorer_url: Optional[str] = None
    logs: List[Any] = field(default_factory=list)
    receipt: Optional[Any] = None
    timestamp: datetime = field(default_factory=datetime.now)

