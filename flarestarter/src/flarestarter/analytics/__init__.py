from datetime import datetime
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

@dataclass
class TransactionMetrics:
    """Metrics for a single on-chain write"""
    operation: str
    network: str
    success: bool
    execution_time: float
    gas_used: int = 0
    tx_hash: Optional[str] = None
    value: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

class OperationAnalytics:
    """Tracks tool commands and transaction outcomes"""

    def __init__(self):
        self.interactions: List[Dict[str, Any]] = []
        self.success_count: int = 0
        self.total_count: int = 0
        self.transactions: List[TransactionMetrics] = []

    def log_interaction(self, command: str, response: str, timestamp: Optional[datetime] = None) -> None:
        """Log a command routed through a tool"""
        self.interactions.append({
            "command": command,
            "response": response,
            "timestamp": timestamp or datetime.now()
        })

    def log_result(self, success: bool) -> None:
        self.total_count += 1
        if success:
            self.success_count += 1

    def log_transaction(self, metrics: TransactionMetrics) -> None:
        """Log a transaction with detailed metrics"""
        self.transactions.append(metrics)
        self.log_result(metrics.success)

    def get_success_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.success_count / self.total_count

    def get_recent_interactions(self, limit: int = 5) -> List[Dict[str, Any]]:
        return self.interactions[-limit:]

    def get_transaction_summary(self) -> Dict[str, Any]:
        """Get summary of all transactions"""
        if not self.transactions:
            return {
                "total_transactions": 0,
                "success_rate": 0.0,
                "average_gas": 0.0,
                "total_gas": 0,
                "by_operation": {}
            }

        successful = [t for t in self.transactions if t.success]
        by_operation: Dict[str, int] = {}
        for t in self.transactions:
            by_operation[t.operation] = by_operation.get(t.operation, 0) + 1
        return {
            "total_transactions": len(self.transactions),
            "success_rate": len(successful) / len(self.transactions) * 100,
            "average_gas": sum(t.gas_used for t in self.transactions) / len(self.transactions),
            "total_gas": sum(t.gas_used for t in self.transactions),
            "by_operation": by_operation
        }

__all__ = ['OperationAnalytics', 'TransactionMetrics']
