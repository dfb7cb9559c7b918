import logging
from typing import Any, Dict, Tuple

from eth_utils import to_hex

from ....core.exceptions import ConfigurationError
from ....core.types import TransactionResult
from ..abis import EIP3009_TOKEN_ABI, X402_FACILITATOR_ABI
from ..base import FlareTool
from .authorization import payload_to_struct

logger = logging.getLogger(__name__)


class FacilitatorClient:
    """Reads and writes against a deployed X402Facilitator"""

    def __init__(self, flare: FlareTool, address: str):
        if not address:
            raise ConfigurationError("X402_FACILITATOR_ADDRESS is not set")
        self.flare = flare
        self.address = address
        self.contract = flare.get_contract(address, flare.contract_abi("X402Facilitator", X402_FACILITATOR_ABI))

    async def verify_payment(self, payload: Dict[str, Any]) -> Tuple[str, bool]:
        """(paymentId, valid) for an authorization payload"""
        payment_id, valid = await self.flare.call(
            self.contract.functions.verifyPayment(payload_to_struct(payload))
        )
        return to_hex(payment_id), bool(valid)

    async def settle_payment(self, payload: Dict[str, Any]) -> TransactionResult:
        logger.info(f"Settling payment from {payload['from']} for {payload['value']}")
        return await self.flare.send_transaction(
            self.contract.functions.settlePayment(payload_to_struct(payload)),
            operation="x402_settle_payment",
        )

    async def is_supported_token(self, token: str) -> bool:
        return await self.flare.call(self.contract.functions.supportedTokens(self.flare.to_checksum(token)))

    async def add_supported_token(self, token: str) -> TransactionResult:
        return await self.flare.send_transaction(
            self.contract.functions.addSupportedToken(self.flare.to_checksum(token)),
            operation="x402_add_supported_token",
        )


def get_token_contract(flare: FlareTool, address: str) -> Any:
    if not address:
        raise ConfigurationError("X402_TOKEN_ADDRESS is not set")
    return flare.get_contract(address, flare.contract_abi("MockUSDT0", EIP3009_TOKEN_ABI))
