import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ....core.exceptions import TransactionError
from ....utils.units import format_units, parse_units
from ..base import FlareTool
from .authorization import TokenDomain, new_authorization, sign_authorization
from .facilitator import FacilitatorClient, get_token_contract
from .server import TOKEN_DECIMALS

logger = logging.getLogger(__name__)

FEE_BPS = 0
SELF_TEST_AMOUNT = 10
SELF_TEST_RECIPIENT = "0x1234567890123456789012345678901234567890"


@dataclass
class X402Deployment:
    token: str
    facilitator: str
    payee: str

    def env_lines(self) -> List[str]:
        return [
            f"X402_TOKEN_ADDRESS={self.token}",
            f"X402_FACILITATOR_ADDRESS={self.facilitator}",
            f"X402_PAYEE_ADDRESS={self.payee}",
        ]


async def deploy_x402(flare: FlareTool) -> X402Deployment:
    """Deploy MockUSDT0 and X402Facilitator, then register the token"""
    deployer = flare.address
    balance = await flare.get_native_balance(deployer)
    logger.info(f"Deployer {deployer} balance: {format_units(balance, 18)} {flare.network.native_symbol}")

    token_result = await flare.deploy_contract(flare.load_artifact("MockUSDT0"))
    token = get_token_contract(flare, token_result.contract_address)
    supply = await flare.call(token.functions.totalSupply())
    logger.info(
        f"MockUSDT0 deployed to {token_result.contract_address}: "
        f"{await flare.call(token.functions.name())} ({await flare.call(token.functions.symbol())}), "
        f"initial supply {format_units(supply, TOKEN_DECIMALS)}"
    )

    facilitator_result = await flare.deploy_contract(flare.load_artifact("X402Facilitator"), deployer, FEE_BPS)
    facilitator = FacilitatorClient(flare, facilitator_result.contract_address)
    await facilitator.add_supported_token(token_result.contract_address)
    logger.info("Added MockUSDT0 as supported token")

    return X402Deployment(
        token=token_result.contract_address,
        facilitator=facilitator_result.contract_address,
        payee=deployer,
    )


async def run_eip3009_self_test(flare: FlareTool, token_address: str,
                                recipient: Optional[str] = None) -> Dict[str, Any]:
    """Exercise transferWithAuthorization, then replay the same nonce, which must revert"""
    token = get_token_contract(flare, token_address)
    signer = flare.address
    recipient = recipient or SELF_TEST_RECIPIENT

    if await flare.call(token.functions.balanceOf(signer)) == 0:
        await flare.send_transaction(
            token.functions.mint(signer, parse_units(1000, TOKEN_DECIMALS)), operation="x402_mint"
        )

    amount = parse_units(SELF_TEST_AMOUNT, TOKEN_DECIMALS)
    domain = TokenDomain(
        name=await flare.call(token.functions.name()),
        chain_id=await flare.get_chain_id(),
        verifying_contract=token_address,
    )
    auth = sign_authorization(flare.account, domain, new_authorization(signer, recipient, amount))
    used_before = await flare.call(token.functions.authorizationState(signer, bytes.fromhex(auth.nonce[2:])))

    def transfer():
        return token.functions.transferWithAuthorization(
            flare.to_checksum(auth.from_address),
            flare.to_checksum(auth.to),
            auth.value,
            auth.valid_after,
            auth.valid_before,
            bytes.fromhex(auth.nonce[2:]),
            bytes.fromhex(auth.signature[2:]),
        )

    tx = await flare.send_transaction(transfer(), operation="transfer_with_authorization")
    used_after = await flare.call(token.functions.authorizationState(signer, bytes.fromhex(auth.nonce[2:])))

    try:
        await flare.send_transaction(transfer(), operation="transfer_with_authorization")
        replay_rejected = False
        logger.error("Nonce reuse was accepted")
    except TransactionError as e:
        replay_rejected = True
        logger.info(f"Nonce reuse rejected: {str(e)}")

    return {
        "transaction": tx,
        "nonce_used_before": used_before,
        "nonce_used_after": used_after,
        "signer_balance": await flare.call(token.functions.balanceOf(signer)),
        "recipient_balance": await flare.call(token.functions.balanceOf(flare.to_checksum(recipient))),
        "replay_rejected": replay_rejected,
    }
