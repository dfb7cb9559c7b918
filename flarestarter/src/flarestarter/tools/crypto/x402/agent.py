import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp

from ....core.config import FlareStarterConfig, get_config
from ....core.exceptions import ConfigurationError, PaymentError
from ....core.types import TransactionResult
from ....utils.units import format_units, parse_units
from ...base import FlareBaseTool, handle_command_errors
from ..base import FlareTool
from .authorization import (
    SignedAuthorization,
    TokenDomain,
    decode_header,
    encode_header,
    new_authorization,
    sign_authorization,
    to_payment_payload,
)
from .facilitator import FacilitatorClient, get_token_contract
from .server import PAYMENT_HEADER, PAYMENT_RESPONSE_HEADER, TOKEN_DECIMALS, TOKEN_SYMBOL

logger = logging.getLogger(__name__)

MINT_AMOUNT = 1000


class X402PaymentTool(FlareBaseTool):
    """Client side of the x402 protocol: pays for resources with EIP-3009 authorizations"""

    name: str = "x402"
    description: str = """Pay for HTTP resources with x402. Available commands:
    - balance: show token balance
    - requirements <path>: fetch the payment requirement of a resource
    - pay <path>: sign, verify and pay for a resource
    - mint [amount]: mint test tokens
    Example: 'pay /api/premium-data'"""

    flare: FlareTool = None
    settings: Any = None
    token: Any = None
    facilitator: Any = None
    backend_url: str = ""

    def __init__(self, flare_tool: FlareTool, settings: Optional[FlareStarterConfig] = None,
                 facilitator: Optional[FacilitatorClient] = None):
        super().__init__()
        self.flare = flare_tool
        self.settings = settings or get_config()
        self.token = get_token_contract(flare_tool, self.settings.x402_token_address)
        self.facilitator = facilitator or FacilitatorClient(flare_tool, self.settings.x402_facilitator_address)
        self.backend_url = self.settings.x402_backend_url.rstrip("/")

    @handle_command_errors("x402")
    async def _arun(self, command: str) -> str:
        """Execute x402 operation"""
        parts = command.split()
        action = parts[0].lower()

        if action == "balance":
            return f"Balance: {await self.get_balance()}"
        elif action == "requirements":
            requirement = await self.fetch_payment_requirements(parts[1])
            if requirement is None:
                return f"{parts[1]} does not require payment"
            amount = format_units(int(requirement["maxAmountRequired"]), TOKEN_DECIMALS)
            return f"Payment required: {amount} {TOKEN_SYMBOL} to {requirement['payTo']}"
        elif action == "pay":
            status, data = await self.process_payment(parts[1])
            if status != 200:
                raise PaymentError(f"Payment rejected ({status}): {data.get('error', data)}")
            return f"Payment succeeded ({status}): {data}"
        elif action == "mint":
            amount = parts[1] if len(parts) > 1 else MINT_AMOUNT
            tx = await self.mint_test_tokens(amount)
            return f"Minted {amount} test tokens. Transaction: {tx.hash}"
        else:
            return f"Unknown action: {action}"

    @property
    def token_address(self) -> str:
        return self.settings.x402_token_address

    async def get_balance(self) -> str:
        balance = await self.flare.call(self.token.functions.balanceOf(self.flare.address))
        decimals = await self.flare.call(self.token.functions.decimals())
        symbol = await self.flare.call(self.token.functions.symbol())
        return f"{format_units(balance, decimals)} {symbol}"

    async def token_domain(self) -> TokenDomain:
        name = await self.flare.call(self.token.functions.name())
        return TokenDomain(name=name, chain_id=self.flare.config.chain_id, verifying_contract=self.token_address)

    async def fetch_payment_requirements(self, resource_path: str) -> Optional[Dict[str, Any]]:
        """First entry of `accepts` from a 402 answer, None for free resources"""
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{self.backend_url}{resource_path}") as response:
                data = await response.json(content_type=None)
                if response.status != 402:
                    logger.info(f"Resource is free or already accessible: {data}")
                    return None
        return data["accepts"][0]

    async def create_authorization(self, to: str, value: int) -> SignedAuthorization:
        params = new_authorization(self.flare.address, to, value)
        domain = await self.token_domain()
        logger.info(
            f"Authorizing {format_units(params.value, TOKEN_DECIMALS)} {TOKEN_SYMBOL} to {to}, valid "
            f"{datetime.fromtimestamp(params.valid_after, timezone.utc).isoformat()} - "
            f"{datetime.fromtimestamp(params.valid_before, timezone.utc).isoformat()}, nonce {params.nonce}"
        )
        return sign_authorization(self.flare.account, domain, params)

    async def verify_authorization(self, auth: SignedAuthorization) -> Tuple[str, bool]:
        return await self.facilitator.verify_payment(to_payment_payload(auth, self.token_address))

    async def execute_payment_and_fetch(self, resource_path: str,
                                        auth: SignedAuthorization) -> Tuple[int, Dict[str, Any]]:
        header = encode_header(to_payment_payload(auth, self.token_address))
        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{self.backend_url}{resource_path}", headers={PAYMENT_HEADER: header}
            ) as response:
                data = await response.json(content_type=None)
                receipt = response.headers.get(PAYMENT_RESPONSE_HEADER)
                if response.status == 200 and receipt:
                    data["x402PaymentResponse"] = decode_header(receipt)
                return response.status, data

    async def process_payment(
        self,
        resource_path: str,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """Fetch requirement, sign, verify with the facilitator, then pay and fetch"""
        requirement = await self.fetch_payment_requirements(resource_path)
        if requirement is None:
            return 200, {"message": f"{resource_path} does not require payment"}

        amount = int(requirement["maxAmountRequired"])
        human = format_units(amount, TOKEN_DECIMALS)
        if confirm is not None and not confirm(f"Do you want to authorize payment of {human} {TOKEN_SYMBOL}?"):
            raise PaymentError("Payment cancelled")

        auth = await self.create_authorization(requirement["payTo"], amount)
        payment_id, valid = await self.verify_authorization(auth)
        logger.info(f"Payment ID: {payment_id}, valid: {valid}")
        if not valid:
            raise PaymentError(f"Authorization verification failed for payment {payment_id}")

        return await self.execute_payment_and_fetch(resource_path, auth)

    async def mint_test_tokens(self, amount: Any = MINT_AMOUNT) -> TransactionResult:
        return await self.flare.send_transaction(
            self.token.functions.mint(self.flare.address, parse_units(amount, TOKEN_DECIMALS)),
            operation="x402_mint",
        )

    async def interactive_mode(self, input_fn: Callable[[str], str] = input) -> None:
        """Menu-driven CLI session"""
        if not self.settings.private_key:
            raise ConfigurationError("PRIVATE_KEY not set in environment")

        def confirm(question: str) -> bool:
            return input_fn(f"\n{question} (y/n): ").strip().lower() in ("y", "yes")

        print("\n🤖 x402 Payment Agent")
        print("═" * 50)
        print(f"Wallet:      {self.flare.address}")
        print(f"Token:       {self.token_address}")
        print(f"Facilitator: {self.facilitator.address}")
        print(f"Backend:     {self.backend_url}")
        print("═" * 50)
        print(f"Balance:     {await self.get_balance()}")

        while True:
            print("\n📋 Available Commands:")
            print("  1. Fetch /api/public (free)")
            print("  2. Fetch /api/premium-data (0.1 USDT0)")
            print("  3. Fetch /api/report (0.5 USDT0)")
            print("  4. Check balance")
            print("  5. Mint test tokens")
            print("  6. Exit")

            choice = input_fn("\nSelect option: ").strip()
            try:
                if choice == "1":
                    status, data = await self.process_payment("/api/public")
                    print(f"\n{data}")
                elif choice in ("2", "3"):
                    path = "/api/premium-data" if choice == "2" else "/api/report"
                    status, data = await self.process_payment(path, confirm=confirm)
                    if status == 200:
                        print("\n✅ Payment successful!")
                        receipt = data.get("x402PaymentResponse")
                        if receipt:
                            print(f"   Transaction: {receipt['transactionHash']}")
                            print(f"   Payment ID:  {receipt['paymentId']}")
                    else:
                        print(f"\n❌ Payment failed ({status})")
                    print(data)
                elif choice == "4":
                    print(f"\n💳 Balance: {await self.get_balance()}")
                elif choice == "5":
                    await self.mint_test_tokens()
                    print(f"✅ Minted {MINT_AMOUNT} test tokens")
                elif choice == "6":
                    print("\n👋 Goodbye!")
                    return
                else:
                    print("Invalid option")
            except PaymentError as e:
                print(f"❌ {str(e)}")
