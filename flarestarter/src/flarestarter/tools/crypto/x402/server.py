"""x402 payment-gated HTTP server

Paid routes answer 402 with a payment requirement until the client sends an
X-Payment header holding a signed EIP-3009 authorization. The authorization
is verified and settled through the X402Facilitator contract before the
route handler runs.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from aiohttp import web
from eth_utils import to_checksum_address
from ratelimit import RateLimitException, limits

from ....core.config import FlareStarterConfig, get_config
from ....core.exceptions import ConfigurationError
from ....utils.units import format_units
from .authorization import decode_header, encode_header

logger = logging.getLogger(__name__)

PAYMENT_HEADER = "X-Payment"
PAYMENT_RESPONSE_HEADER = "X-Payment-Response"
X402_VERSION = "1"
TOKEN_DECIMALS = 6
TOKEN_SYMBOL = "USDT0"
RATE_LIMIT_CALLS = 100
RATE_LIMIT_PERIOD = 15 * 60


@dataclass
class PaidResource:
    price: int
    content: Callable[[], Dict[str, Any]]


def _premium_data() -> Dict[str, Any]:
    return {
        "message": "Premium data accessed successfully!",
        "data": {
            "flarePrice": 0.0234,
            "timestamp": int(time.time() * 1000),
            "secret": "This is premium content only available after payment",
        },
    }


def _report() -> Dict[str, Any]:
    return {
        "message": "Detailed report generated",
        "report": {
            "title": "Market Analysis Report",
            "sections": ["Overview", "Technical Analysis", "Predictions"],
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        },
    }


DEFAULT_RESOURCES: Dict[str, PaidResource] = {
    "/api/premium-data": PaidResource(price=100_000, content=_premium_data),
    "/api/report": PaidResource(price=500_000, content=_report),
}


class ClientRateLimiter:
    """Per-client request budget"""

    def __init__(self, calls: int = RATE_LIMIT_CALLS, period: int = RATE_LIMIT_PERIOD,
                 clock: Callable[[], float] = time.monotonic):
        self.calls = calls
        self.period = period
        self.clock = clock
        # client -> (limiter, last request time)
        self._limiters: Dict[str, Tuple[Callable[[], None], float]] = {}
        self._last_sweep = clock()

    @property
    def tracked_clients(self) -> List[str]:
        return sorted(self._limiters)

    def _sweep(self, now: float) -> None:
        """Forget clients idle for a whole period; their window has reset anyway"""
        if now - self._last_sweep < self.period:
            return
        self._last_sweep = now
        for client in [c for c, (_, seen) in self._limiters.items() if now - seen > self.period]:
            del self._limiters[client]

    def _limiter(self, client: str) -> Callable[[], None]:
        now = self.clock()
        self._sweep(now)
        if client in self._limiters:
            limiter = self._limiters[client][0]
        else:
            @limits(calls=self.calls, period=self.period, clock=self.clock)
            def limiter():
                pass

        self._limiters[client] = (limiter, now)
        return limiter

    def allow(self, client: str) -> bool:
        try:
            self._limiter(client)()
            return True
        except RateLimitException:
            return False


class X402Server:
    """aiohttp application wiring paid resources to a facilitator"""

    def __init__(
        self,
        settings: Optional[FlareStarterConfig] = None,
        facilitator: Any = None,
        chain_id: int = 114,
        network: str = "flare-coston2",
        resources: Optional[Dict[str, PaidResource]] = None,
        rate_limiter: Optional[ClientRateLimiter] = None,
    ):
        self.settings = settings or get_config()
        self.facilitator = facilitator
        self.chain_id = chain_id
        self.network = network
        self.resources = resources or DEFAULT_RESOURCES
        self.rate_limiter = rate_limiter or ClientRateLimiter()

    @property
    def token_address(self) -> str:
        return self.settings.x402_token_address or ""

    @property
    def facilitator_address(self) -> str:
        return self.settings.x402_facilitator_address or ""

    @property
    def payee_address(self) -> str:
        return self.settings.x402_payee_address or ""

    def payment_requirement(self, path: str) -> Dict[str, Any]:
        return {
            "scheme": "exact",
            "network": self.network,
            "maxAmountRequired": str(self.resources[path].price),
            "resource": path,
            "description": f"Payment required to access {path}",
            "mimeType": "application/json",
            "payTo": self.payee_address,
            "maxTimeoutSeconds": 300,
            "asset": TOKEN_SYMBOL,
            "extra": {
                "tokenAddress": self.token_address,
                "facilitatorAddress": self.facilitator_address,
                "chainId": self.chain_id,
            },
        }

    def pays_requirement(self, payload: Dict[str, Any]) -> bool:
        """The authorization moves the configured token to the configured payee"""
        return (
            to_checksum_address(payload["to"]) == to_checksum_address(self.payee_address)
            and to_checksum_address(payload["token"]) == to_checksum_address(self.token_address)
        )

    async def process_payment(self, request: web.Request, resource: PaidResource) -> Optional[web.Response]:
        """Verify and settle the X-Payment header; a returned response aborts the request"""
        header = request.headers.get(PAYMENT_HEADER)
        if not header:
            return web.json_response(
                {
                    "error": "Payment Required",
                    "x402Version": X402_VERSION,
                    "accepts": [self.payment_requirement(request.path)],
                },
                status=402,
            )

        try:
            payload = decode_header(header)

            if int(payload["value"]) < resource.price:
                return web.json_response(
                    {
                        "error": "Insufficient payment",
                        "required": str(resource.price),
                        "received": str(payload["value"]),
                    },
                    status=402,
                )

            if not self.pays_requirement(payload):
                return web.json_response(
                    {
                        "error": "Invalid payment authorization",
                        "message": "Authorization must transfer the configured token to the payee",
                    },
                    status=402,
                )

            payment_id, valid = await self.facilitator.verify_payment(payload)
            if not valid:
                return web.json_response(
                    {"error": "Invalid payment authorization", "paymentId": payment_id},
                    status=402,
                )

            receipt = await self.facilitator.settle_payment(payload)
        except Exception as e:
            logger.error(f"Payment verification error: {str(e)}")
            return web.json_response(
                {"error": "Payment verification failed", "message": str(e)},
                status=402,
            )

        request["payment_info"] = {
            "paymentId": payment_id,
            "transactionHash": receipt.hash,
            "amount": str(payload["value"]),
        }
        return None

    def create_app(self) -> web.Application:
        server = self

        @web.middleware
        async def rate_limit_middleware(request: web.Request, handler):
            client = request.remote or "unknown"
            if not server.rate_limiter.allow(client):
                return web.json_response({"error": "Too many requests"}, status=429)
            return await handler(request)

        @web.middleware
        async def x402_middleware(request: web.Request, handler):
            resource = server.resources.get(request.path)
            if resource is None:
                return await handler(request)

            rejection = await server.process_payment(request, resource)
            if rejection is not None:
                return rejection

            response = await handler(request)
            info = request["payment_info"]
            response.headers[PAYMENT_RESPONSE_HEADER] = encode_header({
                "paymentId": info["paymentId"],
                "transactionHash": info["transactionHash"],
                "settled": True,
            })
            return response

        app = web.Application(middlewares=[rate_limit_middleware, x402_middleware])
        app.router.add_get("/", self.index)
        app.router.add_get("/health", self.health)
        app.router.add_get("/api/public", self.public)
        app.router.add_get("/api/payment-info/{resource}", self.payment_info)
        for path in self.resources:
            app.router.add_get(path, self.paid_content)
        return app

    async def index(self, request: web.Request) -> web.Response:
        return web.json_response({
            "name": "x402 Demo Server",
            "endpoints": {
                "/api/public": "Free",
                **{
                    path: f"{format_units(resource.price, TOKEN_DECIMALS)} {TOKEN_SYMBOL}"
                    for path, resource in self.resources.items()
                },
                "/health": "Health check",
            },
        })

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "config": {
                "token": self.token_address,
                "facilitator": self.facilitator_address,
                "payee": self.payee_address,
            },
        })

    async def public(self, request: web.Request) -> web.Response:
        return web.json_response({
            "message": "This is free public data",
            "timestamp": int(time.time() * 1000),
        })

    async def paid_content(self, request: web.Request) -> web.Response:
        content = self.resources[request.path].content()
        content["paymentInfo"] = request.get("payment_info")
        return web.json_response(content)

    async def payment_info(self, request: web.Request) -> web.Response:
        path = "/api/" + request.match_info["resource"]
        resource = self.resources.get(path)
        if resource is None:
            return web.json_response({"error": "Resource not found"}, status=404)

        return web.json_response({
            "resource": path,
            "price": str(resource.price),
            "priceFormatted": f"{format_units(resource.price, TOKEN_DECIMALS)} {TOKEN_SYMBOL}",
            "tokenAddress": self.token_address,
            "facilitatorAddress": self.facilitator_address,
            "payeeAddress": self.payee_address,
            "chainId": self.chain_id,
        })

    def validate(self) -> None:
        missing = [
            name for name, value in (
                ("X402_TOKEN_ADDRESS", self.token_address),
                ("X402_FACILITATOR_ADDRESS", self.facilitator_address),
                ("X402_PAYEE_ADDRESS", self.payee_address),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Deploy the x402 contracts first."
            )

    def run(self, port: Optional[int] = None) -> None:
        self.validate()
        port = port or self.settings.x402_port

        print("═" * 60)
        print("x402 Demo Server")
        print("═" * 60)
        print(f"Token:       {self.token_address}")
        print(f"Facilitator: {self.facilitator_address}")
        print(f"Payee:       {self.payee_address}")
        print("─" * 60)
        print("Endpoints:")
        print("  GET /api/public         - Free")
        for path, resource in self.resources.items():
            print(f"  GET {path:<20} - {format_units(resource.price, TOKEN_DECIMALS)} {TOKEN_SYMBOL}")
        print("  GET /health             - Health check")
        print("═" * 60)

        web.run_app(self.create_app(), port=port)
