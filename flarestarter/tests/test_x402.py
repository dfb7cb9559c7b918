import pytest
from aiohttp import test_utils
from eth_account import Account

from flarestarter.core.exceptions import ConfigurationError, PaymentError, TransactionError
from flarestarter.core.types import TransactionResult
from flarestarter.tools.adapters import ModernFlareTool
from flarestarter.tools.crypto.x402 import (
    ClientRateLimiter,
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    TokenDomain,
    X402PaymentTool,
    X402Server,
    decode_header,
    encode_header,
    new_authorization,
    payload_to_struct,
    recover_authorizer,
    run_eip3009_self_test,
    sign_authorization,
    to_payment_payload,
)
from flarestarter.tools.crypto.x402.authorization import authorization_window

from conftest import FakeContract, TEST_ADDRESS, TEST_PRIVATE_KEY, make_settings

TOKEN = "0x" + "7a" * 20
FACILITATOR = "0x" + "7b" * 20
PAYEE = "0x" + "7c" * 20
PAYMENT_ID = "0x" + "99" * 32


class FakeFacilitator:
    address = FACILITATOR

    def __init__(self, valid=True):
        self.valid = valid
        self.verified = []
        self.settled = []

    async def verify_payment(self, payload):
        self.verified.append(payload)
        return PAYMENT_ID, self.valid

    async def settle_payment(self, payload):
        self.settled.append(payload)
        return TransactionResult(hash="0x" + "55" * 32, success=True)


@pytest.fixture
def x402_settings(tmp_path):
    return make_settings(
        tmp_path,
        x402_token_address=TOKEN,
        x402_facilitator_address=FACILITATOR,
        x402_payee_address=PAYEE,
    )


def signed_payload(value=100_000, domain=None):
    account = Account.from_key(TEST_PRIVATE_KEY)
    domain = domain or TokenDomain(name="Mock USDT0", chain_id=114, verifying_contract=TOKEN)
    auth = sign_authorization(account, domain, new_authorization(account.address, PAYEE, value))
    return auth, to_payment_payload(auth, TOKEN)


def test_authorization_window():
    assert authorization_window(1_000) == (940, 1_300)


def test_signature_recovers_to_signer():
    domain = TokenDomain(name="Mock USDT0", chain_id=114, verifying_contract=TOKEN)
    auth, _ = signed_payload(domain=domain)

    assert recover_authorizer(domain, auth) == TEST_ADDRESS
    assert len(auth.r) == len(auth.s) == 66
    assert auth.v in (27, 28)

    other_chain = TokenDomain(name="Mock USDT0", chain_id=14, verifying_contract=TOKEN)
    assert recover_authorizer(other_chain, auth) != TEST_ADDRESS


def test_payload_struct_and_header():
    auth, payload = signed_payload(value=250_000)
    assert payload["value"] == "250000"
    assert payload["validBefore"] == str(auth.valid_before)

    struct = payload_to_struct(payload)
    assert struct[3] == 250_000
    assert all(len(part) == 32 for part in (struct[6], struct[8], struct[9]))

    assert decode_header(encode_header(payload)) == payload


def test_nonces_are_unique():
    first = new_authorization(TEST_ADDRESS, PAYEE, 1)
    second = new_authorization(TEST_ADDRESS, PAYEE, 1)
    assert first.nonce != second.nonce
    assert len(first.nonce) == 66


def test_rate_limiter_is_per_client():
    limiter = ClientRateLimiter(calls=2, period=60)
    assert limiter.allow("a")
    assert limiter.allow("a")
    assert not limiter.allow("a")
    assert limiter.allow("b")


def test_server_validate_requires_addresses(tmp_path):
    with pytest.raises(ConfigurationError, match="X402_TOKEN_ADDRESS"):
        X402Server(make_settings(tmp_path, x402_token_address=None)).validate()


@pytest.mark.asyncio
async def test_paid_route_without_header_returns_requirement(x402_settings):
    server = X402Server(x402_settings, FakeFacilitator())
    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        response = await client.get("/api/premium-data")
        body = await response.json()

    assert response.status == 402
    requirement = body["accepts"][0]
    assert requirement["maxAmountRequired"] == "100000"
    assert requirement["payTo"] == PAYEE
    assert requirement["extra"]["tokenAddress"] == TOKEN
    assert requirement["extra"]["chainId"] == 114


@pytest.mark.asyncio
async def test_underpayment_is_rejected_before_verification(x402_settings):
    facilitator = FakeFacilitator()
    server = X402Server(x402_settings, facilitator)
    _, payload = signed_payload(value=100_000)

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        response = await client.get("/api/report", headers={PAYMENT_HEADER: encode_header(payload)})
        body = await response.json()

    assert response.status == 402
    assert body == {"error": "Insufficient payment", "required": "500000", "received": "100000"}
    assert facilitator.verified == []


@pytest.mark.asyncio
async def test_invalid_authorization_is_rejected(x402_settings):
    facilitator = FakeFacilitator(valid=False)
    server = X402Server(x402_settings, facilitator)
    _, payload = signed_payload()

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        response = await client.get("/api/premium-data", headers={PAYMENT_HEADER: encode_header(payload)})
        body = await response.json()

    assert response.status == 402
    assert body["paymentId"] == PAYMENT_ID
    assert facilitator.settled == []


@pytest.mark.asyncio
async def test_garbled_header_fails_verification(x402_settings):
    server = X402Server(x402_settings, FakeFacilitator())
    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        response = await client.get("/api/premium-data", headers={PAYMENT_HEADER: "not-base64!"})
        body = await response.json()

    assert response.status == 402
    assert body["error"] == "Payment verification failed"


@pytest.mark.asyncio
async def test_valid_payment_is_settled_and_receipted(x402_settings):
    facilitator = FakeFacilitator()
    server = X402Server(x402_settings, facilitator)
    _, payload = signed_payload()

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        response = await client.get("/api/premium-data", headers={PAYMENT_HEADER: encode_header(payload)})
        body = await response.json()
        receipt = decode_header(response.headers[PAYMENT_RESPONSE_HEADER])

    assert response.status == 200
    assert body["message"] == "Premium data accessed successfully!"
    assert body["paymentInfo"] == {"paymentId": PAYMENT_ID, "transactionHash": "0x" + "55" * 32, "amount": "100000"}
    assert receipt == {"paymentId": PAYMENT_ID, "transactionHash": "0x" + "55" * 32, "settled": True}
    assert len(facilitator.settled) == 1


@pytest.mark.asyncio
async def test_free_and_info_routes(x402_settings):
    server = X402Server(x402_settings, FakeFacilitator())
    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        public = await client.get("/api/public")
        health = await (await client.get("/health")).json()
        info = await (await client.get("/api/payment-info/premium-data")).json()
        missing = await client.get("/api/payment-info/nothing")
        index = await (await client.get("/")).json()

    assert public.status == 200
    assert health["config"]["facilitator"] == FACILITATOR
    assert info["priceFormatted"] == "0.1 USDT0"
    assert info["payeeAddress"] == PAYEE
    assert missing.status == 404
    assert index["endpoints"]["/api/report"] == "0.5 USDT0"


@pytest.mark.asyncio
async def test_rate_limit_returns_429(x402_settings):
    server = X402Server(x402_settings, FakeFacilitator(), rate_limiter=ClientRateLimiter(calls=1, period=60))
    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        first = await client.get("/api/public")
        second = await client.get("/api/public")

    assert first.status == 200
    assert second.status == 429


@pytest.fixture
def agent(flare, x402_settings):
    flare.add_contract(FakeContract(TOKEN, reads={
        "name": "Mock USDT0",
        "symbol": "USDT0",
        "decimals": 6,
        "balanceOf": 25 * 10**6,
    }))
    return X402PaymentTool(flare, x402_settings, facilitator=FakeFacilitator())


@pytest.mark.asyncio
async def test_agent_pays_for_resource_end_to_end(agent, x402_settings):
    server_facilitator = FakeFacilitator()
    server = X402Server(x402_settings, server_facilitator)

    async with test_utils.TestServer(server.create_app()) as http:
        agent.backend_url = str(http.make_url("")).rstrip("/")
        status, data = await agent.process_payment("/api/premium-data", confirm=lambda question: True)

    assert status == 200
    assert data["x402PaymentResponse"]["settled"] is True
    settled = server_facilitator.settled[0]
    assert settled["from"] == TEST_ADDRESS
    assert settled["to"] == PAYEE
    assert settled["value"] == "100000"
    assert len(agent.facilitator.verified) == 1


@pytest.mark.asyncio
async def test_agent_free_resource_and_cancel(agent, x402_settings):
    server = X402Server(x402_settings, FakeFacilitator())

    async with test_utils.TestServer(server.create_app()) as http:
        agent.backend_url = str(http.make_url("")).rstrip("/")
        status, data = await agent.process_payment("/api/public")
        assert status == 200
        assert "does not require payment" in data["message"]

        with pytest.raises(PaymentError, match="cancelled"):
            await agent.process_payment("/api/report", confirm=lambda question: False)


@pytest.mark.asyncio
async def test_agent_refuses_unverified_authorization(agent, x402_settings):
    agent.facilitator = FakeFacilitator(valid=False)
    server = X402Server(x402_settings, FakeFacilitator())

    async with test_utils.TestServer(server.create_app()) as http:
        agent.backend_url = str(http.make_url("")).rstrip("/")
        with pytest.raises(PaymentError, match="verification failed"):
            await agent.process_payment("/api/premium-data")


@pytest.mark.asyncio
async def test_agent_balance_and_mint(agent, flare):
    assert await agent._arun("balance") == "Balance: 25.0 USDT0"
    assert (await agent._arun("mint 5")).startswith("Minted 5 test tokens")
    assert flare.writes_to("mint")[0].args == (TEST_ADDRESS, 5 * 10**6)


def test_agent_requires_token_address(flare, tmp_path):
    with pytest.raises(ConfigurationError):
        X402PaymentTool(flare, make_settings(tmp_path), facilitator=FakeFacilitator())


@pytest.mark.asyncio
async def test_eip3009_self_test_detects_replay(flare):
    used = set()

    def transfer(from_address, to, amount, valid_after, valid_before, nonce, signature, value=0):
        if nonce in used:
            raise TransactionError("authorization is used")
        used.add(nonce)

    flare.add_contract(FakeContract(
        TOKEN,
        reads={
            "name": "Mock USDT0",
            "balanceOf": 0,
            "authorizationState": lambda signer, nonce: nonce in used,
        },
        writes={"transferWithAuthorization": transfer},
    ))

    result = await run_eip3009_self_test(flare, TOKEN)

    assert flare.writes_to("mint")[0].args[1] == 1000 * 10**6
    assert result["nonce_used_before"] is False
    assert result["nonce_used_after"] is True
    assert result["replay_rejected"] is True
    assert len(flare.writes_to("transferWithAuthorization")) == 1


def test_rate_limiter_forgets_idle_clients():
    now = [0.0]
    limiter = ClientRateLimiter(calls=1, period=60, clock=lambda: now[0])
    assert limiter.allow("a")
    assert not limiter.allow("a")

    now[0] = 61.0
    assert limiter.allow("b")
    assert limiter.tracked_clients == ["b"]
    assert limiter.allow("a")
    assert limiter.tracked_clients == ["a", "b"]


@pytest.mark.asyncio
async def test_authorization_to_another_payee_or_token_is_rejected(x402_settings):
    facilitator = FakeFacilitator()
    server = X402Server(x402_settings, facilitator)
    account = Account.from_key(TEST_PRIVATE_KEY)
    domain = TokenDomain(name="Mock USDT0", chain_id=114, verifying_contract=TOKEN)
    foreign_token = "0x" + "11" * 20

    to_self = sign_authorization(account, domain, new_authorization(TEST_ADDRESS, TEST_ADDRESS, 100_000))
    to_payee = sign_authorization(account, domain, new_authorization(TEST_ADDRESS, PAYEE, 100_000))
    payloads = [
        to_payment_payload(to_self, TOKEN),
        to_payment_payload(to_self, foreign_token),
        to_payment_payload(to_payee, foreign_token),
    ]

    async with test_utils.TestClient(test_utils.TestServer(server.create_app())) as client:
        for payload in payloads:
            response = await client.get("/api/premium-data", headers={PAYMENT_HEADER: encode_header(payload)})
            body = await response.json()
            assert response.status == 402
            assert body["error"] == "Invalid payment authorization"

    assert facilitator.verified == []
    assert facilitator.settled == []


@pytest.mark.asyncio
async def test_rejected_payment_is_a_failed_command(agent, x402_settings):
    server = X402Server(x402_settings, FakeFacilitator(valid=False))
    unified = ModernFlareTool({"settings": x402_settings, "flare_tool": agent.flare})
    await unified.initialize()
    unified.tools["x402"] = agent

    async with test_utils.TestServer(server.create_app()) as http:
        agent.backend_url = str(http.make_url("")).rstrip("/")
        direct = await agent._arun("pay /api/premium-data")
        response = await unified.execute("x402 pay /api/premium-data")

    assert direct.startswith("x402 error: Payment rejected (402): Invalid payment authorization")
    assert not response.success
    assert response.error.startswith("x402 error: Payment rejected (402)")
