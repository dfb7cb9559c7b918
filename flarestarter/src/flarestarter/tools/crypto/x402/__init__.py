from .agent import X402PaymentTool
from .authorization import (
    SignedAuthorization,
    TokenDomain,
    decode_header,
    encode_header,
    new_authorization,
    payload_to_struct,
    recover_authorizer,
    sign_authorization,
    to_payment_payload,
)
from .deploy import X402Deployment, deploy_x402, run_eip3009_self_test
from .facilitator import FacilitatorClient, get_token_contract
from .server import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    ClientRateLimiter,
    PaidResource,
    X402Server,
)

__all__ = [
    "X402PaymentTool",
    "SignedAuthorization",
    "TokenDomain",
    "decode_header",
    "encode_header",
    "new_authorization",
    "payload_to_struct",
    "recover_authorizer",
    "sign_authorization",
    "to_payment_payload",
    "X402Deployment",
    "deploy_x402",
    "run_eip3009_self_test",
    "FacilitatorClient",
    "get_token_contract",
    "PAYMENT_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "ClientRateLimiter",
    "PaidResource",
    "X402Server",
]
