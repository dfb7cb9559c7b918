"""EIP-3009 TransferWithAuthorization signing and x402 payment payloads"""

import base64
import json
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address, to_hex

VALID_AFTER_SKEW_SECONDS = 60
VALIDITY_SECONDS = 300
DOMAIN_VERSION = "1"

EIP712_DOMAIN = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

TRANSFER_WITH_AUTHORIZATION = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]


@dataclass
class TokenDomain:
    """EIP-712 domain of an EIP-3009 token"""
    name: str
    chain_id: int
    verifying_contract: str
    version: str = DOMAIN_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": to_checksum_address(self.verifying_contract),
        }


@dataclass
class AuthorizationParams:
    from_address: str
    to: str
    value: int
    valid_after: int
    valid_before: int
    nonce: str


@dataclass
class SignedAuthorization(AuthorizationParams):
    v: int = 0
    r: str = ""
    s: str = ""
    signature: str = ""


def new_nonce() -> str:
    return "0x" + secrets.token_hex(32)


def authorization_window(now: Optional[int] = None) -> Tuple[int, int]:
    """(validAfter, validBefore) around the current time"""
    now = int(time.time()) if now is None else now
    return now - VALID_AFTER_SKEW_SECONDS, now + VALIDITY_SECONDS


def new_authorization(from_address: str, to: str, value: int, now: Optional[int] = None) -> AuthorizationParams:
    valid_after, valid_before = authorization_window(now)
    return AuthorizationParams(
        from_address=from_address,
        to=to,
        value=int(value),
        valid_after=valid_after,
        valid_before=valid_before,
        nonce=new_nonce(),
    )


def _bytes32(value: str) -> bytes:
    raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    return raw


def build_typed_data(domain: TokenDomain, params: AuthorizationParams) -> Dict[str, Any]:
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN,
            "TransferWithAuthorization": TRANSFER_WITH_AUTHORIZATION,
        },
        "primaryType": "TransferWithAuthorization",
        "domain": domain.to_dict(),
        "message": {
            "from": to_checksum_address(params.from_address),
            "to": to_checksum_address(params.to),
            "value": params.value,
            "validAfter": params.valid_after,
            "validBefore": params.valid_before,
            "nonce": _bytes32(params.nonce),
        },
    }


def sign_authorization(account: Any, domain: TokenDomain, params: AuthorizationParams) -> SignedAuthorization:
    """Sign the authorization with a local eth-account signer"""
    signed = account.sign_typed_data(full_message=build_typed_data(domain, params))
    return SignedAuthorization(
        **asdict(params),
        v=signed.v,
        r=to_hex(signed.r.to_bytes(32, "big")),
        s=to_hex(signed.s.to_bytes(32, "big")),
        signature=to_hex(signed.signature),
    )


def recover_authorizer(domain: TokenDomain, auth: SignedAuthorization) -> str:
    message = encode_typed_data(full_message=build_typed_data(domain, auth))
    return Account.recover_message(message, signature=auth.signature)


def to_payment_payload(auth: SignedAuthorization, token: str) -> Dict[str, Any]:
    """JSON payload carried in the X-Payment header"""
    return {
        "from": auth.from_address,
        "to": auth.to,
        "token": token,
        "value": str(auth.value),
        "validAfter": str(auth.valid_after),
        "validBefore": str(auth.valid_before),
        "nonce": auth.nonce,
        "v": auth.v,
        "r": auth.r,
        "s": auth.s,
    }


def payload_to_struct(payload: Dict[str, Any]) -> Tuple:
    """Facilitator Authorization struct in field order"""
    return (
        to_checksum_address(payload["from"]),
        to_checksum_address(payload["to"]),
        to_checksum_address(payload["token"]),
        int(payload["value"]),
        int(payload["validAfter"]),
        int(payload["validBefore"]),
        _bytes32(payload["nonce"]),
        int(payload["v"]),
        _bytes32(payload["r"]),
        _bytes32(payload["s"]),
    )


def encode_header(data: Dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def decode_header(header: str) -> Dict[str, Any]:
    return json.loads(base64.b64decode(header).decode("utf-8"))
