"""Token amount and address encoding helpers"""

from decimal import Decimal, ROUND_DOWN
from typing import Union

from eth_utils import to_checksum_address

ZERO_BYTES32 = "0x" + "00" * 32


def format_units(amount: int, decimals: int) -> str:
    """Render a base-unit integer as a decimal string"""
    value = Decimal(amount) / (Decimal(10) ** decimals)
    text = format(value.normalize(), "f") if value else "0"
    if "." not in text and decimals > 0:
        text += ".0"
    return text


def parse_units(amount: Union[str, int, float, Decimal], decimals: int) -> int:
    """Convert a human amount to base units, truncating extra precision"""
    value = Decimal(str(amount))
    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def address_to_bytes32(address: str) -> bytes:
    """Left-pad a 20-byte address to 32 bytes"""
    raw = bytes.fromhex(address[2:] if address.startswith("0x") else address)
    if len(raw) != 20:
        raise ValueError(f"Invalid address length: {address}")
    return b"\x00" * 12 + raw


def bytes32_to_address(value: Union[bytes, str]) -> str:
    """Take the last 20 bytes of a bytes32 as a checksummed address"""
    if isinstance(value, str):
        value = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return to_checksum_address(value[-20:])


def is_zero_bytes32(value: Union[bytes, str]) -> bool:
    if isinstance(value, str):
        value = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return not any(value)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()
