from .units import (
    ZERO_BYTES32,
    address_to_bytes32,
    bytes32_to_address,
    format_units,
    is_zero_bytes32,
    parse_units,
    to_hex,
)

__all__ = [
    "ZERO_BYTES32",
    "address_to_bytes32",
    "bytes32_to_address",
    "format_units",
    "is_zero_bytes32",
    "parse_units",
    "to_hex",
]
