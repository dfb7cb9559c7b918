"""LayerZero V2 type-3 executor options encoder

Layout: 0x0003, then for each option
    uint8 workerId | uint16 size | uint8 optionType | option bytes
where size counts the optionType byte plus the option bytes.
"""

from typing import List

from ...utils.units import address_to_bytes32

TYPE_3 = 3
EXECUTOR_WORKER_ID = 1

OPTION_TYPE_LZRECEIVE = 1
OPTION_TYPE_NATIVE_DROP = 2
OPTION_TYPE_LZCOMPOSE = 3
OPTION_TYPE_ORDERED_EXECUTION = 4

UINT128_MAX = 2**128 - 1
UINT16_MAX = 2**16 - 1


def _uint(value: int, size: int, max_value: int) -> bytes:
    if value < 0 or value > max_value:
        raise ValueError(f"Value {value} out of range for uint{size * 8}")
    return value.to_bytes(size, "big")


class Options:
    """Builder for executor options"""

    def __init__(self):
        self._options: List[bytes] = []

    def _add_executor_option(self, option_type: int, option: bytes) -> "Options":
        self._options.append(
            bytes([EXECUTOR_WORKER_ID])
            + _uint(len(option) + 1, 2, UINT16_MAX)
            + bytes([option_type])
            + option
        )
        return self

    def add_executor_lz_receive_option(self, gas: int, value: int = 0) -> "Options":
        option = _uint(gas, 16, UINT128_MAX)
        if value:
            option += _uint(value, 16, UINT128_MAX)
        return self._add_executor_option(OPTION_TYPE_LZRECEIVE, option)

    def add_executor_native_drop_option(self, amount: int, receiver: str) -> "Options":
        option = _uint(amount, 16, UINT128_MAX) + address_to_bytes32(receiver)
        return self._add_executor_option(OPTION_TYPE_NATIVE_DROP, option)

    def add_executor_compose_option(self, index: int, gas: int, value: int = 0) -> "Options":
        option = _uint(index, 2, UINT16_MAX) + _uint(gas, 16, UINT128_MAX)
        if value:
            option += _uint(value, 16, UINT128_MAX)
        return self._add_executor_option(OPTION_TYPE_LZCOMPOSE, option)

    def add_executor_ordered_execution_option(self) -> "Options":
        return self._add_executor_option(OPTION_TYPE_ORDERED_EXECUTION, b"")

    def to_bytes(self) -> bytes:
        return _uint(TYPE_3, 2, UINT16_MAX) + b"".join(self._options)

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


def new_options() -> Options:
    return Options()
