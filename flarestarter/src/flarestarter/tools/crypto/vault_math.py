"""Integer share math for BoringVault deposits and withdrawals"""

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 50
MAX_UINT256 = 2**256 - 1


def one_share(vault_decimals: int) -> int:
    """Base units of a single vault share"""
    return 10 ** vault_decimals


def assets_to_shares(amount: int, rate: int, vault_decimals: int) -> int:
    if rate <= 0:
        raise ValueError("Exchange rate is not configured")
    return amount * one_share(vault_decimals) // rate


def shares_to_assets(shares: int, rate: int, vault_decimals: int) -> int:
    return shares * rate // one_share(vault_decimals)


def apply_slippage(amount: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Minimum acceptable amount after slippage tolerance"""
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps")
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def realized_rate(assets_received: int, shares_burned: int, vault_decimals: int) -> int:
    if shares_burned == 0:
        return 0
    return assets_received * one_share(vault_decimals) // shares_burned
