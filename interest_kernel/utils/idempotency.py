"""
Distribution key utilities.

A distribution key names one payable unit of work: one beneficiary, one
asset, one period. The ledger stores at most one record per key.
"""


def generate_distribution_key(asset_id: int, period_index: int, beneficiary: str) -> str:
    """
    Build the canonical distribution key.

    Format: asset_id:period_index:beneficiary

    Example:
        >>> generate_distribution_key(7, 0, "0xabc")
        '7:0:0xabc'
    """
    return f"{asset_id}:{period_index}:{beneficiary}"


def parse_distribution_key(key: str) -> tuple[int, int, str]:
    """
    Split a distribution key into (asset_id, period_index, beneficiary).

    Raises:
        ValueError: If key format is invalid.
    """
    parts = key.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Invalid distribution key format: {key}")
    asset_id, period_index, beneficiary = parts
    if not (asset_id.isdigit() and period_index.isdigit() and beneficiary):
        raise ValueError(f"Invalid distribution key format: {key}")
    return int(asset_id), int(period_index), beneficiary
