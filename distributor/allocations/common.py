from typing import Any, Iterable

import eth_utils as eth

from distributor.errors import InvalidInputData
from distributor.models import EthereumAddress, to_big_number

BalanceMap = dict[EthereumAddress, int]


def normalize_address(address: Any, source: str = "") -> EthereumAddress:
    """
    Addresses compare case-insensitively, so a mis-checksummed address is still accepted,
    but it is always stored in checksum form
    """
    if not isinstance(address, str) or not eth.is_hex_address(address):
        raise InvalidInputData(f"Invalid address {address!r} in balance map {source}")
    return eth.to_checksum_address(address.lower())


def parse_amount(amount: Any, address: str, source: str = "") -> int:
    try:
        return int(to_big_number(amount))
    except ValueError as e:
        raise InvalidInputData(
            f"Invalid amount {amount!r} for {address} in balance map {source}"
        ) from e


def parse_balance_map(raw: Any, source: str = "") -> BalanceMap:
    """
    Validate a raw snapshot at the boundary: a mapping of address-shaped strings
    to non-negative integers (ints or decimal strings). Floats are rejected outright,
    they have already lost precision by the time we see them.
    """
    if not isinstance(raw, dict):
        raise InvalidInputData(f"Balance map {source} is not an object")

    parsed: BalanceMap = {}
    for address, amount in raw.items():
        key = normalize_address(address, source)
        parsed[key] = parsed.get(key, 0) + parse_amount(amount, address, source)
    return parsed


def sum_balance_maps(
    maps: Iterable[BalanceMap], exclude: Iterable[EthereumAddress] = ()
) -> BalanceMap:
    """Sum parsed maps, dropping excluded recipients. First-seen order is kept."""
    excluded = set(exclude)
    summed: BalanceMap = {}
    for balances in maps:
        for address, amount in balances.items():
            if address in excluded:
                continue
            summed[address] = summed.get(address, 0) + amount
    return summed


def remove_zero_balances(balances: BalanceMap) -> BalanceMap:
    return {a: amount for a, amount in balances.items() if amount != 0}


def total(balances: BalanceMap) -> int:
    return sum(balances.values())
