"""
Tree reconciler: derives the next dataset for a token from the previously published one
plus this cycle's allocations.

Distributions are additive. An existing recipient's amount is carried forward and the
delta is added on top, it is never replaced. Every invariant is checked before a root is
computed, so a failed merge never produces a commitment.
"""

from typing import Mapping, Optional

from distributor.allocations import normalize_address
from distributor.errors import AccountingMismatch, Conservation, Monotonicity, SpuriousDeletion
from distributor.merkle import compute_root
from distributor.models import (
    DatasetEntry,
    DistributionDataset,
    EthereumAddress,
    ZERO_ADDRESS,
)


def empty_dataset(
    token: EthereumAddress = ZERO_ADDRESS, token_symbol: Optional[str] = None
) -> DistributionDataset:
    """The previous dataset for a first-ever distribution"""
    return DistributionDataset(token=token, tokenSymbol=token_symbol)


def check_monotonic(
    old: Mapping[EthereumAddress, int], new: Mapping[EthereumAddress, int]
) -> None:
    for address, amount in new.items():
        previous = old.get(address, 0)
        if amount < previous:
            raise Monotonicity(
                f"Amount for {address} decreased from {previous} to {amount}",
                recipient=address,
                expected=previous,
                actual=amount,
            )


def check_no_deletions(
    old: Mapping[EthereumAddress, int], new: Mapping[EthereumAddress, int]
) -> None:
    for address, amount in old.items():
        if address not in new:
            raise SpuriousDeletion(
                f"{address} was in the previous dataset but not in the new one",
                recipient=address,
                expected=amount,
            )


def check_conservation(old_total: int, new_total: int, delta_total: int) -> None:
    if new_total - old_total != delta_total:
        raise Conservation(
            f"New total {new_total} minus old total {old_total} does not equal delta total {delta_total}",
            expected=old_total + delta_total,
            actual=new_total,
        )


def _merge_sources(
    previous: dict[str, str], additions: Mapping[str, int]
) -> dict[str, int]:
    merged = {name: int(amount) for name, amount in previous.items()}
    for name, amount in additions.items():
        merged[name] = merged.get(name, 0) + amount
    return merged


def merge_datasets(
    previous: DistributionDataset,
    delta: Mapping[str, int],
    breakdown: Optional[Mapping[str, Mapping[str, int]]] = None,
) -> DistributionDataset:
    """
    Previously existing recipients keep their relative order and come first,
    recipients new in this cycle follow in delta order. Indices are reassigned densely from 0.
    """
    old = previous.amounts()
    changes: dict[EthereumAddress, int] = {}
    for address, amount in delta.items():
        key = normalize_address(address)
        changes[key] = changes.get(key, 0) + amount

    merged: dict[EthereumAddress, int] = {
        address: amount + changes.get(address, 0) for address, amount in old.items()
    }
    for address, amount in changes.items():
        if address not in old:
            merged[address] = amount

    check_monotonic(old, merged)
    merged = {a: amount for a, amount in merged.items() if amount != 0}
    check_no_deletions(old, merged)
    check_conservation(sum(old.values()), sum(merged.values()), sum(changes.values()))

    extra = {normalize_address(a): b for a, b in (breakdown or {}).items()}
    data = {
        address: DatasetEntry(
            index=index,
            amount=amount,
            sources=_merge_sources(
                previous.data[address].sources if address in previous.data else {},
                extra.get(address, {}),
            ),
        )
        for index, (address, amount) in enumerate(merged.items())
    }
    dataset = DistributionDataset(
        token=previous.token,
        tokenSymbol=previous.tokenSymbol,
        totalAmount=sum(merged.values()),
        data=data,
    )
    return dataset.model_copy(update={"merkleRoot": compute_root(dataset)})


def build_withdrawal_dataset(
    previous: DistributionDataset, claimed: Mapping[EthereumAddress, int]
) -> DistributionDataset:
    """
    Replacement dataset for a withdrawal: only recipients who have claimed something,
    each capped at exactly what they claimed, so nothing is left to claim
    """
    old = previous.amounts()
    for address, amount in claimed.items():
        if amount > 0 and amount > old.get(address, 0):
            raise AccountingMismatch(
                f"{address} claimed {amount} but was only owed {old.get(address, 0)}",
                recipient=address,
                expected=old.get(address, 0),
                actual=amount,
            )

    kept = [(a, claimed.get(a, 0)) for a in old if claimed.get(a, 0) > 0]
    dataset = DistributionDataset(
        token=previous.token,
        tokenSymbol=previous.tokenSymbol,
        totalAmount=sum(amount for _, amount in kept),
        data={
            address: DatasetEntry(index=index, amount=amount)
            for index, (address, amount) in enumerate(kept)
        },
    )
    return dataset.model_copy(update={"merkleRoot": compute_root(dataset)})
