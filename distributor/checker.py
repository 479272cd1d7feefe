"""
Reconciliation checks, run before anything is submitted to the ledger.
The durable copy of a dataset is only trusted once its root has been recomputed
and matched against what the ledger committed to.
"""

from typing import Mapping, Optional

from distributor.errors import AccountingMismatch, Paused, RootMismatch, TotalMismatch
from distributor.merkle import compute_root
from distributor.models import DistributionDataset, DistributionRecord, EthereumAddress
from distributor.reconciler import check_monotonic, check_no_deletions
from distributor.store import DatasetStore


def check_can_generate(record: Optional[DistributionRecord]) -> None:
    """A paused distribution is being wound down, it cannot take a new commitment"""
    if record is not None and record.isPaused:
        raise Paused(f"Distribution for token {record.token} is paused")


def check_root(record: DistributionRecord, dataset: DistributionDataset) -> None:
    root = compute_root(dataset)
    if root != record.merkleRoot.lower():
        raise RootMismatch(
            f"Stored dataset {record.storagePointer} hashes to {root}, ledger has {record.merkleRoot}"
        )
    if dataset.merkleRoot.lower() != root:
        raise RootMismatch(
            f"Stored dataset {record.storagePointer} claims root {dataset.merkleRoot} but hashes to {root}"
        )


def check_total(dataset: DistributionDataset, submitted_total: int) -> None:
    """Independently sum the dataset and compare with what is about to be submitted"""
    if dataset.total != submitted_total:
        raise TotalMismatch(
            f"Dataset sums to {dataset.total}, submitting {submitted_total}",
            expected=dataset.total,
            actual=submitted_total,
        )
    if int(dataset.totalAmount) != dataset.total:
        raise TotalMismatch(
            f"Dataset claims a total of {dataset.totalAmount} but sums to {dataset.total}",
            expected=dataset.total,
            actual=int(dataset.totalAmount),
        )


def verify_stored_dataset(
    record: DistributionRecord, store: DatasetStore
) -> DistributionDataset:
    """
    Fetch the dataset the ledger points to and make sure it is the one the ledger committed to.
    Catches a corrupted or tampered copy before it becomes the basis of a merge.
    """
    dataset = store.get(record.storagePointer)
    check_root(record, dataset)
    check_total(dataset, record.totalAmount)
    return dataset


def check_transition(previous: DistributionDataset, new: DistributionDataset) -> None:
    """Amounts never go down and nobody disappears between two published datasets"""
    old_amounts = previous.amounts()
    new_amounts = new.amounts()
    check_monotonic(old_amounts, new_amounts)
    check_no_deletions(old_amounts, new_amounts)


def check_withdrawal(
    dataset: DistributionDataset, claimed: Mapping[EthereumAddress, int]
) -> None:
    """
    A withdrawal dataset holds exactly the recipients who claimed, each at exactly
    their claimed amount
    """
    amounts = dataset.amounts()
    for address, amount in claimed.items():
        if amount > 0 and amounts.get(address) != amount:
            raise AccountingMismatch(
                f"{address} claimed {amount} but the withdrawal dataset has {amounts.get(address, 0)}",
                recipient=address,
                expected=amount,
                actual=amounts.get(address, 0),
            )
    for address, amount in amounts.items():
        if claimed.get(address, 0) != amount:
            raise AccountingMismatch(
                f"{address} is in the withdrawal dataset with {amount} but claimed {claimed.get(address, 0)}",
                recipient=address,
                expected=claimed.get(address, 0),
                actual=amount,
            )
    check_total(dataset, sum(claimed.values()))
