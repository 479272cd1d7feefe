"""
One distribution cycle per token, start to finish:

    balances -> allocations -> merge with the published dataset -> checks -> pin -> submit

Nothing external is touched until every check has passed, so a cycle can be aborted at
any point before submission without side effects. Cycles for the same token must not
overlap, cycles for different tokens are independent.
"""

from typing import Any, Optional

from distributor.allocations import allocations_from_config
from distributor.checker import (
    check_can_generate,
    check_total,
    check_transition,
    check_withdrawal,
    verify_stored_dataset,
)
from distributor.config import load_balance_maps
from distributor.errors import NotFound
from distributor.merkle import build_claims
from distributor.models import (
    AddDistribution,
    BalanceSource,
    Config,
    DistributionDataset,
    EthereumAddress,
    PauseForWithdrawal,
    StoragePointer,
    UpdateDistribution,
    WithdrawUnclaimed,
    Writer,
)
from distributor.queries import LedgerReader
from distributor.reconciler import build_withdrawal_dataset, empty_dataset, merge_datasets
from distributor.store import DatasetStore
from distributor.submitter import Submitter


def run_update(
    conf: Config,
    reader: LedgerReader,
    store: DatasetStore,
    submitter: Submitter,
    balance_maps: Optional[list[tuple[BalanceSource, Any]]] = None,
    writer: Optional[Writer] = None,
) -> tuple[DistributionDataset, StoragePointer]:
    """
    Add this cycle's allocations to a token's distribution, creating it if it does not exist yet
    """
    print(f"Generating new tree for {conf.token_symbol}...")

    record = reader.get_distribution(conf.token)
    check_can_generate(record)

    if record is None:
        previous = empty_dataset(conf.token, conf.token_symbol)
    else:
        print(f"Fetching current tree {record.storagePointer}...")
        previous = verify_stored_dataset(record, store)

    if balance_maps is None:
        balance_maps = load_balance_maps(conf)
    allocations = allocations_from_config(conf, balance_maps)
    delta_total = sum(allocations.balances.values())
    if allocations.residual:
        print(f"⚠️ {allocations.residual} left undistributed by proportional splits")

    dataset = merge_datasets(previous, allocations.balances, allocations.breakdown)
    if dataset.tokenSymbol is None:
        dataset = dataset.model_copy(update={"tokenSymbol": conf.token_symbol})

    check_transition(previous, dataset)
    check_total(dataset, previous.total + delta_total)

    print(f"Pinning tree with {len(dataset.data)} recipients...")
    pointer = store.put(dataset)

    print("Updating merkle distributor...")
    transition_args = dict(
        token=conf.token,
        merkleRoot=dataset.merkleRoot,
        storagePointer=pointer,
        totalAmount=dataset.total,
    )
    if record is None:
        submitter.submit(AddDistribution(**transition_args))
    else:
        submitter.submit(UpdateDistribution(**transition_args))

    if writer is not None:
        writer.write_distribution(dataset, build_claims(dataset), pointer)

    print(f"😃 Distributed {delta_total} more {conf.token_symbol}, total {dataset.total}")
    return dataset, pointer


def run_withdrawal(
    token: EthereumAddress,
    reader: LedgerReader,
    store: DatasetStore,
    submitter: Submitter,
    batch_size: int = 100,
    writer: Optional[Writer] = None,
) -> tuple[DistributionDataset, StoragePointer]:
    """
    Withdraw everything not yet claimed from a distribution:
        - pause it so no new claims come in
        - fetch and verify the current tree
        - read every recipient's claimed counter, in batches
        - build a tree capped at the claimed amounts and pin it
        - submit the withdrawal, which swaps the root and unpauses
    """
    record = reader.get_distribution(token)
    if record is None:
        raise NotFound(f"No distribution for token {token}")

    if not record.isPaused:
        print("Pausing distribution...")
        submitter.submit(PauseForWithdrawal(token=record.token))
    else:
        print("Distribution already paused")

    previous = verify_stored_dataset(record, store)
    accounts = list(previous.amounts())
    print(f"Found {len(accounts)} accounts in current tree, total {previous.total}")

    claimed = reader.get_claimed_amounts(record.token, accounts, batch_size)
    total_claimed = sum(claimed.values())
    print(f"Total claimed: {total_claimed}, unclaimed: {previous.total - total_claimed}")

    dataset = build_withdrawal_dataset(previous, claimed)
    check_withdrawal(dataset, claimed)

    print(f"Pinning new tree with {len(dataset.data)} accounts...")
    pointer = store.put(dataset)

    print("Withdrawing unclaimed tokens...")
    submitter.submit(
        WithdrawUnclaimed(
            token=record.token,
            merkleRoot=dataset.merkleRoot,
            storagePointer=pointer,
            totalAmount=total_claimed,
        )
    )

    if writer is not None:
        writer.write_distribution(dataset, build_claims(dataset), pointer)

    print("✅ Withdrawal complete!")
    return dataset, pointer
