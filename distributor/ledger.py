"""
The distribution ledger state machine.

    Unknown --add--> Active --pause_for_withdrawal--> Paused --withdraw_unclaimed_tokens--> Active

Every transition takes the `LedgerState` it mutates explicitly. The host is expected to
serialize transitions for a token, so the read-modify-write inside a transition is not
guarded by any lock here. A transition either completes or raises before touching state.
"""

from typing import Optional

import eth_utils as eth

from distributor.errors import (
    AccountingMismatch,
    AlreadyExists,
    AlreadyPaused,
    InvalidProof,
    LengthMismatch,
    NotFound,
    NothingToClaim,
    NotPaused,
    Paused,
)
from distributor.merkle import ProofElement, verify_proof
from distributor.models import (
    AddDistribution,
    Claimed,
    DistributionAdded,
    DistributionPaused,
    DistributionRecord,
    DistributionState,
    DistributionUpdated,
    EthereumAddress,
    HexStr,
    LedgerState,
    PauseForWithdrawal,
    StoragePointer,
    Transition,
    UnclaimedWithdrawn,
    UpdateDistribution,
    WithdrawUnclaimed,
)


def get_distribution(
    state: LedgerState, token: EthereumAddress
) -> Optional[DistributionRecord]:
    return state.distributions.get(eth.to_checksum_address(token))


def distribution_state(state: LedgerState, token: EthereumAddress) -> DistributionState:
    record = get_distribution(state, token)
    return DistributionState.UNKNOWN if record is None else record.state


def get_claimed(state: LedgerState, token: EthereumAddress, account: EthereumAddress) -> int:
    """Counters exist implicitly at zero"""
    counters = state.claimed.get(eth.to_checksum_address(token), {})
    return counters.get(eth.to_checksum_address(account), 0)


def total_claimed(state: LedgerState, token: EthereumAddress) -> int:
    return sum(state.claimed.get(eth.to_checksum_address(token), {}).values())


def _require_record(state: LedgerState, token: EthereumAddress) -> DistributionRecord:
    record = get_distribution(state, token)
    if record is None:
        raise NotFound(f"No distribution for token {token}")
    return record


def add_distribution(
    state: LedgerState,
    token: EthereumAddress,
    merkle_root: HexStr,
    storage_pointer: StoragePointer,
    total_amount: int,
) -> DistributionRecord:
    token = eth.to_checksum_address(token)
    if token in state.distributions:
        raise AlreadyExists(f"Distribution for token {token} already exists")

    record = DistributionRecord(
        token=token,
        merkleRoot=merkle_root,
        storagePointer=storage_pointer,
        totalAmount=total_amount,
    )
    state.distributions[token] = record
    state.events.append(
        DistributionAdded(
            token=token,
            merkleRoot=merkle_root,
            storagePointer=storage_pointer,
            totalAmount=total_amount,
        )
    )
    return record


def update_distribution(
    state: LedgerState,
    token: EthereumAddress,
    merkle_root: HexStr,
    storage_pointer: StoragePointer,
    total_amount: int,
) -> DistributionRecord:
    """
    Replace the commitment of an active distribution. The ledger only checks that the
    total does not go down, the reconciliation checker re-derives the exact number beforehand.
    """
    record = _require_record(state, token)
    if record.isPaused:
        raise Paused(f"Distribution for token {record.token} is paused")
    if total_amount < record.totalAmount:
        raise AccountingMismatch(
            f"Total distributed for {record.token} cannot decrease from {record.totalAmount} to {total_amount}",
            expected=record.totalAmount,
            actual=total_amount,
        )

    record.merkleRoot = merkle_root
    record.storagePointer = storage_pointer
    record.totalAmount = total_amount
    state.events.append(
        DistributionUpdated(
            token=record.token,
            merkleRoot=merkle_root,
            storagePointer=storage_pointer,
            totalAmount=total_amount,
        )
    )
    return record


def pause_for_withdrawal(state: LedgerState, token: EthereumAddress) -> DistributionRecord:
    record = _require_record(state, token)
    if record.isPaused:
        raise AlreadyPaused(f"Distribution for token {record.token} is already paused")

    record.isPaused = True
    state.events.append(DistributionPaused(token=record.token))
    return record


def withdraw_unclaimed_tokens(
    state: LedgerState,
    token: EthereumAddress,
    merkle_root: HexStr,
    storage_pointer: StoragePointer,
    total_amount: int,
) -> UnclaimedWithdrawn:
    """
    Swap in a commitment that only covers what has already been claimed and hand the
    rest back. `total_amount` must equal the sum of the claimed counters exactly.
    """
    record = _require_record(state, token)
    if not record.isPaused:
        raise NotPaused(f"Distribution for token {record.token} is not paused")

    claimed = total_claimed(state, record.token)
    if total_amount != claimed:
        raise AccountingMismatch(
            f"Withdrawal total {total_amount} does not match claimed total {claimed} for {record.token}",
            expected=claimed,
            actual=total_amount,
        )

    withdrawn = UnclaimedWithdrawn(
        token=record.token, amount=record.totalAmount - claimed
    )
    record.merkleRoot = merkle_root
    record.storagePointer = storage_pointer
    record.totalAmount = total_amount
    record.isPaused = False
    state.events.append(withdrawn)
    return withdrawn


def claim(
    state: LedgerState,
    token: EthereumAddress,
    index: int,
    account: EthereumAddress,
    cumulative_amount: int,
    proof: list[ProofElement],
) -> Claimed:
    """
    Pay out whatever the account is owed on top of what it has already claimed.
    Claiming the same cumulative amount twice fails the second time with `NothingToClaim`,
    after an update raises the amount the difference becomes claimable.
    """
    record = _require_record(state, token)
    if record.isPaused:
        raise Paused(f"Distribution for token {record.token} is paused")

    account = eth.to_checksum_address(account)
    if not verify_proof(record.merkleRoot, index, account, cumulative_amount, proof):
        raise InvalidProof(f"Invalid proof for {account} on token {record.token}")

    delta = cumulative_amount - get_claimed(state, record.token, account)
    if delta <= 0:
        raise NothingToClaim(f"{account} has nothing left to claim on {record.token}")

    state.claimed.setdefault(record.token, {})[account] = cumulative_amount
    claimed = Claimed(account=account, token=record.token, amount=delta)
    state.events.append(claimed)
    return claimed


def claim_batch(
    state: LedgerState,
    tokens: list[EthereumAddress],
    indices: list[int],
    account: EthereumAddress,
    amounts: list[int],
    proofs: list[list[ProofElement]],
) -> list[Claimed]:
    """
    Claim across several tokens for one account, all or nothing.
    Claims run against a scratch copy of the state which only replaces the real one
    once every claim went through.
    """
    if not len(tokens) == len(indices) == len(amounts) == len(proofs):
        raise LengthMismatch(
            f"Batch lengths differ: {len(tokens)} tokens, {len(indices)} indices, "
            f"{len(amounts)} amounts, {len(proofs)} proofs"
        )

    staged = state.model_copy(deep=True)
    claimed = [
        claim(staged, token, index, account, amount, proof)
        for token, index, amount, proof in zip(tokens, indices, amounts, proofs)
    ]

    state.distributions = staged.distributions
    state.claimed = staged.claimed
    state.events = staged.events
    return claimed


def apply_transition(state: LedgerState, transition: Transition) -> None:
    """Apply a prepared transition, as a submitter would"""
    if isinstance(transition, AddDistribution):
        add_distribution(
            state,
            transition.token,
            transition.merkleRoot,
            transition.storagePointer,
            transition.totalAmount,
        )
    elif isinstance(transition, UpdateDistribution):
        update_distribution(
            state,
            transition.token,
            transition.merkleRoot,
            transition.storagePointer,
            transition.totalAmount,
        )
    elif isinstance(transition, PauseForWithdrawal):
        pause_for_withdrawal(state, transition.token)
    elif isinstance(transition, WithdrawUnclaimed):
        withdraw_unclaimed_tokens(
            state,
            transition.token,
            transition.merkleRoot,
            transition.storagePointer,
            transition.totalAmount,
        )
    else:
        raise TypeError(f"Unknown transition {transition!r}")
