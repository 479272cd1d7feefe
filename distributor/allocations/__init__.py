from typing import Any, Iterable, NamedTuple

from distributor.allocations.common import *
from distributor.allocations.scaling import *
from distributor.errors import BadConfigException
from distributor.models import (
    BalanceSource,
    Config,
    EthereumAddress,
    FixedBonus,
    RankBonus,
)


class AllocationResult(NamedTuple):
    """
    :param `balances`: recipient -> amount for this cycle, in first-seen order
    :param `breakdown`: recipient -> source label -> amount, for the dataset's auxiliary fields
    :param `residual`: proportional truncation dust with no sink, left undistributed
    """

    balances: BalanceMap
    breakdown: dict[EthereumAddress, dict[str, int]]
    residual: int


def compute_allocations(
    sources: list[tuple[BalanceSource, Any]],
    exclude: Iterable[str] = (),
    bonuses: Iterable[FixedBonus] = (),
    rank_bonuses: Iterable[RankBonus] = (),
) -> AllocationResult:
    """
    Turn an ordered list of raw balance maps into one recipient -> amount mapping.

    Excluded recipients are dropped from every source before any totals are taken,
    then each source is scaled by its rule, then rank and fixed bonuses are added.
    Everything stays in integers; zero amounts never make it into the result.
    """
    excluded = {normalize_address(a) for a in exclude}
    balances: BalanceMap = {}
    breakdown: dict[EthereumAddress, dict[str, int]] = {}
    residual = 0
    by_source: dict[str, BalanceMap] = {}

    def credit(address: EthereumAddress, amount: int, label: str) -> None:
        if address in excluded or amount == 0:
            return
        balances[address] = balances.get(address, 0) + amount
        labels = breakdown.setdefault(address, {})
        labels[label] = labels.get(label, 0) + amount

    for source, raw in sources:
        parsed = sum_balance_maps([parse_balance_map(raw, source.name)], excluded)
        by_source[source.name] = parsed

        shares, leftover, sink = apply_rule(parsed, source.rule)
        for address, amount in shares.items():
            credit(address, amount, source.name)

        if leftover and sink:
            credit(sink, leftover, f"{source.name}_residual")
        else:
            residual += leftover

    for rank in rank_bonuses:
        if rank.source not in by_source:
            raise BadConfigException(f"Rank bonus for unknown source {rank.source}")
        holders = top_holders(by_source[rank.source], len(rank.amounts))
        for address, amount in zip(holders, rank.amounts):
            credit(address, int(amount), f"{rank.source}_rank")

    for bonus in bonuses:
        credit(bonus.address, int(bonus.amount), "bonus")

    return AllocationResult(balances, breakdown, residual)


def allocations_from_config(
    conf: Config, balance_maps: list[tuple[BalanceSource, Any]]
) -> AllocationResult:
    return compute_allocations(
        balance_maps, conf.exclude, conf.bonuses, conf.rank_bonuses
    )
