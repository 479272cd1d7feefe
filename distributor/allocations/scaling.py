from typing import Optional

from distributor.allocations.common import BalanceMap, total
from distributor.errors import DegenerateDistribution
from distributor.models import EthereumAddress, ScalingOption, ScalingRule


def flat_share(balances: BalanceMap, numerator: int, denominator: int) -> BalanceMap:
    """Every holder receives numerator / denominator of their balance, truncated"""
    if denominator == 0:
        raise DegenerateDistribution("Flat share with a zero denominator")
    return {a: amount * numerator // denominator for a, amount in balances.items()}


def proportional_split(balances: BalanceMap, pool: int) -> tuple[BalanceMap, int]:
    """
    Split `pool` pro rata to balances. Shares truncate toward zero so their sum
    can fall short of the pool, the shortfall is returned as the residual.
    """
    source_total = total(balances)
    if source_total == 0:
        raise DegenerateDistribution(
            f"Cannot split a pool of {pool} over balances that sum to zero"
        )
    shares = {a: amount * pool // source_total for a, amount in balances.items()}
    return shares, pool - total(shares)


def apply_rule(
    balances: BalanceMap, rule: ScalingRule
) -> tuple[BalanceMap, int, Optional[EthereumAddress]]:
    """
    Returns the scaled balances, the truncation residual and where that residual should go.
    A residual with no sink is left undistributed.
    """
    if rule.option == ScalingOption.FLAT_SHARE:
        return flat_share(balances, rule.numerator, rule.denominator), 0, None

    if rule.option == ScalingOption.PROPORTIONAL:
        shares, residual = proportional_split(balances, int(rule.pool or 0))
        return shares, residual, rule.residual_sink

    return dict(balances), 0, None


def top_holders(balances: BalanceMap, n: int) -> list[EthereumAddress]:
    """Largest balances first, ties keep input order"""
    ranked = sorted(balances, key=lambda a: balances[a], reverse=True)
    return ranked[:n]
