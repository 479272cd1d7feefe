from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import eth_utils as eth
from pydantic import BaseModel, field_validator, model_validator

from distributor.errors import BadConfigException
from distributor.models.Dataset import to_big_number
from distributor.models.types import BigNumber, EthereumAddress


class ERROR_MESSAGES:
    DUPLICATE_SOURCE = "Passed Duplicate Source Names"
    UNKNOWN_RANK_SOURCE = "Rank bonus references an unknown source"
    EXCLUDED_SINK = "Residual sink cannot be an excluded address"
    BATCH_SIZE = "Claimed batch size must be positive"


class ScalingOption(str, Enum):
    # use the balance as it is
    RAW = "raw"

    # every holder gets numerator / denominator of their balance
    FLAT_SHARE = "flat_share"

    # a fixed pool is split pro rata to balances
    PROPORTIONAL = "proportional"


class ScalingRule(BaseModel):
    """
    How one balance source turns into allocations.

    Proportional splits truncate each share toward zero. Whatever is left of the pool
    goes to `residual_sink` if one is set, otherwise it stays undistributed and is reported.
    """

    option: ScalingOption = ScalingOption.RAW
    numerator: int = 1
    denominator: int = 1
    pool: Optional[BigNumber] = None
    residual_sink: Optional[EthereumAddress] = None

    @field_validator("pool", mode="before")
    @classmethod
    def validate_pool(cls, pool: Any):
        return None if pool is None else to_big_number(pool)

    @field_validator("residual_sink")
    @classmethod
    def checksum_sink(cls, addr: Optional[str]):
        return None if addr is None else eth.to_checksum_address(addr)

    @model_validator(mode="after")
    def ensure_params_match_option(self) -> ScalingRule:
        if self.option == ScalingOption.FLAT_SHARE:
            if self.denominator <= 0 or self.numerator < 0:
                raise BadConfigException(
                    f"Flat share out of range: {self.numerator}/{self.denominator}"
                )
        if self.option == ScalingOption.PROPORTIONAL and self.pool is None:
            raise BadConfigException("Must provide a pool for a proportional split")
        if self.option != ScalingOption.PROPORTIONAL and (
            self.pool is not None or self.residual_sink is not None
        ):
            raise BadConfigException(
                "Pool and residual sink only apply to proportional splits"
            )
        return self


class BalanceSource(BaseModel):
    """
    :param `name`: identifier used in the per-source breakdown of the dataset
    :param `path`: JSON snapshot of address -> amount
    """

    name: str
    path: Optional[str] = None
    rule: ScalingRule = ScalingRule()


class FixedBonus(BaseModel):
    """Fixed amount added for a named recipient (eg: raffle winners)"""

    address: EthereumAddress
    amount: BigNumber
    reason: str = ""

    @field_validator("address")
    @classmethod
    def checksum_address(cls, addr: str):
        return eth.to_checksum_address(addr)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, amount: Any):
        return to_big_number(amount)


class RankBonus(BaseModel):
    """
    The top holders of `source` (by raw balance, after exclusions) receive
    `amounts[0]`, `amounts[1]`, ... in order of rank
    """

    source: str
    amounts: list[BigNumber]

    @field_validator("amounts", mode="before")
    @classmethod
    def validate_amounts(cls, amounts: list[Any]):
        return [to_big_number(a) for a in amounts]


class Config(BaseModel):
    token: EthereumAddress
    token_symbol: str
    sources: list[BalanceSource] = []
    exclude: list[EthereumAddress] = []
    bonuses: list[FixedBonus] = []
    rank_bonuses: list[RankBonus] = []

    # how many claimed counters to read per batch when preparing a withdrawal
    claimed_batch_size: int = 100

    # on-chain distributor, only needed when reading from chain
    distributor_address: Optional[EthereumAddress] = None

    reports_dir: str = "reports"

    @field_validator("token")
    @classmethod
    def checksum_token(cls, addr: str):
        return eth.to_checksum_address(addr)

    @field_validator("distributor_address")
    @classmethod
    def checksum_distributor(cls, addr: Optional[str]):
        return None if addr is None else eth.to_checksum_address(addr)

    @field_validator("exclude")
    @classmethod
    def checksum_exclusions(cls, addresses: list[str]):
        return [eth.to_checksum_address(a) for a in addresses]

    @field_validator("claimed_batch_size")
    @classmethod
    def validate_batch_size(cls, size: int):
        if size <= 0:
            raise BadConfigException(ERROR_MESSAGES.BATCH_SIZE)
        return size

    @model_validator(mode="after")
    def validate_sources(self) -> Config:
        names = [s.name for s in self.sources]
        if len(set(names)) != len(names):
            raise BadConfigException(ERROR_MESSAGES.DUPLICATE_SOURCE)

        for rank in self.rank_bonuses:
            if rank.source not in names:
                raise BadConfigException(
                    f"{ERROR_MESSAGES.UNKNOWN_RANK_SOURCE}: {rank.source}"
                )

        for s in self.sources:
            if s.rule.residual_sink and s.rule.residual_sink in self.exclude:
                raise BadConfigException(
                    f"{ERROR_MESSAGES.EXCLUDED_SINK}: {s.rule.residual_sink}"
                )
        return self

    @property
    def exclude_set(self) -> set[EthereumAddress]:
        return set(self.exclude)
