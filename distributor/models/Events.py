from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from distributor.models.types import EthereumAddress, HexStr, StoragePointer


class DistributionAdded(BaseModel):
    event: Literal["DistributionAdded"] = "DistributionAdded"
    token: EthereumAddress
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int


class DistributionUpdated(BaseModel):
    event: Literal["DistributionUpdated"] = "DistributionUpdated"
    token: EthereumAddress
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int


class DistributionPaused(BaseModel):
    event: Literal["DistributionPaused"] = "DistributionPaused"
    token: EthereumAddress


class Claimed(BaseModel):
    """A transfer of `amount` units of `token` to `account`"""

    event: Literal["Claimed"] = "Claimed"
    account: EthereumAddress
    token: EthereumAddress
    amount: int


class UnclaimedWithdrawn(BaseModel):
    """Unclaimed balance handed back to the distribution owner"""

    event: Literal["UnclaimedWithdrawn"] = "UnclaimedWithdrawn"
    token: EthereumAddress
    amount: int


LedgerEvent = Annotated[
    Union[
        DistributionAdded,
        DistributionUpdated,
        DistributionPaused,
        Claimed,
        UnclaimedWithdrawn,
    ],
    Field(discriminator="event"),
]
