"""
Prepared ledger transitions. The off-chain pipeline builds one of these with concrete
arguments and hands it to a submitter, which either applies it completely or fails.
"""

from typing import Annotated, Literal, Union

import eth_utils as eth
from pydantic import BaseModel, Field, field_validator

from distributor.models.types import EthereumAddress, HexStr, StoragePointer


class BaseTransition(BaseModel):
    token: EthereumAddress

    @field_validator("token")
    @classmethod
    def checksum_token(cls, addr: EthereumAddress):
        return eth.to_checksum_address(addr)


class AddDistribution(BaseTransition):
    kind: Literal["add"] = "add"
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int


class UpdateDistribution(BaseTransition):
    kind: Literal["update"] = "update"
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int


class PauseForWithdrawal(BaseTransition):
    kind: Literal["pause"] = "pause"


class WithdrawUnclaimed(BaseTransition):
    kind: Literal["withdraw"] = "withdraw"
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int


Transition = Annotated[
    Union[AddDistribution, UpdateDistribution, PauseForWithdrawal, WithdrawUnclaimed],
    Field(discriminator="kind"),
]
