from __future__ import annotations

from enum import Enum

import eth_utils as eth
from pydantic import BaseModel, field_validator

from distributor.models.Events import LedgerEvent
from distributor.models.types import EthereumAddress, HexStr, StoragePointer


class DistributionState(str, Enum):
    """
    :state UNKNOWN: no record exists for the token
    :state ACTIVE: has a commitment and accepts claims
    :state PAUSED: commitment frozen, claims rejected, withdrawal permitted
    """

    UNKNOWN = "unknown"
    ACTIVE = "active"
    PAUSED = "paused"


class DistributionRecord(BaseModel):
    """
    One record per token. Never deleted, only replaced field by field by ledger transitions.
    :param `storagePointer`: where the dataset behind `merkleRoot` lives in durable storage
    :param `totalAmount`: total ever distributed through this record, in token units
    """

    token: EthereumAddress
    isPaused: bool = False
    merkleRoot: HexStr
    storagePointer: StoragePointer
    totalAmount: int

    @field_validator("token")
    @classmethod
    def checksum_token(cls, addr: EthereumAddress):
        return eth.to_checksum_address(addr)

    @property
    def state(self) -> DistributionState:
        return DistributionState.PAUSED if self.isPaused else DistributionState.ACTIVE


class LedgerState(BaseModel):
    """
    Explicit keyed store for the ledger, passed by reference into every transition.
    :param `distributions`: token -> record
    :param `claimed`: token -> recipient -> amount already paid out
    :param `events`: observable side effects, in the order they happened
    """

    distributions: dict[EthereumAddress, DistributionRecord] = {}
    claimed: dict[EthereumAddress, dict[EthereumAddress, int]] = {}
    events: list[LedgerEvent] = []
