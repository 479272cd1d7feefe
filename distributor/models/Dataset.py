from __future__ import annotations

from typing import Any, Optional

import eth_utils as eth
from pydantic import BaseModel, field_validator, model_validator

from distributor.models.types import (
    BigNumber,
    EthereumAddress,
    HexStr,
    MAX_UINT256,
    ZERO_ADDRESS,
    ZERO_HASH,
)


def to_big_number(value: Any) -> BigNumber:
    """Accepts ints or decimal strings, returns the canonical decimal string"""
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer amount, got {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isdigit():
        amount = int(value.strip())
    else:
        raise ValueError(f"Expected an integer amount, got {value!r}")
    if amount < 0 or amount > MAX_UINT256:
        raise ValueError(f"Amount out of uint256 range: {amount}")
    return str(amount)


class Recipient(BaseModel):
    """
    A recipient as it appears in the tree.
    The index is an artifact of the committed dataset, not an identity.
    """

    address: EthereumAddress
    amount: BigNumber
    index: int

    @field_validator("address")
    @classmethod
    def checksum_address(cls, addr: str):
        return eth.to_checksum_address(addr)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, amount: Any):
        return to_big_number(amount)


class DatasetEntry(BaseModel):
    """
    :param `index`: dense position of the leaf, assigned at merge time
    :param `amount`: cumulative amount owed to the recipient
    :param `sources`: optional breakdown of the amount by allocation source, informative only
    """

    index: int
    amount: BigNumber
    sources: dict[str, BigNumber] = {}

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, amount: Any):
        return to_big_number(amount)

    @field_validator("sources", mode="before")
    @classmethod
    def validate_sources(cls, sources: Optional[dict[str, Any]]):
        if not sources:
            return {}
        return {name: to_big_number(v) for name, v in sources.items()}


class DistributionDataset(BaseModel):
    """
    The authoritative recipient -> cumulative amount mapping for a token.
    Replaced wholesale on every update and never patched in place,
    so treat instances as immutable once published.

    Serializes to the same shape that is pinned to durable storage:
    `{token, tokenSymbol, merkleRoot, totalAmount, data: {address: {index, amount, sources}}}`
    """

    token: EthereumAddress = ZERO_ADDRESS
    tokenSymbol: Optional[str] = None
    merkleRoot: HexStr = ZERO_HASH
    totalAmount: BigNumber = "0"
    data: dict[EthereumAddress, DatasetEntry] = {}

    @field_validator("token")
    @classmethod
    def checksum_token(cls, addr: str):
        return eth.to_checksum_address(addr)

    @field_validator("totalAmount", mode="before")
    @classmethod
    def validate_total(cls, total: Any):
        return to_big_number(total)

    @field_validator("data")
    @classmethod
    def checksum_recipients(cls, data: dict[str, DatasetEntry]):
        checksummed = {eth.to_checksum_address(k): v for k, v in data.items()}
        if len(checksummed) != len(data):
            raise ValueError("Duplicate recipients in dataset")
        return checksummed

    @model_validator(mode="after")
    def check_dense_indices(self) -> DistributionDataset:
        indices = sorted(entry.index for entry in self.data.values())
        if indices != list(range(len(indices))):
            raise ValueError("Dataset indices must be dense and start at 0")
        return self

    def recipients(self) -> list[Recipient]:
        """Recipients in leaf order"""
        ordered = sorted(self.data.items(), key=lambda item: item[1].index)
        return [
            Recipient(address=address, amount=entry.amount, index=entry.index)
            for address, entry in ordered
        ]

    def amounts(self) -> dict[EthereumAddress, int]:
        """Recipient -> integer amount, in leaf order"""
        return {r.address: int(r.amount) for r in self.recipients()}

    @property
    def total(self) -> int:
        """Sum of every entry, independent of the `totalAmount` the copy claims"""
        return sum(int(entry.amount) for entry in self.data.values())
