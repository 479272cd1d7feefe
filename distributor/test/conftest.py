from dataclasses import dataclass
from typing import Any

import pytest
from eth_utils import to_checksum_address

from distributor.models import BalanceSource, Config, DistributionDataset, LedgerState
from distributor.reconciler import empty_dataset, merge_datasets
from distributor.store import TinyDatasetStore

_addresses = [
    to_checksum_address(a)
    for a in [
        "0x9bc33f6155efacc290c3c50e9b5b24b668562732",
        "0xfde38ad4bbbec867e6cb4bb31fbfb2074c959a83",
        "0x8bb4c0b502f869af3b25166930507a6e8c3038d4",
        "0x7ac54a0406fa2b465e0d57c66597be83a4b149fc",
        "0xdea708968f8dd520f5e2f0ab6785f28c98521ca8",
    ]
]

TOKEN = to_checksum_address("0x514910771af9ca656af840dff83e8264ecf986ca")
TOKEN_2 = to_checksum_address("0xe1cb04a0fa36ddd16a06ea828007e35e1a3cbc37")
TOKEN_3 = to_checksum_address("0x1083d743a1e53805a95249fef7310d75029f7cd6")

A, B, C, D, E = _addresses


@pytest.fixture()
def ADDRESSES():
    return _addresses


@pytest.fixture
def state() -> LedgerState:
    return LedgerState()


@pytest.fixture
def store() -> TinyDatasetStore:
    return TinyDatasetStore()


@pytest.fixture
def dataset() -> DistributionDataset:
    """The two account tree: A is owed 100, B is owed 101"""
    return merge_datasets(empty_dataset(TOKEN, "TKN"), {A: 100, B: 101})


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        token=TOKEN,
        token_symbol="TKN",
        sources=[BalanceSource(name="snapshot")],
        reports_dir=str(tmp_path / "reports"),
    )


def snapshot(balances: dict[str, Any]) -> list[tuple[BalanceSource, dict[str, Any]]]:
    """Balance maps in the shape the pipeline expects, without touching the filesystem"""
    return [(BalanceSource(name="snapshot"), balances)]


def flip_byte(hex_value: str, position: int) -> str:
    raw = bytearray(bytes.fromhex(hex_value[2:]))
    raw[position] ^= 0xFF
    return "0x" + raw.hex()


@dataclass
class MockResponse:
    res: Any
    status_code: int = 200

    def json(self):
        return self.res

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")
