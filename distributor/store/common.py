import json
from typing import Protocol, Union

import base58
from eth_utils import decode_hex, encode_hex, keccak

from distributor.models import DistributionDataset, HexStr, StoragePointer

# multihash header of a CIDv0: sha2-256, 32 byte digest
CID_V0_PREFIX = bytes.fromhex("1220")


class DatasetStore(Protocol):
    """
    Content-addressed storage for published datasets.
    Implementations must guarantee `get(put(x)) == x`.
    Pointers are 32 byte hex strings so the ledger can store them as a bytes32.
    """

    def put(self, dataset: DistributionDataset) -> StoragePointer:
        ...

    def get(self, pointer: StoragePointer) -> DistributionDataset:
        ...


def canonical_json(dataset: DistributionDataset) -> str:
    """Stable serialization: same dataset, same bytes, same pointer"""
    return json.dumps(dataset.model_dump(), sort_keys=True, separators=(",", ":"))


def content_pointer(dataset: DistributionDataset) -> StoragePointer:
    return encode_hex(keccak(text=canonical_json(dataset)))


def cid_to_bytes32(cid: str) -> HexStr:
    """Strip the multihash header off a `Qm...` CID, leaving the sha2-256 digest"""
    raw = base58.b58decode(cid)
    if len(raw) != 34 or raw[:2] != CID_V0_PREFIX:
        raise ValueError(f"Not a sha2-256 CIDv0: {cid}")
    return encode_hex(raw[2:])


def bytes32_to_cid(digest: Union[HexStr, bytes]) -> str:
    """Inverse of `cid_to_bytes32`: the `Qm...` CID a gateway understands"""
    raw = digest if isinstance(digest, bytes) else decode_hex(digest)
    if len(raw) != 32:
        raise ValueError(f"Expected a 32 byte digest, got {len(raw)} bytes")
    return base58.b58encode(CID_V0_PREFIX + raw).decode()
