"""
Commitment builder.

Leaves are `keccak256(abi.encodePacked(uint256 index, address account, uint256 amount))`,
in the order of the dense index assigned when the dataset was merged, never sorted by address.
Internal nodes hash the sorted pair of children so a proof is just a list of sibling
digests, and an unpaired node at the end of a level is carried up unchanged.
"""

from typing import Any, Union

from eth_abi.packed import encode_packed
from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address

from distributor.models import (
    DistributionDataset,
    EthereumAddress,
    HexStr,
    MAX_UINT256,
)

LEAF_TYPES = ["uint256", "address", "uint256"]

ProofElement = Union[HexStr, bytes]


def leaf_hash(index: int, account: EthereumAddress, amount: int) -> bytes:
    return keccak(
        encode_packed(LEAF_TYPES, [index, to_checksum_address(account), amount])
    )


def hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(a + b) if a <= b else keccak(b + a)


def _to_bytes(value: ProofElement) -> bytes:
    return value if isinstance(value, bytes) else decode_hex(value)


class MerkleTree:
    def __init__(self, leaves: list[bytes]):
        self.leaves = list(leaves)
        self.levels = self._build_levels(self.leaves)

    @staticmethod
    def _build_levels(leaves: list[bytes]) -> list[list[bytes]]:
        if not leaves:
            return []
        levels = [leaves]
        while len(levels[-1]) > 1:
            current = levels[-1]
            parents = [
                hash_pair(current[i], current[i + 1])
                for i in range(0, len(current) - 1, 2)
            ]
            if len(current) % 2 == 1:
                parents.append(current[-1])
            levels.append(parents)
        return levels

    @property
    def root(self) -> bytes:
        # an empty distribution commits to the zero hash
        return self.levels[-1][0] if self.levels else bytes(32)

    @property
    def hex_root(self) -> HexStr:
        return encode_hex(self.root)

    def get_proof(self, index: int) -> list[HexStr]:
        """Sibling digests from the leaf up to (not including) the root"""
        if index < 0 or index >= len(self.leaves):
            raise IndexError(f"No leaf at index {index}")

        proof = []
        position = index
        for level in self.levels[:-1]:
            sibling = position ^ 1
            if sibling < len(level):
                proof.append(encode_hex(level[sibling]))
            position //= 2
        return proof


def build_tree(dataset: DistributionDataset) -> MerkleTree:
    return MerkleTree(
        [leaf_hash(r.index, r.address, int(r.amount)) for r in dataset.recipients()]
    )


def compute_root(dataset: DistributionDataset) -> HexStr:
    return build_tree(dataset).hex_root


def build_claims(dataset: DistributionDataset) -> dict[EthereumAddress, dict[str, Any]]:
    """Everything a recipient needs to claim, keyed by address"""
    tree = build_tree(dataset)
    return {
        r.address: {
            "index": r.index,
            "amount": r.amount,
            "proof": tree.get_proof(r.index),
        }
        for r in dataset.recipients()
    }


def verify_proof(
    root: Union[HexStr, bytes],
    index: int,
    account: EthereumAddress,
    amount: int,
    proof: list[ProofElement],
) -> bool:
    """
    Recompute the root from a single leaf and its proof.
    Pure, shared by the ledger's claim path and the reconciliation checker.
    """
    if index < 0 or index > MAX_UINT256 or amount < 0 or amount > MAX_UINT256:
        return False

    # malformed hex anywhere is just a proof that does not verify
    try:
        expected = _to_bytes(root)
        siblings = [_to_bytes(element) for element in proof]
        node = leaf_hash(index, account, amount)
    except ValueError:
        return False

    if expected == bytes(32) or any(len(s) != 32 for s in siblings):
        return False

    for sibling in siblings:
        node = hash_pair(node, sibling)
    return node == expected
