from typing import Optional, Protocol

import eth_utils as eth
from multicall import Call, Multicall  # type: ignore
from web3 import Web3

from distributor.ledger import get_claimed as _get_claimed
from distributor.ledger import get_distribution as _get_distribution
from distributor.models import (
    DistributionRecord,
    EthereumAddress,
    LedgerState,
    ZERO_ADDRESS,
)
from distributor.queries.common import get_w3
from distributor.utils import chunks

# simplified ABI containing just the fragment we want to use
DISTRIBUTIONS_ABI = """
    [{
      "inputs": [{"internalType": "address", "name": "", "type": "address"}],
      "name": "distributions",
      "outputs": [
        {"internalType": "address", "name": "token", "type": "address"},
        {"internalType": "bool", "name": "isPaused", "type": "bool"},
        {"internalType": "bytes32", "name": "merkleRoot", "type": "bytes32"},
        {"internalType": "bytes32", "name": "ipfsHash", "type": "bytes32"},
        {"internalType": "uint256", "name": "totalAmount", "type": "uint256"}
      ],
      "stateMutability": "view",
      "type": "function"
    }]
    """

MulticallReturnClaimed = dict[EthereumAddress, int]


class LedgerReader(Protocol):
    def get_distribution(self, token: EthereumAddress) -> Optional[DistributionRecord]:
        ...

    def get_claimed_amounts(
        self, token: EthereumAddress, accounts: list[EthereumAddress], batch_size: int
    ) -> dict[EthereumAddress, int]:
        ...


class LocalLedgerReader:
    """Reads straight from an in-process `LedgerState`"""

    def __init__(self, state: LedgerState):
        self.state = state

    def get_distribution(self, token: EthereumAddress) -> Optional[DistributionRecord]:
        record = _get_distribution(self.state, token)
        # hand out a copy, only transitions mutate the ledger
        return None if record is None else record.model_copy()

    def get_claimed_amounts(
        self, token: EthereumAddress, accounts: list[EthereumAddress], batch_size: int = 100
    ) -> dict[EthereumAddress, int]:
        claimed = {}
        for batch in chunks(accounts, batch_size):
            claimed.update({a: _get_claimed(self.state, token, a) for a in batch})
        return claimed


class ChainLedgerReader:
    """Reads the deployed distributor contract"""

    def __init__(self, distributor_address: EthereumAddress, w3: Optional[Web3] = None):
        self.address = eth.to_checksum_address(distributor_address)
        self.w3 = w3 or get_w3()
        self.contract = self.w3.eth.contract(address=self.address, abi=DISTRIBUTIONS_ABI)  # type: ignore

    def get_distribution(self, token: EthereumAddress) -> Optional[DistributionRecord]:
        (
            record_token,
            is_paused,
            merkle_root,
            ipfs_hash,
            total_amount,
        ) = self.contract.functions.distributions(eth.to_checksum_address(token)).call()  # type: ignore

        # unknown tokens come back as an empty struct
        if record_token == ZERO_ADDRESS:
            return None

        return DistributionRecord(
            token=record_token,
            isPaused=is_paused,
            merkleRoot=eth.encode_hex(merkle_root),
            storagePointer=eth.encode_hex(ipfs_hash),
            totalAmount=total_amount,
        )

    def get_claimed_batch(
        self, token: EthereumAddress, accounts: list[EthereumAddress]
    ) -> MulticallReturnClaimed:
        """
        Multicall out to the distributor for the claimed counter of each account
        """
        calls = [
            Call(
                # address to call:
                self.address,
                # signature + return value, with arguments:
                ["getClaimed(address,address)(uint256)", token, account],
                # return in a format of {[address]: uint}:
                [[account, None]],
            )
            for account in accounts
        ]

        # Immediately execute the multicall
        return Multicall(calls, _w3=self.w3)()

    def get_claimed_amounts(
        self, token: EthereumAddress, accounts: list[EthereumAddress], batch_size: int = 100
    ) -> dict[EthereumAddress, int]:
        token = eth.to_checksum_address(token)
        claimed: MulticallReturnClaimed = {}
        for i, batch in enumerate(chunks(accounts, batch_size)):
            print(f"Querying claimed amounts, batch {i + 1}...")
            claimed.update(self.get_claimed_batch(token, batch))
        return {a: int(claimed[a]) for a in accounts}
