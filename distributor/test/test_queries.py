import json
from unittest.mock import Mock

import pytest
from eth_abi import decode, encode

from distributor import ledger
from distributor.merkle import build_claims
from distributor.models import ZERO_ADDRESS
from distributor.queries import ChainLedgerReader, LocalLedgerReader
from distributor.queries.ledger import DISTRIBUTIONS_ABI
from distributor.test.conftest import TOKEN, _addresses
from distributor.utils import chunks

A, B = _addresses[:2]
DISTRIBUTOR = "0x0000000000000000000000000000000000000abc"


@pytest.mark.parametrize(
    "size, expected",
    [(1, [[1], [2], [3]]), (2, [[1, 2], [3]]), (5, [[1, 2, 3]])],
)
def test_chunks(size, expected):
    assert list(chunks([1, 2, 3], size)) == expected


def test_chunks_bad_size():
    with pytest.raises(ValueError):
        list(chunks([1], 0))


def test_local_reader(state, dataset, ADDRESSES):
    reader = LocalLedgerReader(state)
    assert reader.get_distribution(TOKEN) is None

    ledger.add_distribution(state, TOKEN, dataset.merkleRoot, "ptr-0", dataset.total)
    c = build_claims(dataset)[A]
    ledger.claim(state, TOKEN, c["index"], A, 100, c["proof"])

    assert reader.get_distribution(TOKEN).storagePointer == "ptr-0"
    assert reader.get_claimed_amounts(TOKEN, ADDRESSES, batch_size=2) == {
        a: 100 if a == A else 0 for a in ADDRESSES
    }


def test_local_reader_hands_out_copies(state, dataset):
    ledger.add_distribution(state, TOKEN, dataset.merkleRoot, "ptr-0", dataset.total)
    record = LocalLedgerReader(state).get_distribution(TOKEN)
    record.isPaused = True

    assert not ledger.get_distribution(state, TOKEN).isPaused


@pytest.fixture
def w3() -> Mock:
    return Mock()


def test_chain_distribution(w3):
    root = bytes.fromhex("11" * 32)
    digest = bytes.fromhex("22" * 32)
    distributions = w3.eth.contract.return_value.functions.distributions
    distributions.return_value.call.return_value = (TOKEN, True, root, digest, 201)

    record = ChainLedgerReader(DISTRIBUTOR, w3=w3).get_distribution(TOKEN)

    assert record.token == TOKEN
    assert record.isPaused
    assert record.merkleRoot == "0x" + "11" * 32
    assert record.storagePointer == "0x" + "22" * 32
    assert record.totalAmount == 201
    distributions.assert_called_once_with(TOKEN)


def test_abi_decodes_contract_struct(w3):
    """The distributor returns `(address, bool, bytes32, bytes32, uint256)`, ipfsHash included"""
    root, digest = bytes.fromhex("11" * 32), bytes.fromhex("22" * 32)
    returned = encode(
        ["address", "bool", "bytes32", "bytes32", "uint256"],
        [TOKEN, False, root, digest, 201],
    )
    outputs = json.loads(DISTRIBUTIONS_ABI)[0]["outputs"]
    decoded = decode([o["type"] for o in outputs], returned)

    distributions = w3.eth.contract.return_value.functions.distributions
    distributions.return_value.call.return_value = decoded
    record = ChainLedgerReader(DISTRIBUTOR, w3=w3).get_distribution(TOKEN)

    assert record.token == TOKEN
    assert record.merkleRoot == "0x" + "11" * 32
    assert record.storagePointer == "0x" + "22" * 32
    assert record.totalAmount == 201


def test_chain_unknown_distribution(w3):
    distributions = w3.eth.contract.return_value.functions.distributions
    distributions.return_value.call.return_value = (ZERO_ADDRESS, False, bytes(32), bytes(32), 0)

    assert ChainLedgerReader(DISTRIBUTOR, w3=w3).get_distribution(TOKEN) is None


def test_chain_claimed_amounts_are_batched(monkeypatch, w3):
    batches = []

    class MockCall:
        def __init__(self, target, function, returns):
            self.target = target
            self.function = function
            self.account = returns[0][0]

    class MockMulticall:
        def __init__(self, calls, _w3):
            self.calls = calls
            batches.append([c.account for c in calls])

        def __call__(self):
            return {c.account: 7 for c in self.calls}

    monkeypatch.setattr("distributor.queries.ledger.Call", MockCall)
    monkeypatch.setattr("distributor.queries.ledger.Multicall", MockMulticall)

    reader = ChainLedgerReader(DISTRIBUTOR, w3=w3)
    claimed = reader.get_claimed_amounts(TOKEN.lower(), _addresses, batch_size=2)

    assert claimed == {a: 7 for a in _addresses}
    assert batches == [_addresses[:2], _addresses[2:4], _addresses[4:]]


def test_queries_ledger_is_not_shadowed():
    import distributor.queries

    # the star export must not replace the submodule with the ledger state machine
    assert distributor.queries.ledger.__name__ == "distributor.queries.ledger"
    assert not hasattr(distributor.queries, "get_claimed")
