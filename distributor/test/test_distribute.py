import json
import os

import pytest
from tinydb import where

from distributor import ledger
from distributor.distribute import run_update, run_withdrawal
from distributor.errors import (
    InvalidInputData,
    NotFound,
    Paused,
    RootMismatch,
    SubmissionFailed,
)
from distributor.merkle import build_claims
from distributor.models import BalanceSource, LedgerState, UnclaimedWithdrawn, Writer
from distributor.queries import LocalLedgerReader
from distributor.submitter import LocalSubmitter
from distributor.test.conftest import TOKEN, _addresses, snapshot

A, B, C = _addresses[:3]


@pytest.fixture
def reader(state):
    return LocalLedgerReader(state)


@pytest.fixture
def submitter(state):
    return LocalSubmitter(state)


def claim(state, dataset, account):
    c = build_claims(dataset)[account]
    return ledger.claim(state, TOKEN, c["index"], account, int(c["amount"]), c["proof"])


def test_first_cycle_adds_distribution(config, state, reader, store, submitter):
    dataset, pointer = run_update(
        config, reader, store, submitter, balance_maps=snapshot({A: 100, B: 101})
    )

    record = ledger.get_distribution(state, TOKEN)
    assert record.merkleRoot == dataset.merkleRoot
    assert record.storagePointer == pointer
    assert record.totalAmount == 201
    assert dataset.tokenSymbol == "TKN"
    assert store.get(pointer) == dataset
    assert [t.kind for t in submitter.submitted] == ["add"]


def test_second_cycle_is_additive(config, state, reader, store, submitter):
    first, _ = run_update(
        config, reader, store, submitter, balance_maps=snapshot({A: 100, B: 101})
    )
    claim(state, first, A)

    second, pointer = run_update(
        config, reader, store, submitter, balance_maps=snapshot({A: 50, C: 5})
    )

    assert second.amounts() == {A: 150, B: 101, C: 5}
    assert second.data[A].sources == {"snapshot": "150"}
    assert ledger.get_distribution(state, TOKEN).totalAmount == 256
    assert ledger.get_distribution(state, TOKEN).storagePointer == pointer
    assert [t.kind for t in submitter.submitted] == ["add", "update"]

    # A only gets the top up
    assert claim(state, second, A).amount == 50
    # both versions stay resolvable
    assert len(store.pointers()) == 2


def test_balance_maps_read_from_config(config, state, reader, store, submitter, tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({A: "10", B: 20}))
    conf = config.model_copy(
        update={"sources": [BalanceSource(name="snapshot", path=str(path))]}
    )

    dataset, _ = run_update(conf, reader, store, submitter)
    assert dataset.amounts() == {A: 10, B: 20}


def test_paused_distribution_is_not_updated(config, state, reader, store, submitter):
    run_update(config, reader, store, submitter, balance_maps=snapshot({A: 100}))
    ledger.pause_for_withdrawal(state, TOKEN)

    with pytest.raises(Paused):
        run_update(config, reader, store, submitter, balance_maps=snapshot({A: 1}))

    assert len(submitter.submitted) == 1
    assert len(store.pointers()) == 1


def test_tampered_dataset_halts_cycle(config, state, reader, store, submitter):
    dataset, pointer = run_update(
        config, reader, store, submitter, balance_maps=snapshot({A: 100, B: 101})
    )
    tampered = dataset.model_dump()
    tampered["data"][B]["amount"] = "1"
    store.table.update({"dataset": json.dumps(tampered)}, where("pointer") == pointer)

    with pytest.raises(RootMismatch):
        run_update(config, reader, store, submitter, balance_maps=snapshot({A: 1}))
    assert len(submitter.submitted) == 1


def test_bad_input_touches_nothing(config, state, reader, store, submitter):
    with pytest.raises(InvalidInputData):
        run_update(config, reader, store, submitter, balance_maps=snapshot({A: 1.5}))

    assert state.distributions == {}
    assert store.pointers() == []
    assert submitter.submitted == []


def test_rejected_submission(config, state, store, dataset):
    # the ledger already moved on since it was read
    moved = LedgerState()
    ledger.add_distribution(moved, TOKEN, dataset.merkleRoot, "elsewhere", dataset.total)
    submitter = LocalSubmitter(moved)

    with pytest.raises(SubmissionFailed):
        run_update(
            config,
            LocalLedgerReader(state),
            store,
            submitter,
            balance_maps=snapshot({A: 100}),
        )
    assert submitter.submitted == []


def test_withdrawal_cycle(config, state, reader, store, submitter):
    dataset, _ = run_update(
        config, reader, store, submitter, balance_maps=snapshot({A: 100, B: 101})
    )
    claim(state, dataset, A)

    withdrawal, pointer = run_withdrawal(TOKEN, reader, store, submitter, batch_size=1)

    assert withdrawal.amounts() == {A: 100}
    record = ledger.get_distribution(state, TOKEN)
    assert not record.isPaused
    assert record.totalAmount == 100
    assert record.storagePointer == pointer
    assert state.events[-1] == UnclaimedWithdrawn(token=TOKEN, amount=101)
    assert [t.kind for t in submitter.submitted] == ["add", "pause", "withdraw"]

    # the distribution can keep going after a withdrawal
    topped_up, _ = run_update(
        config, reader, store, submitter, balance_maps=snapshot({B: 5})
    )
    assert topped_up.amounts() == {A: 100, B: 5}


def test_withdrawal_of_paused_distribution(config, state, reader, store, submitter):
    run_update(config, reader, store, submitter, balance_maps=snapshot({A: 100}))
    ledger.pause_for_withdrawal(state, TOKEN)

    withdrawal, _ = run_withdrawal(TOKEN, reader, store, submitter)

    assert withdrawal.data == {}
    assert [t.kind for t in submitter.submitted] == ["add", "withdraw"]
    assert state.events[-1] == UnclaimedWithdrawn(token=TOKEN, amount=100)


def test_withdrawal_of_unknown_token(reader, store, submitter):
    with pytest.raises(NotFound):
        run_withdrawal(TOKEN, reader, store, submitter)


def test_cycle_writes_reports(config, state, reader, store, submitter):
    writer = Writer(config)
    _, pointer = run_update(
        config,
        reader,
        store,
        submitter,
        balance_maps=snapshot({A: 100, B: 101}),
        writer=writer,
    )

    assert os.path.exists(f"{writer.json_path}/dataset-{pointer}.json")
    assert os.path.exists(f"{writer.csv_path}/recipients.csv")

    with open(f"{writer.json_path}/claims-TKN.json") as j:
        claims = json.load(j)
    assert claims["storagePointer"] == pointer
    assert claims["claims"][A]["amount"] == "100"
