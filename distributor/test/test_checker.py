import json

import pytest
from tinydb import where

from distributor.checker import (
    check_can_generate,
    check_root,
    check_total,
    check_transition,
    check_withdrawal,
    verify_stored_dataset,
)
from distributor.errors import (
    AccountingMismatch,
    Monotonicity,
    Paused,
    RootMismatch,
    SpuriousDeletion,
    TotalMismatch,
)
from distributor.models import DatasetEntry, DistributionRecord
from distributor.reconciler import build_withdrawal_dataset, merge_datasets
from distributor.test.conftest import TOKEN, _addresses

A, B, C = _addresses[:3]


def record_for(dataset, pointer, **kwargs) -> DistributionRecord:
    return DistributionRecord(
        token=TOKEN,
        merkleRoot=dataset.merkleRoot,
        storagePointer=pointer,
        totalAmount=dataset.total,
        **kwargs,
    )


def test_can_generate():
    record = DistributionRecord(
        token=TOKEN, merkleRoot="0x" + "11" * 32, storagePointer="ptr", totalAmount=0
    )
    check_can_generate(None)
    check_can_generate(record)

    with pytest.raises(Paused):
        check_can_generate(record.model_copy(update={"isPaused": True}))


def test_verify_stored_dataset(store, dataset):
    pointer = store.put(dataset)
    assert verify_stored_dataset(record_for(dataset, pointer), store) == dataset


def test_tampered_copy_is_caught(store, dataset):
    pointer = store.put(dataset)

    # someone edits the stored copy by hand
    row = store.table.get(where("pointer") == pointer)
    tampered = json.loads(row["dataset"])
    tampered["data"][A]["amount"] = "1000"
    store.table.update(
        {"dataset": json.dumps(tampered)}, where("pointer") == pointer
    )

    with pytest.raises(RootMismatch):
        verify_stored_dataset(record_for(dataset, pointer), store)


def test_ledger_root_differs_from_dataset(store, dataset):
    pointer = store.put(dataset)
    record = record_for(dataset, pointer).model_copy(
        update={"merkleRoot": "0x" + "ab" * 32}
    )
    with pytest.raises(RootMismatch):
        verify_stored_dataset(record, store)


def test_dataset_claims_wrong_root(dataset):
    record = record_for(dataset, "ptr")
    lying = dataset.model_copy(update={"merkleRoot": "0x" + "ab" * 32})
    with pytest.raises(RootMismatch):
        check_root(record, lying)


def test_root_comparison_ignores_case(dataset):
    record = record_for(dataset, "ptr").model_copy(
        update={"merkleRoot": dataset.merkleRoot.upper().replace("0X", "0x")}
    )
    check_root(record, dataset)


def test_ledger_total_differs(store, dataset):
    pointer = store.put(dataset)
    record = record_for(dataset, pointer).model_copy(update={"totalAmount": 200})
    with pytest.raises(TotalMismatch):
        verify_stored_dataset(record, store)


def test_check_total(dataset):
    check_total(dataset, 201)
    with pytest.raises(TotalMismatch) as e:
        check_total(dataset, 202)
    assert e.value.expected == 201
    assert e.value.actual == 202


def test_check_total_field_disagrees(dataset):
    inflated = dataset.model_copy(update={"totalAmount": "500"})
    with pytest.raises(TotalMismatch):
        check_total(inflated, 201)


def test_check_transition(dataset):
    check_transition(dataset, merge_datasets(dataset, {C: 1}))


def test_check_transition_decrease(dataset):
    lowered = dataset.model_copy(
        update={"data": {**dataset.data, A: DatasetEntry(index=0, amount=99)}}
    )
    with pytest.raises(Monotonicity):
        check_transition(dataset, lowered)


def test_check_transition_deletion(dataset):
    dropped = dataset.model_copy(update={"data": {A: dataset.data[A]}})
    with pytest.raises(SpuriousDeletion):
        check_transition(dataset, dropped)


def test_check_withdrawal(dataset):
    claimed = {A: 100, B: 0}
    check_withdrawal(build_withdrawal_dataset(dataset, claimed), claimed)


def test_check_withdrawal_missing_claimant(dataset):
    withdrawal = build_withdrawal_dataset(dataset, {A: 100})
    with pytest.raises(AccountingMismatch):
        check_withdrawal(withdrawal, {A: 100, B: 5})


def test_check_withdrawal_extra_recipient(dataset):
    with pytest.raises(AccountingMismatch):
        check_withdrawal(dataset, {A: 100})
