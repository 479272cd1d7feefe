"""
Command line entry point:

    python -m distributor.run update --config=path/to/config.json
    python -m distributor.run withdraw --config=path/to/config.json [--yes]
    python -m distributor.run proof --config=path/to/config.json --address=0x...
    python -m distributor.run check --config=path/to/config.json [--chain] [--pinata]

Transactions are applied to a local TinyDB ledger under the reports directory.
`check` can read the deployed distributor and pinned datasets instead.
"""

import json
from typing import Optional

import fire
import eth_utils as eth

from distributor.checker import verify_stored_dataset
from distributor.config import load_conf
from distributor.distribute import run_update, run_withdrawal
from distributor.errors import BadConfigException, NotFound
from distributor.merkle import build_claims
from distributor.models import Config, LedgerDB, Writer
from distributor.queries import ChainLedgerReader, LedgerReader, LocalLedgerReader
from distributor.store import DatasetStore, PinataDatasetStore, TinyDatasetStore
from distributor.submitter import LocalSubmitter
from distributor.utils import yes_or_no


def _store(conf: Config, pinata: bool) -> DatasetStore:
    if pinata:
        return PinataDatasetStore()
    return TinyDatasetStore(f"{conf.reports_dir}/datasets-db.json")


def _ledger_db(conf: Config) -> LedgerDB:
    return LedgerDB(f"{conf.reports_dir}/ledger-db.json")


def update(config: str, pinata: bool = False) -> str:
    conf = load_conf(config)
    db = _ledger_db(conf)
    state = db.read_state()
    _, pointer = run_update(
        conf,
        LocalLedgerReader(state),
        _store(conf, pinata),
        LocalSubmitter(state, db),
        writer=Writer(conf),
    )
    return pointer


def withdraw(config: str, pinata: bool = False, yes: bool = False) -> Optional[str]:
    conf = load_conf(config)
    if not yes and not yes_or_no(
        f"Pause {conf.token_symbol} and withdraw everything not yet claimed?"
    ):
        print("Aborted")
        return None

    db = _ledger_db(conf)
    state = db.read_state()
    _, pointer = run_withdrawal(
        conf.token,
        LocalLedgerReader(state),
        _store(conf, pinata),
        LocalSubmitter(state, db),
        batch_size=conf.claimed_batch_size,
        writer=Writer(conf),
    )
    return pointer


def _reader(conf: Config, chain: bool) -> LedgerReader:
    if chain:
        if not conf.distributor_address:
            raise BadConfigException("distributor_address is required to read from chain")
        return ChainLedgerReader(conf.distributor_address)
    return LocalLedgerReader(_ledger_db(conf).read_state())


def proof(config: str, address: str, chain: bool = False, pinata: bool = False) -> None:
    """Print the claim (index, amount, proof) for an address in the current tree"""
    conf = load_conf(config)
    record = _reader(conf, chain).get_distribution(conf.token)
    if record is None:
        raise NotFound(f"No distribution for token {conf.token}")

    dataset = verify_stored_dataset(record, _store(conf, pinata))
    claims = build_claims(dataset)
    account = eth.to_checksum_address(address)
    if account not in claims:
        print(f"{account} is not in the current tree")
        return
    print(json.dumps({"address": account, **claims[account]}, indent=4))


def check(config: str, chain: bool = False, pinata: bool = False) -> None:
    """Recompute the root of the stored dataset and compare it with the ledger"""
    conf = load_conf(config)
    record = _reader(conf, chain).get_distribution(conf.token)
    if record is None:
        print(f"No distribution for {conf.token_symbol} yet")
        return

    dataset = verify_stored_dataset(record, _store(conf, pinata))
    print(
        f"😃 {conf.token_symbol} tree {record.storagePointer} matches root {record.merkleRoot}: "
        f"{len(dataset.data)} recipients, total {dataset.total}"
    )


if __name__ == "__main__":
    fire.Fire(
        {
            "update": update,
            "withdraw": withdraw,
            "proof": proof,
            "check": check,
        }
    )
