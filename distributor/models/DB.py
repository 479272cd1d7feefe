import os
from typing import Optional

from tinydb import TinyDB, where
from tinydb.storages import MemoryStorage

from distributor.models.Distribution import DistributionRecord, LedgerState
from distributor.models.types import EthereumAddress


class LedgerDB(TinyDB):
    """
    Local persistence for the ledger state machine, used for dry runs and simulations.
    Pass no path to keep everything in memory.
    """

    def __init__(self, path: Optional[str] = None, drop=False, **kwargs):
        if path is None:
            super().__init__(storage=MemoryStorage)
        else:
            super().__init__(path, indent=4, create_dirs=True, **kwargs)

        if drop:
            self.drop_tables()

    @staticmethod
    def exists(path: str):
        return os.path.exists(path)

    def write_state(self, state: LedgerState) -> None:
        """Overwrite the stored ledger with `state`"""
        self.drop_tables()
        self.table("distributions").insert_multiple(
            [r.model_dump() for r in state.distributions.values()]
        )
        self.table("claimed").insert_multiple(
            [
                {"token": token, "account": account, "amount": amount}
                for token, counters in state.claimed.items()
                for account, amount in counters.items()
            ]
        )
        self.table("events").insert_multiple([e.model_dump() for e in state.events])

    def read_state(self) -> LedgerState:
        claimed: dict[EthereumAddress, dict[EthereumAddress, int]] = {}
        for row in self.table("claimed").all():
            claimed.setdefault(row["token"], {})[row["account"]] = row["amount"]

        return LedgerState.model_validate(
            {
                "distributions": {
                    r["token"]: r for r in self.table("distributions").all()
                },
                "claimed": claimed,
                "events": self.table("events").all(),
            }
        )

    def get_record(self, token: EthereumAddress) -> Optional[DistributionRecord]:
        found = self.table("distributions").search(where("token") == token)
        return DistributionRecord.model_validate(found[0]) if found else None
