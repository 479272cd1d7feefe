from typing import Optional

from tinydb import TinyDB, where
from tinydb.storages import MemoryStorage

from distributor.errors import DatasetNotFound
from distributor.models import DistributionDataset, StoragePointer
from distributor.store.common import canonical_json, content_pointer


class TinyDatasetStore:
    """
    Datasets kept in a TinyDB table, keyed by the keccak256 of their canonical JSON.
    Historic versions are never overwritten so every pointer stays resolvable for audits.
    """

    def __init__(self, path: Optional[str] = None):
        if path is None:
            self.db = TinyDB(storage=MemoryStorage)
        else:
            self.db = TinyDB(path, indent=4, create_dirs=True)
        self.table = self.db.table("datasets")

    def put(self, dataset: DistributionDataset) -> StoragePointer:
        pointer = content_pointer(dataset)
        if not self.table.contains(where("pointer") == pointer):
            self.table.insert({"pointer": pointer, "dataset": canonical_json(dataset)})
        return pointer

    def get(self, pointer: StoragePointer) -> DistributionDataset:
        found = self.table.get(where("pointer") == pointer)
        if found is None:
            raise DatasetNotFound(f"No dataset stored under {pointer}")
        return DistributionDataset.model_validate_json(found["dataset"])

    def pointers(self) -> list[StoragePointer]:
        return [row["pointer"] for row in self.table.all()]
