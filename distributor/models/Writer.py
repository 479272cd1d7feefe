import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from distributor.models.Config import Config
from distributor.models.Dataset import DistributionDataset


@dataclass
class Writer:
    config: Config

    @property
    def path(self) -> str:
        return f"{self.config.reports_dir}/{self.config.token_symbol}"

    @property
    def csv_path(self) -> str:
        return f"{self.path}/csv"

    @property
    def json_path(self) -> str:
        return f"{self.path}/json"

    @staticmethod
    def flatten_json(nested: Any, prefix: str = "") -> dict[str, Any]:
        """`{"sources": {"lp": 1}}` -> `{"sources_lp": 1}`, list items are keyed by position"""
        if isinstance(nested, dict):
            items = nested.items()
        elif isinstance(nested, list):
            items = ((str(i), v) for i, v in enumerate(nested))
        else:
            return {prefix: nested}

        flat: dict[str, Any] = {}
        for key, value in items:
            flat.update(Writer.flatten_json(value, f"{prefix}_{key}" if prefix else key))
        return flat

    def flatten_json_array(self, data):
        return [self.flatten_json(item) for item in data]

    @staticmethod
    def write_csv(data, path: str, fieldnames: list[str]) -> None:
        with open(path, "w+", newline="") as f:
            writer = csv.DictWriter(
                f, delimiter=",", fieldnames=fieldnames, extrasaction="ignore"
            )
            writer.writeheader()
            writer.writerows(data)

    def _create_dir(self) -> None:
        for directory in (self.csv_path, self.json_path):
            Path(directory).mkdir(parents=True, exist_ok=True)

    def to_csv(self, data, name: str, fieldnames: list[str]) -> None:
        self._create_dir()
        self.write_csv(data, f"{self.csv_path}/{name}.csv", fieldnames)

    def to_json(self, data, name: str) -> None:
        self._create_dir()
        with open(f"{self.json_path}/{name}.json", "w") as f:
            json.dump(data, f, indent=4)

    def to_csv_and_json(self, data, name: str) -> None:
        if isinstance(data, list):
            csv_data = self.flatten_json_array(data)
            keys: list[str] = []
            # sources differ between recipients, so collect every column
            for row in csv_data:
                keys += [k for k in row.keys() if k not in keys]
        else:
            csv_data = [self.flatten_json(data)]
            keys = list(csv_data[0].keys())
        self.to_json(data, name)
        self.to_csv(csv_data, name, keys)

    def write_distribution(
        self, dataset: DistributionDataset, claims: dict[str, Any], pointer: str
    ) -> None:
        """
        Write the published dataset alongside the claims (with proofs) recipients need,
        plus a flat csv of the recipients for eyeballing
        """
        self.to_json(dataset.model_dump(), f"dataset-{pointer}")
        self.to_json(
            {
                "token": dataset.token,
                "merkleRoot": dataset.merkleRoot,
                "totalAmount": dataset.totalAmount,
                "storagePointer": pointer,
                "claims": claims,
            },
            f"claims-{self.config.token_symbol}",
        )
        rows = [
            {"address": address, **entry.model_dump()}
            for address, entry in dataset.data.items()
        ]
        self.to_csv_and_json(rows, "recipients")
        print(
            f"🚀🚀🚀 Wrote {len(rows)} recipients for {self.config.token_symbol} to {self.path}"
        )
