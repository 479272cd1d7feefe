import json
from pathlib import Path
from typing import Any

from distributor.errors import BadConfigException, InvalidInputData
from distributor.models import BalanceSource, Config


def load_conf(path: str) -> Config:
    """Loads a distribution config from a JSON file"""
    if not Path(path).exists():
        raise BadConfigException(f"No config file at {path}")
    return Config.model_validate_json(Path(path).read_text())


def load_balance_map(path: str) -> dict[str, Any]:
    """
    Reads one raw balance snapshot. Only checks that it is a JSON object,
    the entries themselves are validated by the allocation model.
    """
    try:
        with open(path) as j:
            balances = json.load(j)
    except json.JSONDecodeError as e:
        raise InvalidInputData(f"Invalid JSON in balance map {path}: {e}") from e

    if not isinstance(balances, dict):
        raise InvalidInputData(f"Balance map {path} is not a JSON object")
    return balances


def load_balance_maps(conf: Config) -> list[tuple[BalanceSource, dict[str, Any]]]:
    """Pairs every configured source with its snapshot, keeping config order"""
    loaded = []
    for source in conf.sources:
        if not source.path:
            raise BadConfigException(f"Source {source.name} has no snapshot path")
        loaded.append((source, load_balance_map(source.path)))
    return loaded
