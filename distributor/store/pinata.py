import json
from typing import Optional

import requests

from distributor.env import PINATA
from distributor.errors import DatasetNotFound
from distributor.models import DistributionDataset, StoragePointer
from distributor.store.common import bytes32_to_cid, cid_to_bytes32


class PinataDatasetStore:
    """
    Pins datasets to IPFS through the Pinata API and reads them back through a gateway.
    The pointer is the digest inside the CID, which is what the distributor contract stores.
    A plain `Qm...` CID is also accepted when reading.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        gateway_url: Optional[str] = None,
        jwt: Optional[str] = None,
        timeout: int = 60,
    ):
        self.api_url = api_url or PINATA.api_url()
        self.gateway_url = gateway_url or PINATA.gateway_url()
        self.jwt = jwt or PINATA.jwt()
        self.timeout = timeout

    def put(self, dataset: DistributionDataset) -> StoragePointer:
        res = requests.post(
            f"{self.api_url}/pinning/pinJSONToIPFS",
            json={
                "pinataOptions": {"cidVersion": 0},
                "pinataMetadata": {
                    "name": f"merkle-distributor-{dataset.tokenSymbol or dataset.token}.json"
                },
                "pinataContent": dataset.model_dump(),
            },
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {self.jwt}",
            },
            timeout=self.timeout,
        )
        res.raise_for_status()
        return cid_to_bytes32(res.json()["IpfsHash"])

    def get(self, pointer: StoragePointer) -> DistributionDataset:
        cid = bytes32_to_cid(pointer) if pointer.startswith("0x") else pointer
        res = requests.get(f"{self.gateway_url}/ipfs/{cid}", timeout=self.timeout)
        if res.status_code == 404:
            raise DatasetNotFound(f"No dataset pinned under {pointer}")
        res.raise_for_status()

        payload = res.json()
        # older trees were pinned as a JSON encoded string
        if isinstance(payload, str):
            payload = json.loads(payload)
        return DistributionDataset.model_validate(payload)
