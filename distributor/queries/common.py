from typing import Optional

from web3 import Web3

from distributor.env import rpc_url


def get_w3(url: Optional[str] = None) -> Web3:
    """Basic web3 client, from the environment unless a url is passed"""
    return Web3(Web3.HTTPProvider(url or rpc_url()))
