import os
from typing import Optional

from dotenv import load_dotenv

from distributor.errors import MissingEnvironmentVariableException

load_dotenv()


def env_var(accessor: str, default: Optional[str] = None) -> str:
    """
    Attempt to fetch an environment variable and throw
    an error if not found and no default was given
    """
    var = os.environ.get(accessor, default)
    if not var:
        raise MissingEnvironmentVariableException(accessor)
    return var


class PINATA:
    """Pinning service settings, resolved when a pinning store is created"""

    @staticmethod
    def api_url() -> str:
        return env_var("PINATA_API_URL", "https://api.pinata.cloud")

    @staticmethod
    def gateway_url() -> str:
        return env_var("PINATA_GATEWAY_URL")

    @staticmethod
    def jwt() -> str:
        return env_var("PINATA_JWT")


def rpc_url() -> str:
    return env_var("RPC_URL")
