# type aliases for clarity
EthereumAddress = str
BigNumber = str
HexStr = str
StoragePointer = str

ZERO_ADDRESS: EthereumAddress = "0x0000000000000000000000000000000000000000"
ZERO_HASH: HexStr = "0x" + "00" * 32

MAX_UINT256 = 2**256 - 1
