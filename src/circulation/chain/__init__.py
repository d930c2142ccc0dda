"""Chain access layer -- EVM JSON-RPC integration via web3.py."""

from circulation.chain.block_source import RpcBlockSource
from circulation.chain.client import ChainReader
from circulation.chain.web3_client import Web3ChainClient

__all__ = ["ChainReader", "RpcBlockSource", "Web3ChainClient"]
