"""
Client module for the gasless relay.

Provides the JSON-RPC clients for the relay services, the smart-account
handle, the relay pipeline and the balance reader.
"""

from .jsonrpc_client import JsonRpcClient
from .bundler import BundlerClient, PaymasterClient
from .smart_account import SmartAccount, UserOperationResponse
from .relay_client import RelayClient
from .balance import BalanceReader

__all__ = [
    "JsonRpcClient",
    "BundlerClient",
    "PaymasterClient",
    "SmartAccount",
    "UserOperationResponse",
    "RelayClient",
    "BalanceReader",
]
