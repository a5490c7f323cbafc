"""
Abstract Base Classes for Wallet Adapters

Defines the two seams every wallet backend goes through:

Core Classes:
    - Eip1193Provider: Raw wallet transport exposing ``request(method, params)``
      (an injected extension object, a chain-native wallet object or a
      remote relay signer).
    - ChainProvider: Normalized adapter the rest of the system talks to
      (address lookup, read-only calls, signing and sending).

Backends differ only in how their Eip1193Provider is obtained and
authorised; once linked they are all driven through the same
ChainProvider implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class Eip1193Provider(ABC):
    """
    Abstract EIP-1193 transport.

    Represents ``window.ethereum`` / ``window.BinanceChain`` style objects
    or a remote signer. Implementations raise ``ProviderRpcError`` for
    JSON-RPC level failures.
    """

    @abstractmethod
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send a JSON-RPC request through the wallet.

        Args:
            method: JSON-RPC method name (e.g. "eth_requestAccounts")
            params: Positional parameters

        Returns:
            The JSON-RPC ``result`` value.

        Raises:
            ProviderRpcError: If the wallet answers with an error.
        """
        pass

    async def close(self) -> None:
        """Release transport resources. Injected providers have nothing to release."""
        pass


class ChainProvider(ABC):
    """
    Abstract Base Class for normalized wallet adapters.

    Capability set shared by every backend:
    1. request_accounts / get_address: account access and lookup
    2. call: read-only contract call (``eth_call``)
    3. send_transaction / sign_message: authorisation through the wallet
    4. chain helpers used by the smart account (chain id, code, fees)

    An adapter is owned by exactly one connected session and must not be
    cached by other components across session transitions.
    """

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """
        Ask the wallet for account access.

        Returns:
            List[str]: Authorised account addresses, first one is active.
        """
        pass

    @abstractmethod
    async def get_address(self) -> str:
        """
        Get the active account address.

        Returns:
            str: Checksummed address.
        """
        pass

    @abstractmethod
    async def call(self, contract_address: str, data: bytes) -> bytes:
        """
        Perform a read-only contract call against the latest block.

        Args:
            contract_address: Contract to call
            data: ABI-encoded call data

        Returns:
            bytes: Raw return data.
        """
        pass

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """
        Sign and broadcast a transaction through the wallet.

        Args:
            tx: Transaction fields (to, data, value, ...)

        Returns:
            str: Transaction hash of the pending transaction.
        """
        pass

    @abstractmethod
    async def sign_message(self, message: bytes) -> str:
        """
        Sign an arbitrary message with ``personal_sign``.

        Args:
            message: Raw message bytes

        Returns:
            str: 0x-prefixed 65-byte signature.
        """
        pass

    @abstractmethod
    async def get_chain_id(self) -> int:
        pass

    @abstractmethod
    async def get_code(self, address: str) -> bytes:
        pass

    @abstractmethod
    async def get_fee_data(self) -> Dict[str, int]:
        """
        Current fee suggestion.

        Returns:
            Dict[str, int]: ``maxFeePerGas`` and ``maxPriorityFeePerGas`` in wei.
        """
        pass

    async def close(self) -> None:
        """Release the underlying transport."""
        pass
