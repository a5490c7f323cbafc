"""
Exception and Error Definitions Module

Defines the exception hierarchy for wallet connection, balance queries,
gasless transfers and the JSON-RPC services behind them. All exceptions
inherit from GaslessRelayError for unified exception handling.

Exception Hierarchy:
    GaslessRelayError (root)
    ├── ConfigurationError
    ├── BlockchainInteractionError
    │   ├── JsonRpcError
    │   │   ├── ProviderRpcError
    │   │   ├── BundlerError
    │   │   └── PaymasterError
    │   └── UserOperationError
    │       ├── UserOperationTimeout
    │       └── UserOperationReverted
    ├── WalletError
    │   ├── ConnectError
    │   │   ├── ProviderUnavailable
    │   │   ├── HandshakeTimeout
    │   │   ├── HandshakeRejected
    │   │   └── SmartAccountInitError
    │   ├── QueryError
    │   │   ├── NetworkFailure
    │   │   └── MalformedResponse
    │   └── TransferError
    │       ├── EncodeError
    │       ├── RelayRejected
    │       ├── RelayTimeout
    │       ├── NotConnected
    │       └── AlreadyInProgress (also a ConnectError)
    └── InvalidTransition
"""

from typing import Any, Optional


class GaslessRelayError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions should inherit from this class to enable
    unified exception handling and centralized error processing.
    """
    pass


class ConfigurationError(GaslessRelayError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Empty bundler or paymaster URL
    - Bundler serving a different chain than configured
    - EntryPoint not supported by the bundler
    """
    pass


class InvalidTransition(GaslessRelayError):
    """
    Raised when the session state machine is asked for a move its
    current state does not allow.

    Attributes:
        current_state: State the machine was in
        requested: Name of the requested transition
    """

    def __init__(self, current_state: Any, requested: str):
        self.current_state = current_state
        self.requested = requested
        super().__init__(f"Cannot {requested} while {current_state}")


# ==================== Blockchain / RPC ====================

class BlockchainInteractionError(GaslessRelayError):
    """
    Raised when blockchain interaction (RPC call) fails.

    This includes scenarios such as:
    - RPC call timeout
    - Network connectivity issues
    - Contract call revert
    """
    pass


class JsonRpcError(BlockchainInteractionError):
    """
    Raised when a JSON-RPC endpoint answers with an error object or with a
    payload that is not a JSON-RPC response.

    Attributes:
        code: JSON-RPC error code (None for malformed payloads)
        rpc_message: Error message reported by the endpoint
        data: Optional error data
    """

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.rpc_message = message
        self.data = data
        text = f"[{code}] {message}" if code is not None else message
        super().__init__(text)


class ProviderRpcError(JsonRpcError):
    """
    EIP-1193 provider error raised by wallet transports.

    Well-known codes: 4001 user rejected, 4100 unauthorized,
    4200 unsupported method, 4900 disconnected.
    """

    USER_REJECTED = 4001
    UNAUTHORIZED = 4100

    @property
    def user_rejected(self) -> bool:
        return self.code == self.USER_REJECTED


class BundlerError(JsonRpcError):
    """Raised when the ERC-4337 bundler rejects a request."""
    pass


class PaymasterError(JsonRpcError):
    """Raised when the paymaster refuses to sponsor a user operation."""
    pass


class UserOperationError(BlockchainInteractionError):
    """
    Base class for failures observed after a user operation was accepted
    by the bundler.

    Attributes:
        user_op_hash: Hash of the submitted user operation
    """

    def __init__(self, message: str, user_op_hash: Optional[str] = None):
        self.user_op_hash = user_op_hash
        super().__init__(message)


class UserOperationTimeout(UserOperationError):
    """Raised when no receipt shows up before the await deadline."""
    pass


class UserOperationReverted(UserOperationError):
    """
    Raised when the bundler reports the operation as included but failed.

    Attributes:
        tx_hash: Hash of the bundle transaction that carried the operation
    """

    def __init__(self, message: str, user_op_hash: Optional[str] = None, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message, user_op_hash)


# ==================== Wallet session taxonomy ====================

class WalletError(GaslessRelayError):
    """
    Base class for the errors a wallet session reports to its observers.

    Subclasses carry a ``kind`` used by snapshots and status texts.
    """

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConnectError(WalletError):
    """Base exception for failures while linking a wallet backend."""
    pass


class ProviderUnavailable(ConnectError):
    """
    Raised when the injected provider object for a backend is absent.

    Attributes:
        namespace: Provider namespace that was looked up (e.g. "ethereum")
    """

    def __init__(self, namespace: str, message: Optional[str] = None):
        self.namespace = namespace
        super().__init__(message or f"No injected provider at '{namespace}'")


class HandshakeTimeout(ConnectError):
    """Raised when account access / enable() does not complete in time."""
    pass


class HandshakeRejected(ConnectError):
    """
    Raised when the wallet refuses account access or returns no usable
    account.
    """
    pass


class SmartAccountInitError(ConnectError):
    """
    Raised when the raw wallet link succeeded but the account-abstraction
    wrapper could not be initialised.

    Attributes:
        address: Wallet address that was already authorised
    """

    def __init__(self, message: str, address: Optional[str] = None):
        self.address = address
        super().__init__(message)


class QueryError(WalletError):
    """Base exception for read-only contract query failures."""
    pass


class NetworkFailure(QueryError):
    """Raised when the read call could not reach the chain."""
    pass


class MalformedResponse(QueryError):
    """Raised when the read call returned data that cannot be decoded."""
    pass


class TransferError(WalletError):
    """
    Base exception for gasless transfer failures.

    ``on_chain_effect_possible`` tells callers whether the underlying call
    may still execute even though the transfer is reported as failed.
    """

    on_chain_effect_possible: bool = False


class EncodeError(TransferError):
    """Raised when the token call cannot be encoded. Nothing was submitted."""
    pass


class RelayRejected(TransferError):
    """
    Raised when submission to the relay fails or the relayed operation is
    reported as failed.

    Attributes:
        stage: "submission" or "await"
        user_op_hash: Hash of the user operation when one was issued
    """

    on_chain_effect_possible = True

    def __init__(self, message: str, stage: str = "submission", user_op_hash: Optional[str] = None):
        self.stage = stage
        self.user_op_hash = user_op_hash
        super().__init__(message)


class RelayTimeout(TransferError):
    """
    Raised when the hash-await step gives up. The operation may still be
    included later.

    Attributes:
        user_op_hash: Hash of the user operation being awaited
    """

    on_chain_effect_possible = True

    def __init__(self, message: str, user_op_hash: Optional[str] = None):
        self.user_op_hash = user_op_hash
        super().__init__(message)


class NotConnected(TransferError):
    """Raised when a transfer is requested without a connected session."""
    pass


class AlreadyInProgress(TransferError, ConnectError):
    """
    Raised when a connect or transfer is requested while the same kind of
    operation is still running. The request is rejected, not queued.
    """
    pass
