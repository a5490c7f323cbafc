from .bases import CanonicalModel, TransferRequest, TransactionIntent, TransferStatus, TransferOutcome
from .backends import BaseWalletBackend, BrowserExtensionBackend, ChainNativeWalletBackend, RemoteRelaySignerBackend, WalletBackend, parse_backend
from .session import SessionState, SessionPhase, SessionSnapshot, describe

__all__ = [
    "CanonicalModel",
    "TransferRequest",
    "TransactionIntent",
    "TransferStatus",
    "TransferOutcome",
    "BaseWalletBackend",
    "BrowserExtensionBackend",
    "ChainNativeWalletBackend",
    "RemoteRelaySignerBackend",
    "WalletBackend",
    "parse_backend",
    "SessionState",
    "SessionPhase",
    "SessionSnapshot",
    "describe",
]
