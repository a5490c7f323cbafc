"""
Wallet Backend Variants (Discriminated Union)

Defines the closed set of wallet backends a session can link. Pydantic's
discriminated union selects the right model from the ``backend`` field, so
callers may pass either a typed instance or a plain dict.

Current support:
    - BrowserExtensionBackend: injected provider (``ethereum`` namespace by default)
    - ChainNativeWalletBackend: injected provider (``BinanceChain`` namespace by default)
    - RemoteRelaySignerBackend: remote signer reached through a JSON-RPC bridge

Fields left as None (namespace, rpc) are filled from RelaySettings by the
connector.

Example usage:
    backend = parse_backend({"backend": "remote_relay", "rpc": {1: "https://rpc.ankr.com/eth"}})
    assert isinstance(backend, RemoteRelaySignerBackend)
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import Field, TypeAdapter, field_validator
from typing_extensions import Annotated

from .bases import CanonicalModel


class BaseWalletBackend(CanonicalModel):
    """
    Common fields of every backend variant.

    Attributes:
        backend: Discriminator value
        label: Human-readable wallet name used in status texts
    """

    backend: str = Field(..., description="Backend discriminator")
    label: str = Field(..., description="Wallet name shown to the user")


class BrowserExtensionBackend(BaseWalletBackend):
    """
    Extension-style wallet (MetaMask and compatible) exposed as an injected
    EIP-1193 provider.

    Attributes:
        namespace: Key of the injected provider; None means the configured
            ``extension_namespace``
    """

    backend: Literal["browser_extension"] = Field(default="browser_extension")
    label: str = Field(default="MetaMask")
    namespace: Optional[str] = Field(None, description="Injected provider namespace")


class ChainNativeWalletBackend(BaseWalletBackend):
    """
    Chain-native wallet (Binance Chain Wallet) injected under its own
    namespace, separate from the extension namespace.

    Attributes:
        namespace: Key of the injected provider; None means the configured
            ``chain_native_namespace``
    """

    backend: Literal["chain_native"] = Field(default="chain_native")
    label: str = Field(default="Binance Wallet")
    namespace: Optional[str] = Field(None, description="Injected provider namespace")


class RemoteRelaySignerBackend(BaseWalletBackend):
    """
    Remote signer reached through a relay bridge (WalletConnect-style).

    The ``rpc`` mapping is ordered; its first entry selects the chain the
    session runs on and serves read-only calls.

    Attributes:
        rpc: Ordered chain id -> RPC endpoint mapping; None means the configured ``rpc``
        bridge_url: Relay bridge endpoint; None means use the configured default
    """

    backend: Literal["remote_relay"] = Field(default="remote_relay")
    label: str = Field(default="WalletConnect")
    rpc: Optional[Dict[int, str]] = Field(None, description="Ordered chain id -> RPC endpoint mapping")
    bridge_url: Optional[str] = Field(None, description="Relay bridge endpoint")

    @field_validator("rpc")
    @classmethod
    def _rpc_not_empty(cls, value: Optional[Dict[int, str]]) -> Optional[Dict[int, str]]:
        if value is None:
            return value
        if not value:
            raise ValueError("rpc mapping must contain at least one chain")
        for chain_id, url in value.items():
            if chain_id < 1:
                raise ValueError(f"Invalid chain id {chain_id}")
            if not isinstance(url, str) or not url.strip():
                raise ValueError(f"Empty RPC endpoint for chain {chain_id}")
        return value

    @property
    def chain_id(self) -> Optional[int]:
        return next(iter(self.rpc)) if self.rpc else None


WalletBackend = Annotated[
    Union[
        BrowserExtensionBackend,   # backend: "browser_extension"
        ChainNativeWalletBackend,  # backend: "chain_native"
        RemoteRelaySignerBackend,  # backend: "remote_relay"
    ],
    Field(discriminator="backend")
]


_backend_adapter = TypeAdapter(WalletBackend)


def parse_backend(value: Union[BaseWalletBackend, Dict[str, Any]]) -> BaseWalletBackend:
    """
    Coerce a dict or typed instance into a concrete backend variant.

    Raises:
        pydantic.ValidationError: If the discriminator or fields are invalid.
    """
    if isinstance(value, BaseWalletBackend):
        return value
    return _backend_adapter.validate_python(value)
