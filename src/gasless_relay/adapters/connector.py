"""
Wallet Connector - backend selection and handshake.

Routes a WalletBackend variant to its connection protocol and produces a
ConnectedSession, or raises a typed ConnectError:

    BrowserExtension   injected provider at the extension namespace
    ChainNativeWallet  injected provider at the chain-native namespace
    RemoteRelaySigner  remote signer behind a relay bridge (enable() handshake)

After the raw wallet link succeeds, the smart-account handle is initialised
against the linked signer. A failure at that point raises
SmartAccountInitError and releases the transport, so no half-built session
escapes the connector.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx
from eth_utils import is_address, to_checksum_address

from ..clients.smart_account import SmartAccount
from ..engine.exceptions import (
    ConfigurationError,
    ConnectError,
    HandshakeRejected,
    HandshakeTimeout,
    JsonRpcError,
    ProviderRpcError,
    ProviderUnavailable,
    SmartAccountInitError,
)
from ..schemas.backends import (
    BaseWalletBackend,
    BrowserExtensionBackend,
    ChainNativeWalletBackend,
    RemoteRelaySignerBackend,
    parse_backend,
)
from ..schemas.session import SessionPhase
from .bases import ChainProvider, Eip1193Provider
from .eip1193 import Eip1193Adapter
from .registry import InjectedProviders
from .remote import RemoteRelayProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectedSession:
    """
    A linked wallet and its smart-account handle.

    Owned exclusively by the session state machine; invalid after disconnect.

    Attributes:
        address: Checksummed wallet address (never empty)
        adapter: Normalized wallet adapter
        smart_account: Account-abstraction handle bound to the adapter's signer
        backend: Backend variant the session was linked through
    """
    address: str
    adapter: ChainProvider
    smart_account: SmartAccount
    backend: BaseWalletBackend

    async def close(self) -> None:
        await self.smart_account.close()
        await self.adapter.close()


RemoteFactory = Callable[[RemoteRelaySignerBackend, Any], Eip1193Provider]
SmartAccountFactory = Callable[[ChainProvider, Any], Awaitable[SmartAccount]]


def _default_remote_factory(backend: RemoteRelaySignerBackend, settings: Any) -> Eip1193Provider:
    return RemoteRelayProvider(
        rpc=backend.rpc,
        bridge_url=backend.bridge_url or settings.bridge_url,
        bridge_timeout=settings.handshake_timeout,
        request_timeout=settings.request_timeout,
    )


class WalletConnector:
    """
    Unified wallet connection gateway.

    Provides one ``connect()`` entry point over heterogeneous backends and
    converts every backend-specific failure into the ConnectError taxonomy.

    Args:
        settings: Relay configuration (namespaces, timeouts, relay services)
        providers: Injected provider namespace
        remote_factory: Builds the remote signer transport (override in tests)
        smart_account_factory: Builds the smart-account handle (override in tests)
    """

    def __init__(
        self,
        settings: Any,
        providers: Optional[Union[InjectedProviders, Dict[str, Eip1193Provider]]] = None,
        remote_factory: Optional[RemoteFactory] = None,
        smart_account_factory: Optional[SmartAccountFactory] = None,
    ):
        self.settings = settings
        if isinstance(providers, InjectedProviders):
            self.providers = providers
        else:
            self.providers = InjectedProviders(providers)
        self._remote_factory = remote_factory or _default_remote_factory
        self._smart_account_factory = smart_account_factory or SmartAccount.create

    async def connect(
        self,
        backend: Union[BaseWalletBackend, Dict[str, Any]],
        on_phase: Optional[Callable[[SessionPhase], Awaitable[None]]] = None,
    ) -> ConnectedSession:
        """
        Link a wallet backend and initialise its smart account.

        Args:
            backend: Backend variant or its dict form
            on_phase: Optional async callback notified when the smart-account step starts

        Returns:
            ConnectedSession: Session with a non-empty checksummed address.

        Raises:
            ProviderUnavailable: Injected provider missing.
            HandshakeTimeout: Account access did not complete in time.
            HandshakeRejected: Access refused or no usable account returned.
            SmartAccountInitError: Wallet linked but smart account setup failed.
        """
        backend = self.resolve_backend(backend)
        transport = self._resolve_transport(backend)
        adapter = Eip1193Adapter(transport, label=backend.label)

        try:
            address = await self._handshake(backend, transport, adapter)
        except BaseException:
            await adapter.close()
            raise
        logger.info(f"{backend.label} linked account {address}")

        if on_phase:
            await on_phase(SessionPhase.SMART_ACCOUNT)

        try:
            smart_account = await self._smart_account_factory(adapter, self.settings)
        except (ConfigurationError, JsonRpcError, httpx.HTTPError, ValueError) as e:
            await adapter.close()
            logger.warning(f"Smart account setup failed for {address}: {e}")
            raise SmartAccountInitError(str(e), address=address) from e
        except BaseException:
            await adapter.close()
            raise

        return ConnectedSession(
            address=address,
            adapter=adapter,
            smart_account=smart_account,
            backend=backend,
        )

    def resolve_backend(self, backend: Union[BaseWalletBackend, Dict[str, Any]]) -> BaseWalletBackend:
        """Parse a backend and fill unset namespace / rpc fields from settings."""
        backend = parse_backend(backend)
        if isinstance(backend, BrowserExtensionBackend) and backend.namespace is None:
            return backend.model_copy(update={"namespace": self.settings.extension_namespace})
        if isinstance(backend, ChainNativeWalletBackend) and backend.namespace is None:
            return backend.model_copy(update={"namespace": self.settings.chain_native_namespace})
        if isinstance(backend, RemoteRelaySignerBackend) and backend.rpc is None:
            return backend.model_copy(update={"rpc": dict(self.settings.rpc)})
        return backend

    def _resolve_transport(self, backend: BaseWalletBackend) -> Eip1193Provider:
        if isinstance(backend, RemoteRelaySignerBackend):
            return self._remote_factory(backend, self.settings)

        if isinstance(backend, (BrowserExtensionBackend, ChainNativeWalletBackend)):
            provider = self.providers.get(backend.namespace)
            if provider is None:
                logger.info(f"{backend.label} is not installed (no provider at '{backend.namespace}')")
                raise ProviderUnavailable(backend.namespace, f"{backend.label} is not installed")
            return provider

        raise ConnectError(f"Unsupported wallet backend: {backend.backend}")

    async def _handshake(
        self,
        backend: BaseWalletBackend,
        transport: Eip1193Provider,
        adapter: Eip1193Adapter,
    ) -> str:
        timeout = self.settings.handshake_timeout
        try:
            if isinstance(backend, RemoteRelaySignerBackend):
                await asyncio.wait_for(transport.enable(), timeout)
            accounts = await asyncio.wait_for(adapter.request_accounts(), timeout)
        except asyncio.TimeoutError as e:
            raise HandshakeTimeout(f"{backend.label} did not answer within {timeout}s") from e
        except httpx.TimeoutException as e:
            raise HandshakeTimeout(f"{backend.label} handshake timed out: {e}") from e
        except ProviderRpcError as e:
            if e.user_rejected:
                raise HandshakeRejected(f"{backend.label} request rejected by user") from e
            raise HandshakeRejected(f"{backend.label} handshake failed: {e}") from e
        except (JsonRpcError, httpx.HTTPError) as e:
            raise HandshakeRejected(f"{backend.label} handshake failed: {e}") from e

        if not accounts or not accounts[0] or not is_address(accounts[0]):
            raise HandshakeRejected(f"{backend.label} returned no usable account")
        return to_checksum_address(accounts[0])
