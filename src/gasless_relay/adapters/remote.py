"""
Remote Relay Signer Transport

EIP-1193 transport for a wallet that lives on another device and is reached
through a JSON-RPC relay bridge (WalletConnect-style). Account access and
signing are forwarded to the bridge once ``enable()`` succeeded; read-only
methods go to the RPC endpoint of the first configured chain.
"""

import logging
import secrets
from typing import Any, Dict, List, Optional

from ..engine.exceptions import ProviderRpcError
from ..clients.jsonrpc_client import JsonRpcClient
from .bases import Eip1193Provider

logger = logging.getLogger(__name__)


# Methods that need the remote wallet's authorisation
BRIDGE_METHODS = frozenset({
    "eth_sendTransaction",
    "eth_signTransaction",
    "eth_sign",
    "personal_sign",
    "eth_signTypedData_v4",
})


class RemoteRelayProvider(Eip1193Provider):
    """
    Remote signer reached through a relay bridge.

    Args:
        rpc: Ordered chain id -> RPC endpoint mapping; the first entry is the session chain
        bridge_url: Relay bridge JSON-RPC endpoint
        bridge_timeout: HTTP timeout for bridge requests (covers user approval)
        request_timeout: HTTP timeout for read requests
        **client_kwargs: Extra httpx.AsyncClient arguments shared by both clients (e.g. transport)

    Raises:
        ValueError: If the rpc mapping is empty.
    """

    def __init__(
        self,
        rpc: Dict[int, str],
        bridge_url: str,
        bridge_timeout: float = 60.0,
        request_timeout: float = 20.0,
        **client_kwargs
    ):
        if not rpc:
            raise ValueError("rpc mapping must contain at least one chain")
        self.rpc = dict(rpc)
        self.chain_id, rpc_url = next(iter(self.rpc.items()))
        self.session_id = secrets.token_hex(16)
        self._bridge = JsonRpcClient(
            bridge_url,
            error_class=ProviderRpcError,
            timeout=bridge_timeout,
            headers={"X-Session-Id": self.session_id},
            **client_kwargs,
        )
        self._reader = JsonRpcClient(
            rpc_url,
            error_class=ProviderRpcError,
            timeout=request_timeout,
            **client_kwargs,
        )
        self._accounts: List[str] = []

    @property
    def connected(self) -> bool:
        return bool(self._accounts)

    async def enable(self) -> List[str]:
        """
        Perform the bridge handshake and obtain the authorised accounts.

        Returns:
            List[str]: Accounts approved on the remote wallet.

        Raises:
            ProviderRpcError: If the remote wallet refuses (code 4001) or the bridge errors.
            httpx.HTTPError: If the bridge cannot be reached.
        """
        logger.info(f"Requesting remote signer session {self.session_id[:8]} on chain {self.chain_id}")
        accounts = await self._bridge.call("eth_requestAccounts", [{"chainId": hex(self.chain_id)}])
        if not isinstance(accounts, list):
            raise ProviderRpcError("Bridge returned no account list")
        self._accounts = [str(a) for a in accounts]
        return list(self._accounts)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_accounts":
            return list(self._accounts)
        if method == "eth_requestAccounts":
            if self._accounts:
                return list(self._accounts)
            return await self.enable()
        if method in BRIDGE_METHODS:
            if not self._accounts:
                raise ProviderRpcError(
                    "Remote signer session is not enabled",
                    code=ProviderRpcError.UNAUTHORIZED,
                )
            return await self._bridge.call(method, params)
        return await self._reader.call(method, params)

    async def close(self) -> None:
        self._accounts = []
        await self._bridge.aclose()
        await self._reader.aclose()
