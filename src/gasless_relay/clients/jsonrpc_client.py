"""
JSON-RPC over HTTP

Provides the httpx client every network-bound component talks through:
the bundler, the paymaster, the remote signer bridge and the read RPC of
the remote signer.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Type

import httpx

from ..engine.exceptions import JsonRpcError

logger = logging.getLogger(__name__)


class JsonRpcClient(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient bound to a single JSON-RPC endpoint.

    Fully compatible with httpx.AsyncClient - supports all methods, properties,
    and can be used as an async context manager. ``call()`` posts a JSON-RPC
    2.0 request and unwraps the ``result``.

    Error mapping:
        - HTTP status >= 400 and transport failures raise ``httpx.HTTPError``
          subclasses unchanged, so callers can tell "endpoint unreachable"
          from "endpoint answered with an error".
        - An ``error`` object or a non JSON-RPC payload raises ``error_class``.

    Usage:
        ```python
        async with JsonRpcClient("https://bundler.example", error_class=BundlerError) as rpc:
            chain_id = await rpc.call("eth_chainId")
        ```
    """

    def __init__(
        self,
        endpoint: str,
        error_class: Type[JsonRpcError] = JsonRpcError,
        **kwargs
    ):
        """
        Initialize client for one endpoint.

        Args:
            endpoint: JSON-RPC endpoint URL
            error_class: JsonRpcError subclass raised for RPC-level errors
            **kwargs: All standard httpx.AsyncClient arguments (timeout, headers, transport, etc.)
        """
        super().__init__(**kwargs)
        self.endpoint = endpoint
        self.error_class = error_class
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Execute one JSON-RPC request.

        Args:
            method: JSON-RPC method name
            params: Positional parameters

        Returns:
            The ``result`` member of the response.

        Raises:
            httpx.HTTPError: On transport failure or HTTP error status.
            JsonRpcError: (``error_class``) On an error response or malformed payload.
        """
        request_id = next(self._ids)
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params or [],
        }
        logger.debug(f"JSON-RPC -> {self.endpoint} {method} (id={request_id})")

        response = await self.post(self.endpoint, json=payload)
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            raise self.error_class(f"Response to {method} is not JSON") from e

        if not isinstance(body, dict):
            raise self.error_class(f"Response to {method} is not a JSON-RPC object")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise self.error_class(
                    str(error.get("message", "Unknown error")),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise self.error_class(str(error))

        if "result" not in body:
            raise self.error_class(f"Response to {method} carries neither result nor error")

        return body["result"]
