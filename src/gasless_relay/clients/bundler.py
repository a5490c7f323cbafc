"""
ERC-4337 Bundler and Paymaster Clients.

Thin typed wrappers over JsonRpcClient for the two opaque relay services.
"""

import logging
from typing import Any, Dict, List, Optional

from ..adapters.evm.schemas import (
    UserOperationGasEstimate,
    UserOperationModel,
    UserOperationReceipt,
    parse_quantity,
)
from ..engine.exceptions import BundlerError, PaymasterError
from .jsonrpc_client import JsonRpcClient

logger = logging.getLogger(__name__)


class BundlerClient:
    """
    Client for an ERC-4337 bundler endpoint.

    Args:
        url: Bundler JSON-RPC URL
        entry_point: EntryPoint address operations are submitted to
        timeout: Per-request HTTP timeout in seconds
        **client_kwargs: Extra httpx.AsyncClient arguments (e.g. transport)
    """

    def __init__(self, url: str, entry_point: str, timeout: float = 20.0, **client_kwargs):
        self.entry_point = entry_point
        self._rpc = JsonRpcClient(url, error_class=BundlerError, timeout=timeout, **client_kwargs)

    async def chain_id(self) -> int:
        result = await self._rpc.call("eth_chainId")
        try:
            return parse_quantity(result)
        except (TypeError, ValueError) as e:
            raise BundlerError(f"Invalid eth_chainId result: {result!r}") from e

    async def supported_entry_points(self) -> List[str]:
        result = await self._rpc.call("eth_supportedEntryPoints")
        if not isinstance(result, list):
            raise BundlerError("Invalid bundler response for eth_supportedEntryPoints")
        return [str(item) for item in result]

    async def estimate_user_operation_gas(self, user_op: UserOperationModel) -> UserOperationGasEstimate:
        result = await self._rpc.call(
            "eth_estimateUserOperationGas",
            [user_op.to_rpc_dict(), self.entry_point],
        )
        if not isinstance(result, dict):
            raise BundlerError("Invalid bundler response for eth_estimateUserOperationGas")
        try:
            return UserOperationGasEstimate.from_rpc(result)
        except ValueError as e:
            raise BundlerError(f"Invalid gas estimate: {e}") from e

    async def send_user_operation(self, user_op: UserOperationModel) -> str:
        """
        Submit a signed user operation.

        Returns:
            str: userOpHash assigned by the bundler.

        Raises:
            BundlerError: If the bundler rejects the operation.
        """
        result = await self._rpc.call(
            "eth_sendUserOperation",
            [user_op.to_rpc_dict(), self.entry_point],
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise BundlerError("Invalid bundler response for eth_sendUserOperation")
        logger.info(f"User operation accepted by bundler: {result}")
        return result

    async def get_user_operation_receipt(self, user_op_hash: str) -> Optional[UserOperationReceipt]:
        """
        Fetch the inclusion receipt.

        Returns:
            UserOperationReceipt or None while the operation is not yet included.
        """
        result = await self._rpc.call("eth_getUserOperationReceipt", [user_op_hash])
        if not result:
            return None
        if not isinstance(result, dict):
            raise BundlerError("Invalid bundler response for eth_getUserOperationReceipt")
        try:
            return UserOperationReceipt.from_rpc(user_op_hash, result)
        except ValueError as e:
            raise BundlerError(f"Invalid user operation receipt: {e}") from e

    async def close(self) -> None:
        await self._rpc.aclose()


class PaymasterClient:
    """
    Client for a sponsoring paymaster endpoint.

    Args:
        url: Paymaster JSON-RPC URL
        entry_point: EntryPoint address
        context: Sponsorship context forwarded with every request
        rpc_method: Sponsorship method name
        timeout: Per-request HTTP timeout in seconds
        **client_kwargs: Extra httpx.AsyncClient arguments (e.g. transport)
    """

    def __init__(
        self,
        url: str,
        entry_point: str,
        context: Optional[Dict[str, Any]] = None,
        rpc_method: str = "pm_sponsorUserOperation",
        timeout: float = 20.0,
        **client_kwargs
    ):
        self.entry_point = entry_point
        self.context = context
        self.rpc_method = rpc_method
        self._rpc = JsonRpcClient(url, error_class=PaymasterError, timeout=timeout, **client_kwargs)

    async def sponsor_user_operation(self, user_op: UserOperationModel) -> Dict[str, Any]:
        """
        Ask the paymaster to sponsor an operation.

        Returns:
            Dict[str, Any]: ``paymasterAndData`` plus any gas limits the
            paymaster overrides (as ints).

        Raises:
            PaymasterError: If sponsorship is refused or the answer is malformed.
        """
        params: List[Any] = [user_op.to_rpc_dict(), self.entry_point]
        if self.context:
            params.append(self.context)
        result = await self._rpc.call(self.rpc_method, params)

        if isinstance(result, str):
            return {"paymasterAndData": result}
        if not isinstance(result, dict):
            raise PaymasterError("Invalid paymaster response")

        paymaster_and_data = result.get("paymasterAndData")
        if not isinstance(paymaster_and_data, str) or not paymaster_and_data.startswith("0x"):
            raise PaymasterError("Paymaster response is missing paymasterAndData")

        sponsorship: Dict[str, Any] = {"paymasterAndData": paymaster_and_data}
        for name in ("callGasLimit", "verificationGasLimit", "preVerificationGas"):
            if result.get(name) is not None:
                try:
                    sponsorship[name] = parse_quantity(result[name])
                except ValueError as e:
                    raise PaymasterError(f"Invalid {name} in paymaster response") from e
        return sponsorship

    async def close(self) -> None:
        await self._rpc.aclose()
