"""
EIP-1193 Chain Adapter

Normalizes any EIP-1193 transport (injected extension, chain-native wallet
object or remote relay signer) into the ChainProvider interface.
"""

import logging
from typing import Any, Dict, List

from eth_utils import is_address, to_bytes, to_checksum_address

from .evm.schemas import parse_quantity
from ..engine.exceptions import ProviderRpcError
from .bases import ChainProvider, Eip1193Provider

logger = logging.getLogger(__name__)


# Standard Ethereum methods
ETH_REQUEST_ACCOUNTS = "eth_requestAccounts"
ETH_ACCOUNTS = "eth_accounts"
ETH_CHAIN_ID = "eth_chainId"
ETH_CALL = "eth_call"
ETH_GET_CODE = "eth_getCode"
ETH_GAS_PRICE = "eth_gasPrice"
ETH_MAX_PRIORITY_FEE = "eth_maxPriorityFeePerGas"
ETH_SEND_TRANSACTION = "eth_sendTransaction"
PERSONAL_SIGN = "personal_sign"


def _to_hex(value: Any) -> str:
    if isinstance(value, int):
        return hex(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class Eip1193Adapter(ChainProvider):
    """
    ChainProvider backed by an EIP-1193 ``request(method, params)`` transport.

    The adapter remembers the account authorised during the handshake and
    uses it as the signer for ``personal_sign`` / ``eth_sendTransaction``.

    Attributes:
        provider: Underlying EIP-1193 transport
        label: Wallet name, for logs
    """

    def __init__(self, provider: Eip1193Provider, label: str = "wallet"):
        self.provider = provider
        self.label = label
        self._address: str = ""

    async def request_accounts(self) -> List[str]:
        accounts = await self.provider.request(ETH_REQUEST_ACCOUNTS)
        if not isinstance(accounts, list):
            return []
        valid = [to_checksum_address(a) for a in accounts if isinstance(a, str) and is_address(a)]
        if valid:
            self._address = valid[0]
        return valid

    async def get_address(self) -> str:
        if self._address:
            return self._address
        accounts = await self.provider.request(ETH_ACCOUNTS)
        if isinstance(accounts, list) and accounts and is_address(accounts[0]):
            self._address = to_checksum_address(accounts[0])
        return self._address

    async def call(self, contract_address: str, data: bytes) -> bytes:
        result = await self.provider.request(
            ETH_CALL,
            [{"to": contract_address, "data": _to_hex(data)}, "latest"],
        )
        if not isinstance(result, str):
            raise ValueError(f"eth_call returned non-hex data: {result!r}")
        return to_bytes(hexstr=result)

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        params = {key: _to_hex(value) for key, value in tx.items()}
        params.setdefault("from", await self.get_address())
        tx_hash = await self.provider.request(ETH_SEND_TRANSACTION, [params])
        logger.info(f"{self.label} broadcast transaction {tx_hash}")
        return tx_hash

    async def sign_message(self, message: bytes) -> str:
        address = await self.get_address()
        return await self.provider.request(PERSONAL_SIGN, [_to_hex(message), address])

    async def get_chain_id(self) -> int:
        return parse_quantity(await self.provider.request(ETH_CHAIN_ID))

    async def get_code(self, address: str) -> bytes:
        result = await self.provider.request(ETH_GET_CODE, [address, "latest"])
        return to_bytes(hexstr=result or "0x")

    async def get_fee_data(self) -> Dict[str, int]:
        gas_price = parse_quantity(await self.provider.request(ETH_GAS_PRICE))
        try:
            priority_fee = parse_quantity(await self.provider.request(ETH_MAX_PRIORITY_FEE))
        except ProviderRpcError:
            # Legacy nodes: pay the gas price as tip
            priority_fee = gas_price
        return {
            "maxFeePerGas": max(gas_price, priority_fee),
            "maxPriorityFeePerGas": priority_fee,
        }

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()
