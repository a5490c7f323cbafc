"""
Balance Reader

One read-only ``balanceOf`` call through the session's adapter, converted
to a display string. Side-effect free and safe to retry.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx
from eth_abi.exceptions import DecodingError

from ..adapters.evm.ERC20_ABI import decode_uint256, encode_balance_of
from ..adapters.evm.constants import format_units
from ..engine.exceptions import BlockchainInteractionError, MalformedResponse, NetworkFailure

if TYPE_CHECKING:
    from ..adapters.connector import ConnectedSession

logger = logging.getLogger(__name__)


class BalanceReader:
    """Reads token balances of the connected address."""

    def __init__(self, timeout: float = 20.0):
        self.timeout = timeout

    async def read_raw(self, session: "ConnectedSession", token_address: str) -> int:
        """
        Read the raw smallest-unit balance of the session address.

        Raises:
            NetworkFailure: If the call could not be completed.
            MalformedResponse: If the return data is not a uint256.
        """
        try:
            raw = await asyncio.wait_for(
                session.adapter.call(token_address, encode_balance_of(session.address)),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NetworkFailure(f"balanceOf timed out after {self.timeout}s") from e
        except (httpx.HTTPError, BlockchainInteractionError, OSError) as e:
            raise NetworkFailure(f"balanceOf failed: {e}") from e
        except ValueError as e:
            raise MalformedResponse(f"balanceOf returned invalid data: {e}") from e

        try:
            return decode_uint256(raw)
        except (ValueError, DecodingError) as e:
            raise MalformedResponse(f"Cannot decode balanceOf result: {e}") from e

    async def read_balance(self, session: "ConnectedSession", token_address: str, decimals: int) -> str:
        """
        Read the balance as a display-ready decimal string.

        Args:
            session: Connected session
            token_address: Token contract address
            decimals: Token decimal precision

        Returns:
            str: Balance, e.g. ``"100.0"``.

        Raises:
            QueryError: NetworkFailure or MalformedResponse.
        """
        value = await self.read_raw(session, token_address)
        balance = format_units(value=value, decimals=decimals)
        logger.info(f"Balance of {session.address}: {balance}")
        return balance
