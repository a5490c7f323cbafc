"""
Smart Account (ERC-4337 SimpleAccount, EntryPoint v0.6)

The account-abstraction handle owned by a connected session. It wraps the
wallet adapter as the owner/signer of a counterfactual SimpleAccount and
turns a single TransactionIntent into a sponsored user operation.

Two-phase result:
    send_transaction() returns a UserOperationResponse (submission receipt)
    as soon as the bundler accepts the operation; wait_for_tx_hash() is the
    separately awaitable resolution into the on-chain transaction hash.
    Abandoning the wait does not withdraw the operation.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

import httpx
from eth_utils import to_bytes, to_checksum_address

from ..adapters.bases import ChainProvider
from ..adapters.evm.ERC20_ABI import (
    decode_address,
    decode_uint256,
    encode_create_account,
    encode_execute,
    encode_get_address,
    encode_get_nonce,
)
from ..adapters.evm.schemas import UserOperationModel
from ..engine.exceptions import ConfigurationError, UserOperationReverted, UserOperationTimeout
from ..schemas.bases import TransactionIntent
from .bundler import BundlerClient, PaymasterClient

if TYPE_CHECKING:
    from ..config import RelaySettings

logger = logging.getLogger(__name__)


# Well-formed placeholder signature used for gas estimation and sponsorship
DUMMY_SIGNATURE = "0x" + "ff" * 32 + "7" + "a" * 63 + "1c"


class UserOperationResponse:
    """
    Submission receipt of a user operation.

    Attributes:
        user_op_hash: Hash assigned by the bundler
    """

    def __init__(self, user_op_hash: str, bundler: BundlerClient):
        self.user_op_hash = user_op_hash
        self._bundler = bundler

    async def wait_for_tx_hash(self, timeout: float = 120.0, poll_interval: float = 2.0) -> str:
        """
        Poll the bundler until the operation is included.

        Transport errors while polling are logged and retried until the
        deadline.

        Args:
            timeout: Seconds to wait before giving up
            poll_interval: Seconds between receipt polls

        Returns:
            str: Hash of the transaction that carried the operation.

        Raises:
            UserOperationTimeout: If no receipt shows up before the deadline.
            UserOperationReverted: If the operation was included but failed.
            BundlerError: If the bundler answers the receipt query with an error.
        """
        try:
            return await asyncio.wait_for(self._poll(poll_interval), timeout)
        except asyncio.TimeoutError:
            raise UserOperationTimeout(
                f"User operation {self.user_op_hash} not included within {timeout}s",
                user_op_hash=self.user_op_hash,
            ) from None

    async def _poll(self, poll_interval: float) -> str:
        while True:
            try:
                receipt = await self._bundler.get_user_operation_receipt(self.user_op_hash)
            except httpx.HTTPError as e:
                logger.warning(f"Receipt poll for {self.user_op_hash} failed, retrying: {e}")
                receipt = None

            if receipt is not None:
                if not receipt.success:
                    raise UserOperationReverted(
                        receipt.reason or f"User operation {self.user_op_hash} reverted",
                        user_op_hash=self.user_op_hash,
                        tx_hash=receipt.tx_hash,
                    )
                if receipt.tx_hash:
                    return receipt.tx_hash

            await asyncio.sleep(poll_interval)


class SmartAccount:
    """
    SimpleAccount client bound to one wallet signer.

    Use ``SmartAccount.create()``; the constructor performs no validation.

    Attributes:
        signer: Wallet adapter that owns the account
        owner: Owner (wallet) address
        address: Counterfactual smart account address
        chain_id: Network the account runs on
        entry_point: EntryPoint contract address
    """

    def __init__(
        self,
        signer: ChainProvider,
        owner: str,
        address: str,
        settings: "RelaySettings",
        bundler: BundlerClient,
        paymaster: PaymasterClient,
    ):
        self.signer = signer
        self.owner = owner
        self.address = address
        self.chain_id = settings.chain_id
        self.entry_point = settings.entry_point
        self.factory = settings.account_factory
        self.account_index = settings.account_index
        self.bundler = bundler
        self.paymaster = paymaster

    @classmethod
    async def create(
        cls,
        signer: ChainProvider,
        settings: "RelaySettings",
        bundler: Optional[BundlerClient] = None,
        paymaster: Optional[PaymasterClient] = None,
    ) -> "SmartAccount":
        """
        Validate the relay services and resolve the account address.

        Steps:
            1. Bundler/paymaster URLs are non-empty http(s) URLs
            2. Bundler serves the configured chain
            3. Bundler supports the configured EntryPoint
            4. Factory ``getAddress(owner, index)`` resolves the account

        Args:
            signer: Linked wallet adapter
            settings: Relay configuration
            bundler: Prebuilt bundler client (built from settings when None)
            paymaster: Prebuilt paymaster client (built from settings when None)

        Raises:
            ConfigurationError: On invalid configuration or a mismatched bundler.
            BundlerError / httpx.HTTPError / ProviderRpcError: On service failures.
        """
        settings.validate_relay_endpoints()
        bundler = bundler or BundlerClient(
            settings.bundler_url, settings.entry_point, timeout=settings.request_timeout
        )
        paymaster = paymaster or PaymasterClient(
            settings.paymaster_url,
            settings.entry_point,
            context=settings.paymaster_context,
            timeout=settings.request_timeout,
        )

        try:
            bundler_chain = await bundler.chain_id()
            if bundler_chain != settings.chain_id:
                raise ConfigurationError(
                    f"Bundler serves chain {bundler_chain}, expected {settings.chain_id}"
                )
            entry_points = [ep.lower() for ep in await bundler.supported_entry_points()]
            if settings.entry_point.lower() not in entry_points:
                raise ConfigurationError(f"Bundler does not support EntryPoint {settings.entry_point}")

            owner = await signer.get_address()
            raw = await signer.call(
                settings.account_factory,
                encode_get_address(owner, settings.account_index),
            )
            address = decode_address(raw)
        except BaseException:
            await bundler.close()
            await paymaster.close()
            raise

        logger.info(f"Smart account {address} resolved for owner {owner} on chain {settings.chain_id}")
        return cls(signer, owner, address, settings, bundler, paymaster)

    async def _init_code(self) -> str:
        code = await self.signer.get_code(self.address)
        if code:
            return "0x"
        create_call = encode_create_account(self.owner, self.account_index)
        return to_checksum_address(self.factory) + create_call.hex()

    async def build_user_operation(self, intent: TransactionIntent) -> UserOperationModel:
        """
        Build an unsigned, sponsored user operation for one call.

        Raises:
            ValueError: If the intent's call data is not valid hex.
            BundlerError / PaymasterError / ProviderRpcError / httpx.HTTPError
        """
        call_data = encode_execute(intent.to, intent.value, to_bytes(hexstr=intent.data))
        nonce = decode_uint256(await self.signer.call(self.entry_point, encode_get_nonce(self.address, 0)))
        fees = await self.signer.get_fee_data()

        user_op = UserOperationModel(
            sender=self.address,
            nonce=nonce,
            initCode=await self._init_code(),
            callData="0x" + call_data.hex(),
            maxFeePerGas=fees["maxFeePerGas"],
            maxPriorityFeePerGas=fees["maxPriorityFeePerGas"],
            signature=DUMMY_SIGNATURE,
        )

        estimate = await self.bundler.estimate_user_operation_gas(user_op)
        user_op = user_op.model_copy(update=estimate.model_dump())

        sponsorship = await self.paymaster.sponsor_user_operation(user_op)
        return user_op.model_copy(update=sponsorship)

    async def send_transaction(self, intent: TransactionIntent) -> UserOperationResponse:
        """
        Sign and submit one call as a sponsored user operation.

        Args:
            intent: Call to execute from the smart account

        Returns:
            UserOperationResponse: Submission receipt.
        """
        user_op = await self.build_user_operation(intent)
        user_op_hash = user_op.hash(self.entry_point, self.chain_id)
        signature = await self.signer.sign_message(user_op_hash)
        user_op = user_op.model_copy(update={"signature": signature})

        submitted = await self.bundler.send_user_operation(user_op)
        return UserOperationResponse(submitted, self.bundler)

    async def close(self) -> None:
        await self.bundler.close()
        await self.paymaster.close()
