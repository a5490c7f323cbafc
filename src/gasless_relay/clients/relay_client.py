"""
Relay Client - gasless token transfer pipeline.

Drives the three ordered sub-steps of one transfer attempt:

    1. encode   transfer(recipient, amount) against the token interface
    2. submit   the call as one TransactionIntent (value = 0) to the smart account
    3. await    the submission receipt until it resolves to a transaction hash

``transfer()`` runs all three. ``send()`` runs the first two so a caller that
needs to abandon the await step (the session state machine) can run it as its
own task.

Each step maps its failures onto the TransferError taxonomy so callers can
tell "nothing was sent" (EncodeError) from "the call may still execute"
(RelayRejected, RelayTimeout).
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import httpx
from eth_abi.exceptions import EncodingError

from ..adapters.evm.ERC20_ABI import encode_transfer
from ..engine.exceptions import (
    BlockchainInteractionError,
    EncodeError,
    NotConnected,
    RelayRejected,
    RelayTimeout,
    UserOperationReverted,
    UserOperationTimeout,
)
from ..schemas.bases import TransactionIntent, TransferOutcome, TransferRequest
from ..schemas.session import SessionPhase
from .smart_account import UserOperationResponse

if TYPE_CHECKING:
    from ..adapters.connector import ConnectedSession

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[SessionPhase], Awaitable[None]]


class RelayClient:
    """
    Submits transfers as sponsored user operations.

    Args:
        hash_timeout: Seconds to await the transaction hash
        poll_interval: Seconds between receipt polls
    """

    def __init__(self, hash_timeout: float = 120.0, poll_interval: float = 2.0):
        self.hash_timeout = hash_timeout
        self.poll_interval = poll_interval

    def encode(self, request: TransferRequest) -> TransactionIntent:
        """
        Encode the token transfer as a single call intent.

        Raises:
            EncodeError: If recipient or amount do not fit the token interface.
        """
        try:
            data = encode_transfer(request.recipient_address, request.amount)
        except (ValueError, TypeError, EncodingError) as e:
            raise EncodeError(f"Cannot encode transfer: {e}") from e
        return TransactionIntent(to=request.token_address, value=0, data="0x" + data.hex())

    async def submit(self, session: "ConnectedSession", intent: TransactionIntent) -> UserOperationResponse:
        """
        Hand the intent to the smart account for sponsored execution.

        Returns:
            UserOperationResponse: Pending-operation handle.

        Raises:
            RelayRejected: (stage "submission") If building, signing or submitting
                fails, including on relay clients closed by a disconnect.
        """
        try:
            response = await session.smart_account.send_transaction(intent)
        except (BlockchainInteractionError, httpx.HTTPError, ValueError, RuntimeError) as e:
            logger.warning(f"Relay submission failed: {e}")
            raise RelayRejected(str(e), stage="submission") from e
        logger.info(f"Transfer submitted as user operation {response.user_op_hash}")
        return response

    async def wait(self, response: UserOperationResponse) -> str:
        """
        Await resolution of a submitted operation.

        Returns:
            str: On-chain transaction hash.

        Raises:
            RelayTimeout: If the hash does not show up in time.
            RelayRejected: (stage "await") If the operation failed or the bundler errors.
        """
        user_op_hash = response.user_op_hash
        try:
            tx_hash = await response.wait_for_tx_hash(self.hash_timeout, self.poll_interval)
        except UserOperationTimeout as e:
            logger.warning(f"Gave up waiting for {user_op_hash}: {e}")
            raise RelayTimeout(str(e), user_op_hash=user_op_hash) from e
        except (UserOperationReverted, BlockchainInteractionError) as e:
            logger.warning(f"User operation {user_op_hash} failed: {e}")
            raise RelayRejected(str(e), stage="await", user_op_hash=user_op_hash) from e
        logger.info(f"User operation {user_op_hash} settled in {tx_hash}")
        return tx_hash

    async def send(
        self,
        session: Optional["ConnectedSession"],
        request: TransferRequest,
        on_phase: Optional[PhaseCallback] = None,
    ) -> UserOperationResponse:
        """
        Encode and submit, stopping once the bundler accepted the operation.

        The await step is left to the caller so it can be run (and abandoned)
        separately.

        Raises:
            NotConnected, EncodeError, RelayRejected
        """
        if session is None:
            raise NotConnected("No connected session")
        intent = self.encode(request)

        if on_phase:
            await on_phase(SessionPhase.SUBMITTING)
        return await self.submit(session, intent)

    async def transfer(
        self,
        session: Optional["ConnectedSession"],
        request: TransferRequest,
        on_phase: Optional[PhaseCallback] = None,
    ) -> TransferOutcome:
        """
        Run encode, submit and await in order.

        Args:
            session: Connected session owning the smart account
            request: Fixed transfer request
            on_phase: Optional async callback notified before each step

        Returns:
            TransferOutcome: Confirmed outcome with the transaction hash.

        Raises:
            NotConnected, EncodeError, RelayRejected, RelayTimeout
        """
        if session is None:
            raise NotConnected("No connected session")

        if on_phase:
            await on_phase(SessionPhase.ENCODING)
        response = await self.send(session, request, on_phase)

        if on_phase:
            await on_phase(SessionPhase.AWAITING_HASH)
        tx_hash = await self.wait(response)

        return TransferOutcome.confirmed(tx_hash, user_op_hash=response.user_op_hash)
