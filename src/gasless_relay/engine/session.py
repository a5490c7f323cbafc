"""
Wallet Session State Machine

Single source of truth for everything a display layer observes:

    Disconnected -> Connecting -> Connected -> (Transacting -> Connected)* -> Disconnected

Connecting and Transacting are transient. Every connector or transfer
failure is caught here, recorded on the snapshot and the machine returns to
the stable state it came from. Work that completes after a disconnect (or a
newer connect) is discarded: each connect/disconnect bumps a generation
counter and late results from an older generation never touch the session.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from ..adapters.connector import ConnectedSession, WalletConnector
from ..adapters.registry import InjectedProviders
from ..clients.balance import BalanceReader
from ..clients.relay_client import RelayClient
from ..config import RelaySettings, load_settings
from ..schemas.backends import BaseWalletBackend, parse_backend
from ..schemas.bases import TransferOutcome, TransferStatus
from ..schemas.session import SessionPhase, SessionSnapshot, SessionState
from .events import (
    BalanceUpdatedEvent,
    Dependencies,
    EventBus,
    SessionUpdatedEvent,
    TransferSettledEvent,
    TransferSubmittedEvent,
)
from .exceptions import (
    AlreadyInProgress,
    ConnectError,
    InvalidTransition,
    NotConnected,
    QueryError,
    RelayRejected,
    TransferError,
)

logger = logging.getLogger(__name__)

_QUERY_ERRORS = ("NetworkFailure", "MalformedResponse")


class WalletSession:
    """
    Session state machine over connector, balance reader and relay client.

    Only this class mutates the ConnectedSession; other components receive it
    per call and never keep it across transitions.

    Args:
        settings: Relay configuration
        connector: Wallet connector
        balance_reader: Balance reader (built from settings when None)
        relay_client: Relay client (built from settings when None)
        event_bus: Event bus to publish on (a new one when None)

    Usage:
        session = create_wallet_session(settings, providers={"ethereum": provider})
        await session.connect(BrowserExtensionBackend())
        outcome = await session.transfer()
        print(session.snapshot.status)
    """

    def __init__(
        self,
        settings: RelaySettings,
        connector: WalletConnector,
        balance_reader: Optional[BalanceReader] = None,
        relay_client: Optional[RelayClient] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.settings = settings
        self.connector = connector
        self.balance_reader = balance_reader or BalanceReader(timeout=settings.request_timeout)
        self.relay_client = relay_client or RelayClient(
            hash_timeout=settings.hash_timeout,
            poll_interval=settings.poll_interval,
        )
        self.event_bus = event_bus or EventBus()
        self.deps = Dependencies(settings=settings)
        self.transfer_request = settings.transfer_request()

        self._session: Optional[ConnectedSession] = None
        self._snapshot = self._blank_snapshot()
        self._last_error: Optional[Exception] = None
        self._generation = 0
        self._await_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._snapshot.state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def last_error(self) -> Optional[Exception]:
        """Last error reported by a connect, balance read or transfer."""
        return self._last_error

    def _blank_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(token_symbol=self.settings.token.symbol)

    def _set(self, **changes) -> Optional[SessionState]:
        previous = self._snapshot.state
        changes["created_at"] = datetime.now()
        self._snapshot = self._snapshot.model_copy(update=changes)
        if self._snapshot.state != previous:
            logger.info(f"Session {previous.value} -> {self._snapshot.state.value}")
        return previous

    async def _emit(self, previous_state: Optional[SessionState] = None) -> None:
        await self.event_bus.publish(
            SessionUpdatedEvent(snapshot=self._snapshot, previous_state=previous_state),
            self.deps,
        )

    async def _update(self, **changes) -> None:
        """Apply changes to the snapshot synchronously, then notify observers."""
        previous = self._set(**changes)
        await self._emit(previous)

    def _phase_updater(self, generation: int):
        async def update_phase(phase: SessionPhase) -> None:
            if generation == self._generation:
                await self._update(phase=phase)
        return update_phase

    # =========================================================================
    # Connect / disconnect
    # =========================================================================

    async def connect(self, backend: Union[BaseWalletBackend, Dict[str, Any]]) -> SessionSnapshot:
        """
        Link a wallet backend.

        While Connected or Transacting this is a no-op returning the current
        snapshot. Connect failures are recorded on the snapshot (``error_kind``,
        ``error_message``) and the machine returns to Disconnected. A
        successful connect is followed by one balance read.

        Args:
            backend: Backend variant or its dict form

        Returns:
            SessionSnapshot: Snapshot after the attempt.

        Raises:
            AlreadyInProgress: If another connect is still running.
            pydantic.ValidationError: If ``backend`` is not a valid variant.
        """
        state = self.state
        if state == SessionState.CONNECTING:
            raise AlreadyInProgress("A wallet connection is already in progress")
        if state in (SessionState.CONNECTED, SessionState.TRANSACTING):
            logger.info(f"connect() ignored, session already {state.value}")
            return self._snapshot

        backend = parse_backend(backend)
        self._generation += 1
        generation = self._generation
        self._last_error = None
        previous = self._set(
            state=SessionState.CONNECTING,
            phase=SessionPhase.HANDSHAKE,
            wallet_label=backend.label,
            address=None,
            balance=None,
            balance_loading=False,
            tx_hash=None,
            user_op_hash=None,
            last_transfer=None,
            error_kind=None,
            error_message=None,
        )

        try:
            await self._emit(previous)
            session = await self.connector.connect(backend, on_phase=self._phase_updater(generation))
        except ConnectError as e:
            if generation != self._generation:
                logger.info(f"Discarding connect failure from a stale attempt: {e}")
                return self._snapshot
            logger.warning(f"Connecting {backend.label} failed: {e.kind}: {e}")
            self._last_error = e
            await self._update(
                state=SessionState.DISCONNECTED,
                phase=None,
                error_kind=e.kind,
                error_message=str(e),
            )
            return self._snapshot
        except BaseException:
            if generation == self._generation:
                self._set(state=SessionState.DISCONNECTED, phase=None)
            raise

        if generation != self._generation:
            logger.info(f"Discarding late connection of {session.address}")
            await session.close()
            return self._snapshot

        self._session = session
        await self._update(state=SessionState.CONNECTED, phase=None, address=session.address)
        await self.refresh_balance()
        return self._snapshot

    async def disconnect(self) -> SessionSnapshot:
        """
        Drop the session.

        Session, balance and transfer fields are cleared together before any
        await; an in-flight hash-await is abandoned and any in-flight connect
        or transfer result is discarded when it arrives.

        Returns:
            SessionSnapshot: The blank Disconnected snapshot.
        """
        if self.state == SessionState.DISCONNECTED:
            return self._snapshot

        previous = self.state
        self._generation += 1
        session, self._session = self._session, None
        task, self._await_task = self._await_task, None
        self._last_error = None
        self._snapshot = self._blank_snapshot()
        logger.info(f"Session {previous.value} -> disconnected")

        if task is not None and not task.done():
            task.cancel()
        if session is not None:
            await session.close()
        await self._emit(previous)
        return self._snapshot

    # =========================================================================
    # Balance
    # =========================================================================

    async def refresh_balance(self) -> Optional[str]:
        """
        Read the token balance of the connected address.

        Query failures are recorded on the snapshot and logged; they never
        affect the session itself.

        Returns:
            str: New balance, or None when the read failed or was discarded.

        Raises:
            InvalidTransition: If no session is connected.
        """
        session = self._session
        if session is None or self.state not in (SessionState.CONNECTED, SessionState.TRANSACTING):
            raise InvalidTransition(self.state.value, "refresh balance")

        generation = self._generation
        token = self.settings.token
        await self._update(balance_loading=True)

        try:
            balance = await self.balance_reader.read_balance(session, token.address, token.decimals)
        except QueryError as e:
            if generation != self._generation:
                return None
            logger.warning(f"Balance query failed: {e.kind}: {e}")
            self._last_error = e
            await self._update(balance_loading=False, error_kind=e.kind, error_message=str(e))
            return None
        except BaseException:
            if generation == self._generation:
                self._set(balance_loading=False)
            raise

        if generation != self._generation:
            return None

        changes: Dict[str, Any] = {"balance_loading": False, "balance": balance}
        if self._snapshot.error_kind in _QUERY_ERRORS:
            changes.update(error_kind=None, error_message=None)
        await self._update(**changes)
        await self.event_bus.publish(BalanceUpdatedEvent(address=session.address, balance=balance), self.deps)
        return balance

    # =========================================================================
    # Transfer
    # =========================================================================

    async def transfer(self) -> TransferOutcome:
        """
        Submit the configured gasless transfer and await its transaction hash.

        Never raises for transfer failures: the outcome carries the error and
        the machine returns to Connected. A confirmed transfer is followed by
        exactly one balance refresh; a timed-out, rejected or abandoned one is
        not. An attempt cut short by ``disconnect()`` returns its outcome
        without touching the new session state.

        Returns:
            TransferOutcome: Confirmed, Pending (observation abandoned) or Failed.
        """
        if self.state == SessionState.TRANSACTING:
            error = AlreadyInProgress("A transfer is already in progress")
            logger.warning(str(error))
            return TransferOutcome.failed(error)
        session = self._session
        if self.state != SessionState.CONNECTED or session is None:
            error = NotConnected(f"Cannot transfer while {self.state.value}")
            logger.warning(str(error))
            return TransferOutcome.failed(error)

        generation = self._generation
        self._last_error = None
        previous = self._set(
            state=SessionState.TRANSACTING,
            phase=SessionPhase.ENCODING,
            user_op_hash=None,
            last_transfer=None,
            error_kind=None,
            error_message=None,
        )

        try:
            await self._emit(previous)
            outcome = await self._run_transfer(session, generation)
        except TransferError as e:
            outcome = TransferOutcome.failed(e)
            if generation != self._generation:
                return outcome
            logger.warning(f"Transfer failed: {e.kind}: {e}")
            self._last_error = e
            await self._update(
                state=SessionState.CONNECTED,
                phase=None,
                user_op_hash=outcome.user_op_hash,
                last_transfer=TransferStatus.FAILED,
                error_kind=e.kind,
                error_message=str(e),
            )
            await self.event_bus.publish(TransferSettledEvent(outcome=outcome), self.deps)
            return outcome
        except Exception as e:
            if generation == self._generation:
                self._set(state=SessionState.CONNECTED, phase=None)
                raise
            # Disconnected mid-flight; the bundler may have received the operation.
            logger.info(f"Discarding failure of a stale transfer attempt: {e!r}")
            return TransferOutcome.failed(RelayRejected(str(e), stage="submission"))
        except BaseException:
            if generation == self._generation:
                self._set(state=SessionState.CONNECTED, phase=None)
            raise

        if generation != self._generation:
            return outcome

        if outcome.is_success():
            await self._update(
                state=SessionState.CONNECTED,
                phase=None,
                tx_hash=outcome.tx_hash,
                last_transfer=TransferStatus.CONFIRMED,
            )
            await self.event_bus.publish(TransferSettledEvent(outcome=outcome), self.deps)
            await self.refresh_balance()
        else:
            await self._update(state=SessionState.CONNECTED, phase=None, last_transfer=outcome.status)
            await self.event_bus.publish(TransferSettledEvent(outcome=outcome), self.deps)
        return outcome

    async def _run_transfer(self, session: ConnectedSession, generation: int) -> TransferOutcome:
        response = await self.relay_client.send(
            session,
            self.transfer_request,
            on_phase=self._phase_updater(generation),
        )
        if generation != self._generation:
            return TransferOutcome.pending(response.user_op_hash)

        await self._update(phase=SessionPhase.AWAITING_HASH, user_op_hash=response.user_op_hash)
        await self.event_bus.publish(TransferSubmittedEvent(user_op_hash=response.user_op_hash), self.deps)

        task = asyncio.ensure_future(self.relay_client.wait(response))
        self._await_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._await_task is task:
                self._await_task = None

        if task.cancelled():
            logger.info(f"Stopped waiting for {response.user_op_hash}; the operation may still be included")
            return TransferOutcome.pending(response.user_op_hash)
        return TransferOutcome.confirmed(task.result(), user_op_hash=response.user_op_hash)

    def abandon_transfer(self) -> bool:
        """
        Stop awaiting the transaction hash of the in-flight transfer.

        The submitted operation is not withdrawn and may still execute. The
        running ``transfer()`` returns a Pending outcome.

        Returns:
            bool: True if an await step was abandoned.
        """
        task = self._await_task
        if task is None or task.done():
            return False
        task.cancel()
        return True


def create_wallet_session(
    settings: Optional[RelaySettings] = None,
    providers: Optional[Union[InjectedProviders, Dict[str, Any]]] = None,
    event_bus: Optional[EventBus] = None,
) -> WalletSession:
    """
    Build a session from validated settings.

    Args:
        settings: RelaySettings (loaded from the environment when None)
        providers: Injected provider namespace
        event_bus: Optional shared event bus

    Raises:
        ConfigurationError: If the relay endpoints are not configured.
    """
    if settings is None:
        settings = load_settings()
    settings.validate_relay_endpoints()
    connector = WalletConnector(settings, providers)
    return WalletSession(settings, connector, event_bus=event_bus)
