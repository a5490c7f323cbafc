"""
Session snapshot models.

A SessionSnapshot is the read-only projection of the wallet session that
observers receive. ``status`` is derived from the other fields and is never
stored.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, computed_field

from .bases import CanonicalModel, TransferStatus


class SessionState(str, Enum):
    """
    Session state machine states.

    Stable: DISCONNECTED, CONNECTED. Transient: CONNECTING (from
    DISCONNECTED only), TRANSACTING (from CONNECTED only).
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TRANSACTING = "transacting"

    @property
    def is_stable(self) -> bool:
        return self in (SessionState.DISCONNECTED, SessionState.CONNECTED)


class SessionPhase(str, Enum):
    """Sub-step inside a transient state, used for progress reporting."""
    HANDSHAKE = "handshake"
    SMART_ACCOUNT = "smart_account"
    ENCODING = "encoding"
    SUBMITTING = "submitting"
    AWAITING_HASH = "awaiting_hash"


_ERROR_PREFIX = "❌"
_SUCCESS_PREFIX = "✅"
_AMBIGUOUS_ERRORS = ("RelayRejected", "RelayTimeout")


class SessionSnapshot(CanonicalModel):
    """
    Immutable view of the session at one point in time.

    Attributes:
        state: Current state machine state
        phase: Sub-step while CONNECTING or TRANSACTING
        wallet_label: Name of the linked (or linking) wallet
        token_symbol: Symbol of the configured token
        address: Connected account address
        balance: Display-ready token balance
        balance_loading: Whether a balance read is in flight
        tx_hash: Hash of the last confirmed transfer
        user_op_hash: Hash of the last submitted user operation
        last_transfer: Status of the last transfer attempt
        error_kind: Class name of the last reported error
        error_message: Message of the last reported error
        created_at: Snapshot timestamp
    """

    model_config = ConfigDict(frozen=True)

    state: SessionState = Field(default=SessionState.DISCONNECTED)
    phase: Optional[SessionPhase] = Field(None)
    wallet_label: Optional[str] = Field(None)
    token_symbol: str = Field(default="USDT")
    address: Optional[str] = Field(None)
    balance: Optional[str] = Field(None)
    balance_loading: bool = Field(default=False)
    tx_hash: Optional[str] = Field(None)
    user_op_hash: Optional[str] = Field(None)
    last_transfer: Optional[TransferStatus] = Field(None)
    error_kind: Optional[str] = Field(None)
    error_message: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=datetime.now)

    @computed_field  # type: ignore[misc]
    @property
    def status(self) -> str:
        """Human-readable status line for display."""
        return describe(self)


def describe(snapshot: SessionSnapshot) -> str:
    """
    Project a snapshot onto the status line shown to the user.

    Returns an empty string when there is nothing to report.
    """
    state = snapshot.state
    phase = snapshot.phase

    if state == SessionState.CONNECTING:
        if phase == SessionPhase.SMART_ACCOUNT:
            return "Initializing smart account..."
        if snapshot.wallet_label == "WalletConnect":
            return "Connecting WalletConnect..."
        return "Connecting wallet..."

    if state == SessionState.TRANSACTING:
        if phase == SessionPhase.SUBMITTING:
            return "Sending transaction via relay..."
        if phase == SessionPhase.AWAITING_HASH:
            return "Waiting for transaction hash..."
        return "Preparing transaction..."

    if state == SessionState.DISCONNECTED:
        if snapshot.error_kind == "ProviderUnavailable":
            return f"Please install {snapshot.wallet_label or 'a wallet'}!"
        if snapshot.error_kind == "SmartAccountInitError":
            return f"{_ERROR_PREFIX} Wallet linked but smart account setup failed: {snapshot.error_message}"
        if snapshot.error_kind:
            return f"{_ERROR_PREFIX} Error connecting wallet: {snapshot.error_message}"
        return ""

    # CONNECTED
    if snapshot.balance_loading:
        return f"Checking {snapshot.token_symbol} balance..."
    if snapshot.error_kind in ("NetworkFailure", "MalformedResponse"):
        return "Error fetching balance"
    if snapshot.error_kind in _AMBIGUOUS_ERRORS:
        return f"{_ERROR_PREFIX} Error: {snapshot.error_message} (the transfer may still execute on-chain)"
    if snapshot.error_kind:
        return f"{_ERROR_PREFIX} Error: {snapshot.error_message}"
    if snapshot.last_transfer == TransferStatus.CONFIRMED:
        return f"{_SUCCESS_PREFIX} Transfer complete!"
    if snapshot.last_transfer == TransferStatus.PENDING:
        return "Transfer submitted; still waiting for inclusion"
    if snapshot.balance is None:
        return "Wallet connected!"
    return ""
