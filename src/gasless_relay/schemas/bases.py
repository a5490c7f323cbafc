"""
Base Schema Models for the Gasless Relay

This module defines the fundamental value objects shared by the connector,
the relay client and the session state machine.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - TransferRequest: Immutable description of the fixed token transfer
    - TransactionIntent: Single call handed to the smart account (value = 0)
    - TransferStatus: Pending / Confirmed / Failed
    - TransferOutcome: Result of one transfer attempt

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..engine.exceptions import TransferError


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Ensures a consistent, deterministic JSON representation suitable for
    logging, hashing and comparing snapshots.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        canonical_json = model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        The output has sorted keys and no extra whitespace.

        Returns:
            str: Compact JSON string with sorted keys.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class TransferRequest(CanonicalModel):
    """
    Immutable transfer description.

    Token and recipient are deployment constants; the request is built once
    from settings and never edited at runtime.

    Attributes:
        token_address: ERC-20 token contract address
        recipient_address: Fixed receiver of the transfer
        amount: Amount in the token's smallest unit
        decimals: Token decimal precision
    """

    model_config = ConfigDict(frozen=True)

    token_address: str = Field(..., description="ERC-20 token contract address")
    recipient_address: str = Field(..., description="Fixed recipient address")
    amount: int = Field(..., description="Amount in the token's smallest unit")
    decimals: int = Field(..., ge=0, description="Token decimal precision")


class TransactionIntent(CanonicalModel):
    """
    A single call executed by the smart account.

    Attributes:
        to: Target contract
        value: Native value sent along (always 0 for token transfers)
        data: ABI-encoded call data (0x-prefixed hex)
    """

    model_config = ConfigDict(frozen=True)

    to: str = Field(..., description="Target contract address")
    value: int = Field(default=0, ge=0, description="Native value in wei")
    data: str = Field(..., description="ABI-encoded call data (0x-prefixed hex)")


class TransferStatus(str, Enum):
    """
    Enumeration of transfer outcome statuses.

    Attributes:
        PENDING: Submitted, final hash not observed (observation abandoned)
        CONFIRMED: Settled on-chain with a transaction hash
        FAILED: Attempt failed; see the attached error
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TransferOutcome(CanonicalModel):
    """
    Outcome of one gasless transfer attempt.

    Attributes:
        status: Pending, Confirmed or Failed
        tx_hash: On-chain transaction hash (Confirmed only)
        user_op_hash: User operation hash when one was submitted
        reason: Human-readable failure reason
        error_kind: Name of the TransferError subclass
        on_chain_effect_possible: Whether the call may still execute
        error: The TransferError itself (not serialized)
        created_at: Timestamp when the outcome was recorded
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: TransferStatus = Field(..., description="Transfer outcome status")
    tx_hash: Optional[str] = Field(None, description="Settled transaction hash")
    user_op_hash: Optional[str] = Field(None, description="Submitted user operation hash")
    reason: Optional[str] = Field(None, description="Failure reason")
    error_kind: Optional[str] = Field(None, description="TransferError subclass name")
    on_chain_effect_possible: bool = Field(default=False, description="Whether the call may still execute")
    error: Optional[TransferError] = Field(None, exclude=True, description="Underlying error")
    created_at: datetime = Field(default_factory=datetime.now, description="Outcome timestamp")

    @classmethod
    def confirmed(cls, tx_hash: str, user_op_hash: Optional[str] = None) -> "TransferOutcome":
        return cls(status=TransferStatus.CONFIRMED, tx_hash=tx_hash, user_op_hash=user_op_hash)

    @classmethod
    def pending(cls, user_op_hash: Optional[str]) -> "TransferOutcome":
        return cls(status=TransferStatus.PENDING, user_op_hash=user_op_hash, on_chain_effect_possible=True)

    @classmethod
    def failed(cls, error: TransferError) -> "TransferOutcome":
        return cls(
            status=TransferStatus.FAILED,
            user_op_hash=getattr(error, "user_op_hash", None),
            reason=str(error),
            error_kind=error.kind,
            on_chain_effect_possible=error.on_chain_effect_possible,
            error=error,
        )

    def is_success(self) -> bool:
        """
        Check if the transfer settled on-chain.

        Returns:
            bool: True only for Confirmed outcomes.
        """
        return self.status == TransferStatus.CONFIRMED
