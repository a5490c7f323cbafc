"""
ERC-4337 Schema Models

Pydantic models for the user-operation pipeline of the smart account.

Classes:
    - UserOperationModel: EntryPoint v0.6 ``UserOperation`` with RPC
      serialization and local hash computation.
    - UserOperationGasEstimate: Result of ``eth_estimateUserOperationGas``.
    - UserOperationReceipt: Result of ``eth_getUserOperationReceipt``.
"""

from typing import Any, Dict, Optional, Union

from eth_abi import encode
from eth_utils import to_checksum_address
from pydantic import Field
from web3 import Web3

from ...schemas.bases import CanonicalModel


def parse_quantity(value: Union[int, str, None]) -> Optional[int]:
    """Parse a JSON-RPC quantity (hex string or int). None passes through."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    raise ValueError(f"Invalid quantity: {value!r}")


class UserOperationModel(CanonicalModel):
    """
    EIP-4337 `UserOperation` structure (EntryPoint v0.6 layout).

    Integer fields are kept as ints and hex-encoded only for transport, so
    the model can be mutated step by step while the operation is built
    (gas estimate, sponsorship, signature).

    Attributes mirror the canonical EIP-4337 fields: `sender`, `nonce`,
    `initCode`, `callData`, gas fields, fee fields, `paymasterAndData`, and
    the `signature` blob.
    """

    sender: str = Field(..., description="Account sending the user operation")
    nonce: int = Field(..., ge=0, description="Nonce to prevent replay")
    initCode: str = Field(default="0x", description="Initialization code for account creation (hex)")
    callData: str = Field(..., description="Call data payload for the operation (hex)")
    callGasLimit: int = Field(default=0, ge=0, description="Gas limit for the inner call")
    verificationGasLimit: int = Field(default=0, ge=0, description="Gas limit for verification")
    preVerificationGas: int = Field(default=0, ge=0, description="Gas used prior to verification")
    maxFeePerGas: int = Field(default=0, ge=0, description="Max fee per gas user will pay")
    maxPriorityFeePerGas: int = Field(default=0, ge=0, description="Max priority fee per gas")
    paymasterAndData: str = Field(default="0x", description="Paymaster address and optional data (hex)")
    signature: str = Field(default="0x", description="Signature over the user operation (hex)")

    def to_rpc_dict(self) -> Dict[str, Any]:
        """
        Serialize for bundler / paymaster JSON-RPC calls.

        Returns:
            Dict[str, Any]: Field map with quantities as 0x-hex strings.
        """
        return {
            "sender": self.sender,
            "nonce": hex(self.nonce),
            "initCode": self.initCode,
            "callData": self.callData,
            "callGasLimit": hex(self.callGasLimit),
            "verificationGasLimit": hex(self.verificationGasLimit),
            "preVerificationGas": hex(self.preVerificationGas),
            "maxFeePerGas": hex(self.maxFeePerGas),
            "maxPriorityFeePerGas": hex(self.maxPriorityFeePerGas),
            "paymasterAndData": self.paymasterAndData,
            "signature": self.signature,
        }

    def pack(self) -> bytes:
        """ABI-encode every field except the signature (dynamic fields hashed)."""
        return encode(
            [
                "address", "uint256", "bytes32", "bytes32",
                "uint256", "uint256", "uint256", "uint256", "uint256",
                "bytes32",
            ],
            [
                to_checksum_address(self.sender),
                self.nonce,
                Web3.keccak(hexstr=self.initCode),
                Web3.keccak(hexstr=self.callData),
                self.callGasLimit,
                self.verificationGasLimit,
                self.preVerificationGas,
                self.maxFeePerGas,
                self.maxPriorityFeePerGas,
                Web3.keccak(hexstr=self.paymasterAndData),
            ],
        )

    def hash(self, entry_point: str, chain_id: int) -> bytes:
        """
        Compute the userOpHash the EntryPoint expects the owner to sign.

        Args:
            entry_point: EntryPoint contract address
            chain_id: Chain the operation targets

        Returns:
            bytes: 32-byte user operation hash.
        """
        inner = Web3.keccak(self.pack())
        return bytes(Web3.keccak(
            encode(["bytes32", "address", "uint256"], [inner, to_checksum_address(entry_point), chain_id])
        ))


class UserOperationGasEstimate(CanonicalModel):
    """Gas limits returned by ``eth_estimateUserOperationGas``."""

    callGasLimit: int = Field(..., ge=0)
    verificationGasLimit: int = Field(..., ge=0)
    preVerificationGas: int = Field(..., ge=0)

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "UserOperationGasEstimate":
        """
        Build from a bundler response.

        Raises:
            ValueError: If a required limit is missing or not a quantity.
        """
        values = {}
        for name in ("callGasLimit", "verificationGasLimit", "preVerificationGas"):
            quantity = parse_quantity(data.get(name))
            if quantity is None:
                raise ValueError(f"Missing {name} in gas estimate")
            values[name] = quantity
        return cls(**values)


class UserOperationReceipt(CanonicalModel):
    """
    Inclusion receipt of a user operation.

    Attributes:
        user_op_hash: Hash of the user operation
        success: Whether the inner call succeeded
        tx_hash: Hash of the bundle transaction
        block_number: Block the bundle was included in
        gas_used: Actual gas used by the operation
        reason: Revert reason reported by the bundler, if any
    """

    user_op_hash: str = Field(..., description="User operation hash")
    success: bool = Field(..., description="Inner call success flag")
    tx_hash: Optional[str] = Field(None, description="Bundle transaction hash")
    block_number: Optional[int] = Field(None, ge=0)
    gas_used: Optional[int] = Field(None, ge=0)
    reason: Optional[str] = Field(None, description="Revert reason")

    @classmethod
    def from_rpc(cls, user_op_hash: str, data: Dict[str, Any]) -> "UserOperationReceipt":
        receipt = data.get("receipt") or {}
        success = data.get("success")
        if success is None:
            success = receipt.get("status") == "0x1"
        return cls(
            user_op_hash=data.get("userOpHash") or user_op_hash,
            success=bool(success),
            tx_hash=receipt.get("transactionHash"),
            block_number=parse_quantity(receipt.get("blockNumber")),
            gas_used=parse_quantity(data.get("actualGasUsed")),
            reason=data.get("reason") or None,
        )
