"""
ERC20 + SimpleAccount + EntryPoint ABI Module

This module provides simplified ABI definitions for the contract calls the
gasless transfer flow makes, and the call-data encoders built from them.

Usage:
    from ERC20_ABI import encode_transfer, encode_balance_of, decode_uint256

    # Token transfer call data
    data = encode_transfer(recipient, 100_000_000)

    # Query balance
    raw = await adapter.call(token_address, encode_balance_of(owner))
    balance = decode_uint256(raw)
"""

from typing import Any, Dict, List

from eth_abi import decode, encode
from eth_utils import to_checksum_address
from web3 import Web3


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for querying a token balance.

    Returns:
        List[Dict[str, Any]]: ABI for balanceOf function
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_transfer_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `transfer(to, amount)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `transfer` function.
    """
    return [
        {
            "name": "transfer",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_simple_account_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for SimpleAccount `execute(dest, value, func)`.

    Returns:
        List[Dict[str, Any]]: ABI for the account's single-call entry.
    """
    return [
        {
            "name": "execute",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "dest", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "func", "type": "bytes"},
            ],
            "outputs": [],
        }
    ]


def get_account_factory_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for SimpleAccountFactory `getAddress` and `createAccount`.

    Returns:
        List[Dict[str, Any]]: Factory ABI.
    """
    inputs = [
        {"name": "owner", "type": "address"},
        {"name": "salt", "type": "uint256"},
    ]
    return [
        {
            "name": "getAddress",
            "type": "function",
            "stateMutability": "view",
            "inputs": inputs,
            "outputs": [{"name": "", "type": "address"}],
        },
        {
            "name": "createAccount",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": inputs,
            "outputs": [{"name": "ret", "type": "address"}],
        },
    ]


def get_entry_point_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for EntryPoint `getNonce(sender, key)`.

    Returns:
        List[Dict[str, Any]]: EntryPoint nonce ABI.
    """
    return [
        {
            "name": "getNonce",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "sender", "type": "address"},
                {"name": "key", "type": "uint192"},
            ],
            "outputs": [{"name": "nonce", "type": "uint256"}],
        }
    ]


def _find(abi: List[Dict[str, Any]], name: str) -> Dict[str, Any]:
    for entry in abi:
        if entry.get("name") == name:
            return entry
    raise KeyError(f"Function {name} not found in ABI")


def encode_call(abi: List[Dict[str, Any]], name: str, args: List[Any]) -> bytes:
    """
    Encode a function call (4-byte selector followed by ABI-encoded args).

    Args:
        abi: ABI list containing the function
        name: Function name
        args: Positional arguments

    Returns:
        bytes: Call data.

    Raises:
        KeyError: If the function is not in the ABI.
        ValueError / TypeError: If the arguments do not fit the input types.
    """
    entry = _find(abi, name)
    types = [item["type"] for item in entry["inputs"]]
    selector = Web3.keccak(text=f"{name}({','.join(types)})")[:4]
    return bytes(selector) + encode(types, args)


def encode_transfer(recipient: str, amount: int) -> bytes:
    return encode_call(get_transfer_abi(), "transfer", [to_checksum_address(recipient), amount])


def encode_balance_of(owner: str) -> bytes:
    return encode_call(get_balance_abi(), "balanceOf", [to_checksum_address(owner)])


def encode_execute(dest: str, value: int, data: bytes) -> bytes:
    return encode_call(get_simple_account_abi(), "execute", [to_checksum_address(dest), value, data])


def encode_get_address(owner: str, salt: int) -> bytes:
    return encode_call(get_account_factory_abi(), "getAddress", [to_checksum_address(owner), salt])


def encode_create_account(owner: str, salt: int) -> bytes:
    return encode_call(get_account_factory_abi(), "createAccount", [to_checksum_address(owner), salt])


def encode_get_nonce(sender: str, key: int = 0) -> bytes:
    return encode_call(get_entry_point_abi(), "getNonce", [to_checksum_address(sender), key])


def decode_uint256(data: bytes) -> int:
    """
    Decode a single uint256 return value.

    Raises:
        ValueError: If the data is not exactly one ABI word.
    """
    if len(data) != 32:
        raise ValueError(f"Expected 32 bytes of return data, got {len(data)}")
    return decode(["uint256"], data)[0]


def decode_address(data: bytes) -> str:
    """
    Decode a single address return value.

    Raises:
        ValueError: If the data is not exactly one ABI word.
    """
    if len(data) != 32:
        raise ValueError(f"Expected 32 bytes of return data, got {len(data)}")
    return to_checksum_address(decode(["address"], data)[0])
