"""
Relay Configuration

Explicit configuration for the wallet session: relay service endpoints,
account-abstraction deployments, remote signer endpoints, timeouts and the
fixed transfer target. Settings are built once at startup (optionally from
the environment / a ``.env`` file) and injected into the connector; nothing
else reads the environment.
"""

import os
from decimal import Decimal
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import dotenv
from pydantic import BaseModel, Field, field_validator

from .adapters.evm.constants import (
    DEFAULT_RECIPIENT,
    DEFAULT_RPC,
    DEFAULT_TRANSFER_AMOUNT,
    ENTRY_POINT_V06,
    SIMPLE_ACCOUNT_FACTORY_V06,
    USDT_MAINNET,
    EvmAssetConfig,
    parse_units,
)
from .engine.exceptions import ConfigurationError
from .schemas.bases import TransferRequest


class RelaySettings(BaseModel):
    """
    Deployment configuration of the gasless relay session.

    Attributes:
        chain_id: Network the smart account runs on
        bundler_url: ERC-4337 bundler endpoint
        paymaster_url: Sponsoring paymaster endpoint
        paymaster_context: Extra sponsorship context sent to the paymaster
        entry_point: EntryPoint contract address
        account_factory: SimpleAccountFactory contract address
        account_index: Salt used to derive the counterfactual account
        bridge_url: Remote signer bridge endpoint
        rpc: Ordered chain id -> RPC endpoint map used by remote signers
            that do not bring their own
        extension_namespace: Injected namespace of extension wallets without an explicit one
        chain_native_namespace: Injected namespace of chain-native wallets without an explicit one
        handshake_timeout: Seconds allowed for wallet account access
        request_timeout: Per-request HTTP timeout in seconds
        hash_timeout: Seconds to wait for the relayed transaction hash
        poll_interval: Seconds between receipt polls
        token: Target token asset
        recipient: Fixed transfer recipient
        transfer_amount: Fixed transfer amount in whole tokens
    """

    chain_id: int = Field(default=1, ge=1)
    bundler_url: str = Field(default="", description="ERC-4337 bundler endpoint")
    paymaster_url: str = Field(default="", description="Paymaster endpoint")
    paymaster_context: Optional[Dict[str, Any]] = Field(None, description="Sponsorship context")
    entry_point: str = Field(default=ENTRY_POINT_V06)
    account_factory: str = Field(default=SIMPLE_ACCOUNT_FACTORY_V06)
    account_index: int = Field(default=0, ge=0)

    bridge_url: str = Field(default="https://bridge.walletconnect.org", description="Remote signer bridge")
    rpc: Dict[int, str] = Field(default_factory=lambda: dict(DEFAULT_RPC))
    extension_namespace: str = Field(default="ethereum")
    chain_native_namespace: str = Field(default="BinanceChain")

    handshake_timeout: float = Field(default=60.0, gt=0)
    request_timeout: float = Field(default=20.0, gt=0)
    hash_timeout: float = Field(default=120.0, gt=0)
    poll_interval: float = Field(default=2.0, gt=0)

    token: EvmAssetConfig = Field(default_factory=lambda: USDT_MAINNET.model_copy())
    recipient: str = Field(default=DEFAULT_RECIPIENT)
    transfer_amount: str = Field(default=DEFAULT_TRANSFER_AMOUNT)

    @field_validator("rpc")
    @classmethod
    def _rpc_not_empty(cls, value: Dict[int, str]) -> Dict[int, str]:
        if not value:
            raise ValueError("rpc mapping must contain at least one chain")
        return value

    def validate_relay_endpoints(self) -> None:
        """
        Check the relay service endpoints before first use.

        Raises:
            ConfigurationError: If bundler or paymaster URL is empty or not http(s).
        """
        for name, url in (("bundler_url", self.bundler_url), ("paymaster_url", self.paymaster_url)):
            if not url or not url.strip():
                raise ConfigurationError(f"{name} is not configured")
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigurationError(f"{name} must be an http(s) URL, got {url!r}")

    def transfer_request(self) -> TransferRequest:
        """
        Build the single immutable transfer request of this deployment.

        Raises:
            ConfigurationError: If the amount cannot be expressed in the token's units.
        """
        try:
            amount = parse_units(amount=Decimal(self.transfer_amount), decimals=self.token.decimals)
        except (ValueError, ArithmeticError) as e:
            raise ConfigurationError(f"Invalid transfer amount {self.transfer_amount!r}: {e}") from e
        return TransferRequest(
            token_address=self.token.address,
            recipient_address=self.recipient,
            amount=amount,
            decimals=self.token.decimals,
        )


def get_bundler_url_from_env() -> Optional[str]:
    """
    Load the bundler endpoint from the environment.

    Environment Variable:
        - GASLESS_BUNDLER_URL: ERC-4337 bundler JSON-RPC URL

    Returns:
        str: Bundler URL, or None if not configured
    """
    return os.getenv("GASLESS_BUNDLER_URL")


def get_paymaster_url_from_env() -> Optional[str]:
    """
    Load the paymaster endpoint from the environment.

    Environment Variable:
        - GASLESS_PAYMASTER_URL: Paymaster JSON-RPC URL

    Returns:
        str: Paymaster URL, or None if not configured
    """
    return os.getenv("GASLESS_PAYMASTER_URL")


def load_settings(**overrides) -> RelaySettings:
    """
    Build settings from the environment (and ``.env``), then apply overrides.

    Environment Variables:
        - GASLESS_BUNDLER_URL, GASLESS_PAYMASTER_URL
        - GASLESS_CHAIN_ID
        - GASLESS_BRIDGE_URL
        - GASLESS_RPC_URL: read endpoint of the remote signer for the configured chain
        - GASLESS_HASH_TIMEOUT: seconds

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed.
    """
    dotenv.load_dotenv()

    values: Dict[str, Any] = {}
    bundler_url = get_bundler_url_from_env()
    if bundler_url:
        values["bundler_url"] = bundler_url
    paymaster_url = get_paymaster_url_from_env()
    if paymaster_url:
        values["paymaster_url"] = paymaster_url

    try:
        if os.getenv("GASLESS_CHAIN_ID"):
            values["chain_id"] = int(os.environ["GASLESS_CHAIN_ID"])
        if os.getenv("GASLESS_HASH_TIMEOUT"):
            values["hash_timeout"] = float(os.environ["GASLESS_HASH_TIMEOUT"])
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric environment value: {e}") from e

    if os.getenv("GASLESS_BRIDGE_URL"):
        values["bridge_url"] = os.environ["GASLESS_BRIDGE_URL"]
    if os.getenv("GASLESS_RPC_URL"):
        values["rpc"] = {values.get("chain_id", 1): os.environ["GASLESS_RPC_URL"]}

    values.update(overrides)
    return RelaySettings(**values)
