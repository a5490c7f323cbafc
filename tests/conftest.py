"""Shared fixtures for the gasless relay test suite."""

import pytest

from test_mocks import (
    MockBundler,
    MockEip1193Provider,
    MockPaymaster,
    create_mock_session,
    create_mock_settings,
)


@pytest.fixture
def settings():
    return create_mock_settings()


@pytest.fixture
def provider():
    return MockEip1193Provider()


@pytest.fixture
def bundler():
    return MockBundler()


@pytest.fixture
def paymaster():
    return MockPaymaster()


@pytest.fixture
def session(provider, bundler, paymaster, settings):
    """WalletSession with an extension wallet injected at ``ethereum``."""
    return create_mock_session(
        providers={"ethereum": provider},
        bundler=bundler,
        paymaster=paymaster,
        settings=settings,
    )


@pytest.fixture(autouse=True)
def _clear_relay_env(monkeypatch):
    for name in (
        "GASLESS_BUNDLER_URL",
        "GASLESS_PAYMASTER_URL",
        "GASLESS_CHAIN_ID",
        "GASLESS_HASH_TIMEOUT",
        "GASLESS_BRIDGE_URL",
        "GASLESS_RPC_URL",
    ):
        monkeypatch.delenv(name, raising=False)
