"""
Injected Provider Registry

Holds the provider objects a host environment injects under global names
(``ethereum`` for extension wallets, ``BinanceChain`` for the chain-native
wallet). Absence of a namespace is a normal, detectable condition.
"""

from typing import Dict, Iterator, Mapping, Optional

from .bases import Eip1193Provider


class InjectedProviders(Mapping):
    """
    Read-mostly mapping of namespace -> EIP-1193 provider.

    Mirrors the host's global object: a wallet becomes visible when its
    provider is injected and disappears when it is removed.

    Example:
        providers = InjectedProviders({"ethereum": extension_provider})
        providers.get("BinanceChain")  # None, wallet not installed
    """

    def __init__(self, providers: Optional[Dict[str, Eip1193Provider]] = None):
        self._providers: Dict[str, Eip1193Provider] = {}
        for namespace, provider in (providers or {}).items():
            self.inject(namespace, provider)

    def inject(self, namespace: str, provider: Eip1193Provider) -> None:
        """
        Register a provider under a namespace, replacing any previous one.

        Raises:
            ValueError: If the namespace is empty.
            TypeError: If the provider has no ``request`` method.
        """
        if not isinstance(namespace, str) or not namespace.strip():
            raise ValueError("Namespace must be a non-empty string")
        if not callable(getattr(provider, "request", None)):
            raise TypeError(f"Provider for '{namespace}' must expose request(method, params)")
        self._providers[namespace] = provider

    def remove(self, namespace: str) -> None:
        self._providers.pop(namespace, None)

    def __getitem__(self, namespace: str) -> Eip1193Provider:
        return self._providers[namespace]

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)
