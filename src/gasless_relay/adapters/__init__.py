from .bases import ChainProvider, Eip1193Provider
from .eip1193 import Eip1193Adapter
from .registry import InjectedProviders

__all__ = [
    "ChainProvider",
    "Eip1193Provider",
    "Eip1193Adapter",
    "InjectedProviders",
]
