"""
Event-driven notification system with typed events.

The session state machine publishes typed events after every transition;
observers (display layers, loggers, tests) subscribe async handlers.
Events carry their own data and dependencies are injected separately.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..schemas.bases import TransferOutcome
from ..schemas.session import SessionSnapshot, SessionState

if TYPE_CHECKING:
    from ..config import RelaySettings

logger = logging.getLogger(__name__)


# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Session Events ====================

class SessionUpdatedEvent(BaseModel, BaseEvent):
    """A state machine transition or a field update happened."""
    snapshot: SessionSnapshot
    previous_state: Optional[SessionState] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"SessionUpdatedEvent(state={self.snapshot.state.value}, status={self.snapshot.status!r})"


class BalanceUpdatedEvent(BaseModel, BaseEvent):
    """A balance read completed for the connected address."""
    address: str
    balance: str

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"BalanceUpdatedEvent(address={self.address}, balance={self.balance})"


class TransferSubmittedEvent(BaseModel, BaseEvent):
    """The relay accepted a user operation; its hash is not final yet."""
    user_op_hash: str

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"TransferSubmittedEvent(user_op_hash={self.user_op_hash})"


class TransferSettledEvent(BaseModel, BaseEvent):
    """A transfer attempt finished (confirmed, pending or failed)."""
    outcome: TransferOutcome

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"TransferSettledEvent(status={self.outcome.status.value})"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for infrastructure dependencies (read-only)."""
    settings: Optional["RelaySettings"] = None


# ==================== Event Bus ====================

EventHandlerFunc = Callable[[BaseEvent, Dependencies], Awaitable[Optional[Any]]]
EventHookFunc = Callable[[BaseEvent, Dependencies], Awaitable[None]]


class EventBus:
    """Event dispatcher for publishing and subscribing to events."""

    def __init__(self) -> None:
        """Initialize with empty subscribers and hooks."""
        self._subscribers: Dict[type, List[EventHandlerFunc]] = {}
        self._hooks: Dict[type, List[EventHookFunc]] = {}

    def subscribe(self, event_class: type, handler: EventHandlerFunc) -> None:
        """
        Register an async handler for the given event class.
        Multiple handlers can be subscribed to the same event type and run in parallel.

        Args:
            event_class: The event class to subscribe to.
            handler: The async handler function to call when the event is published.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")

        self._subscribers.setdefault(event_class, []).append(handler)

    def unsubscribe(self, event_class: type, handler: EventHandlerFunc) -> None:
        """Remove a previously subscribed handler. Unknown handlers are ignored."""
        handlers = self._subscribers.get(event_class, [])
        if handler in handlers:
            handlers.remove(handler)

    def hook(self, event_class: type, hook_func: EventHookFunc) -> None:
        """
        Register a hook for the given event class.
        Hooks are executed before subscribers when the event is dispatched.

        Args:
            event_class: The event class to hook into.
            hook_func: The hook function to call when the event is published.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Handler must be a coroutine function, got {type(hook_func).__name__}")

        self._hooks.setdefault(event_class, []).append(hook_func)

    async def dispatch(self, event: BaseEvent, deps: Dependencies) -> AsyncGenerator[Optional[Any], None]:
        """
        Dispatch an event to all registered hooks and subscribers.
        Hooks run first (in parallel, awaited together), then all subscribers run in parallel.

        A failing observer is logged and yields None; it never interrupts the
        publisher or the other observers.

        Args:
            event: The event to dispatch.
            deps: Dependencies container with injected services.

        Yields:
            Results from all subscribers as they complete. Yields nothing if no subscribers are registered.
        """
        hooks = list(self._hooks.get(type(event), []))
        await asyncio.gather(*(self._guarded(hook, event, deps) for hook in hooks))

        handlers = list(self._subscribers.get(type(event), []))
        if not handlers:
            return

        tasks = [self._guarded(handler, event, deps) for handler in handlers]
        for coro in asyncio.as_completed(tasks):
            yield await coro

    async def publish(self, event: BaseEvent, deps: Dependencies) -> List[Any]:
        """
        Dispatch an event and collect the non-None handler results.

        Args:
            event: The event to publish.
            deps: Dependencies container.

        Returns:
            List of handler results.
        """
        results = []
        async for result in self.dispatch(event, deps):
            if result is not None:
                results.append(result)
        return results

    @staticmethod
    async def _guarded(handler: Callable, event: BaseEvent, deps: Dependencies) -> Optional[Any]:
        try:
            return await handler(event, deps)
        except Exception:
            logger.exception(f"Observer {getattr(handler, '__qualname__', handler)!s} failed on {event!r}")
            return None
