"""Broadcast channels — typed listener registries for supervisor events."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from devstudio.stream.models import CompletionRecord, InvocationError, StreamEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: A listener may be a plain function or a coroutine function.
Listener = Callable[[T], Awaitable[None] | None]


class Subscription(Generic[T]):
    """Handle returned by ``Channel.subscribe``; pass it back to unsubscribe."""

    __slots__ = ("callback", "once", "active")

    def __init__(self, callback: Listener[T], once: bool = False) -> None:
        self.callback = callback
        self.once = once
        self.active = True


class Channel(Generic[T]):
    """One broadcast category with FIFO delivery to every subscriber."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription[T]] = []

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: Listener[T]) -> Subscription[T]:
        """Register *callback* for every future publish."""
        sub: Subscription[T] = Subscription(callback)
        self._subscriptions.append(sub)
        return sub

    def once(self, callback: Listener[T]) -> Subscription[T]:
        """Register *callback* for the next publish only."""
        sub: Subscription[T] = Subscription(callback, once=True)
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription[T]) -> bool:
        """Remove *subscription*. Returns ``False`` if it was not registered."""
        subscription.active = False
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        """Remove every subscription."""
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()

    async def publish(self, payload: T) -> None:
        """Deliver *payload* to each subscriber in registration order.

        A subscription removed mid-delivery is skipped. Listener failures
        are logged and never reach the publisher.
        """
        for sub in list(self._subscriptions):
            if not sub.active:
                continue
            if sub.once:
                self.unsubscribe(sub)
            try:
                result = sub.callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("%s listener failed", self.name)


class EventHub:
    """The three supervisor broadcast channels: stream, complete, error."""

    def __init__(self) -> None:
        self.stream: Channel[StreamEvent] = Channel("stream")
        self.complete: Channel[CompletionRecord] = Channel("complete")
        self.error: Channel[InvocationError] = Channel("error")

    def channels(self) -> tuple[Channel, ...]:  # type: ignore[type-arg]
        return (self.stream, self.complete, self.error)

    def listener_count(self, name: str) -> int:
        for channel in self.channels():
            if channel.name == name:
                return channel.listener_count
        msg = f"Unknown channel '{name}'"
        raise KeyError(msg)

    def remove_all(self) -> None:
        """Bulk-unsubscribe every listener on every channel."""
        for channel in self.channels():
            channel.clear()
