"""
Cancellable, self-clearing indicators for CareAlert clients.

Transient banners ("last command", "connected", toasts) show a value and
clear themselves after a fixed delay.  The clear timer is an
``asyncio.TimerHandle``; showing a new value cancels the pending clear so
an older timer can never wipe a newer value.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class TimedIndicator(Generic[T]):
    """A displayed value that clears itself after *delay_s* seconds.

    Args:
        delay_s: Default seconds before a shown value is cleared.
        on_change: Optional callback invoked with the new value (or
            ``None`` when cleared).
        loop: Event loop used for scheduling.  Resolved lazily from the
            running loop when omitted.
    """

    def __init__(
        self,
        delay_s: float,
        *,
        on_change: Callable[[T | None], None] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.delay_s = delay_s
        self._on_change = on_change
        self._loop = loop
        self._value: T | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def value(self) -> T | None:
        """The currently displayed value, ``None`` when clear."""
        return self._value

    @property
    def pending(self) -> bool:
        """``True`` while a clear timer is scheduled."""
        return self._handle is not None

    def show(self, value: T, delay_s: float | None = None) -> None:
        """Display *value* and (re)start the clear timer."""
        self.cancel()
        self._set(value)
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(
            self.delay_s if delay_s is None else delay_s,
            self._expire,
        )

    def clear(self) -> None:
        """Clear the value now and drop any pending timer."""
        self.cancel()
        self._set(None)

    def cancel(self) -> None:
        """Cancel the pending clear timer, keeping the current value."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self._set(None)

    def _set(self, value: T | None) -> None:
        self._value = value
        if self._on_change is not None:
            self._on_change(value)
