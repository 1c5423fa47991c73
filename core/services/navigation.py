"""Position tracking within the visible image list and timed auto-advance.

Navigation is terminal at both ends: it never wraps. Auto-advance runs in one
direction at a time on an injected interval timer and stops by itself when
the list bound is reached.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from loguru import logger

from core.services.interfaces import IIntervalTimer

MIN_INTERVAL_SECONDS = 1
MAX_INTERVAL_SECONDS = 5
DEFAULT_INTERVAL_SECONDS = 3


class NavigationController:
    """Keeps a valid current index for a list of `length` items."""

    def __init__(self, on_change: Callable[[int | None], None] | None = None) -> None:
        """Create a NavigationController.

        Args:
            on_change: Called with the new index whenever the index changes.
        """
        self._length = 0
        self._index: int | None = None
        self._on_change = on_change

    @property
    def length(self) -> int:
        return self._length

    @property
    def current_index(self) -> int | None:
        """Current position, or None for an empty list."""
        return self._index

    @property
    def at_start(self) -> bool:
        return self._index is None or self._index == 0

    @property
    def at_end(self) -> bool:
        return self._index is None or self._index >= self._length - 1

    def reset(self, length: int) -> None:
        """The list identity changed: go back to the first item."""
        self._length = max(0, int(length))
        self._set(0 if self._length else None)

    def select(self, index: int) -> int | None:
        """Move to `index`, clamped to the list bounds."""
        if not self._length:
            self._set(None)
        else:
            self._set(min(max(int(index), 0), self._length - 1))
        return self._index

    def next(self) -> bool:
        """Advance by one; returns False at the last item."""
        if self._index is None or self._index >= self._length - 1:
            return False
        self._set(self._index + 1)
        return True

    def prev(self) -> bool:
        """Retreat by one; returns False at the first item."""
        if self._index is None or self._index <= 0:
            return False
        self._set(self._index - 1)
        return True

    def neighbors(self) -> tuple[int | None, int | None, int | None]:
        """Previous, current and next indices for a three-up display."""
        if self._index is None:
            return None, None, None
        before = self._index - 1 if self._index > 0 else None
        after = self._index + 1 if self._index < self._length - 1 else None
        return before, self._index, after

    def _set(self, index: int | None) -> None:
        changed = index != self._index
        self._index = index
        if changed and self._on_change is not None:
            self._on_change(index)


class AdvanceDirection(str, Enum):
    """State of the auto-advance machine."""

    IDLE = "idle"
    FORWARD = "forward"
    REVERSE = "reverse"


def clamp_interval(seconds: int) -> int:
    """Clamp an interval setting to the supported range."""
    return min(max(int(seconds), MIN_INTERVAL_SECONDS), MAX_INTERVAL_SECONDS)


class AutoAdvance:
    """Timer-driven navigation, forward or reverse, mutually exclusive.

    The enlarged viewer hosts auto-advance: it can only run between
    `enter_viewer` and `exit_viewer`.
    """

    def __init__(
        self,
        navigation: NavigationController,
        timer: IIntervalTimer,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._nav = navigation
        self._timer = timer
        self._interval = clamp_interval(interval_seconds)
        self._direction = AdvanceDirection.IDLE
        self._viewer_open = False
        # Ticks carry the generation they were armed with; stale ticks are dropped
        self._generation = 0

    @property
    def direction(self) -> AdvanceDirection:
        return self._direction

    @property
    def is_running(self) -> bool:
        return self._direction is not AdvanceDirection.IDLE

    @property
    def interval_seconds(self) -> int:
        return self._interval

    @property
    def viewer_open(self) -> bool:
        return self._viewer_open

    def enter_viewer(self, index: int | None = None) -> None:
        """Open the enlarged view, optionally at `index`."""
        self._viewer_open = True
        if index is not None:
            self._nav.select(index)

    def exit_viewer(self) -> None:
        """Close the enlarged view; cancels auto-advance in both directions."""
        self.stop()
        self._viewer_open = False

    def start(self, direction: AdvanceDirection) -> bool:
        """Run in `direction`, cancelling the other direction first."""
        if direction is AdvanceDirection.IDLE:
            self.stop()
            return False
        if not self._viewer_open:
            logger.debug("Auto-advance ignored: viewer is not open")
            return False
        self._cancel_timer()
        self._direction = direction
        self._arm()
        logger.debug("Auto-advance {} every {}s", direction.value, self._interval)
        return True

    def stop(self) -> None:
        """Cancel the timer synchronously and go idle."""
        if self._direction is AdvanceDirection.IDLE and not self._timer.is_active:
            return
        self._cancel_timer()
        self._direction = AdvanceDirection.IDLE

    def toggle_forward(self) -> bool:
        """Start forward or stop it when already running; returns the new running state."""
        if self._direction is AdvanceDirection.FORWARD:
            self.stop()
            return False
        return self.start(AdvanceDirection.FORWARD)

    def toggle_reverse(self) -> bool:
        """Start reverse or stop it when already running; returns the new running state."""
        if self._direction is AdvanceDirection.REVERSE:
            self.stop()
            return False
        return self.start(AdvanceDirection.REVERSE)

    def set_interval(self, seconds: int) -> int:
        """Change the interval; a running timer is re-armed with it."""
        new_interval = clamp_interval(seconds)
        if new_interval != self._interval:
            self._interval = new_interval
            if self.is_running:
                self._cancel_timer()
                self._arm()
        return self._interval

    def _arm(self) -> None:
        self._generation += 1
        generation = self._generation
        self._timer.start(self._interval * 1000, lambda: self._on_tick(generation))

    def _cancel_timer(self) -> None:
        self._generation += 1
        self._timer.stop()

    def _on_tick(self, generation: int) -> None:
        if generation != self._generation or not self.is_running:
            return
        if self._direction is AdvanceDirection.FORWARD:
            self._nav.next()
            at_bound = self._nav.at_end
        else:
            self._nav.prev()
            at_bound = self._nav.at_start
        if at_bound:
            logger.debug("Auto-advance {} reached the list bound", self._direction.value)
            self.stop()
