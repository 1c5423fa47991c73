"""QTimer-backed interval timer for auto-advance."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import QObject, QTimer

from core.services.interfaces import IIntervalTimer


class QtIntervalTimer(IIntervalTimer):
    """Repeating timer living on the Qt event loop of the calling thread.

    `stop()` runs on the same thread as the timeouts, so once it returns no
    further callback is delivered.
    """

    def __init__(self, parent: QObject | None = None) -> None:
        self._timer = QTimer(parent)
        self._timer.setSingleShot(False)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: Callable[[], None] | None = None

    def start(self, interval_ms: int, callback: Callable[[], None]) -> None:
        self._timer.stop()
        self._callback = callback
        self._timer.start(max(1, int(interval_ms)))

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self) -> None:
        if self._callback is not None:
            self._callback()
