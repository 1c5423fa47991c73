from PySide6.QtCore import QCoreApplication
from PySide6.QtTest import QTest
import pytest

from infrastructure.qt_timer import QtIntervalTimer


@pytest.fixture(scope="module")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    return app


def test_timer_fires_repeatedly_until_stopped(qapp):
    ticks = []
    timer = QtIntervalTimer()
    timer.start(10, lambda: ticks.append(1))
    assert timer.is_active

    QTest.qWait(200)
    timer.stop()
    fired = len(ticks)
    assert fired >= 2
    assert not timer.is_active

    QTest.qWait(50)
    assert len(ticks) == fired


def test_restart_replaces_callback(qapp):
    first, second = [], []
    timer = QtIntervalTimer()
    timer.start(10, lambda: first.append(1))
    timer.start(10, lambda: second.append(1))
    QTest.qWait(100)
    timer.stop()
    assert first == []
    assert second
