"""Shared test doubles: a manual clock for timers, a scripted camera, images."""
from __future__ import annotations

import io
import os
from typing import Callable, List, Optional

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PIL import Image  # noqa: E402

from photobooth.errors import CaptureError, StartError  # noqa: E402
from photobooth.persistence import MemoryConfigStore  # noqa: E402
from photobooth.store import PhotoboothStore  # noqa: E402


class FakeSignal:
    def __init__(self) -> None:
        self._slots: List[Callable[[], None]] = []

    def connect(self, slot: Callable[[], None]) -> None:
        self._slots.append(slot)

    def emit(self) -> None:
        for slot in list(self._slots):
            slot()


class FakeTimer:
    """Stand-in for QTimer driven by :class:`FakeClock`."""

    def __init__(self, clock: "FakeClock") -> None:
        self._clock = clock
        self.timeout = FakeSignal()
        self.interval = 0
        self.single_shot = False
        self.active = False
        self.due = 0
        self.seq = 0
        self.deleted = False

    def setInterval(self, ms: int) -> None:
        self.interval = ms

    def setSingleShot(self, flag: bool) -> None:
        self.single_shot = flag

    def start(self) -> None:
        self.active = True
        self.due = self._clock.now + self.interval
        self.seq = self._clock.next_seq()

    def stop(self) -> None:
        self.active = False

    def isActive(self) -> bool:
        return self.active

    def deleteLater(self) -> None:
        self.deleted = True


class FakeClock:
    """Timer factory whose time only moves when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0
        self.timers: List[FakeTimer] = []
        self._seq = 0

    def __call__(self) -> FakeTimer:
        timer = FakeTimer(self)
        self.timers.append(timer)
        return timer

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    @property
    def pending(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if timer.active]

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [timer for timer in self.timers if timer.active and timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = timer.due
            if timer.single_shot:
                timer.active = False
            else:
                timer.due += timer.interval
            timer.timeout.emit()
        self.now = target


class FakeCamera:
    """Scripted camera source recording every call."""

    def __init__(
        self,
        *,
        supported: bool = True,
        fail_start: bool = False,
        fail_on_shot: Optional[int] = None,
        photo: Optional[bytes] = None,
    ) -> None:
        self.supported = supported
        self.fail_start = fail_start
        self.fail_on_shot = fail_on_shot
        self.photo = photo if photo is not None else make_image_bytes((40, 30), (200, 10, 10))
        self.calls: List[str] = []
        self.options = None
        self.target = None
        self.captures = 0
        self.stops = 0

    def is_supported(self) -> bool:
        self.calls.append("is_supported")
        return self.supported

    def init(self, options) -> None:
        self.calls.append("init")
        self.options = options

    def start(self, target=None) -> None:
        self.calls.append("start")
        self.target = target
        if self.fail_start:
            raise StartError("no device")

    def capture(self) -> bytes:
        self.calls.append("capture")
        self.captures += 1
        if self.fail_on_shot is not None and self.captures == self.fail_on_shot:
            raise CaptureError("sensor timeout")
        return self.photo

    def stop(self) -> None:
        self.calls.append("stop")
        self.stops += 1


def make_image_bytes(size=(100, 100), color=(255, 0, 0), fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config_store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture()
def store(config_store: MemoryConfigStore) -> PhotoboothStore:
    return PhotoboothStore(config_store)
