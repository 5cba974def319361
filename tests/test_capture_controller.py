import pytest

from photobooth import config
from photobooth.controllers import CaptureSessionController, Navigator, Route
from photobooth.models import FacingMode, SessionStatus

from conftest import FakeCamera


@pytest.fixture()
def navigator(store):
    return Navigator(store)


@pytest.fixture()
def events():
    return {"countdown": [], "progress": [], "error": []}


@pytest.fixture()
def make_controller(store, navigator, clock, events):
    def factory(camera=None, *, start_session=True):
        camera = camera or FakeCamera()
        if start_session:
            store.start_session()
            navigator.navigate(Route.CAPTURE)
        controller = CaptureSessionController(
            store,
            camera,
            navigator,
            timer_factory=clock,
            on_countdown=events["countdown"].append,
            on_progress=lambda index, total: events["progress"].append((index, total)),
            on_error=events["error"].append,
        )
        return controller, camera

    return factory


def test_full_run_captures_every_photo(store, navigator, clock, events, make_controller):
    controller, camera = make_controller()
    assert controller.open_camera("preview-surface")
    assert camera.target == "preview-surface"
    assert camera.options.facing_mode is FacingMode.BACK

    assert controller.start()
    assert store.get_session().status is SessionStatus.COUNTING_DOWN
    assert controller.countdown == config.DEFAULT_SECONDS_PER_SHOT

    for shot in range(1, config.PHOTO_COUNT + 1):
        clock.advance(config.DEFAULT_SECONDS_PER_SHOT * config.COUNTDOWN_TICK_MS)
        assert camera.captures == shot
        assert controller.current_index == shot

    session = store.get_session()
    assert session.status is SessionStatus.COMPLETED
    assert len(session.photos) == config.PHOTO_COUNT
    assert events["countdown"] == [3, 2, 1, 0] * config.PHOTO_COUNT
    assert events["progress"] == [(i, config.PHOTO_COUNT) for i in range(1, 5)]
    assert navigator.current is Route.RESULT
    assert not controller.is_running
    assert controller.pending_timers == 0
    assert clock.pending == []


def test_no_capture_before_countdown_elapses(clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(2999)
    assert camera.captures == 0
    assert controller.countdown == 1
    clock.advance(1)
    assert camera.captures == 1


def test_countdown_uses_configured_seconds(store, clock, events, make_controller):
    store.update_config(seconds_per_shot=1)
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(4 * config.COUNTDOWN_TICK_MS)
    assert camera.captures == 4
    assert events["countdown"] == [1, 0] * 4


def test_front_facing_mode_is_passed_to_camera(store, make_controller):
    store.update_config(facing_mode="front")
    controller, camera = make_controller()
    controller.open_camera()
    assert camera.options.facing_mode is FacingMode.FRONT


def test_cancel_mid_countdown(store, navigator, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(1500)

    controller.cancel()

    assert controller.is_cancelled
    assert not controller.is_running
    assert controller.pending_timers == 0
    assert clock.pending == []
    assert camera.stops == 1
    assert not store.has_active_session()
    assert store.get_session().photos == []
    assert navigator.current is Route.CONFIG

    clock.advance(10_000)
    assert camera.captures == 0


def test_cancel_is_idempotent(navigator, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    controller.cancel()
    controller.cancel()
    assert camera.stops == 1


def test_cancel_before_start(store, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.cancel()

    assert not controller.start()
    assert controller.pending_timers == 0
    assert not store.has_active_session()
    assert camera.captures == 0


def test_cancel_when_countdown_reaches_zero(store, clock, events, make_controller):
    controller, camera = make_controller()

    def on_countdown(value):
        events["countdown"].append(value)
        if value == 0:
            controller.cancel()

    controller._on_countdown = on_countdown
    controller.open_camera()
    controller.start()
    clock.advance(5000)

    assert events["countdown"] == [3, 2, 1, 0]
    assert camera.captures == 0
    assert controller.pending_timers == 0
    assert not store.has_active_session()


def test_cancel_after_second_shot_keeps_nothing(store, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(6000)
    assert camera.captures == 2

    controller.cancel()
    clock.advance(10_000)

    assert camera.captures == 2
    assert store.get_session().photos == []


def test_capture_failure_recovers_to_config(store, navigator, clock, events, make_controller):
    controller, camera = make_controller(FakeCamera(fail_on_shot=2))
    controller.open_camera()
    controller.start()
    clock.advance(6000)

    assert camera.captures == 2
    assert controller.error_message == config.MSG_CAPTURE_FAILED
    assert events["error"] == [config.MSG_CAPTURE_FAILED]
    assert not controller.is_running
    assert camera.stops == 1
    assert not store.has_active_session()
    assert navigator.current is Route.CAPTURE
    assert controller.pending_timers == 1

    clock.advance(config.ERROR_RECOVERY_DELAY_MS)
    assert navigator.current is Route.CONFIG
    assert controller.pending_timers == 0

    clock.advance(10_000)
    assert camera.captures == 2


def test_camera_start_failure(store, navigator, clock, events, make_controller):
    controller, camera = make_controller(FakeCamera(fail_start=True))
    assert not controller.open_camera()
    assert not controller.camera_ready
    assert controller.error_message == config.MSG_CAMERA_START_FAILED
    assert not controller.start()
    assert not store.has_active_session()

    clock.advance(config.ERROR_RECOVERY_DELAY_MS)
    assert navigator.current is Route.CONFIG
    assert camera.captures == 0


def test_unsupported_camera_is_a_start_failure(clock, make_controller):
    controller, camera = make_controller(FakeCamera(supported=False))
    assert not controller.open_camera()
    assert "start" not in camera.calls
    assert controller.error_message == config.MSG_CAMERA_START_FAILED


def test_start_requires_camera(make_controller):
    controller, _ = make_controller()
    assert not controller.start()
    assert controller.pending_timers == 0


def test_start_twice_is_noop(clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    assert controller.start()
    assert not controller.start()
    assert controller.pending_timers == 2
    clock.advance(3000)
    assert camera.captures == 1


def test_start_without_session_is_noop(make_controller):
    controller, camera = make_controller(start_session=False)
    controller.open_camera()
    assert controller.total_photos == 0
    assert not controller.start()
    assert controller.pending_timers == 0
    assert camera.captures == 0


def test_dispose_keeps_completed_session(store, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(12_000)

    controller.dispose()
    controller.dispose()

    assert store.get_session().is_complete
    assert camera.stops == 2
    assert controller.pending_timers == 0


def test_dispose_mid_run_resets_session(store, navigator, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(4000)

    controller.dispose()
    clock.advance(10_000)

    assert camera.captures == 1
    assert not store.has_active_session()
    assert controller.pending_timers == 0
    assert navigator.current is Route.CAPTURE
    assert not controller.start()


class ExplodingCamera(FakeCamera):
    def capture(self):
        self.calls.append("capture")
        self.captures += 1
        raise RuntimeError("driver crashed")


def test_unexpected_camera_fault_is_handled_like_capture_error(store, navigator, clock, events, make_controller):
    controller, camera = make_controller(ExplodingCamera())
    controller.open_camera()
    controller.start()
    clock.advance(3000)

    assert camera.captures == 1
    assert controller.error_message == config.MSG_CAPTURE_FAILED
    assert events["error"] == [config.MSG_CAPTURE_FAILED]
    assert not controller.is_running
    assert camera.stops == 1
    assert not store.has_active_session()
    assert store.get_session().status is SessionStatus.IDLE

    clock.advance(config.ERROR_RECOVERY_DELAY_MS)
    assert navigator.current is Route.CONFIG
    assert controller.pending_timers == 0


def test_start_after_completed_run_is_noop(store, clock, make_controller):
    controller, camera = make_controller()
    controller.open_camera()
    controller.start()
    clock.advance(12_000)
    assert store.get_session().is_complete

    assert not controller.start()
    clock.advance(10_000)
    assert camera.captures == config.PHOTO_COUNT
    assert controller.pending_timers == 0
    assert store.get_session().is_complete
