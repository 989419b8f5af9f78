"""Tests for device setup, function sessions and the menu, driven by MockHVCDevice."""

import io
import threading

import pytest

from hvcsense.app import sessions
from hvcsense.app.menu import Menu
from hvcsense.app.sessions import DeviceSetup, HVCSession
from hvcsense.core.errors import HVCResponseError, TrackerUnavailableError
from hvcsense.device.device_interface import MockHVCDevice
from hvcsense.device.protocol import Threshold
from hvcsense.presentation.formatter import format_detection
from hvcsense.tracking.tracker_adapter import TrackerAdapter


def frames(n):
    """Trigger that allows exactly n frames."""
    remaining = [n]

    def _trigger():
        remaining[0] -= 1
        return remaining[0] >= 0
    return _trigger


def scripted_input(*lines):
    it = iter(lines)

    def _input(prompt=""):
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None
    return _input


class _BrokenTracker(TrackerAdapter):
    def __init__(self, functions):
        super().__init__(functions)
        self.initialized = False
        self.finalized = False

    def initialize(self, functions=None):
        self.initialized = True

    def execute(self, store):
        raise TrackerUnavailableError("tracker offline")

    def finalize(self):
        self.finalized = True

    def is_initialized(self):
        return self.initialized and not self.finalized


class _GatedStream:
    """Line stream whose readline blocks until released."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.reading = threading.Event()
        self.release = threading.Event()

    def readline(self):
        self.reading.set()
        self.release.wait(timeout=5)
        return self.lines.pop(0) if self.lines else ""


@pytest.fixture
def out():
    return []


@pytest.fixture
def session(mock_device, config, out):
    return HVCSession(mock_device, config, stabilization=True, output=out.append)


class TestDeviceSetup:

    def test_apply_writes_and_reads_back(self, mock_device, config, out):
        DeviceSetup(mock_device, config, output=out.append).apply()

        assert mock_device.threshold == Threshold(500, 500, 500, 500)
        assert mock_device.size_range.face_min == 64
        assert mock_device.camera_angle == 0
        assert any(line.startswith("HVC_GetVersion : ") for line in out)
        assert "HVC_GetVerifyThreshold : Threshold = 0x1f4" in out

    def test_version_failure_is_fatal(self, mock_device, config, out):
        mock_device.fail_next(0x01)
        with pytest.raises(HVCResponseError):
            DeviceSetup(mock_device, config, output=out.append).apply()

    def test_other_failures_continue(self, config, out):
        class _Device(MockHVCDevice):
            def set_threshold(self, threshold):
                raise HVCResponseError(0x02)

        device = _Device()
        DeviceSetup(device, config, output=out.append).apply()

        assert any("HVC_SetThreshold Error" in line for line in out)
        assert device.size_range.body_min == 30


class TestDetection:

    def test_runs_until_trigger_stops(self, session, mock_device, config, out):
        count = session.run_detection(frames(3))

        assert count == 3
        assert sum(1 for c in mock_device.calls if c[0] == "execute") == 3
        assert (config.image_path("DetectionImage.bmp")).exists()
        assert "TR_ID:1" in out[-1]

    def test_device_error_skips_frame(self, session, mock_device, out):
        mock_device.fail_next(0x05)

        count = session.run_detection(frames(3))

        assert count == 2
        assert any("HVC_ExecuteEx Error" in line for line in out)

    def test_tracker_failure_uses_raw_results(self, mock_device, config, out):
        trackers = []

        def factory(functions):
            trackers.append(_BrokenTracker(functions))
            return trackers[-1]

        session = HVCSession(mock_device, config, stabilization=True, output=out.append, tracker_factory=factory)
        session.run_detection(frames(1))

        assert "TR_ID:-1" in out[-1]
        assert trackers[0].finalized

    def test_tracker_finalized_on_error(self, mock_device, config):
        trackers = []

        def factory(functions):
            trackers.append(_BrokenTracker(functions))
            return trackers[-1]

        def trigger():
            raise KeyboardInterrupt

        session = HVCSession(mock_device, config, stabilization=True, output=lambda s: None, tracker_factory=factory)
        with pytest.raises(KeyboardInterrupt):
            session.run_detection(trigger)
        assert trackers[0].finalized

    def test_stabilization_off_has_no_track_column(self, mock_device, config, out):
        session = HVCSession(mock_device, config, stabilization=False, output=out.append)
        session.run_detection(frames(1))
        assert "TR_ID" not in out[-1]

    def test_stabilization_off_leaves_store_as_received(self, mock_device, config, monkeypatch, make_store, make_face):
        received = make_store(bodies=[(160, 120, 180, 700)], faces=[make_face(age=(34, 450), gender=(1, 600))])
        mock_device.queue_frame(received)
        rendered = []

        def capture(store, *args, **kwargs):
            rendered.append(store)
            return format_detection(store, *args, **kwargs)

        monkeypatch.setattr(sessions, "format_detection", capture)
        HVCSession(mock_device, config, stabilization=False, output=lambda s: None).run_detection(frames(1))

        assert rendered[0] == received
        assert rendered[0].faces[0].age.confidence == 450


class TestRecognition:

    def test_identify_unregistered(self, session, out):
        session.run_identify(frames(1))
        assert "Not registered" in out[-1]

    def test_identify_after_register(self, session, config, out):
        session.register(12, 0)
        assert config.image_path("RegisterImage.bmp").exists()
        assert "\nRegistration complete.\n" in out

        session.run_identify(frames(1))
        assert "ID:12" in out[-1]

    def test_verify(self, session, out):
        session.register(5, 1)
        session.run_verify(5, frames(1))

        assert "\nVerify user ID = 5\n" in out
        assert "Result:0x0001" in out[-1]

    @pytest.mark.parametrize("user_id", [-1, 1000])
    def test_invalid_user_id(self, session, user_id):
        with pytest.raises(ValueError, match="Invalid user ID"):
            session.run_verify(user_id, frames(1))

    def test_invalid_data_id(self, session):
        with pytest.raises(ValueError, match="Invalid data ID"):
            session.register(1, 10)


class TestAlbum:

    def test_save_and_load_round_trip(self, session, mock_device, config, out):
        session.register(1, 0)
        session.register(2, 3)
        session.save_album()
        session.delete_all()
        assert mock_device.album == {}

        session.load_album()

        assert mock_device.album == {1: {0}, 2: {3}}
        assert config.album_path().exists()
        assert "\nLoad Album complete.\n" in out

    def test_load_missing_file(self, session, out):
        session.load_album()
        assert "\nFailed to open the album data file : HVCAlbum.alb\n" in out

    def test_delete_data_and_user(self, session, mock_device):
        session.register(1, 0)
        session.register(1, 1)
        session.delete_data(1, 0)
        assert mock_device.album == {1: {1}}
        session.delete_user(1)
        assert mock_device.album == {}

    def test_flash_write_and_reformat(self, session, mock_device):
        session.register(3, 0)
        session.write_album()
        assert mock_device.flash_album == {3: {0}}
        session.reformat_album()
        assert mock_device.flash_album == {}

    def test_regist_count(self, session, out):
        session.set_regist_count(2)
        assert session.get_regist_count() == 2
        assert "\nRegistration user max num : 2 [ 1000 ]\n" in out

    def test_invalid_regist_index(self, session):
        with pytest.raises(ValueError, match="Invalid user count"):
            session.set_regist_count(3)


class TestMenu:

    def test_dispatch_and_exit(self, session, mock_device, out):
        Menu(session, input_fn=scripted_input("7", "", "0"), output=out.append).run()
        assert ("delete_all",) in mock_device.calls

    def test_invalid_number(self, session, out):
        Menu(session, input_fn=scripted_input("99", "", "0"), output=out.append).run()
        assert "Invalid number" in out

    def test_bad_user_id_returns_to_menu(self, session, mock_device, out):
        Menu(session, input_fn=scripted_input("6", "abc", "", "0"), output=out.append).run()
        assert "\nInvalid user ID\n" in out
        assert not any(c[0] == "delete_user" for c in mock_device.calls)

    def test_device_error_returns_to_menu(self, session, mock_device, out):
        mock_device.fail_next(0x03)
        Menu(session, input_fn=scripted_input("11", "", "0"), output=out.append).run()
        assert any(line.startswith("\nReformat Flash ROM Error") for line in out)

    def test_identify_until_space(self, session, mock_device, out):
        Menu(session, input_fn=scripted_input("2", "", "", " ", "0"), output=out.append).run()
        assert sum(1 for c in mock_device.calls if c[0] == "execute") == 2

    def test_detection_stops_on_key(self, session, out):
        menu = Menu(session, input_fn=scripted_input("1", "0"), output=out.append, stop_stream=io.StringIO(" \n"))
        menu.run()
        assert menu.stop_switch.get()

    def test_eof_exits(self, session):
        Menu(session, input_fn=scripted_input(), output=lambda s: None).run()

    def test_menu_lists_all_functions(self, session, out):
        menu = Menu(session, input_fn=scripted_input("0"), output=out.append)
        menu.run()
        assert " 13 : Get Number of registered people in album" in out[0]
        assert "  0 : Exit" in out[0]

    def test_line_read_after_failed_detection_reaches_menu(self, session, mock_device, out, monkeypatch):
        stream = _GatedStream(["0\n"])
        menu = Menu(session, input_fn=scripted_input("1", "7", "", "0"), output=out.append, stop_stream=stream)

        def failing_detection(trigger):
            assert stream.reading.wait(timeout=5)
            menu.stop_switch.trigger(source="test")
            stream.release.set()
            raise ValueError("Detection aborted")

        monkeypatch.setattr(session, "run_detection", failing_detection)
        menu.run()

        assert "\nDetection aborted\n" in out
        assert ("delete_all",) not in mock_device.calls
        assert stream.lines == []
