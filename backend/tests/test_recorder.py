import io
import sys
import wave

import pytest
from fakes import FakeMicrophone, broken_sounddevice

from voicetranslate.client.recorder import Recorder, RecorderStatus, SoundDeviceMicrophone
from voicetranslate.errors import IllegalTransition, PermissionDenied


def _frames(blob):
    with wave.open(io.BytesIO(blob), "rb") as wf:
        return wf.readframes(wf.getnframes())


def test_chunks_are_kept_in_arrival_order_and_finalized_once():
    mic = FakeMicrophone()
    recorder = Recorder(mic)

    recorder.start()
    mic.push(b"\x01\x00")
    mic.push(b"")
    mic.push(b"\x02\x00")
    assert recorder.chunks == [b"\x01\x00", b"\x02\x00"]

    blob = recorder.stop()

    assert recorder.status == RecorderStatus.STOPPED
    assert _frames(blob) == b"\x01\x00\x02\x00"
    assert recorder.stop() is None
    assert recorder.blob is blob


def test_stop_releases_capture_hardware():
    mic = FakeMicrophone()
    recorder = Recorder(mic)

    recorder.start()
    assert recorder.holds_hardware
    recorder.stop()

    stream = mic.streams[0]
    assert (stream.stop_calls, stream.close_calls) == (1, 1)
    assert not recorder.holds_hardware


def test_chunks_after_stop_are_ignored():
    mic = FakeMicrophone()
    recorder = Recorder(mic)
    recorder.start()
    mic.push(b"\x01\x00")
    blob = recorder.stop()

    mic.push(b"\x09\x09")

    assert _frames(recorder.blob) == b"\x01\x00"
    assert recorder.blob == blob


def test_stop_without_recording_is_a_noop():
    recorder = Recorder(FakeMicrophone())

    assert recorder.stop() is None
    assert recorder.status == RecorderStatus.IDLE


def test_empty_capture_finalizes_to_empty_blob():
    recorder = Recorder(FakeMicrophone())
    recorder.start()

    assert recorder.stop() == b""


def test_permission_denied_leaves_recorder_idle():
    recorder = Recorder(FakeMicrophone(deny=True))

    with pytest.raises(PermissionDenied):
        recorder.start()

    assert recorder.status == RecorderStatus.IDLE
    assert not recorder.holds_hardware


def test_start_while_recording_is_rejected():
    recorder = Recorder(FakeMicrophone())
    recorder.start()

    with pytest.raises(IllegalTransition):
        recorder.start()


def test_new_session_discards_previous_recording():
    mic = FakeMicrophone()
    recorder = Recorder(mic)
    recorder.start()
    mic.push(b"\x01\x00")
    recorder.stop()

    recorder.start()

    assert recorder.blob is None
    assert recorder.chunks == []
    assert len(mic.streams) == 2


def test_release_drops_hardware_without_a_blob():
    mic = FakeMicrophone()
    recorder = Recorder(mic)
    recorder.start()
    mic.push(b"\x01\x00")

    recorder.release()
    recorder.release()

    assert recorder.status == RecorderStatus.IDLE
    assert recorder.blob is None
    assert mic.streams[0].close_calls == 1


def test_invalid_input_device_is_permission_denied(monkeypatch):
    fake_sd = broken_sounddevice(ValueError("No input device matching 'usb'"))
    monkeypatch.setitem(sys.modules, "sounddevice", fake_sd)
    recorder = Recorder(SoundDeviceMicrophone())

    with pytest.raises(PermissionDenied):
        recorder.start()

    assert recorder.status == RecorderStatus.IDLE
    assert not recorder.holds_hardware
