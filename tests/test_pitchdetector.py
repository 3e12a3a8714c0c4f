import logging
import threading

import numpy as np
import pytest

import pitchdetector
from pitchdetector import PitchDetector

SAMPLE_RATE = 44100
FRAME_SIZE = 2048


@pytest.fixture
def detector():
    det = PitchDetector(lambda *args: None, config={"sample_rate": SAMPLE_RATE, "frame_size": FRAME_SIZE})
    yield det
    det.stop_stream()


def test_start_and_stop_stream(detector, fake_pyaudio):
    detector.start_stream()

    assert detector.is_running
    assert len(fake_pyaudio.opened) == 1
    assert fake_pyaudio.opened[0].kwargs["rate"] == SAMPLE_RATE
    assert fake_pyaudio.opened[0].kwargs["frames_per_buffer"] == FRAME_SIZE

    detector.stop_stream()
    assert not detector.is_running
    assert detector.stream is None


def test_rate_change_restarts_stream(detector, fake_pyaudio):
    detector.start_stream()

    detector.update_settings({"sample_rate": 48000})

    assert detector.is_running
    assert len(fake_pyaudio.opened) == 2
    assert fake_pyaudio.opened[-1].kwargs["rate"] == 48000
    assert detector.rate == 48000
    assert detector.analyzer.engine.sample_rate == 48000.0
    # E2 offset at 48 kHz: 48000 / 82.4069 = 582.5 -> 582
    assert detector.analyzer.engine.assumed_string.offset == 582


def test_engine_setting_change_keeps_stream(detector, fake_pyaudio):
    detector.start_stream()

    detector.update_settings({"rms_min": 0.02, "sample_rate": SAMPLE_RATE})

    assert len(fake_pyaudio.opened) == 1
    assert detector.is_running
    assert detector.analyzer.engine.gate.rms_min == 0.02


def test_update_settings_while_stopped_does_not_start(detector, fake_pyaudio):
    detector.update_settings({"frame_size": 4096})

    assert not detector.is_running
    assert fake_pyaudio.opened == []
    assert detector.chunk == 4096
    assert detector.analyzer.engine.frame_size == 4096


def test_queued_frame_reaches_ui_callback(fake_pyaudio):
    received = []
    done = threading.Event()

    def on_result(text, volume, estimate):
        received.append((text, volume, estimate))
        done.set()

    det = PitchDetector(on_result, config={"sample_rate": SAMPLE_RATE, "frame_size": FRAME_SIZE})
    det.start_stream()
    try:
        n = np.arange(FRAME_SIZE)
        frame = (0.5 * np.sin(2 * np.pi * 110.0 * n / SAMPLE_RATE) * 32767).astype(np.int16)
        det._pyaudio_callback(frame.tobytes(), FRAME_SIZE, None, 0)

        assert done.wait(timeout=2.0)
    finally:
        det.stop_stream()

    text, volume, estimate = received[0]
    assert volume == 1.0
    assert estimate.has_pitch


def test_missing_pyaudio_leaves_stream_stopped(detector, monkeypatch, caplog):
    monkeypatch.setattr(pitchdetector, "pyaudio", None)

    with caplog.at_level(logging.ERROR):
        detector.start_stream()

    assert not detector.is_running
    assert "pip install .[audio]" in caplog.text
