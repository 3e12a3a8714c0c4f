import logging

import numpy as np
import pytest

from pitch_analyzer import IDLE_TEXT, PitchAnalyzer
from pitchhandler.note_mapper import NO_ESTIMATE, map_frequency

SAMPLE_RATE = 44100
FRAME_SIZE = 2048


def to_pcm_bytes(samples: np.ndarray) -> bytes:
    return (samples * 32767).astype(np.int16).tobytes()


@pytest.fixture
def analyzer():
    return PitchAnalyzer({"sample_rate": SAMPLE_RATE, "frame_size": FRAME_SIZE})


def test_detects_a2_from_pcm_bytes(analyzer, stream):
    result = None
    for frame, timestamp in stream(110.0, 10):
        result = analyzer.process(to_pcm_bytes(frame), timestamp)

    text, volume, estimate = result
    assert text.startswith("A2\n(OK:")
    assert volume == 1.0
    assert estimate.note == "A"
    assert estimate.frequency_hz == pytest.approx(110.0, abs=0.5)
    assert analyzer.engine.assumed_string.name == "A2"


def test_silence_returns_idle_text(analyzer):
    text, volume, estimate = analyzer.process(bytes(FRAME_SIZE * 2), 0)

    assert text == IDLE_TEXT
    assert volume == 0.0
    assert estimate == NO_ESTIMATE


def test_display_volume_scales_with_rms(analyzer, sine):
    _, volume, _ = analyzer.process(to_pcm_bytes(sine(441.0, amplitude=0.02)), 0)
    assert volume == pytest.approx(0.02 / np.sqrt(2) * 10, rel=0.02)


def test_invalid_frame_is_logged_and_skipped(analyzer, sine, caplog):
    analyzer.process(to_pcm_bytes(sine(110.0)), 0)
    last_rms = analyzer.engine.state.last_rms

    with caplog.at_level(logging.WARNING):
        text, _, estimate = analyzer.process(to_pcm_bytes(sine(110.0, num_samples=1024)), 50)

    assert text == IDLE_TEXT
    assert estimate == NO_ESTIMATE
    assert analyzer.engine.state.last_rms == last_rms
    assert "Frame skipped" in caplog.text


@pytest.mark.parametrize("frequency, expected", [
    (110.0, "A2\n(OK: 110.00 Hz)"),
    (112.0, "A2\n(高い: 112.00 Hz)"),
    (108.0, "A2\n(低い: 108.00 Hz)"),
    (330.0, "E4\n(OK: 330.00 Hz)"),
])
def test_format_result(frequency, expected):
    assert PitchAnalyzer.format_result(map_frequency(frequency)) == expected


def test_format_result_without_pitch():
    assert PitchAnalyzer.format_result(NO_ESTIMATE) == IDLE_TEXT


def test_update_settings_rebuilds_engine(analyzer, sine):
    analyzer.process(to_pcm_bytes(sine(110.0)), 0)
    old_engine = analyzer.engine

    analyzer.update_settings({"rms_min": 0.5})

    assert analyzer.engine is not old_engine
    assert analyzer.engine.gate.rms_min == 0.5
    text, _, _ = analyzer.process(to_pcm_bytes(sine(110.0)), 50)
    assert text == IDLE_TEXT


def test_reset_state(analyzer, stream):
    for frame, timestamp in stream(110.0, 10):
        analyzer.process(to_pcm_bytes(frame), timestamp)

    analyzer.reset_state()

    assert analyzer.engine.assumed_string.name == "E2"
    assert analyzer.engine.state.last_rms == 0.0
