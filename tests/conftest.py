from types import SimpleNamespace

import numpy as np
import pytest

SAMPLE_RATE = 44100
FRAME_SIZE = 2048


def generate_sine(freq: float, num_samples: int = FRAME_SIZE, amplitude: float = 0.5,
                  start: int = 0, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Pure sine wave; `start` lets consecutive frames continue the same wave."""
    n = np.arange(start, start + num_samples)
    return amplitude * np.sin(2 * np.pi * freq * n / sample_rate)


def generate_periodic(period: int, num_samples: int = FRAME_SIZE, amplitude: float = 0.4) -> np.ndarray:
    """Fundamental + two harmonics with an exact integer period in samples."""
    n = np.arange(num_samples)
    wave = (np.sin(2 * np.pi * n / period)
            + 0.5 * np.sin(2 * np.pi * 2 * n / period)
            + 0.25 * np.sin(2 * np.pi * 3 * n / period))
    return amplitude * wave / np.max(np.abs(wave))


def frame_stream(freq: float, count: int, amplitude: float = 0.5):
    """Yield (frame, timestamp_ms) pairs of one continuous sine."""
    frame_ms = FRAME_SIZE / SAMPLE_RATE * 1000.0
    for k in range(count):
        yield generate_sine(freq, amplitude=amplitude, start=k * FRAME_SIZE), k * frame_ms


@pytest.fixture
def sine():
    return generate_sine


@pytest.fixture
def periodic():
    return generate_periodic


@pytest.fixture
def stream():
    return frame_stream


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.active = False

    def start_stream(self):
        self.active = True

    def is_active(self):
        return self.active

    def stop_stream(self):
        self.active = False

    def close(self):
        pass


class FakePyAudio:
    """Stands in for pyaudio.PyAudio so stream start/stop runs without a microphone."""
    opened = []

    def open(self, **kwargs):
        stream = FakeStream(**kwargs)
        FakePyAudio.opened.append(stream)
        return stream

    def terminate(self):
        pass


@pytest.fixture
def fake_pyaudio(monkeypatch):
    import pitchdetector

    FakePyAudio.opened = []
    module = SimpleNamespace(PyAudio=FakePyAudio, paInt16=8, paContinue=0, paComplete=1)
    monkeypatch.setattr(pitchdetector, "pyaudio", module)
    return FakePyAudio
