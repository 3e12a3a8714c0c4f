# v1.0
import math
from typing import List

from pitchhandler.errors import InvalidSampleRate

# 標準チューニング (6弦 -> 1弦)
STANDARD_TUNING = (
    ("E2", 82.4069),
    ("A2", 110.0),
    ("D3", 146.832),
    ("G3", 195.998),
    ("B3", 246.932),
    ("E4", 329.628),
)


class ReferencePitch:
    """
    基準弦1本分のデータ。
    offset はターゲット周波数の理論上の周期(サンプル数)、score は評価ウィンドウ内の累積差分。
    """
    def __init__(self, name: str, frequency: float, offset: int):
        self.name = name
        self.frequency = frequency
        self.offset = offset
        self.score = 0.0

    def __repr__(self):
        return f"ReferencePitch({self.name!r}, {self.frequency} Hz, offset={self.offset}, score={self.score:.4f})"


def period_offset(sample_rate: float, frequency: float) -> int:
    # 0.5 は切り上げ (Python の round は偶数丸めなので使わない)
    return int(math.floor(sample_rate / frequency + 0.5))


def build_reference_table(sample_rate: float) -> List[ReferencePitch]:
    try:
        rate = float(sample_rate)
    except (TypeError, ValueError):
        raise InvalidSampleRate(f"Invalid sample rate: {sample_rate!r}")
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidSampleRate(f"Invalid sample rate: {sample_rate!r}")

    return [
        ReferencePitch(name, freq, period_offset(rate, freq))
        for name, freq in STANDARD_TUNING
    ]
