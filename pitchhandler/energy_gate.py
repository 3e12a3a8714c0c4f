# v1.0
import numpy as np


def compute_rms(frame: np.ndarray) -> float:
    """フレームの二乗平均平方根 (音量の目安)。"""
    if len(frame) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(frame))))


class EnergyGate:
    """
    無音判定とアタック(音量の立ち上がり)検出。
    状態 (last_rms) は持たず、判定だけを行う。状態は TunerEngine 側の AssessmentState が持つ。
    """
    def __init__(self, rms_min: float = 0.008, rms_threshold: float = 0.006):
        self.rms_min = rms_min
        self.rms_threshold = rms_threshold

    def is_silent(self, rms: float) -> bool:
        return rms < self.rms_min

    def is_onset(self, rms: float, last_rms: float) -> bool:
        # 音量が上がった時だけ弦を再判定する。それ以外は前フレームと同じ弦とみなす。
        return rms > last_rms + self.rms_threshold
