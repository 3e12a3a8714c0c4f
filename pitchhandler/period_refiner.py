# v1.0
import math
import numpy as np
from typing import Tuple

from pitchhandler.candidate_scorer import self_difference


class PeriodRefiner:
    """
    推定した弦の理論周期 (base_offset) の前後 search_range サンプルを総当たりし、
    波形が最もよく繰り返すずれ量を実際の周期とする。

    差分が tolerance 未満になった時点で完全一致とみなして打ち切る。
    これにより数セント程度ずれた弦でも正確な周波数が得られる。
    """
    def __init__(self, search_range: int = 10, tolerance: float = 0.001):
        self.search_range = int(search_range)
        self.tolerance = tolerance

    def find_period(self, frame: np.ndarray, base_offset: int) -> Tuple[int, float]:
        """(周期, その差分) を返す。使えるずれ量が無い場合は (0, inf)。"""
        search_size = len(frame) // 2
        best_offset = 0
        smallest_difference = float("inf")

        for s in range(base_offset - self.search_range, base_offset + self.search_range):
            difference = self_difference(frame, s, search_size)
            if difference < smallest_difference:
                smallest_difference = difference
                best_offset = s
            if difference < self.tolerance:
                best_offset = s
                break

        return best_offset, smallest_difference

    def refine(self, frame: np.ndarray, base_offset: int, sample_rate: float) -> float:
        """実周波数 (Hz) を返す。推定できない場合は 0.0。"""
        # 直流など変化の無いフレームは全てのずれ量で差分 0 になり、周期が決まらない
        if len(frame) == 0 or np.ptp(frame) == 0:
            return 0.0

        offset, difference = self.find_period(frame, base_offset)
        if offset <= 0 or not math.isfinite(difference):
            return 0.0

        frequency = sample_rate / offset
        if not math.isfinite(frequency) or frequency <= 0:
            return 0.0
        return frequency
