# v1.0
import math
import logging
import numpy as np
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pitchhandler.errors import InvalidFrame
from pitchhandler.reference_table import ReferencePitch, build_reference_table
from pitchhandler.energy_gate import EnergyGate, compute_rms
from pitchhandler.candidate_scorer import CandidateScorer
from pitchhandler.period_refiner import PeriodRefiner
from pitchhandler.note_mapper import NO_ESTIMATE, PitchEstimate, map_frequency

# 探索範囲(±10)の2倍。これ未満のフレームでは比較ができない。
MIN_FRAME_SIZE = 22

DEFAULT_SETTINGS: Dict[str, Any] = {
    "rms_min": 0.008,
    "rms_threshold": 0.006,
    "assess_window_ms": 250.0,
    "search_range": 10,
    "tolerance": 0.001,
    "reset_scores_on_onset": False,
    "frame_size": None,
}


class AssessmentState:
    """エンジン1台分の時系列状態。"""
    def __init__(self):
        self.last_rms = 0.0
        self.assess_until = 0.0
        self.was_assessing = False

    def snapshot(self) -> Dict[str, Any]:
        return {
            "last_rms": self.last_rms,
            "assess_until": self.assess_until,
            "was_assessing": self.was_assessing,
        }


class TunerEngine:
    """
    弦判定とピッチ推定のオーケストレーター。

    1フレームごとに:
      1. 無音ゲート (RMS < rms_min ならその場で「推定なし」)
      2. アタック検出 -> 評価ウィンドウ (assess_window_ms) を開く
      3. ウィンドウ中は全基準弦のスコアを累積、閉じた瞬間に並べ替え
      4. 先頭の弦の理論周期を起点に実周期を探索
      5. 周波数 -> 音名・オクターブ・ずれ量
    """
    def __init__(self, sample_rate: float, config: Optional[Dict[str, Any]] = None):
        # 不正なサンプルレートはここで InvalidSampleRate になる
        self.references: List[ReferencePitch] = build_reference_table(sample_rate)
        self.sample_rate = float(sample_rate)

        self.settings = dict(DEFAULT_SETTINGS)
        if config:
            self.settings.update(config)

        self.gate = EnergyGate(
            rms_min=float(self.settings["rms_min"]),
            rms_threshold=float(self.settings["rms_threshold"]),
        )
        self.scorer = CandidateScorer(self.references)
        self.refiner = PeriodRefiner(
            search_range=int(self.settings["search_range"]),
            tolerance=float(self.settings["tolerance"]),
        )
        self.assess_window_ms = float(self.settings["assess_window_ms"])
        self.reset_scores_on_onset = str(self.settings["reset_scores_on_onset"]).lower() == "true"

        frame_size = self.settings.get("frame_size")
        self.frame_size: Optional[int] = int(frame_size) if frame_size else None

        self.state = AssessmentState()
        logging.info(
            f"TunerEngine initialized (rate={self.sample_rate:.0f}Hz, "
            f"offsets={[(r.name, r.offset) for r in self.references]})"
        )

    # --- Accessors ---
    @property
    def assumed_string(self) -> ReferencePitch:
        return self.scorer.assumed_string

    @property
    def ranking(self) -> List[str]:
        return [ref.name for ref in self.scorer.ranking]

    @property
    def scores(self) -> Dict[str, float]:
        return self.scorer.scores

    def reset(self):
        self.state = AssessmentState()
        self.scorer.reset()

    # --- Main ---
    def process_frame(self,
                      samples: Union[Sequence[float], np.ndarray],
                      sample_rate: float,
                      timestamp_ms: float) -> PitchEstimate:
        frame, timestamp_ms = self._validate(samples, sample_rate, timestamp_ms)
        if self.frame_size is None:
            self.frame_size = len(frame)

        rms = compute_rms(frame)
        if self.gate.is_silent(rms):
            return NO_ESTIMATE

        state = self.state
        was_assessing = state.was_assessing

        if self.gate.is_onset(rms, state.last_rms):
            state.assess_until = timestamp_ms + self.assess_window_ms
            logging.debug(f"Onset detected (rms {state.last_rms:.4f} -> {rms:.4f}), assessing until {state.assess_until:.0f}ms")
            if self.reset_scores_on_onset:
                self.scorer.reset_scores()

        if timestamp_ms < state.assess_until:
            state.was_assessing = True
            # 新しいウィンドウの最初のフレームでだけスコアをリセットする
            if not was_assessing:
                self.scorer.reset_scores()
                logging.debug("Assessment window opened, scores reset.")
            self.scorer.accumulate(frame)
        else:
            state.was_assessing = False

        if was_assessing and not state.was_assessing:
            self.scorer.rank()
            logging.debug(f"Assessment window closed. Ranking: {self.scores} -> {self.ranking}")

        frequency = self.refiner.refine(frame, self.assumed_string.offset, self.sample_rate)
        state.last_rms = rms

        return map_frequency(frequency)

    def _validate(self, samples, sample_rate, timestamp_ms) -> Tuple[np.ndarray, float]:
        try:
            frame = np.asarray(samples, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidFrame(f"Frame is not numeric: {e}")

        if frame.ndim != 1:
            raise InvalidFrame(f"Frame must be 1-D, got shape {frame.shape}")
        if len(frame) < MIN_FRAME_SIZE:
            raise InvalidFrame(f"Frame too short: {len(frame)} < {MIN_FRAME_SIZE}")
        if self.frame_size is not None and len(frame) != self.frame_size:
            raise InvalidFrame(f"Frame length {len(frame)} != fixed size {self.frame_size}")
        if not np.all(np.isfinite(frame)):
            raise InvalidFrame("Frame contains non-finite samples")
        try:
            rate = float(sample_rate)
            ts = float(timestamp_ms)
        except (TypeError, ValueError):
            raise InvalidFrame(f"Invalid sample rate / timestamp: {sample_rate!r}, {timestamp_ms!r}")
        if rate != self.sample_rate:
            raise InvalidFrame(f"Sample rate {rate} != engine rate {self.sample_rate}")
        if not math.isfinite(ts):
            raise InvalidFrame(f"Invalid timestamp: {timestamp_ms!r}")
        return frame, ts


def create_engine(sample_rate: float, config: Optional[Dict[str, Any]] = None) -> TunerEngine:
    return TunerEngine(sample_rate, config)
