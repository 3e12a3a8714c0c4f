# v6.0
import numpy as np
import logging
from typing import Optional, Tuple, Dict, Any

try:
    from pitchhandler.tuner_engine import TunerEngine, create_engine
    from pitchhandler.note_mapper import NO_ESTIMATE, PitchEstimate
    from pitchhandler.energy_gate import compute_rms
    from pitchhandler.errors import InvalidFrame
except ImportError:
    logging.error("Required package (pitchhandler) not found.")
    raise

IDLE_TEXT = "---"


class PitchAnalyzer:
    """
    マイク入力 (int16 PCM のバイト列) と TunerEngine の間をつなぐクラス。

    - バイト列を [-1, 1] の float に正規化してエンジンへ渡す
    - 推定結果を表示用の文字列と音量バー値に変換する
    - 不正フレームは警告ログを出して読み飛ばす (解析ループは止めない)
    """
    RATE = 44100
    INT16_SCALE = 32768.0

    def __init__(self, config: Dict[str, Any]):
        self.settings = config
        self.engine: Optional[TunerEngine] = None
        self.apply_settings()

    @property
    def sample_rate(self) -> float:
        return float(self.settings.get("sample_rate", self.RATE))

    def update_settings(self, new_config: Dict[str, Any]):
        # エンジン設定はすべて構築時に固定されるため、変更時は作り直す
        self.settings.update(new_config)
        self.apply_settings()

    def apply_settings(self):
        engine_config = {k: v for k, v in self.settings.items() if k != "sample_rate"}
        self.engine = create_engine(self.sample_rate, engine_config)

    def reset_state(self):
        if self.engine:
            self.engine.reset()

    def process(self, raw_input_bytes: bytes, timestamp_ms: float) -> Tuple[str, float, PitchEstimate]:
        samples = np.frombuffer(raw_input_bytes, dtype=np.int16).astype(np.float32) / self.INT16_SCALE

        # 音量バーは 0.1 (かなり大きい音) で振り切れるようにする
        display_volume = min(compute_rms(samples) * 10.0, 1.0)

        try:
            estimate = self.engine.process_frame(samples, self.sample_rate, timestamp_ms)
        except InvalidFrame as e:
            logging.warning(f"Frame skipped: {e}")
            return IDLE_TEXT, display_volume, NO_ESTIMATE

        return self.format_result(estimate), display_volume, estimate

    @staticmethod
    def format_result(estimate: PitchEstimate) -> str:
        if not estimate.has_pitch or estimate.note is None:
            return IDLE_TEXT

        if estimate.in_tune:
            label = "OK"
        elif estimate.target_hz is not None and estimate.frequency_hz > estimate.target_hz:
            label = "高い"
        else:
            label = "低い"

        return f"{estimate.note}{estimate.octave}\n({label}: {estimate.frequency_hz:.2f} Hz)"
