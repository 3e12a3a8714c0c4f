# v1.0
import math
from dataclasses import dataclass
from typing import Optional, Tuple

# A から始まる12音 (index 0 = A, 11 = G#)
NOTES = ("A", "A#", "B", "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#")


@dataclass(frozen=True)
class TuningBand:
    name: str
    edge: float      # 帯域の上端 (この値を含む)
    target: float
    lower: float
    upper: float


# 隣り合う弦の中間あたりで区切った6つの帯域。lower〜upper が「合っている」範囲。
TUNING_BANDS = (
    TuningBand("E2", 96.41, 82.41, 81.99, 82.82),
    TuningBand("A2", 128.41, 110.00, 109.45, 110.55),
    TuningBand("D3", 171.42, 146.83, 146.10, 147.56),
    TuningBand("G3", 221.47, 196.00, 195.02, 196.96),
    TuningBand("B3", 286.79, 246.94, 245.71, 248.18),
    TuningBand("E4", math.inf, 329.63, 327.98, 331.28),
)


@dataclass(frozen=True)
class PitchEstimate:
    """1フレーム分の推定結果。frequency_hz == 0 は「推定なし」。"""
    frequency_hz: float = 0.0
    note: Optional[str] = None
    octave: Optional[int] = None
    in_band_value: float = 0.0
    leftover_value: float = 0.0
    string_name: Optional[str] = None
    target_hz: Optional[float] = None
    cents: Optional[float] = None

    @property
    def has_pitch(self) -> bool:
        return self.frequency_hz > 0

    @property
    def in_tune(self) -> bool:
        return self.has_pitch and self.leftover_value == 0


NO_ESTIMATE = PitchEstimate()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def semitones_from_a4(frequency: float) -> float:
    return 12 * math.log2(frequency / 440.0)


def frequency_to_note(frequency: float) -> Tuple[Optional[str], Optional[int]]:
    """周波数を (音名, オクターブ) に変換する。A4 = 440Hz 基準。"""
    if not math.isfinite(frequency) or frequency <= 0:
        return None, None

    semitones = semitones_from_a4(frequency)
    # A4 から C5 までは 3 半音、C4 までは 9 半音下がる
    octave = int(math.floor(4 + (9 + semitones) / 12))
    index = ((12 + _round_half_up(semitones)) % 12 + 12) % 12
    return NOTES[index], octave


def find_band(frequency: float) -> Optional[TuningBand]:
    if not math.isfinite(frequency) or frequency <= 0:
        return None
    for band in TUNING_BANDS:
        if frequency <= band.edge:
            return band
    return None


def tuning_deviation(frequency: float) -> Tuple[float, float, Optional[TuningBand]]:
    """
    ドーナツ表示用に (帯域内の量, 残り) の2値へ分解する。

    - lower <= f <= upper : (f, 0)            合っている
    - f > upper           : (f - upper, upper - (f - upper))
    - f < lower           : (f, upper - f)

    判定は表示精度 (0.01Hz) に丸めた周波数で行う。
    """
    if not math.isfinite(frequency) or frequency <= 0:
        return 0.0, 0.0, None

    f = round(frequency, 2)
    band = find_band(f)
    if band is None:
        return 0.0, 0.0, None

    if band.lower <= f <= band.upper:
        return f, 0.0, band
    if f > band.upper:
        over = f - band.upper
        return over, band.upper - over, band
    return f, band.upper - f, band


def map_frequency(frequency: float) -> PitchEstimate:
    if not math.isfinite(frequency) or frequency <= 0:
        return NO_ESTIMATE

    note, octave = frequency_to_note(frequency)
    in_band, leftover, band = tuning_deviation(frequency)
    cents = None
    if band is not None:
        cents = 1200 * math.log2(frequency / band.target)

    return PitchEstimate(
        frequency_hz=frequency,
        note=note,
        octave=octave,
        in_band_value=in_band,
        leftover_value=leftover,
        string_name=band.name if band else None,
        target_hz=band.target if band else None,
        cents=cents,
    )
