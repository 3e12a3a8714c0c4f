# v1.0
import numpy as np
from typing import Dict, List

from pitchhandler.reference_table import ReferencePitch


def self_difference(frame: np.ndarray, lag: int, search_size: int) -> float:
    """
    波形とそれ自身を lag サンプルずらしたものとの平均絶対差。
    lag が周期と一致すれば 0 に近づく。
    lag が 0 以下、またはフレームに収まらない場合は inf を返す。
    """
    if lag <= 0 or search_size <= 0 or search_size + lag > len(frame):
        return float("inf")
    return float(np.mean(np.abs(frame[:search_size] - frame[lag:lag + search_size])))


class CandidateScorer:
    """
    評価ウィンドウ中、各基準弦の「それらしさ」を累積するクラス。

    スコアは self_difference * offset の累積値 (小さいほど一致)。
    offset を掛けることで低音弦(周期が長い)を不利にし、倍音による低音側への誤判定を補正する。
    順位 (ranking) はウィンドウが閉じた瞬間にだけ並べ替える。毎フレーム並べ替えると順位が暴れるため。
    """
    def __init__(self, references: List[ReferencePitch]):
        self.references = references
        self.ranking: List[ReferencePitch] = list(references)

    @property
    def assumed_string(self) -> ReferencePitch:
        return self.ranking[0]

    @property
    def scores(self) -> Dict[str, float]:
        return {ref.name: ref.score for ref in self.references}

    def reset_scores(self):
        for ref in self.references:
            ref.score = 0.0

    def reset(self):
        self.reset_scores()
        self.ranking = list(self.references)

    def accumulate(self, frame: np.ndarray):
        search_size = len(frame) // 2
        for ref in self.ranking:
            difference = self_difference(frame, ref.offset, search_size)
            ref.score += difference * ref.offset

    def rank(self) -> List[ReferencePitch]:
        # 安定ソート: 同点なら直前の順位を維持する
        self.ranking = sorted(self.ranking, key=lambda ref: ref.score)
        return self.ranking
