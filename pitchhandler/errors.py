# v1.0
class TunerError(ValueError):
    """チューナーエンジンの基底例外。"""


class InvalidSampleRate(TunerError):
    """サンプルレートが0以下、または有限値でない場合に送出される。エンジンは生成されない。"""


class InvalidFrame(TunerError):
    """
    フレームの長さ・値が不正な場合に送出される。
    送出時点ではエンジンの状態 (last_rms, 評価ウィンドウ, スコア) は一切変更されていない。
    """
