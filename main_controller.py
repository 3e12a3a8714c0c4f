# v6.1
import logging
import flet as ft
from typing import Optional, Dict, Any

from pitchdetector import PitchDetector
from config_manager import ConfigManager
from pitchhandler.note_mapper import PitchEstimate

class MainController:
    """
    アプリのロジック、イベント処理、状態管理を担当するクラス。
    v6.0: TunerEngine の推定結果 (PitchEstimate) を受け取り、
          音名・ドーナツチャート・セントメーターへ反映する。
    v6.1: 感度・判定モードの変更を保存し、検出器へ反映する。
    """
    UPDATE_EVERY = 5

    def __init__(self, page: ft.Page, config_manager: ConfigManager):
        self.page = page
        self.is_closing = False

        self.config_manager = config_manager

        config_dict = self.config_manager.get_all_settings_dict()
        self.pitch_detector = PitchDetector(
            self._update_ui_callback,
            config=config_dict
        )

        self.view: Optional["MainView"] = None
        self._callback_count = 0

    def set_view(self, view: "MainView"):
        self.view = view

    def start(self):
        self.pitch_detector.start_stream()
        if not self.pitch_detector.is_running:
            logging.error("マイクを開始できませんでした。")
            self.view.result_text.value = "マイクエラー"
            self.view.result_text.color = ft.Colors.RED_300
            self.page.update()

    def apply_settings(self, new_settings: Dict[str, Any]):
        """
        設定を config.ini に保存し、検出器へ反映する。
        サンプルレート・フレーム長の変更時は検出器側でストリームが再起動される。
        """
        accepted: Dict[str, Any] = {}
        for key, value in new_settings.items():
            setter = getattr(self.config_manager, f"set_{key}", None)
            if setter is None:
                logging.warning(f"Unknown setting ignored: {key}")
                continue
            setter(value)
            accepted[key] = value

        if accepted:
            self.pitch_detector.update_settings(accepted)

    # --- Settings Events ---
    def on_rms_min_change(self, e):
        self.view.rms_min_text.value = f"無音判定レベル: {e.control.value:.3f}"
        self.page.update()

    def on_rms_min_change_end(self, e):
        self.apply_settings({"rms_min": round(float(e.control.value), 4)})

    def on_rms_threshold_change(self, e):
        self.view.rms_threshold_text.value = f"アタック検出: {e.control.value:.3f}"
        self.page.update()

    def on_rms_threshold_change_end(self, e):
        self.apply_settings({"rms_threshold": round(float(e.control.value), 4)})

    def on_reset_mode_change(self, e):
        self.apply_settings({"reset_scores_on_onset": bool(e.control.value)})

    def on_sample_rate_change(self, e):
        self.apply_settings({"sample_rate": int(e.control.value)})

    def on_frame_size_change(self, e):
        self.apply_settings({"frame_size": int(e.control.value)})

    def _update_ui_callback(self, result_text: str, volume: float, estimate: PitchEstimate):
        if self.is_closing or not self.view: return
        self._callback_count += 1

        self.view.volume_bar.value = volume

        # 無音フレームでは直前の表示を残す (針が毎回中央に戻るとちらつくため)
        if estimate.has_pitch:
            self.view.result_text.value = result_text
            self.view.result_text.color = ft.Colors.GREEN_300 if estimate.in_tune else ft.Colors.CYAN_200

            self.view.in_band_section.value = estimate.in_band_value
            self.view.leftover_section.value = estimate.leftover_value

            if estimate.cents is not None:
                self.view.meter_needle.left = self.view.needle_px(estimate.cents)
                self.view.meter_needle.bgcolor = ft.Colors.GREEN_400 if estimate.in_tune else ft.Colors.ORANGE_400
            else:
                self.view.meter_needle.left = self.view.center_needle_px
                self.view.meter_needle.bgcolor = ft.Colors.ORANGE_400

        assumed = self.pitch_detector.analyzer.engine.assumed_string
        self.view.string_text.value = f"判定中の弦: {assumed.name}"

        if self._callback_count % self.UPDATE_EVERY == 0:
            self.page.update()

    def cleanup(self):
        self.is_closing = True
        self.pitch_detector.stop_stream()
