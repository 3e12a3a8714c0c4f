# v2.0
import configparser
import logging
from pathlib import Path
from typing import Dict, Any


class ConfigManager:
    """
    config.ini ファイルの読み書きを管理するクラス。
    v2.0: 弦判定エンジン (TunerEngine) 用の項目に置き換え。
    """
    SEC_SETTINGS = "SETTINGS"

    DEFAULTS = {
        "sample_rate": "44100",
        "frame_size": "2048",
        "rms_min": "0.008",
        "rms_threshold": "0.006",
        "assess_window_ms": "250",
        "search_range": "10",
        "tolerance": "0.001",
        "reset_scores_on_onset": "False",
        "log_level": "INFO",
    }

    def __init__(self, config_path: str = "config.ini"):
        self.config_path = Path(config_path)
        self.config = configparser.ConfigParser()
        self._load_config()

    def _load_config(self):
        if self.config_path.exists():
            try:
                self.config.read(self.config_path, encoding="utf-8")
            except configparser.Error as e:
                logging.error(f"Config read error: {e}")

        if not self.config.has_section(self.SEC_SETTINGS):
            self._create_default_config()

    def _create_default_config(self):
        self._ensure_section(self.SEC_SETTINGS)
        self.config[self.SEC_SETTINGS] = dict(self.DEFAULTS)
        self._save_to_disk()

    def _save_to_disk(self):
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                self.config.write(f)
        except OSError as e:
            logging.error(f"Config save error: {e}")

    def _ensure_section(self, section: str):
        if not self.config.has_section(section):
            self.config.add_section(section)

    def _set(self, key: str, value: str):
        self._ensure_section(self.SEC_SETTINGS)
        self.config[self.SEC_SETTINGS][key] = value
        self._save_to_disk()

    # --- Audio ---
    def get_sample_rate(self) -> int:
        return self.config.getint(self.SEC_SETTINGS, "sample_rate", fallback=44100)

    def set_sample_rate(self, value: int):
        self._set("sample_rate", str(int(value)))

    def get_frame_size(self) -> int:
        return self.config.getint(self.SEC_SETTINGS, "frame_size", fallback=2048)

    def set_frame_size(self, value: int):
        self._set("frame_size", str(int(value)))

    # --- Energy Gate ---
    def get_rms_min(self) -> float:
        return self.config.getfloat(self.SEC_SETTINGS, "rms_min", fallback=0.008)

    def set_rms_min(self, value: float):
        self._set("rms_min", f"{value:.4f}")

    def get_rms_threshold(self) -> float:
        return self.config.getfloat(self.SEC_SETTINGS, "rms_threshold", fallback=0.006)

    def set_rms_threshold(self, value: float):
        self._set("rms_threshold", f"{value:.4f}")

    # --- String Assessment / Refinement ---
    def get_assess_window_ms(self) -> float:
        return self.config.getfloat(self.SEC_SETTINGS, "assess_window_ms", fallback=250.0)

    def get_search_range(self) -> int:
        return self.config.getint(self.SEC_SETTINGS, "search_range", fallback=10)

    def get_tolerance(self) -> float:
        return self.config.getfloat(self.SEC_SETTINGS, "tolerance", fallback=0.001)

    def get_reset_scores_on_onset(self) -> bool:
        return self.config.getboolean(self.SEC_SETTINGS, "reset_scores_on_onset", fallback=False)

    def set_reset_scores_on_onset(self, value: bool):
        self._set("reset_scores_on_onset", str(value))

    # --- Logging ---
    def get_log_level(self) -> str:
        return self.config.get(self.SEC_SETTINGS, "log_level", fallback="INFO").upper()

    def get_all_settings_dict(self) -> Dict[str, Any]:
        """PitchDetector / TunerEngine へ渡すための全設定辞書を作成"""
        return {
            "sample_rate": self.get_sample_rate(),
            "frame_size": self.get_frame_size(),
            "rms_min": self.get_rms_min(),
            "rms_threshold": self.get_rms_threshold(),
            "assess_window_ms": self.get_assess_window_ms(),
            "search_range": self.get_search_range(),
            "tolerance": self.get_tolerance(),
            "reset_scores_on_onset": self.get_reset_scores_on_onset(),
        }
