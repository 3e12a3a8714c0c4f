import configparser

from config_manager import ConfigManager


def test_creates_default_config(tmp_path):
    path = tmp_path / "config.ini"
    manager = ConfigManager(str(path))

    assert path.exists()
    assert manager.get_all_settings_dict() == {
        "sample_rate": 44100,
        "frame_size": 2048,
        "rms_min": 0.008,
        "rms_threshold": 0.006,
        "assess_window_ms": 250.0,
        "search_range": 10,
        "tolerance": 0.001,
        "reset_scores_on_onset": False,
    }
    assert manager.get_log_level() == "INFO"


def test_settings_persist_between_instances(tmp_path):
    path = tmp_path / "config.ini"
    manager = ConfigManager(str(path))
    manager.set_rms_min(0.02)
    manager.set_rms_threshold(0.01)
    manager.set_sample_rate(48000)
    manager.set_frame_size(4096)
    manager.set_reset_scores_on_onset(True)

    reloaded = ConfigManager(str(path))

    assert reloaded.get_rms_min() == 0.02
    assert reloaded.get_rms_threshold() == 0.01
    assert reloaded.get_sample_rate() == 48000
    assert reloaded.get_frame_size() == 4096
    assert reloaded.get_reset_scores_on_onset() is True


def test_missing_keys_fall_back_to_defaults(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[SETTINGS]\nrms_min = 0.01\nlog_level = debug\n", encoding="utf-8")

    manager = ConfigManager(str(path))

    assert manager.get_rms_min() == 0.01
    assert manager.get_search_range() == 10
    assert manager.get_tolerance() == 0.001
    assert manager.get_log_level() == "DEBUG"


def test_broken_file_is_replaced_with_defaults(tmp_path, caplog):
    path = tmp_path / "config.ini"
    path.write_text("this is not an ini file", encoding="utf-8")

    manager = ConfigManager(str(path))

    assert "Config read error" in caplog.text
    assert manager.get_frame_size() == 2048
    parser = configparser.ConfigParser()
    parser.read(path, encoding="utf-8")
    assert parser.has_section(ConfigManager.SEC_SETTINGS)
