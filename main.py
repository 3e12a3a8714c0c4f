# v6.0
import flet as ft
import logging
import sys
from pathlib import Path

from utils.logger_manager import LoggerManager
from config_manager import ConfigManager
from main_controller import MainController
from main_view import MainView

# --- パス設定 ---
def get_base_dir() -> Path:
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).resolve().parent

BASE_DIR = get_base_dir()
LOG_DIR = BASE_DIR / "log"
CONFIG_FILE_PATH = BASE_DIR / "config.ini"


def main(page: ft.Page):
    config_manager = ConfigManager(str(CONFIG_FILE_PATH))
    LoggerManager.setup_logging(LOG_DIR, level=config_manager.get_log_level())

    page.title = "🎸 ギターチューナー"
    page.window.width = 450
    page.window.height = 620
    page.window.resizable = False
    page.padding = 20
    page.scroll = ft.ScrollMode.AUTO
    page.theme_mode = ft.ThemeMode.DARK

    try:
        controller = MainController(page, config_manager)
    except Exception as e:
        logging.error(f"初期化エラー: {e}")
        page.add(ft.Text(f"起動エラー: {e}", color="red"))
        return

    view = MainView(controller)
    controller.set_view(view)
    page.add(view.build())

    def on_window_event(e):
        if e.data == "close":
            logging.info("終了処理...")
            controller.cleanup()
            page.window.destroy()

    page.window.prevent_close = True
    page.window.on_event = on_window_event

    controller.start()


if __name__ == "__main__":
    ft.app(target=main)
