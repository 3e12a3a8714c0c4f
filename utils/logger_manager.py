# v3.1
#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

class LoggerManager:
    """
    アプリケーション全体のロギングを管理するクラス。
    解析エラーと起動・停止イベントに焦点を当て、ログファイルの肥大化を防止します。
    """

    @staticmethod
    def setup_logging(log_dir: Path, log_file: str = "tuner.log", level: Union[int, str] = logging.INFO) -> Path:
        """
        ロギング設定を初期化し、ログファイルのパスを返します。
        - ログローテーション: 1MBごとにローテーション、最大3世代保持。
        - ログレベル: 既定は INFO。DEBUG にすると弦判定の経過 (スコア・順位) も出力されます。
        """
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / log_file

        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        formatter = logging.Formatter(
            fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # ファイル出力（ローテーション付き）
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=1024 * 1024, # 1MB
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        # コンソール出力
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)

        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        # 既存のハンドラを閉じてから入れ替える
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        # 外部ライブラリ（flet等）のログ抑制
        logging.getLogger('flet').setLevel(logging.WARNING)
        logging.getLogger('flet_core').setLevel(logging.WARNING)

        logging.info("--- Logging System Initialized ---")
        logging.info(f"Log file: {log_path}")
        return log_path
