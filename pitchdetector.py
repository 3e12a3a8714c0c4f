# v6.1
import logging
import time
import threading
import queue
from typing import Callable, Optional, Dict, Any

# マイク入力は追加インストール (pip install .[audio]) 。無い場合は解析だけ動く。
try:
    import pyaudio
except ImportError:
    pyaudio = None

try:
    from pitch_analyzer import PitchAnalyzer
    from pitchhandler.note_mapper import PitchEstimate
except ImportError:
    logging.error("Required module (pitch_analyzer.py) not found.")
    raise


class PitchDetector:
    """
    マイク入力 (pyaudio) を受け取り、別スレッドで解析して UI へ通知するクラス。

    - pyaudio のコールバック (Producer) は (バイト列, 受信時刻ms) をキューに積むだけ
    - 解析スレッド (Consumer) がキューから取り出して PitchAnalyzer に渡す
    - 解析と設定変更が衝突しないよう threading.Lock で排他する
    """
    RATE = 44100
    CHUNK = 2048

    def __init__(self,
                 ui_callback: Callable[[str, float, PitchEstimate], None],
                 config: Optional[Dict[str, Any]] = None):

        self.ui_callback = ui_callback
        self.pa: Optional["pyaudio.PyAudio"] = None
        self.stream: Optional["pyaudio.Stream"] = None
        self._is_running = False

        self.settings: Dict[str, Any] = {
            "sample_rate": self.RATE,
            "frame_size": self.CHUNK,
        }
        if config:
            self.settings.update(config)

        self.analyzer = PitchAnalyzer(self.settings)

        self.audio_queue = queue.Queue(maxsize=10)

        self.analysis_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self.analysis_lock = threading.Lock()

        logging.info(f"PitchDetector initialized (rate={self.rate}, chunk={self.chunk}).")

    @property
    def rate(self) -> int:
        return int(self.settings.get("sample_rate", self.RATE))

    @property
    def chunk(self) -> int:
        return int(self.settings.get("frame_size", self.CHUNK))

    @property
    def is_running(self) -> bool:
        return self._is_running

    def update_settings(self, new_config: Dict[str, Any]):
        """
        設定更新。
        サンプルレート・フレーム長が変わる場合はストリームを止めてから適用し、再開する。
        """
        restart_keys = ["sample_rate", "frame_size"]
        needs_restart = any(
            key in new_config and new_config[key] != self.settings.get(key)
            for key in restart_keys
        )
        self.settings.update(new_config)
        logging.info(f"Settings updated: {new_config} (restart={needs_restart})")

        if needs_restart:
            was_running = self._is_running
            if was_running:
                self.stop_stream()

            with self.analysis_lock:
                self.analyzer.update_settings(new_config)

            if was_running:
                time.sleep(0.1)
                self.start_stream()
        else:
            with self.analysis_lock:
                self.analyzer.update_settings(new_config)

    def start_stream(self):
        if self.stream and self.stream.is_active(): return
        if pyaudio is None:
            logging.error("pyaudio is not installed. Install the audio extra: pip install .[audio]")
            return

        try:
            self.pa = pyaudio.PyAudio()
            self._is_running = True
            self.stop_event.clear()

            # 状態リセット (前回の評価ウィンドウ・順位を持ち越さない)
            with self.analysis_lock:
                self.analyzer.reset_state()

            with self.audio_queue.mutex:
                self.audio_queue.queue.clear()

            self.analysis_thread = threading.Thread(target=self._analysis_loop, daemon=True)
            self.analysis_thread.start()

            self.stream = self.pa.open(
                format=pyaudio.paInt16, channels=1, rate=self.rate,
                input=True, frames_per_buffer=self.chunk,
                stream_callback=self._pyaudio_callback
            )
            self.stream.start_stream()
            logging.info("Audio stream & Analysis thread started.")
        except Exception as e:
            logging.error(f"Stream start error: {e}")
            self.stop_stream()

    def stop_stream(self):
        self._is_running = False
        self.stop_event.set()

        if self.stream:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logging.warning(f"Stream close error: {e}")
            self.stream = None

        if self.pa:
            self.pa.terminate()
            self.pa = None

        if self.analysis_thread and self.analysis_thread.is_alive():
            self.analysis_thread.join(timeout=0.5)
        logging.info("Audio stream stopped.")

    def _pyaudio_callback(self, in_data, frame_count, time_info, status):
        if not self._is_running: return (None, pyaudio.paComplete)

        try:
            self.audio_queue.put_nowait((in_data, time.monotonic() * 1000.0))
        except queue.Full:
            # 解析が追いつかない場合は古いフレームを優先し、新しいフレームを捨てる
            pass

        return (in_data, pyaudio.paContinue)

    def _analysis_loop(self):
        """[Consumer] 解析スレッド"""
        while not self.stop_event.is_set():
            try:
                raw_data, timestamp_ms = self.audio_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                with self.analysis_lock:
                    result_string, display_volume, estimate = self.analyzer.process(raw_data, timestamp_ms)

                if self.ui_callback:
                    self.ui_callback(result_string, display_volume, estimate)
            except Exception as e:
                # 1フレームの失敗でループは止めない
                logging.warning(f"Analysis Loop Error: {e}")
            finally:
                self.audio_queue.task_done()
