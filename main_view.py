# v6.1
import flet as ft
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from main_controller import MainController

class MainView:
    """
    メイン画面のレイアウトとUIコンポーネントの定義を行うクラス。
    v6.0: ドーナツチャート (帯域内 / 残り) と判定中の弦の表示を追加。
          メーターは 0-110 ユニットで設計し、目盛り(10-100)を内側に配置。
    v6.1: 無音判定・アタック検出・判定モード・入力形式の設定パネルを追加。
    """
    IN_BAND_COLOR = ft.Colors.GREEN_400
    LEFTOVER_COLOR = ft.Colors.GREY_600

    def __init__(self, controller: "MainController"):
        self.c = controller

        self.result_text = ft.Text(
            value="---", size=36, weight="bold",
            color=ft.Colors.CYAN_200, text_align=ft.TextAlign.CENTER
        )
        self.string_text = ft.Text("判定中の弦: ---", size=12, color=ft.Colors.GREY_400)

        # ドーナツ: [帯域内の量, 残り]
        self.in_band_section = ft.PieChartSection(value=0, color=self.IN_BAND_COLOR, radius=24)
        self.leftover_section = ft.PieChartSection(value=1, color=self.LEFTOVER_COLOR, radius=24)
        self.pie_chart = ft.PieChart(
            sections=[self.in_band_section, self.leftover_section],
            sections_space=0,
            center_space_radius=50,
            width=160, height=160,
        )

        # メーターの設計定数
        # 物理幅 385px / 110ユニット = 1ユニット当たり 3.5px
        self.unit_to_px = 3.5
        self.total_units = 110
        self.meter_width_px = self.total_units * self.unit_to_px

        # 針の初期位置（中央 = 55ユニット目）
        self.meter_needle = ft.Container(
            width=4, height=35, bgcolor=ft.Colors.ORANGE_400, border_radius=2,
            left=self.center_needle_px,
            bottom=0,
            animate_position=ft.Animation(200, ft.AnimationCurve.EASE_OUT_CUBIC)
        )

        self.volume_bar = ft.ProgressBar(
            width=self.meter_width_px,
            value=0,
            color=ft.Colors.GREEN_400
        )

        # --- 設定パネル (歯車アイコンで開閉) ---
        cm = self.c.config_manager
        current_rms_min = cm.get_rms_min()
        self.rms_min_text = ft.Text(f"無音判定レベル: {current_rms_min:.3f}", size=12)
        self.rms_min_slider = ft.Slider(
            min=0.002, max=0.05, value=current_rms_min, divisions=48,
            on_change=self.c.on_rms_min_change, on_change_end=self.c.on_rms_min_change_end
        )

        current_threshold = cm.get_rms_threshold()
        self.rms_threshold_text = ft.Text(f"アタック検出: {current_threshold:.3f}", size=12)
        self.rms_threshold_slider = ft.Slider(
            min=0.002, max=0.03, value=current_threshold, divisions=28,
            on_change=self.c.on_rms_threshold_change, on_change_end=self.c.on_rms_threshold_change_end
        )

        self.reset_mode_switch = ft.Switch(
            label="アタックごとに弦判定をやり直す",
            value=cm.get_reset_scores_on_onset(),
            active_color=ft.Colors.TEAL_400,
            on_change=self.c.on_reset_mode_change
        )

        self.sample_rate_dropdown = ft.Dropdown(
            label="サンプルレート",
            options=[ft.dropdown.Option("44100"), ft.dropdown.Option("48000")],
            value=str(cm.get_sample_rate()),
            on_change=self.c.on_sample_rate_change,
            text_size=12, width=140
        )
        self.frame_size_dropdown = ft.Dropdown(
            label="フレーム長",
            options=[ft.dropdown.Option("2048"), ft.dropdown.Option("4096")],
            value=str(cm.get_frame_size()),
            on_change=self.c.on_frame_size_change,
            text_size=12, width=140
        )

        self.settings_column = ft.Column(
            [
                ft.Divider(height=20, color=ft.Colors.GREY_700),
                self.rms_min_text, self.rms_min_slider,
                self.rms_threshold_text, self.rms_threshold_slider,
                ft.Text("(弦を替えても判定が変わらない時はアタック検出を下げてください)", size=10, color=ft.Colors.GREY_500),
                self.reset_mode_switch,
                ft.Row([self.sample_rate_dropdown, self.frame_size_dropdown], alignment="center"),
            ],
            visible=False, horizontal_alignment="center"
        )

    @property
    def center_needle_px(self) -> float:
        return (55 * self.unit_to_px) - 2

    def needle_px(self, cents: float) -> float:
        # -50cent(10unit) 〜 +50cent(100unit)
        clamped = max(min(cents, 50), -50)
        target_unit = 10 + ((clamped + 50) * 0.9)
        return (target_unit * self.unit_to_px) - 2

    def build(self):
        ticks = []
        for i in range(-50, 51, 10):
            unit_pos = 10 + ((i + 50) * 0.9)
            pixel_pos = unit_pos * self.unit_to_px
            is_main = (i % 50 == 0) or (i == 0)

            ticks.append(
                ft.Container(
                    width=2 if is_main else 1,
                    height=12 if is_main else 6,
                    bgcolor=ft.Colors.GREY_700,
                    left=pixel_pos - (1 if is_main else 0.5),
                    top=5
                )
            )
            if is_main:
                ticks.append(
                    ft.Text(
                        str(i), size=9, color=ft.Colors.GREY_600,
                        left=pixel_pos - 15, top=18, width=30, text_align="center"
                    )
                )

        meter_bg = ft.Container(
            content=ft.Stack([
                ft.Container(
                    width=self.meter_width_px, height=50,
                    bgcolor=ft.Colors.BLACK, border_radius=5
                ),
                *ticks,
                self.meter_needle
            ], width=self.meter_width_px, height=50),
            width=self.meter_width_px,
            height=60,
            border=ft.border.all(1, ft.Colors.GREY_800),
            border_radius=5
        )

        top_panel = ft.Container(
            content=ft.Column([
                ft.Row([
                    ft.Text("ピッチ解析", size=14, color=ft.Colors.GREY_400),
                    ft.IconButton(ft.Icons.SETTINGS, on_click=self.toggle_settings_visibility)
                ], alignment="spaceBetween"),
                ft.Container(content=self.result_text, height=110, alignment=ft.alignment.center),
                ft.Container(content=self.pie_chart, alignment=ft.alignment.center),
                self.string_text,
                meter_bg,
                self.volume_bar,
                self.settings_column,
            ], horizontal_alignment="center"),
            padding=20, bgcolor=ft.Colors.GREY_900, border_radius=15
        )

        return ft.Column([top_panel], expand=True)

    def toggle_settings_visibility(self, e):
        self.settings_column.visible = not self.settings_column.visible
        self.page.update()

    @property
    def page(self): return self.c.page
