from __future__ import annotations
import asyncio
import logging

from kivy.uix.boxlayout import BoxLayout
from kivy.uix.gridlayout import GridLayout
from kivy.uix.scrollview import ScrollView
from kivy.uix.popup import Popup
from kivy.uix.label import Label
from kivy.uix.textinput import TextInput
from kivy.graphics import Color, Rectangle
from kivy.clock import Clock

from VocaSheets.errors import ImportParseError
from VocaSheets.models.library import Library
from VocaSheets.services.playback import PlaybackController
from VocaSheets.ui.widgets import ProgressRing, RoundedButton as Button, WordCard

logger = logging.getLogger(__name__)

IMPORT_EXAMPLE = "resilience\tn.\telasticity, recovery\t弹性；恢复力\nsedentary\tadj.\tinactive, desk-bound\t久坐不动的"


class SheetsScreen(BoxLayout):
    def __init__(self, library: Library, player: PlaybackController, **kwargs):
        super().__init__(**kwargs)
        self.orientation = 'horizontal'
        self.padding = 16
        self.spacing = 16

        self.theme = {
            "bg": (0.07, 0.08, 0.10, 1),
            "surface": (0.12, 0.14, 0.18, 1),
            "learned_surface": (0.10, 0.22, 0.14, 1),
            "text": (0.95, 0.98, 1, 1),
            "muted": (0.78, 0.82, 0.88, 1),
            "primary": (0.20, 0.52, 0.90, 1),
            "success": (0.25, 0.65, 0.38, 1),
            "danger": (0.85, 0.32, 0.35, 1),
            "accent": (0.30, 0.28, 0.62, 1),
            "closeButton": (0.5, 0.5, 0.5, 1),
        }
        self.library = library
        self.player = player
        self._cards: dict[str, WordCard] = {}
        self._tasks: set[asyncio.Future] = set()
        self._refresh_scheduled = False

        with self.canvas.before:
            Color(*self.theme["bg"])
            self.rect = Rectangle(size=self.size, pos=self.pos)
        self.bind(size=self._update_rect, pos=self._update_rect)

        self._build_ui()

        library.bind(sheets=self.schedule_refresh, active_index=self.schedule_refresh,
                     on_word_toggled=self._on_word_toggled)
        player.bind(playing_word_id=self._on_playing_changed,
                    is_playing_sequence=self._on_sequence_changed,
                    on_entry_active=self._scroll_to_entry)
        self.refresh()

    # ---- UI building (Sidebar, Header, Liste) ----
    def _build_ui(self):
        sidebar = BoxLayout(orientation='vertical', size_hint=(0.3, 1), spacing=8)
        sidebar.add_widget(Label(text="[b]DAILY TASKS[/b]", markup=True, font_size=16,
                                 size_hint=(1, None), height=36, color=self.theme["muted"]))
        self.sheet_list = GridLayout(cols=1, spacing=6, size_hint_y=None)
        self.sheet_list.bind(minimum_height=self.sheet_list.setter('height'))
        sv = ScrollView(size_hint=(1, 1))
        sv.add_widget(self.sheet_list)
        sidebar.add_widget(sv)
        import_btn = Button(text="Import words", font_size=20, size_hint=(1, None), height=52,
                            background_color=self.theme["primary"])
        import_btn.bind(on_release=self.open_import_popup)
        sidebar.add_widget(import_btn)
        self.add_widget(sidebar)

        main = BoxLayout(orientation='vertical', spacing=12)
        header = BoxLayout(size_hint=(1, None), height=64, spacing=10)
        self.title_label = Label(text="", font_size=28, halign='left', valign='middle', color=self.theme["text"])
        self.title_label.bind(size=lambda inst, *_: setattr(inst, "text_size", inst.size))
        header.add_widget(self.title_label)
        self.stats_label = Label(text="", font_size=18, size_hint=(None, 1), width=90, color=self.theme["muted"])
        header.add_widget(self.stats_label)
        self.ring = ProgressRing(size_hint=(None, 1), width=64,
                                 track_color=self.theme["surface"], ring_color=self.theme["primary"])
        header.add_widget(self.ring)
        self.play_all_btn = Button(text="Play all", font_size=20, size_hint=(None, 1), width=150,
                                   background_color=self.theme["accent"])
        self.play_all_btn.bind(on_release=self.toggle_play_all)
        header.add_widget(self.play_all_btn)
        main.add_widget(header)

        self.word_list = GridLayout(cols=1, spacing=10, size_hint_y=None)
        self.word_list.bind(minimum_height=self.word_list.setter('height'))
        self.word_scroll = ScrollView(size_hint=(1, 1))
        self.word_scroll.add_widget(self.word_list)
        main.add_widget(self.word_scroll)
        self.add_widget(main)

    def _update_rect(self, instance, value):
        self.rect.pos = instance.pos
        self.rect.size = instance.size

    # ---- Refresh ----
    def schedule_refresh(self, *_):
        if self._refresh_scheduled:
            return
        self._refresh_scheduled = True
        Clock.schedule_once(self._run_refresh, 0)

    def _run_refresh(self, dt):
        self._refresh_scheduled = False
        self.refresh()

    def refresh(self):
        self._rebuild_sheet_list()
        self._rebuild_word_list()
        self._update_stats()

    def _rebuild_sheet_list(self):
        self.sheet_list.clear_widgets()
        active = int(self.library.active_index)
        for idx, sheet in enumerate(self.library.sheets):
            row = BoxLayout(size_hint_y=None, height=48, spacing=4)
            btn = Button(text=f"{sheet.name} ({sheet.learned_count}/{sheet.total})", font_size=18,
                         background_color=self.theme["primary"] if idx == active else self.theme["surface"])
            btn.bind(on_release=lambda *_, i=idx: self.library.select_sheet(i))
            row.add_widget(btn)
            del_btn = Button(text="x", font_size=18, size_hint=(None, 1), width=44,
                             background_color=self.theme["danger"])
            del_btn.bind(on_release=lambda *_, sid=sheet.id: self.request_delete(sid))
            row.add_widget(del_btn)
            self.sheet_list.add_widget(row)

    def _rebuild_word_list(self):
        self.word_list.clear_widgets()
        self._cards = {}
        sheet = self.library.active_sheet
        if sheet is None:
            self.title_label.text = "Ready to learn?"
            hint = Label(text="Import a tab-separated word list to create your first day.",
                         font_size=20, size_hint_y=None, height=80, color=self.theme["muted"])
            self.word_list.add_widget(hint)
            return
        self.title_label.text = sheet.name
        for entry in sheet.words:
            card = WordCard(entry=entry, theme=self.theme,
                            toggle_callback=self._toggle_entry, play_callback=self._play_entry)
            card.playing = entry.id == self.player.playing_word_id
            self._cards[entry.id] = card
            self.word_list.add_widget(card)

    def _update_stats(self):
        sheet = self.library.active_sheet
        learned = sheet.learned_count if sheet else 0
        total = sheet.total if sheet else 0
        self.stats_label.text = f"{learned} / {total}"
        self.ring.learned = learned
        self.ring.total = total
        self.play_all_btn.disabled = total == 0
        self.play_all_btn.text = "Stop" if self.player.is_playing_sequence else "Play all"

    # ---- Events from core ----
    def _on_word_toggled(self, library, sheet_index, entry):
        card = self._cards.get(entry.id)
        if card is not None:
            card.refresh()
        self._update_stats()
        self._rebuild_sheet_list()

    def _on_playing_changed(self, player, word_id):
        for wid, card in self._cards.items():
            card.playing = wid == word_id

    def _on_sequence_changed(self, player, running):
        self.play_all_btn.text = "Stop" if running else "Play all"

    def _scroll_to_entry(self, player, entry):
        card = self._cards.get(entry.id)
        if card is None or card.parent is None:
            return
        self.word_scroll.scroll_to(card, padding=40, animate=True)

    # ---- User actions ----
    def spawn(self, coro):
        fut = asyncio.ensure_future(coro)
        self._tasks.add(fut)
        fut.add_done_callback(self._task_done)
        return fut

    def _task_done(self, fut):
        self._tasks.discard(fut)
        if not fut.cancelled() and fut.exception() is not None:
            logger.error("background task failed", exc_info=fut.exception())

    def _toggle_entry(self, entry):
        self.library.toggle_learned(int(self.library.active_index), entry.id)

    def _play_entry(self, entry):
        self.spawn(self.player.play_word(entry))

    def toggle_play_all(self, *_):
        self.spawn(self.player.play_all(self.library.active_words()))

    def request_delete(self, sheet_id: str):
        self.spawn(self.library.delete_sheet(sheet_id, self.ask_confirm))

    # ---- Popups ----
    def ask_confirm(self, sheet) -> asyncio.Future:
        fut = asyncio.get_running_loop().create_future()
        content = BoxLayout(orientation='vertical', spacing=10, padding=12)
        content.add_widget(Label(text=f'Are you sure you want to delete "{sheet.name}"?', font_size=20))
        bar = BoxLayout(size_hint=(1, 0.35), spacing=10)
        no_btn = Button(text="Cancel", font_size=20, background_color=self.theme["closeButton"])
        yes_btn = Button(text="Delete", font_size=20, background_color=self.theme["danger"])
        bar.add_widget(no_btn); bar.add_widget(yes_btn)
        content.add_widget(bar)
        popup = Popup(title="Delete day", content=content, size_hint=(0.7, 0.35), auto_dismiss=True)

        def _answer(value, close=True):
            if not fut.done():
                fut.set_result(value)
            if close:
                popup.dismiss()
        no_btn.bind(on_release=lambda *_: _answer(False))
        yes_btn.bind(on_release=lambda *_: _answer(True))
        popup.bind(on_dismiss=lambda *_: _answer(False, close=False))
        popup.open()
        return fut

    def show_error_popup(self, message, duration: float | None = None):
        popup = Popup(title='Notice', content=Label(text=message), size_hint=(0.8, 0.4))
        popup.open()
        if duration:
            Clock.schedule_once(lambda *_: popup.dismiss(), duration)

    def open_import_popup(self, *_):
        content = BoxLayout(orientation='vertical', spacing=10, padding=12)
        info = Label(
            text="Paste one word per line: word, part of speech, synonyms, translation (tab-separated).\n"
                 "All imported words will be grouped into a single new 'Day'.",
            font_size=16, size_hint=(1, 0.15), color=(0.9, 0.95, 1, 1)
        )
        content.add_widget(info)
        self.import_input = TextInput(text="", hint_text=IMPORT_EXAMPLE, multiline=True, font_size=20,
                                      size_hint=(1, 0.67))
        content.add_widget(self.import_input)
        bar = BoxLayout(size_hint=(1, 0.18), spacing=10)
        cancel_btn = Button(text="Cancel", font_size=20, background_color=self.theme["closeButton"])
        add_btn = Button(text="Create Day", font_size=20, background_color=self.theme["success"])
        bar.add_widget(cancel_btn); bar.add_widget(add_btn)
        content.add_widget(bar)
        self.import_popup = Popup(title="Import Vocabulary", content=content, size_hint=(0.9, 0.9),
                                  auto_dismiss=True)
        cancel_btn.bind(on_release=lambda *_: self.import_popup.dismiss())
        add_btn.bind(on_release=self._commit_import)
        self.import_popup.open()

    def _commit_import(self, *_):
        text = self.import_input.text or ""
        if not text.strip():
            return
        try:
            sheet = self.library.import_text(text)
        except ImportParseError as e:
            self.show_error_popup(str(e))
            return
        self.import_popup.dismiss()
        self.show_error_popup(f"{sheet.total} words added to {sheet.name}.", duration=2)
