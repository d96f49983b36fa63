from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.widget import Widget
from kivy.properties import BooleanProperty, ListProperty, NumericProperty, ObjectProperty, StringProperty
from kivy.graphics import Color, Line, Rectangle, RoundedRectangle
from kivy.core.text import Label as CoreLabel
from kivy.metrics import sp


class RoundedButton(Button):
    corner_radius = NumericProperty(12)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.background_normal = ""
        self.background_down = ""
        self._fill = tuple(self.background_color)
        # Hintergrund selbst zeichnen, Button-Textur transparent
        self.background_color = (0, 0, 0, 0)
        with self.canvas.before:
            self._bg_color_instr = Color(*self._fill)
            self._bg_rect = RoundedRectangle(pos=self.pos, size=self.size, radius=[self.corner_radius])
        self.bind(pos=self._update_canvas, size=self._update_canvas, state=self._update_canvas,
                  corner_radius=self._update_canvas)

    def set_fill(self, rgba):
        self._fill = tuple(rgba)
        self._update_canvas()

    def _update_canvas(self, *_):
        r, g, b, a = self._fill
        if self.state == "down":
            r, g, b = r * 0.8, g * 0.8, b * 0.8
        self._bg_color_instr.rgba = (r, g, b, a)
        self._bg_rect.pos = self.pos
        self._bg_rect.size = self.size
        self._bg_rect.radius = [self.corner_radius]


class ProgressRing(Widget):
    """Circular learned/total indicator for the active sheet."""
    learned = NumericProperty(0)
    total = NumericProperty(0)
    thickness = NumericProperty(6)
    track_color = ListProperty([0.25, 0.27, 0.32, 1])
    ring_color = ListProperty([0.35, 0.40, 0.95, 1])
    label_color = ListProperty([0.95, 0.98, 1, 1])
    label_sp = NumericProperty(14)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        cb = self._redraw
        self.bind(pos=cb, size=cb, learned=cb, total=cb, thickness=cb,
                  track_color=cb, ring_color=cb)

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(100 * self.learned / self.total)

    def _redraw(self, *_):
        self.canvas.clear()
        d = max(1, min(self.width, self.height) - self.thickness * 2)
        cx, cy = self.center
        circle = (cx, cy, d / 2.0)
        with self.canvas:
            Color(*self.track_color)
            Line(circle=circle, width=self.thickness / 2.0)
            if self.percent:
                Color(*self.ring_color)
                Line(circle=circle + (0, 360 * self.percent / 100.0), width=self.thickness / 2.0, cap="round")
            lbl = CoreLabel(text=f"{self.percent}%", font_size=sp(self.label_sp), color=self.label_color)
            lbl.refresh()
            tw, th = lbl.texture.size
            Color(1, 1, 1, 1)
            Rectangle(texture=lbl.texture, pos=(cx - tw / 2.0, cy - th / 2.0), size=(tw, th))


class WordCard(BoxLayout):
    entry = ObjectProperty(None)
    playing = BooleanProperty(False)
    theme = ObjectProperty(None)
    toggle_callback = ObjectProperty(None)
    play_callback = ObjectProperty(None)
    status_text = StringProperty("Study")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.orientation = "vertical"
        self.size_hint_y = None
        self.height = 170
        self.padding = 12
        self.spacing = 4
        t = self.theme
        e = self.entry

        with self.canvas.before:
            self._bg_col = Color(*t["surface"])
            self._bg = RoundedRectangle(pos=self.pos, size=self.size, radius=[14])
        self.bind(pos=self._sync_bg, size=self._sync_bg, playing=self._sync_bg)

        top = BoxLayout(size_hint=(1, 0.4), spacing=8)
        title = Label(text=f"[b]{e.word}[/b]  [i]{e.pos}[/i]", markup=True, font_size=26,
                      halign="left", valign="middle", color=t["text"])
        title.bind(size=lambda inst, *_: setattr(inst, "text_size", inst.size))
        top.add_widget(title)
        self.learned_btn = RoundedButton(size_hint=(None, 1), width=110, font_size=18)
        self.learned_btn.bind(on_release=lambda *_: self.toggle_callback and self.toggle_callback(e))
        top.add_widget(self.learned_btn)
        self.play_btn = RoundedButton(text="Play", size_hint=(None, 1), width=90, font_size=18,
                                      background_color=t["primary"])
        self.play_btn.bind(on_release=lambda *_: self.play_callback and self.play_callback(e))
        top.add_widget(self.play_btn)
        self.add_widget(top)

        for text, color in ((e.replacement, t["muted"]), (e.translation, t["text"])):
            if not text:
                continue
            lbl = Label(text=text, font_size=20, halign="left", valign="top", color=color)
            lbl.bind(size=lambda inst, *_: setattr(inst, "text_size", inst.size))
            self.add_widget(lbl)
        self.refresh()

    def refresh(self):
        t = self.theme
        learned = bool(self.entry.learned)
        self.status_text = "Learned" if learned else "Study"
        self.learned_btn.text = self.status_text
        self.learned_btn.set_fill(t["success"] if learned else t["closeButton"])
        self._sync_bg()

    def _sync_bg(self, *_):
        t = self.theme
        if self.playing:
            self._bg_col.rgba = t["accent"]
        elif self.entry.learned:
            self._bg_col.rgba = t["learned_surface"]
        else:
            self._bg_col.rgba = t["surface"]
        self._bg.pos = self.pos
        self._bg.size = self.size
