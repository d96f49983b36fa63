from __future__ import annotations
import inspect
import logging
from typing import Awaitable, Callable, Union

from kivy.event import EventDispatcher
from kivy.properties import ListProperty, NumericProperty, ObjectProperty

from VocaSheets.errors import ImportParseError
from VocaSheets.models.state import DaySheet, WordEntry, new_id, seed_sheets
from VocaSheets.services.importer import parse_import_text

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[DaySheet], Union[bool, Awaitable[bool]]]


class Library(EventDispatcher):
    """Day sheets plus the active-sheet position."""

    sheets = ListProperty([])
    active_index = NumericProperty(0)
    player = ObjectProperty(None, allownone=True)

    __events__ = ("on_word_toggled",)

    def __init__(self, sheets: list[DaySheet] | None = None, *, seed: bool = False, **kwargs):
        super().__init__(**kwargs)
        if sheets is None:
            sheets = seed_sheets() if seed else []
        self.sheets = list(sheets)
        self.active_index = 0

    def on_word_toggled(self, sheet_index, entry):
        pass

    @property
    def active_sheet(self) -> DaySheet | None:
        if not self.sheets:
            return None
        return self.sheets[int(self.active_index)]

    def active_words(self) -> list[WordEntry]:
        sheet = self.active_sheet
        return list(sheet.words) if sheet else []

    def index_of(self, sheet_id: str) -> int:
        for i, s in enumerate(self.sheets):
            if s.id == sheet_id:
                return i
        return -1

    def select_sheet(self, index: int):
        if 0 <= index < len(self.sheets):
            self.active_index = index

    # ---- Learned ----
    def toggle_learned(self, sheet_index: int, word_id: str) -> bool:
        if not 0 <= sheet_index < len(self.sheets):
            return False
        entry = self.sheets[sheet_index].find_word(word_id)
        if entry is None:
            return False
        entry.learned = not entry.learned
        self.dispatch("on_word_toggled", sheet_index, entry)
        return True

    # ---- Delete ----
    async def delete_sheet(self, sheet_id: str, confirm: ConfirmFn) -> bool:
        """
        Remove a sheet after ``confirm(sheet)`` says yes.

        Playback is stopped right before the removal, since the sheet may hold
        the entry that is sounding. Returns True if a sheet was removed.
        """
        index = self.index_of(sheet_id)
        if index < 0:
            return False
        answer = confirm(self.sheets[index])
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            return False
        # Index neu bestimmen, die Liste kann sich während der Rückfrage geändert haben
        index = self.index_of(sheet_id)
        if index < 0:
            return False
        if self.player is not None:
            self.player.stop()

        active = int(self.active_index)
        remaining = list(self.sheets)
        removed = remaining.pop(index)
        if not remaining:
            new_active = 0
        elif index == active:
            new_active = max(0, index - 1)
        elif index < active:
            new_active = active - 1
        else:
            new_active = active
        # new_active is valid for both lists, so observers never see a bad index
        self.active_index = new_active
        self.sheets = remaining
        logger.info("deleted sheet %r (%d left)", removed.name, len(remaining))
        return True

    # ---- Import ----
    def import_sheet(self, entries: list[WordEntry]) -> DaySheet:
        if not entries:
            raise ImportParseError()
        sheet = DaySheet(new_id("imported-day"), f"Day {len(self.sheets) + 1}", list(entries))
        self.sheets.append(sheet)
        self.active_index = len(self.sheets) - 1
        logger.info("imported %r with %d words", sheet.name, len(entries))
        return sheet

    def import_text(self, text: str | None) -> DaySheet:
        if not (text or "").strip():
            raise ImportParseError()
        return self.import_sheet(parse_import_text(text))
