"""
Sequenced text-to-speech playback.

The controller owns a single audio slot. Starting anything stops whatever is
sounding, so at most one entry is ever audible. ``play_all`` walks a word list
in order with a pause between items and can be cancelled at any point by
``stop()``; a cancelled sequence never issues another audio request.

Everything runs on the asyncio loop kivy is driven by; the only suspension
points are the audio fetch, waiting for playback to end, and the pause.
"""
from __future__ import annotations
import asyncio
from contextlib import contextmanager
import logging
from typing import Iterable, Optional

from kivy.event import EventDispatcher
from kivy.properties import BooleanProperty, StringProperty

from VocaSheets.errors import PlaybackError
from VocaSheets.models.state import WordEntry

logger = logging.getLogger(__name__)

IDLE = "idle"
PLAYING_ONE = "playing_one"
PLAYING_SEQUENCE = "playing_sequence"


class CancelToken:
    """Cooperative cancellation flag for one playback or one sequence run."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``; wakes early on cancel. True if still live."""
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return not self.cancelled


class PlaybackController(EventDispatcher):
    playing_word_id = StringProperty(None, allownone=True)
    is_playing_sequence = BooleanProperty(False)

    __events__ = ("on_entry_active",)

    def __init__(self, tts, pause: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.tts = tts
        self.pause = pause
        self._clip = None
        self._playback: Optional[CancelToken] = None  # single play_word
        self._sequence: Optional[CancelToken] = None  # running play_all
        self._sounding: Optional[CancelToken] = None  # owner of playing_word_id

    def on_entry_active(self, entry):
        pass

    @property
    def state(self) -> str:
        if self._sequence is not None:
            return PLAYING_SEQUENCE
        if self._playback is not None:
            return PLAYING_ONE
        return IDLE

    # ---- Stop ----
    def stop(self):
        """Halt audio, drop the queue and clear every flag. Idempotent."""
        if self._sequence is not None or self._playback is not None:
            logger.debug("stopping playback (state=%s)", self.state)
        for token in (self._sequence, self._playback):
            if token is not None:
                token.cancel()
        self._sequence = None
        self._playback = None
        self._sounding = None
        self._release_clip()
        self.playing_word_id = None
        self.is_playing_sequence = False

    # ---- Single word ----
    async def play_word(self, entry: WordEntry):
        """Speak one entry, replacing anything currently playing."""
        self.stop()
        token = CancelToken()
        self._playback = token
        try:
            await self._play_entry(entry, token)
        finally:
            if self._playback is token:
                self._playback = None

    # ---- Sequence ----
    async def play_all(self, entries: Iterable[WordEntry]):
        """Speak all entries in order. Calling it again while running stops it."""
        if self.is_playing_sequence:
            self.stop()
            return
        entries = list(entries)
        if not entries:
            return
        self.stop()
        token = CancelToken()
        self._sequence = token
        self.is_playing_sequence = True
        logger.info("sequence started (%d words)", len(entries))
        try:
            await self._run_sequence(entries, token)
        finally:
            if self._sequence is token:
                self._sequence = None
                self.is_playing_sequence = False
                logger.info("sequence finished")

    async def _run_sequence(self, entries: list[WordEntry], token: CancelToken):
        for idx, entry in enumerate(entries):
            if token.cancelled:
                return
            if idx and not await token.sleep(self.pause):
                return
            try:
                self.dispatch("on_entry_active", entry)
            except Exception:
                logger.exception("scroll hint for %r failed", entry.word)
            await self._play_entry(entry, token)

    # ---- Internals ----
    async def _play_entry(self, entry: WordEntry, token: CancelToken):
        self._sounding = token
        self.playing_word_id = entry.id
        try:
            clip = await self.tts.synthesize(entry.phrase)
            if token.cancelled:
                clip.stop()
                return
            with self._hold(clip):
                await clip.play()
        except PlaybackError as e:
            logger.warning("audio for %r failed, skipping: %s", entry.word, e)
        except Exception:
            logger.exception("unexpected error playing %r, skipping", entry.word)
        finally:
            if self._sounding is token:
                self._sounding = None
                self.playing_word_id = None

    @contextmanager
    def _hold(self, clip):
        self._release_clip()
        self._clip = clip
        try:
            yield clip
        finally:
            if self._clip is clip:
                self._clip = None
            clip.stop()

    def _release_clip(self):
        clip, self._clip = self._clip, None
        if clip is not None:
            clip.stop()
