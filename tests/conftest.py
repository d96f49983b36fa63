import asyncio
import os
import sys
import types

os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_LOG_MODE", "PYTHON")

import pytest

try:
    import sounddevice  # noqa: F401
except OSError:
    # PortAudio missing on this host; tests patch every sounddevice call anyway
    _sd = types.ModuleType("sounddevice")

    class PortAudioError(Exception):
        pass

    _sd.PortAudioError = PortAudioError
    for _name in ("play", "wait", "stop"):
        setattr(_sd, _name, lambda *a, **kw: None)
    sys.modules["sounddevice"] = _sd

from VocaSheets.errors import PlaybackError
from VocaSheets.models.state import DaySheet, WordEntry


class FakeClip:
    """Stands in for AudioClip; finishes when the test says so."""

    def __init__(self, phrase, auto_finish=False):
        self.phrase = phrase
        self.auto_finish = auto_finish
        self.started = False
        self.stopped = False
        self._finished = asyncio.Event()

    async def play(self):
        self.started = True
        if self.auto_finish:
            await asyncio.sleep(0)
            return
        await self._finished.wait()

    def finish(self):
        self._finished.set()

    def stop(self):
        self.stopped = True
        self._finished.set()


class FakeTTS:
    def __init__(self):
        self.requests = []
        self.clips = []
        self.failing = set()
        self.raising = {}  # phrase -> exception raised instead of a clip
        self.auto_finish = False
        self.gate = None  # asyncio.Event holding the "network" open

    async def synthesize(self, phrase):
        self.requests.append(phrase)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if phrase in self.failing:
            raise PlaybackError("simulated network failure", phrase)
        if phrase in self.raising:
            raise self.raising[phrase]
        clip = FakeClip(phrase, auto_finish=self.auto_finish)
        self.clips.append(clip)
        return clip


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


def make_sheet(sheet_id, n=3, name=None):
    words = [WordEntry(f"{sheet_id}-w{i}", f"word{i}", "n.", f"syn{i}", f"tr{i}") for i in range(n)]
    return DaySheet(sheet_id, name or sheet_id, words)


@pytest.fixture
def fake_tts():
    return FakeTTS()


@pytest.fixture
def sheet():
    return make_sheet("s1")
