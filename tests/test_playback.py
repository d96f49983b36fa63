"""
Tests for the playback controller: mutual exclusion, sequencing and cancellation.
"""

import asyncio
import logging

import pytest

from conftest import make_sheet, wait_until
from VocaSheets.models.library import Library
from VocaSheets.services.playback import (
    CancelToken,
    IDLE,
    PLAYING_ONE,
    PLAYING_SEQUENCE,
    PlaybackController,
)

PAUSE = 0.01


@pytest.fixture
def player(fake_tts):
    return PlaybackController(fake_tts, pause=PAUSE)


@pytest.mark.asyncio
class TestPlayWord:

    async def test_sets_and_clears_sounding_reference(self, player, fake_tts, sheet):
        entry = sheet.words[0]
        task = asyncio.ensure_future(player.play_word(entry))
        await wait_until(lambda: fake_tts.clips)
        assert player.playing_word_id == entry.id
        assert player.state == PLAYING_ONE
        assert fake_tts.requests == [entry.phrase]

        fake_tts.clips[0].finish()
        await task
        assert player.playing_word_id is None
        assert player.state == IDLE

    async def test_reference_set_before_request_completes(self, player, fake_tts, sheet):
        fake_tts.gate = asyncio.Event()
        task = asyncio.ensure_future(player.play_word(sheet.words[1]))
        await wait_until(lambda: fake_tts.requests)
        assert player.playing_word_id == sheet.words[1].id
        fake_tts.gate.set()
        await wait_until(lambda: fake_tts.clips)
        fake_tts.clips[0].finish()
        await task

    async def test_new_word_halts_previous(self, player, fake_tts, sheet):
        a, b = sheet.words[0], sheet.words[1]
        task_a = asyncio.ensure_future(player.play_word(a))
        await wait_until(lambda: len(fake_tts.clips) == 1)
        clip_a = fake_tts.clips[0]

        task_b = asyncio.ensure_future(player.play_word(b))
        await wait_until(lambda: len(fake_tts.clips) == 2)
        await task_a

        assert clip_a.stopped is True
        assert player.playing_word_id == b.id
        assert fake_tts.clips[1].stopped is False

        fake_tts.clips[1].finish()
        await task_b
        assert player.playing_word_id is None

    async def test_reclick_same_word_restarts(self, player, fake_tts, sheet):
        entry = sheet.words[0]
        first = asyncio.ensure_future(player.play_word(entry))
        await wait_until(lambda: len(fake_tts.clips) == 1)
        second = asyncio.ensure_future(player.play_word(entry))
        await wait_until(lambda: len(fake_tts.clips) == 2)
        await first

        # the stale completion of the first run must not clear the reference
        assert fake_tts.requests == [entry.phrase, entry.phrase]
        assert fake_tts.clips[0].stopped is True
        assert player.playing_word_id == entry.id
        assert player.state == PLAYING_ONE

        fake_tts.clips[1].finish()
        await second
        assert player.playing_word_id is None

    async def test_failure_is_logged_not_raised(self, player, fake_tts, sheet, caplog):
        entry = sheet.words[0]
        fake_tts.failing.add(entry.phrase)
        with caplog.at_level(logging.WARNING, logger="VocaSheets.services.playback"):
            await player.play_word(entry)
        assert player.playing_word_id is None
        assert player.state == IDLE
        assert "failed" in caplog.text

    async def test_stop_during_fetch_prevents_playback(self, player, fake_tts, sheet):
        fake_tts.gate = asyncio.Event()
        task = asyncio.ensure_future(player.play_word(sheet.words[0]))
        await wait_until(lambda: fake_tts.requests)
        player.stop()
        fake_tts.gate.set()
        await task
        clip = fake_tts.clips[0]
        assert clip.started is False
        assert clip.stopped is True
        assert player.playing_word_id is None

    async def test_word_during_sequence_stops_sequence(self, player, fake_tts, sheet):
        seq = asyncio.ensure_future(player.play_all(sheet.words))
        await wait_until(lambda: len(fake_tts.clips) == 1)
        assert player.is_playing_sequence is True

        single = asyncio.ensure_future(player.play_word(sheet.words[2]))
        await seq
        await wait_until(lambda: len(fake_tts.clips) == 2)
        assert player.is_playing_sequence is False
        assert player.playing_word_id == sheet.words[2].id

        fake_tts.clips[1].finish()
        await single
        await asyncio.sleep(PAUSE * 3)
        assert fake_tts.requests == [sheet.words[0].phrase, sheet.words[2].phrase]


@pytest.mark.asyncio
class TestPlayAll:

    async def test_plays_in_order_with_scroll_hints(self, player, fake_tts, sheet):
        fake_tts.auto_finish = True
        active = []
        player.bind(on_entry_active=lambda inst, entry: active.append(entry.id))
        await player.play_all(sheet.words)
        assert fake_tts.requests == [w.phrase for w in sheet.words]
        assert active == [w.id for w in sheet.words]
        assert player.state == IDLE
        assert player.is_playing_sequence is False
        assert player.playing_word_id is None

    async def test_stop_after_first_item(self, fake_tts, sheet):
        # long pause so the stop always lands between items
        player = PlaybackController(fake_tts, pause=0.5)
        task = asyncio.ensure_future(player.play_all(sheet.words))
        await wait_until(lambda: len(fake_tts.clips) == 1)
        assert player.state == PLAYING_SEQUENCE
        fake_tts.clips[0].finish()
        await wait_until(lambda: player.playing_word_id is None)

        player.stop()
        await task
        await asyncio.sleep(PAUSE * 3)
        assert player.state == IDLE
        assert player.playing_word_id is None
        assert player.is_playing_sequence is False
        assert fake_tts.requests == [sheet.words[0].phrase]

    async def test_second_play_all_toggles_off(self, player, fake_tts, sheet):
        task = asyncio.ensure_future(player.play_all(sheet.words))
        await wait_until(lambda: len(fake_tts.clips) == 1)
        await player.play_all(sheet.words)
        await task
        assert fake_tts.clips[0].stopped is True
        assert player.state == IDLE
        assert fake_tts.requests == [sheet.words[0].phrase]

    async def test_failed_item_is_skipped(self, player, fake_tts, sheet):
        fake_tts.auto_finish = True
        fake_tts.failing.add(sheet.words[1].phrase)
        await player.play_all(sheet.words)
        assert fake_tts.requests == [w.phrase for w in sheet.words]
        assert [c.phrase for c in fake_tts.clips] == [sheet.words[0].phrase, sheet.words[2].phrase]
        assert player.state == IDLE

    async def test_unexpected_error_does_not_abort_sequence(self, player, fake_tts, sheet):
        fake_tts.auto_finish = True
        fake_tts.raising[sheet.words[1].phrase] = ValueError("Timeout value connect was 0")
        await player.play_all(sheet.words)
        assert fake_tts.requests == [w.phrase for w in sheet.words]
        assert [c.phrase for c in fake_tts.clips] == [sheet.words[0].phrase, sheet.words[2].phrase]
        assert player.state == IDLE
        assert player.playing_word_id is None

    async def test_failing_scroll_listener_does_not_abort_sequence(self, player, fake_tts, sheet):
        fake_tts.auto_finish = True

        def explode(_player, entry):
            raise RuntimeError(f"no row for {entry.id}")

        player.bind(on_entry_active=explode)
        await player.play_all(sheet.words)
        assert fake_tts.requests == [w.phrase for w in sheet.words]
        assert player.state == IDLE
        assert player.is_playing_sequence is False

    async def test_empty_list_is_noop(self, player, fake_tts):
        await player.play_all([])
        assert fake_tts.requests == []
        assert player.is_playing_sequence is False

    async def test_pause_between_items(self, fake_tts, sheet):
        fake_tts.auto_finish = True
        player = PlaybackController(fake_tts, pause=0.05)
        loop = asyncio.get_running_loop()
        start = loop.time()
        await player.play_all(sheet.words)
        # two pauses for three items, none after the last
        assert loop.time() - start >= 0.1

    async def test_delete_active_sheet_mid_sequence(self, fake_tts):
        player = PlaybackController(fake_tts, pause=PAUSE)
        lib = Library([make_sheet("a"), make_sheet("b")], player=player)
        task = asyncio.ensure_future(player.play_all(lib.active_words()))
        await wait_until(lambda: len(fake_tts.clips) == 1)

        assert await lib.delete_sheet("a", lambda s: True) is True
        await task
        await asyncio.sleep(PAUSE * 3)
        assert fake_tts.clips[0].stopped is True
        assert len(fake_tts.requests) == 1
        assert player.state == IDLE
        assert player.playing_word_id is None
        assert lib.active_sheet.id == "b"

    async def test_restart_after_stop(self, player, fake_tts, sheet):
        first = asyncio.ensure_future(player.play_all(sheet.words))
        await wait_until(lambda: fake_tts.clips)
        player.stop()
        await first
        fake_tts.auto_finish = True
        await player.play_all(sheet.words)
        assert fake_tts.requests == [sheet.words[0].phrase] + [w.phrase for w in sheet.words]


def test_stop_is_idempotent(fake_tts):
    player = PlaybackController(fake_tts)
    player.stop()
    player.stop()
    assert player.state == IDLE
    assert player.playing_word_id is None
    assert player.is_playing_sequence is False


@pytest.mark.asyncio
class TestCancelToken:

    async def test_sleep_runs_full_length_when_live(self):
        token = CancelToken()
        assert await token.sleep(0.01) is True
        assert token.cancelled is False

    async def test_sleep_wakes_early_on_cancel(self):
        token = CancelToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, token.cancel)
        start = loop.time()
        assert await token.sleep(5) is False
        assert loop.time() - start < 1

    async def test_sleep_after_cancel_returns_immediately(self):
        token = CancelToken()
        token.cancel()
        assert await token.sleep(5) is False
