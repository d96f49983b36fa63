from __future__ import annotations
import asyncio
import io
import logging

import numpy as np
import requests
import sounddevice as sd
import soundfile as sf

from VocaSheets.config import PlaybackConfig
from VocaSheets.errors import PlaybackError

logger = logging.getLogger(__name__)


class AudioClip:
    """
    Decoded audio for one phrase.

    ``play()`` returns when the clip has finished or was stopped; ``stop()`` is
    idempotent and may be called before, during or after playback.
    """

    def __init__(self, wav: np.ndarray, sr: int, phrase: str = ""):
        self.wav = wav
        self.sr = sr
        self.phrase = phrase
        self._started = False
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    async def play(self):
        if self._done:
            return
        try:
            sd.play(self.wav, self.sr, blocking=False)
        except sd.PortAudioError as e:
            self._done = True
            raise PlaybackError(f"play failed: {e}", self.phrase) from e
        self._started = True
        await asyncio.to_thread(sd.wait)
        self._done = True

    def stop(self):
        if self._done:
            return
        self._done = True
        if not self._started:
            return
        try:
            sd.stop()
        except sd.PortAudioError as e:
            logger.warning("stopping audio failed: %s", e)


class TTSService:
    def __init__(self, config: PlaybackConfig | None = None, session: requests.Session | None = None):
        self.config = config or PlaybackConfig()
        self._session = session or requests.Session()

    def request_params(self, phrase: str) -> dict:
        return {
            "ie": "UTF-8",
            "client": self.config.client,
            "tl": self.config.language,
            "q": phrase,
        }

    def fetch(self, phrase: str) -> bytes:
        try:
            resp = self._session.get(
                self.config.endpoint,
                params=self.request_params(phrase),
                timeout=self.config.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise PlaybackError(f"TTS request failed: {e}", phrase) from e
        return resp.content

    def decode(self, data: bytes, phrase: str = "") -> AudioClip:
        if not data:
            raise PlaybackError("TTS response was empty", phrase)
        try:
            wav, sr = sf.read(io.BytesIO(data), dtype="float32")
        except (sf.LibsndfileError, TypeError) as e:
            raise PlaybackError(f"could not decode audio: {e}", phrase) from e
        return AudioClip(np.asarray(wav, dtype=np.float32), int(sr), phrase)

    async def synthesize(self, phrase: str) -> AudioClip:
        if not phrase:
            raise PlaybackError("nothing to speak", phrase)
        try:
            data = await asyncio.to_thread(self.fetch, phrase)
        except ValueError as e:
            # e.g. urllib3 rejecting the configured timeout
            raise PlaybackError(f"TTS request failed: {e}", phrase) from e
        return self.decode(data, phrase)

    def close(self):
        self._session.close()
