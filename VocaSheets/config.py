from __future__ import annotations
from dataclasses import dataclass, fields
import logging

logger = logging.getLogger(__name__)

DEFAULT_TTS_ENDPOINT = "https://translate.google.com/translate_tts"


@dataclass(slots=True)
class PlaybackConfig:
    endpoint: str = DEFAULT_TTS_ENDPOINT
    language: str = "en"
    client: str = "tw-ob"
    pause: float = 1.0     # Pause zwischen zwei Wörtern (Sekunden)
    timeout: float = 10.0  # HTTP-Timeout

    @classmethod
    def from_prefs(cls, prefs, key: str = "playback") -> "PlaybackConfig":
        """Build a config from the ``key`` section of a kivy JsonStore."""
        cfg = cls()
        try:
            if not prefs.exists(key):
                return cfg
            section = prefs.get(key) or {}
        except (OSError, ValueError) as e:
            logger.warning("could not read prefs section %r: %s", key, e)
            return cfg
        for f in fields(cls):
            if f.name not in section:
                continue
            default = getattr(cfg, f.name)
            try:
                value = type(default)(section[f.name])
            except (TypeError, ValueError):
                logger.warning("ignoring malformed pref %s=%r", f.name, section[f.name])
                continue
            if isinstance(value, float) and value < 0:
                logger.warning("ignoring negative pref %s=%r", f.name, value)
                continue
            if f.name == "timeout" and value <= 0:
                logger.warning("ignoring non-positive timeout %r", value)
                continue
            setattr(cfg, f.name, value)
        return cfg

    def save(self, prefs, key: str = "playback"):
        prefs.put(key, **{f.name: getattr(self, f.name) for f in fields(self)})
