import asyncio
import logging
import os
from pathlib import Path

from kivy.app import App
from kivy.core.window import Window
from kivy.storage.jsonstore import JsonStore

from VocaSheets.config import PlaybackConfig
from VocaSheets.logging_setup import configure_logging
from VocaSheets.models.library import Library
from VocaSheets.screens.main import SheetsScreen
from VocaSheets.services.playback import PlaybackController
from VocaSheets.services.tts import TTSService

logger = logging.getLogger(__name__)

Window.size = (1000, 800)


class VocaSheetsApp(App):
    title = "VocaSheets"

    def build(self):
        prefs_path = Path(self.user_data_dir) / "prefs.json"
        self.prefs = JsonStore(str(prefs_path))
        config = PlaybackConfig.from_prefs(self.prefs)
        self.tts = TTSService(config)
        self.player = PlaybackController(self.tts, pause=config.pause)
        self.library = Library(seed=True, player=self.player)
        return SheetsScreen(self.library, self.player)

    def on_stop(self):
        # laufende Wiedergabe beenden, Session schließen
        self.player.stop()
        self.tts.close()


def main():
    configure_logging(logging.DEBUG if os.environ.get("VOCASHEETS_DEBUG") else logging.INFO)
    asyncio.run(VocaSheetsApp().async_run(async_lib="asyncio"))


if __name__ == "__main__":
    main()
