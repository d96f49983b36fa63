from __future__ import annotations
from dataclasses import dataclass, field
from typing import List
import uuid


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(slots=True)
class WordEntry:
    id: str
    word: str
    pos: str = ""
    replacement: str = ""  # synonyms / paraphrase
    translation: str = ""
    learned: bool = False

    @property
    def phrase(self) -> str:
        """Text handed to the speech endpoint: headword, then synonyms if any."""
        if self.replacement:
            return f"{self.word}. {self.replacement}"
        return self.word


@dataclass(slots=True)
class DaySheet:
    id: str
    name: str
    words: List[WordEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.words)

    @property
    def learned_count(self) -> int:
        return sum(1 for w in self.words if w.learned)

    @property
    def progress(self) -> int:
        if not self.words:
            return 0
        return round(100 * self.learned_count / self.total)

    def find_word(self, word_id: str) -> WordEntry | None:
        for w in self.words:
            if w.id == word_id:
                return w
        return None


def seed_sheets() -> list[DaySheet]:
    # Demo-Tag, wird beim ersten Start angezeigt
    return [
        DaySheet(
            id="day-1",
            name="Day 1: Demo",
            words=[
                WordEntry("d1-1", "Resilience", "n.", "elasticity, recovery, flexibility", "弹性；恢复力"),
                WordEntry("d1-2", "Sedentary", "adj.", "inactive, desk-bound, motionless", "久坐不动的；缺乏活动的"),
                WordEntry("d1-3", "Longevity", "n.", "long life, life span, durability", "长寿；寿命"),
            ],
        )
    ]
