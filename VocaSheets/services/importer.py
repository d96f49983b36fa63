from __future__ import annotations
import logging

from VocaSheets.models.state import WordEntry, new_id

logger = logging.getLogger(__name__)

FIELD_SEP = "\t"


def parse_import_text(text: str | None) -> list[WordEntry]:
    """
    Turn pasted tab-separated lines into fresh word entries.

    Columns are headword, part of speech, synonyms, translation. Missing trailing
    columns become "". Lines without a headword are skipped.
    """
    entries: list[WordEntry] = []
    for raw in (text or "").splitlines():
        parts = [p.strip() for p in raw.split(FIELD_SEP)]
        if not parts[0]:
            continue
        parts += [""] * (4 - len(parts))
        word, pos, replacement, translation = parts[:4]
        entries.append(WordEntry(new_id("imp"), word, pos, replacement, translation, learned=False))
    logger.debug("parsed %d entries from import text", len(entries))
    return entries
