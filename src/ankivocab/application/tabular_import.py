"""
Tabular fallback importer for plain-text card lists (.txt/.tsv/.csv).

These files carry no scheduling data, so every card gets synthetic
scheduling values from the manual tier chosen by the caller.
"""

import csv
import logging
import re
from datetime import datetime

from ankivocab.application.id_service import generate_card_token
from ankivocab.application.record_extractor import collect_vocabulary
from ankivocab.application.utils.text import extract_text_from_html
from ankivocab.domain.constants import (
    DEFAULT_EASE_FACTOR,
    MANUAL_TIER_INTERVALS,
    TABULAR_SUFFIXES,
)
from ankivocab.domain.errors import InvalidTabularFile
from ankivocab.domain.models import Card, Deck, MasteryTier

logger = logging.getLogger(__name__)

# Anki >= 2.1.55 plain-text exports start with "#separator:tab", "#html:true", ...
_HEADER_RE = re.compile(r"^#[A-Za-z ]+:")


def deck_name_from_filename(filename: str) -> str:
    lower = filename.lower()
    for suffix in TABULAR_SUFFIXES:
        if lower.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def decode_tabular_bytes(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidTabularFile(f"File is not valid UTF-8 text: {e}") from e


def split_records(text: str) -> list[list[str]]:
    """
    Split text into records, one per non-blank line.

    The whole file is tab-delimited if any line contains a tab, otherwise
    comma-delimited (double quotes may wrap fields containing commas). Each
    line is parsed on its own, so an unbalanced quote stays within its line.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    while lines and _HEADER_RE.match(lines[0]):
        lines.pop(0)

    if any("\t" in line for line in lines):
        return [line.split("\t") for line in lines]
    records = (next(csv.reader([line]), []) for line in lines)
    return [row for row in records if row]


def build_tabular_deck(
    name: str,
    text: str,
    mastery_level: MasteryTier,
    imported_at: datetime,
) -> Deck:
    if mastery_level not in MANUAL_TIER_INTERVALS:
        raise ValueError(f"Unknown mastery level: {mastery_level!r}")

    interval = MANUAL_TIER_INTERVALS[mastery_level]
    state = "new" if mastery_level == "new" else "review"

    cards: list[Card] = []
    for fields in split_records(text):
        front = extract_text_from_html(fields[0]).strip()
        if not front:
            continue
        back = extract_text_from_html(fields[1]).strip() if len(fields) > 1 else ""
        cards.append(
            Card(
                id=generate_card_token(),
                front_text=front,
                back_text=back,
                interval_days=interval,
                ease_factor=DEFAULT_EASE_FACTOR,
                card_state=state,
                tags="",
            )
        )

    logger.debug(f"Tabular deck '{name}': {len(cards)} cards at tier {mastery_level}")

    return Deck(
        name=name,
        imported_at=imported_at,
        cards=cards,
        vocabulary=collect_vocabulary(cards),
        manual_mastery_level=mastery_level,
    )
