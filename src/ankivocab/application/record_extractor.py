"""
Record extractor: turns joined card/note rows into a Deck.

Row layout (see infrastructure.anki.apkg_reader.CARD_ROWS_QUERY):
    (card_id, note_id, interval, ease_factor, card_type, card_queue, fields, tags)
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from ankivocab.application.utils.text import extract_text_from_html, extract_vocabulary_words
from ankivocab.domain.constants import CARD_TYPE_STATES, DEFAULT_EASE_FACTOR, FIELD_SEPARATOR
from ankivocab.domain.errors import RowDecodeError
from ankivocab.domain.models import Card, CardState, Deck, MasteryTier, VocabularyItem

logger = logging.getLogger(__name__)


def _as_int(row_id: object, name: str, value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RowDecodeError(row_id, f"{name} is not numeric: {value!r}")
    return int(value)


def decode_card_row(row: Sequence[Any]) -> Card | None:
    """
    Decode one joined row into a Card.

    Returns None for rows whose primary term is empty after markup stripping
    (non-lexical note types). Raises RowDecodeError for malformed rows.
    """
    if len(row) < 8:
        raise RowDecodeError(row[0] if row else None, f"expected 8 columns, got {len(row)}")

    card_id, _note_id, ivl, factor, card_type, _queue, flds, tags = row[:8]
    if not isinstance(card_id, int):
        raise RowDecodeError(card_id, "card id is not an integer")

    if isinstance(flds, bytes):
        try:
            flds = flds.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RowDecodeError(card_id, f"fields are not UTF-8: {e}") from e
    if flds is None:
        flds = ""
    if not isinstance(flds, str):
        raise RowDecodeError(card_id, f"fields have unexpected type {type(flds).__name__}")

    fields = flds.split(FIELD_SEPARATOR)
    front = extract_text_from_html(fields[0])
    if not front:
        return None
    back = extract_text_from_html(fields[1]) if len(fields) > 1 else ""

    # Learning cards store negative intervals (seconds); those are 0 days.
    interval = max(0, _as_int(card_id, "ivl", ivl))
    ease = _as_int(card_id, "factor", factor) or DEFAULT_EASE_FACTOR
    state: CardState = CARD_TYPE_STATES.get(_as_int(card_id, "type", card_type), "new")

    return Card(
        id=card_id,
        front_text=front,
        back_text=back,
        interval_days=interval,
        ease_factor=ease,
        card_state=state,
        tags=tags if isinstance(tags, str) else "",
    )


def collect_vocabulary(cards: Iterable[Card]) -> list[VocabularyItem]:
    """
    Tokenize each card's primary term into vocabulary items.

    Within one deck a token is kept once; the first card mentioning it wins.
    """
    seen: set[str] = set()
    vocabulary: list[VocabularyItem] = []
    for card in cards:
        for word in extract_vocabulary_words(card.front_text):
            if word in seen:
                continue
            seen.add(word)
            vocabulary.append(
                VocabularyItem(
                    word=word,
                    interval_days=card.interval_days,
                    ease_factor=card.ease_factor,
                    card_state=card.card_state,
                    source_text=card.front_text,
                )
            )
    return vocabulary


def build_deck(
    name: str,
    rows: Iterable[Sequence[Any]],
    imported_at: datetime,
    manual_mastery_level: MasteryTier | None = None,
) -> Deck:
    """
    Build a Deck from raw joined rows, skipping rows that fail to decode.
    """
    cards: list[Card] = []
    skipped = 0
    for row in rows:
        try:
            card = decode_card_row(row)
        except RowDecodeError as e:
            skipped += 1
            logger.warning(f"Skipping row in deck '{name}': {e}")
            continue
        if card is not None:
            cards.append(card)

    if skipped:
        logger.info(f"Deck '{name}': skipped {skipped} undecodable rows")

    return Deck(
        name=name,
        imported_at=imported_at,
        cards=cards,
        vocabulary=collect_vocabulary(cards),
        manual_mastery_level=manual_mastery_level,
        skipped_rows=skipped,
    )
