"""
Archive writer: synthesizes a fresh schema-11 collection from term pairs and
packages it as an .apkg that Anki can import.
"""

import hashlib
import html
import io
import logging
import sqlite3
import time
import zipfile
from collections.abc import Callable, Sequence

from ankivocab.application.id_service import IdSequence, generate_guid
from ankivocab.application.utils.text import extract_text_from_html
from ankivocab.domain.constants import (
    DEFAULT_EASE_FACTOR,
    EXPORT_DCONF_ID,
    EXPORT_DECK_ID,
    EXPORT_MODEL_ID,
    EXPORT_MODEL_NAME,
    FIELD_SEPARATOR,
    LEGACY_DB_MEMBER,
    MEDIA_MEMBER,
    SCHEMA_VERSION,
)
from ankivocab.domain.errors import ExportFailed
from ankivocab.domain.models import TermPair

from .schema import (
    SCHEMA_SQL,
    CardTemplate,
    CollectionConfig,
    DeckConfig,
    DeckDefinition,
    ModelField,
    NoteModel,
    keyed_by_id,
)

logger = logging.getLogger(__name__)

FRONT_FIELD = "Term"
BACK_FIELD = "Meaning"


def field_checksum(text: str) -> int:
    """Anki's duplicate-check checksum: first 8 hex digits of sha1(stripped field)."""
    stripped = extract_text_from_html(text)
    return int(hashlib.sha1(stripped.encode("utf-8")).hexdigest()[:8], 16)


def build_note_model(mod: int) -> NoteModel:
    return NoteModel(
        id=EXPORT_MODEL_ID,
        name=EXPORT_MODEL_NAME,
        did=EXPORT_DECK_ID,
        mod=mod,
        flds=[ModelField(name=FRONT_FIELD, ord=0), ModelField(name=BACK_FIELD, ord=1)],
        tmpls=[
            CardTemplate(
                name="Card 1",
                ord=0,
                qfmt=f"{{{{{FRONT_FIELD}}}}}",
                afmt=f"{{{{FrontSide}}}}\n\n<hr id=answer>\n\n{{{{{BACK_FIELD}}}}}",
            )
        ],
    )


def _validate(term: TermPair, index: int) -> None:
    if term.interval_days is not None and term.interval_days < 0:
        raise ExportFailed(f"Term #{index} ({term.term!r}): interval must not be negative")
    if term.ease_factor is not None and term.ease_factor <= 0:
        raise ExportFailed(f"Term #{index} ({term.term!r}): ease factor must be positive")
    if FIELD_SEPARATOR in term.term or FIELD_SEPARATOR in term.counterpart:
        raise ExportFailed(f"Term #{index} ({term.term!r}): contains the 0x1F field separator")


class ApkgWriter:
    """
    Builds .apkg bytes from an ordered list of term pairs.

    Model, deck and deck-config ids are fixed constants; note and card ids
    come from an IdSequence seeded once per `write()` call.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def write(
        self,
        deck_name: str,
        terms: Sequence[TermPair],
        id_seed: int | None = None,
    ) -> bytes:
        now = self.clock()
        ids = IdSequence(id_seed if id_seed is not None else int(now * 1000))

        for i, term in enumerate(terms):
            _validate(term, i)

        try:
            db_bytes = self._build_database(deck_name, terms, now, ids)
            return self._package(db_bytes)
        except sqlite3.Error as e:
            logger.error(f"Export of '{deck_name}' failed while building the database: {e}")
            raise ExportFailed(f"Could not build collection database: {e}") from e
        except (OSError, ValueError, zipfile.LargeZipFile) as e:
            logger.error(f"Export of '{deck_name}' failed while packaging: {e}")
            raise ExportFailed(f"Could not package archive: {e}") from e

    def _build_database(
        self, deck_name: str, terms: Sequence[TermPair], now: float, ids: IdSequence
    ) -> bytes:
        now_s = int(now)
        now_ms = int(now * 1000)

        conn = sqlite3.connect(":memory:")
        try:
            conn.executescript(SCHEMA_SQL)
            with conn:
                note_count = self._insert_terms(conn, terms, now_s, ids)
                self._insert_collection(conn, deck_name, now_s, now_ms, note_count)
            data = conn.serialize()
        finally:
            conn.close()

        logger.info(f"Built collection for deck '{deck_name}' with {note_count} notes")
        return data

    def _insert_collection(
        self, conn: sqlite3.Connection, deck_name: str, now_s: int, now_ms: int, note_count: int
    ) -> None:
        model = build_note_model(now_s)
        deck = DeckDefinition(id=EXPORT_DECK_ID, name=deck_name, conf=EXPORT_DCONF_ID, mod=now_s)
        dconf = DeckConfig(id=EXPORT_DCONF_ID, name="Default", mod=now_s)
        conf = CollectionConfig(
            cur_deck=EXPORT_DECK_ID,
            cur_model=str(EXPORT_MODEL_ID),
            active_decks=[EXPORT_DECK_ID],
            next_pos=note_count + 1,
        )
        crt = now_s - now_s % 86400

        conn.execute(
            "INSERT INTO col VALUES (1, ?, ?, ?, ?, 0, 0, 0, ?, ?, ?, ?, '{}')",
            (
                crt,
                now_ms,
                now_ms,
                SCHEMA_VERSION,
                conf.model_dump_json(by_alias=True),
                keyed_by_id([model]),
                keyed_by_id([deck]),
                keyed_by_id([dconf]),
            ),
        )

    def _insert_terms(
        self, conn: sqlite3.Connection, terms: Sequence[TermPair], now_s: int, ids: IdSequence
    ) -> int:
        count = 0
        for term in terms:
            front = html.escape(term.term.strip(), quote=False)
            if not front:
                logger.warning("Skipping term pair with an empty primary term")
                continue
            back = html.escape(term.counterpart.strip(), quote=False)
            note_id, card_id = ids.allocate()

            conn.execute(
                "INSERT INTO notes VALUES (?, ?, ?, ?, -1, '', ?, ?, ?, 0, '')",
                (
                    note_id,
                    generate_guid(),
                    EXPORT_MODEL_ID,
                    now_s,
                    f"{front}{FIELD_SEPARATOR}{back}",
                    term.term.strip(),
                    field_checksum(front),
                ),
            )

            interval = term.interval_days or 0
            ease = term.ease_factor or DEFAULT_EASE_FACTOR
            # type/queue 0 = new; reps, lapses, left, odue, odid, flags zeroed
            conn.execute(
                "INSERT INTO cards VALUES (?, ?, ?, 0, ?, -1, 0, 0, ?, ?, ?, 0, 0, 0, 0, 0, 0, '')",
                (card_id, note_id, EXPORT_DECK_ID, now_s, interval, interval, ease),
            )
            count += 1
        return count

    def _package(self, db_bytes: bytes) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(LEGACY_DB_MEMBER, db_bytes)
            zf.writestr(MEDIA_MEMBER, "{}")
        return buf.getvalue()
