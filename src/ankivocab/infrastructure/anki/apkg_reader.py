"""
Archive reader for Anki `.apkg` packages.

An .apkg is a zip container holding a sqlite collection and a media
manifest. The reader selects the collection member, opens it in memory and
yields the joined card/note rows the record extractor consumes.
"""

from __future__ import annotations

import io
import logging
import lzma
import sqlite3
import struct
import zipfile
import zlib
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from ankivocab.application.record_extractor import build_deck
from ankivocab.domain.constants import (
    APKG_SUFFIX,
    COMPRESSED_DB_MEMBER,
    DB_MEMBER_PRIORITY,
    LEGACY_DB_MEMBER,
    MODERN_DB_MEMBER,
    STUB_NOTICE_PREFIX,
)
from ankivocab.domain.errors import (
    CorruptArchive,
    CorruptDatabase,
    MissingDatabase,
    UnsupportedCompressedSchema,
)
from ankivocab.domain.models import Deck

logger = logging.getLogger(__name__)

CARD_ROWS_QUERY = """
    SELECT
        cards.id AS card_id,
        cards.nid AS note_id,
        cards.ivl AS interval,
        cards.factor AS ease_factor,
        cards.type AS card_type,
        cards.queue AS card_queue,
        notes.flds AS fields,
        notes.tags AS tags
    FROM cards
    JOIN notes ON cards.nid = notes.id
    ORDER BY cards.id
"""


def deck_name_from_filename(filename: str) -> str:
    if filename.lower().endswith(APKG_SUFFIX):
        return filename[: -len(APKG_SUFFIX)]
    return filename


def select_database_member(names: list[str]) -> str:
    """
    Pick the collection database from a container listing.

    Raises:
        UnsupportedCompressedSchema: Only the zstd collection.anki21b is usable.
        MissingDatabase: No known collection member at all.
    """
    members = set(names)

    if COMPRESSED_DB_MEMBER in members and MODERN_DB_MEMBER not in members:
        # New-format exports ship a placeholder collection.anki2 next to the
        # real anki21b database so that old clients show an "update" note.
        if LEGACY_DB_MEMBER in members:
            logger.debug("collection.anki2 accompanies collection.anki21b; treating it as a stub")
        raise UnsupportedCompressedSchema()

    for candidate in DB_MEMBER_PRIORITY:
        if candidate in members:
            return candidate

    raise MissingDatabase(
        f"No collection database found in archive (looked for {', '.join(DB_MEMBER_PRIORITY)})"
    )


def _is_update_stub(conn: sqlite3.Connection) -> bool:
    """True if the collection holds only the "please update" placeholder note."""
    try:
        rows = conn.execute("SELECT flds FROM notes LIMIT 2").fetchall()
    except sqlite3.Error:
        return False
    if len(rows) != 1 or not isinstance(rows[0][0], str):
        return False
    return rows[0][0].lstrip().startswith(STUB_NOTICE_PREFIX)


class ApkgArchive:
    """
    Read-only view over an .apkg byte buffer.

    Usage:
        with ApkgArchive(data) as archive:
            rows = list(archive.iter_card_rows())
    """

    def __init__(self, data: bytes):
        self.data = data
        self.member: str | None = None
        self.db: sqlite3.Connection | None = None

    def __enter__(self) -> ApkgArchive:
        try:
            self._open()
        except BaseException:
            self._close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self._close()

    def _close(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None

    def _open(self) -> None:
        # Damaged headers and streams surface as many exception types: ValueError
        # for bad offsets, UnicodeDecodeError for names, OSError from bz2.
        try:
            with zipfile.ZipFile(io.BytesIO(self.data)) as zf:
                names = zf.namelist()
                logger.debug(f"Archive members: {names}")
                self.member = select_database_member(names)
                self.db = self._open_database(zf.read(self.member))

                if (
                    self.member == LEGACY_DB_MEMBER
                    and MODERN_DB_MEMBER in names
                    and _is_update_stub(self.db)
                ):
                    logger.info(f"{LEGACY_DB_MEMBER} is a placeholder; reading {MODERN_DB_MEMBER}")
                    self._close()
                    self.member = MODERN_DB_MEMBER
                    self.db = self._open_database(zf.read(self.member))
        except (
            zipfile.BadZipFile,
            zlib.error,
            lzma.LZMAError,
            struct.error,
            OSError,
            EOFError,
            NotImplementedError,
            RuntimeError,
            ValueError,
            OverflowError,
        ) as e:
            raise CorruptArchive(f"Could not read archive: {e}") from e

    def _open_database(self, db_bytes: bytes) -> sqlite3.Connection:
        logger.debug(f"Opening {self.member} ({len(db_bytes)} bytes)")
        if db_bytes[18:20] == b"\x02\x02":
            # WAL header; an in-memory image has no -wal file to read.
            db_bytes = db_bytes[:18] + b"\x01\x01" + db_bytes[20:]
        conn = sqlite3.connect(":memory:")
        try:
            conn.deserialize(db_bytes)
            # sqlite only validates the header on first access.
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        except sqlite3.Error as e:
            conn.close()
            raise CorruptDatabase(f"Could not open {self.member}: {e}") from e
        return conn

    def iter_card_rows(self) -> Iterator[tuple[Any, ...]]:
        """Yield (card_id, note_id, ivl, factor, type, queue, flds, tags) rows."""
        if self.db is None:
            raise CorruptDatabase("Archive database is not open")
        try:
            rows = self.db.execute(CARD_ROWS_QUERY).fetchall()
        except sqlite3.Error as e:
            raise CorruptDatabase(f"Could not query {self.member}: {e}") from e
        yield from rows


def read_apkg(data: bytes, filename: str, imported_at: datetime) -> Deck:
    """
    Decode an .apkg byte buffer into a Deck.

    Raises any ArchiveImportError subclass; per-row problems are skipped.
    """
    with ApkgArchive(data) as archive:
        rows = list(archive.iter_card_rows())
        member = archive.member

    deck = build_deck(deck_name_from_filename(filename), rows, imported_at)
    logger.info(
        f"Read {member} from '{filename}': {len(rows)} rows, "
        f"{len(deck.cards)} cards, {len(deck.vocabulary)} words"
    )
    return deck
