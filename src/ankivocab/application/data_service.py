"""
AnkiDataService: application-layer owner of the AnkiDataStore.

Every mutating call builds a new store snapshot with the pure transitions in
`application.mastery` and then passes it through `commit()`, which persists
it and only then makes it the current store. A failed import or a failed
save therefore leaves the current store exactly as it was.

Calls must not overlap on one service instance; there is no internal lock.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from ankivocab.application import mastery
from ankivocab.application.tabular_import import (
    build_tabular_deck,
    deck_name_from_filename,
    decode_tabular_bytes,
)
from ankivocab.domain.constants import TIERS
from ankivocab.domain.errors import ArchiveImportError, StorageError
from ankivocab.domain.models import (
    AnkiDataStore,
    Deck,
    DeckSummary,
    ImportResult,
    MasteryTier,
    StoreStatistics,
    TermPair,
    VocabularyGuidance,
)
from ankivocab.domain.ports import KeyValueStorage
from ankivocab.infrastructure.anki.apkg_reader import read_apkg
from ankivocab.infrastructure.anki.apkg_writer import ApkgWriter

logger = logging.getLogger(__name__)

_store_adapter = TypeAdapter(AnkiDataStore)


def serialize_store(store: AnkiDataStore) -> str:
    return _store_adapter.dump_json(store).decode("utf-8")


def deserialize_store(blob: str) -> AnkiDataStore:
    return _store_adapter.validate_json(blob)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnkiDataService:
    """
    Application service for importing, classifying and exporting Anki data.

    Follows Dependency Inversion: depends on the KeyValueStorage abstraction,
    not a concrete persistence adapter.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = "anki_data",
        writer: ApkgWriter | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            storage: The persistence port the store is saved through.
            storage_key: Key of the serialized store blob.
            writer: Optional custom archive writer; uses default if not provided.
            clock: Source of import timestamps.
        """
        self._storage = storage
        self._key = storage_key
        self._writer = writer or ApkgWriter()
        self._clock = clock
        self.store = mastery.empty_store()

    @classmethod
    async def create(cls, storage: KeyValueStorage, storage_key: str = "anki_data", **kwargs):
        service = cls(storage, storage_key, **kwargs)
        await service.load()
        return service

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> AnkiDataStore:
        """Load the persisted store, falling back to the empty default."""
        try:
            blob = await self._storage.load(self._key)
        except StorageError as e:
            logger.warning(f"Could not load stored Anki data, starting empty: {e}")
            blob = None

        store = mastery.empty_store()
        if blob:
            try:
                store = deserialize_store(blob)
            except ValidationError as e:
                logger.warning(f"Stored Anki data is unreadable, starting empty: {e}")

        self.store = store
        return store

    async def commit(self, store: AnkiDataStore) -> AnkiDataStore:
        """
        Persist `store` and make it current.

        Raises:
            StorageError: The store was not saved; the current store is unchanged.
        """
        await self._storage.save(self._key, serialize_store(store))
        self.store = store
        logger.debug(
            f"Committed store: {len(store.decks)} decks, {store.total_cards} cards, "
            f"{len(store.vocabulary)} words"
        )
        return store

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    async def import_apkg(self, data: bytes, filename: str) -> ImportResult:
        """
        Import an .apkg byte buffer.

        Never raises: every failure is reported in the returned ImportResult.
        """
        now = self._clock()
        try:
            deck = read_apkg(data, filename, now)
        except ArchiveImportError as e:
            logger.error(f"Import of '{filename}' failed ({e.kind}): {e}")
            return ImportResult(success=False, error_kind=e.kind, error_message=str(e))

        return await self._add_deck(deck, now)

    async def import_tabular(
        self,
        content: str | bytes,
        filename: str,
        mastery_level: MasteryTier = "new",
    ) -> ImportResult:
        """
        Import a tab/comma separated card list with a manual mastery tier.

        Never raises: every failure is reported in the returned ImportResult.
        """
        if mastery_level not in TIERS:
            return ImportResult(
                success=False,
                error_kind="InvalidMasteryLevel",
                error_message=(
                    f"Unknown mastery level {mastery_level!r}; "
                    f"expected one of {', '.join(TIERS)}"
                ),
            )

        now = self._clock()
        try:
            text = decode_tabular_bytes(content) if isinstance(content, bytes) else content
            deck = build_tabular_deck(deck_name_from_filename(filename), text, mastery_level, now)
        except ArchiveImportError as e:
            logger.error(f"Import of '{filename}' failed ({e.kind}): {e}")
            return ImportResult(success=False, error_kind=e.kind, error_message=str(e))

        return await self._add_deck(deck, now)

    async def _add_deck(self, deck: Deck, now: datetime) -> ImportResult:
        try:
            await self.commit(mastery.add_deck(self.store, deck, now))
        except StorageError as e:
            logger.error(f"Could not save deck '{deck.name}': {e}")
            return ImportResult(success=False, error_kind=e.kind, error_message=str(e))

        logger.info(
            f"Imported deck '{deck.name}': {len(deck.cards)} cards, "
            f"{len(deck.vocabulary)} words"
        )
        return ImportResult(
            success=True,
            deck_name=deck.name,
            card_count=len(deck.cards),
            vocabulary_count=len(deck.vocabulary),
            skipped_rows=deck.skipped_rows,
        )

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    async def remove_deck(self, deck_name: str) -> AnkiDataStore:
        """Remove every deck named `deck_name` and reclassify what remains."""
        store = await self.commit(mastery.remove_deck(self.store, deck_name))
        logger.info(f"Removed deck '{deck_name}'")
        return store

    async def clear_all_data(self) -> AnkiDataStore:
        store = await self.commit(mastery.empty_store())
        logger.info("Cleared all Anki data")
        return store

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_vocabulary_guidance(self) -> VocabularyGuidance:
        levels = self.store.mastery_levels
        return VocabularyGuidance(
            mastered=[v.word for v in levels.mastered],
            familiar=[v.word for v in levels.familiar],
            learning=[v.word for v in levels.learning],
            new=[v.word for v in levels.new],
            total_words=len(self.store.vocabulary),
            total_cards=self.store.total_cards,
            deck_count=len(self.store.decks),
        )

    def get_statistics(self) -> StoreStatistics:
        levels = self.store.mastery_levels
        return StoreStatistics(
            decks=len(self.store.decks),
            total_cards=self.store.total_cards,
            total_vocabulary=len(self.store.vocabulary),
            mastered=len(levels.mastered),
            familiar=len(levels.familiar),
            learning=len(levels.learning),
            new=len(levels.new),
            last_import_at=self.store.last_import_at,
        )

    def list_decks(self) -> list[DeckSummary]:
        return [
            DeckSummary(
                name=d.name,
                imported_at=d.imported_at,
                card_count=len(d.cards),
                vocabulary_count=len(d.vocabulary),
                manual_mastery_level=d.manual_mastery_level,
            )
            for d in self.store.decks
        ]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_apkg(self, deck_name: str, terms: Sequence[TermPair]) -> bytes:
        """
        Build an .apkg for `terms`.

        Raises:
            ExportFailed: Nothing was produced.
        """
        data = self._writer.write(deck_name, terms)
        logger.info(f"Exported {len(terms)} terms as deck '{deck_name}' ({len(data)} bytes)")
        return data
