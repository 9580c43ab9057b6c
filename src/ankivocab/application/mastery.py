"""
Mastery classifier and store transitions.

Every transition rebuilds the derived view (deduplicated vocabulary, mastery
buckets, card total) from the deck list. Nothing here is incremental and
nothing here does I/O; callers persist the returned snapshot.
"""

from collections.abc import Iterable
from datetime import datetime

from ankivocab.domain.constants import (
    FAMILIAR_MIN_INTERVAL,
    LEARNING_MIN_INTERVAL,
    MASTERED_MIN_INTERVAL,
)
from ankivocab.domain.models import (
    AnkiDataStore,
    Deck,
    MasteryLevels,
    MasteryTier,
    VocabularyItem,
)


def tier_for_interval(interval_days: int) -> MasteryTier:
    """Lower bounds are inclusive: 90 is mastered, 89 is familiar."""
    if interval_days >= MASTERED_MIN_INTERVAL:
        return "mastered"
    if interval_days >= FAMILIAR_MIN_INTERVAL:
        return "familiar"
    if interval_days >= LEARNING_MIN_INTERVAL:
        return "learning"
    return "new"


def deduplicate_vocabulary(decks: Iterable[Deck]) -> list[VocabularyItem]:
    """
    Keep one item per word: the one with the longest interval.

    Traversal is deck order, then in-deck order; on equal intervals the first
    item encountered wins. Output keeps first-seen word order.
    """
    best: dict[str, VocabularyItem] = {}
    for deck in decks:
        for item in deck.vocabulary:
            current = best.get(item.word)
            if current is None or item.interval_days > current.interval_days:
                best[item.word] = item
    return list(best.values())


def categorize_vocabulary(decks: list[Deck]) -> tuple[list[VocabularyItem], MasteryLevels, int]:
    """
    Recompute the classified view of a deck list.

    Returns:
        (deduplicated vocabulary, mastery buckets, total card count)
    """
    vocabulary = deduplicate_vocabulary(decks)
    buckets: dict[MasteryTier, list[VocabularyItem]] = {
        "mastered": [],
        "familiar": [],
        "learning": [],
        "new": [],
    }
    for item in vocabulary:
        buckets[tier_for_interval(item.interval_days)].append(item)

    total_cards = sum(len(deck.cards) for deck in decks)
    return vocabulary, MasteryLevels(**buckets), total_cards


def _rebuild(decks: list[Deck], last_import_at: datetime | None) -> AnkiDataStore:
    vocabulary, levels, total_cards = categorize_vocabulary(decks)
    return AnkiDataStore(
        decks=decks,
        vocabulary=vocabulary,
        mastery_levels=levels,
        last_import_at=last_import_at,
        total_cards=total_cards,
    )


def empty_store() -> AnkiDataStore:
    return AnkiDataStore()


def add_deck(store: AnkiDataStore, deck: Deck, now: datetime) -> AnkiDataStore:
    """New snapshot with `deck` appended and `last_import_at` set to `now`."""
    return _rebuild([*store.decks, deck], now)


def remove_deck(store: AnkiDataStore, deck_name: str) -> AnkiDataStore:
    """New snapshot without any deck named `deck_name`."""
    remaining = [d for d in store.decks if d.name != deck_name]
    return _rebuild(remaining, store.last_import_at)
