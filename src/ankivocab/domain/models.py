"""
Domain models for imported decks and vocabulary mastery.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

CardState = Literal["new", "learning", "review"]
MasteryTier = Literal["mastered", "familiar", "learning", "new"]


@dataclass(frozen=True)
class Card:
    """
    A schedulable flashcard as imported from an archive or tabular file.

    Attributes:
        id: Native Anki card id, or a synthetic token for tabular imports.
        front_text: Primary term, markup stripped.
        back_text: Counterpart/definition, markup stripped ("" if absent).
        interval_days: Days until next review (never negative).
        ease_factor: SM-2 factor (2500 = 250%).
        card_state: new, learning or review.
        tags: Raw Anki tag string.
    """

    id: int | str
    front_text: str
    back_text: str
    interval_days: int
    ease_factor: int
    card_state: CardState
    tags: str = ""


@dataclass(frozen=True)
class VocabularyItem:
    """A single token extracted from a card's primary term."""

    word: str
    interval_days: int
    ease_factor: int
    card_state: CardState
    source_text: str


@dataclass(frozen=True)
class Deck:
    name: str
    imported_at: datetime
    cards: list[Card] = field(default_factory=list)
    vocabulary: list[VocabularyItem] = field(default_factory=list)
    manual_mastery_level: MasteryTier | None = None  # Set for tabular imports
    skipped_rows: int = 0


@dataclass(frozen=True)
class MasteryLevels:
    mastered: list[VocabularyItem] = field(default_factory=list)
    familiar: list[VocabularyItem] = field(default_factory=list)
    learning: list[VocabularyItem] = field(default_factory=list)
    new: list[VocabularyItem] = field(default_factory=list)


@dataclass(frozen=True)
class AnkiDataStore:
    """
    Aggregate root for all imported Anki data.

    `vocabulary`, `mastery_levels` and `total_cards` are derived from `decks`
    and are only ever produced by the classifier (see application.mastery).
    """

    decks: list[Deck] = field(default_factory=list)
    vocabulary: list[VocabularyItem] = field(default_factory=list)
    mastery_levels: MasteryLevels = field(default_factory=MasteryLevels)
    last_import_at: datetime | None = None
    total_cards: int = 0


@dataclass(frozen=True)
class TermPair:
    """
    Input row for archive export.

    Attributes:
        term: Primary term (field 0).
        counterpart: Translation/definition (field 1).
        interval_days: Optional scheduling override for the card's interval.
        ease_factor: Optional scheduling override for the card's ease.
    """

    term: str
    counterpart: str = ""
    interval_days: int | None = None
    ease_factor: int | None = None


@dataclass
class ImportResult:
    """Outcome of one import call. Never raised, always returned."""

    success: bool
    deck_name: str | None = None
    card_count: int = 0
    vocabulary_count: int = 0
    skipped_rows: int = 0
    error_kind: str | None = None
    error_message: str | None = None


@dataclass
class VocabularyGuidance:
    """Words per mastery tier, consumed by content selection."""

    mastered: list[str]
    familiar: list[str]
    learning: list[str]
    new: list[str]
    total_words: int
    total_cards: int
    deck_count: int


@dataclass
class StoreStatistics:
    decks: int
    total_cards: int
    total_vocabulary: int
    mastered: int
    familiar: int
    learning: int
    new: int
    last_import_at: datetime | None


@dataclass
class DeckSummary:
    name: str
    imported_at: datetime
    card_count: int
    vocabulary_count: int
    manual_mastery_level: MasteryTier | None
