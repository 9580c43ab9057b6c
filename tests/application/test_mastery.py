from datetime import datetime, timezone

import pytest

from ankivocab.application.mastery import (
    add_deck,
    categorize_vocabulary,
    deduplicate_vocabulary,
    empty_store,
    remove_deck,
    tier_for_interval,
)
from ankivocab.domain.models import Card, Deck, VocabularyItem

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _item(word: str, interval: int, source: str = "") -> VocabularyItem:
    return VocabularyItem(
        word=word,
        interval_days=interval,
        ease_factor=2500,
        card_state="review" if interval else "new",
        source_text=source or word,
    )


def _deck(name: str, *items: VocabularyItem, cards: int | None = None) -> Deck:
    n_cards = len(items) if cards is None else cards
    return Deck(
        name=name,
        imported_at=NOW,
        cards=[
            Card(
                id=i,
                front_text=f"card {i}",
                back_text="",
                interval_days=0,
                ease_factor=2500,
                card_state="new",
            )
            for i in range(n_cards)
        ],
        vocabulary=list(items),
    )


@pytest.mark.parametrize(
    "interval,tier",
    [
        (0, "new"),
        (6, "new"),
        (7, "learning"),
        (20, "learning"),
        (21, "familiar"),
        (89, "familiar"),
        (90, "mastered"),
        (3650, "mastered"),
    ],
)
def test_tier_boundaries(interval, tier):
    assert tier_for_interval(interval) == tier


def test_dedup_keeps_longest_interval():
    decks = [_deck("A", _item("hola", 5)), _deck("B", _item("hola", 120))]

    vocab, levels, _ = categorize_vocabulary(decks)

    assert [v.word for v in vocab] == ["hola"]
    assert vocab[0].interval_days == 120
    assert [v.word for v in levels.mastered] == ["hola"]
    assert levels.new == []


def test_dedup_tie_first_seen_wins():
    first = _item("gato", 30, source="el gato negro")
    second = _item("gato", 30, source="un gato")

    vocab = deduplicate_vocabulary([_deck("A", first), _deck("B", second)])

    assert vocab == [first]


def test_dedup_longer_later_replaces_but_keeps_position():
    decks = [
        _deck("A", _item("perro", 1), _item("casa", 50)),
        _deck("B", _item("perro", 200)),
    ]
    vocab = deduplicate_vocabulary(decks)
    assert [(v.word, v.interval_days) for v in vocab] == [("perro", 200), ("casa", 50)]


def test_buckets_partition_vocabulary():
    decks = [
        _deck("A", _item("uno", 90), _item("dos", 89), _item("tres", 21)),
        _deck("B", _item("cuatro", 20), _item("cinco", 7), _item("seis", 6), _item("uno", 3)),
    ]

    vocab, levels, _ = categorize_vocabulary(decks)

    bucketed = levels.mastered + levels.familiar + levels.learning + levels.new
    assert sorted(v.word for v in bucketed) == sorted(v.word for v in vocab)
    assert len(bucketed) == len(vocab) == 6
    assert [v.word for v in levels.mastered] == ["uno"]
    assert [v.word for v in levels.familiar] == ["dos", "tres"]
    assert [v.word for v in levels.learning] == ["cuatro", "cinco"]
    assert [v.word for v in levels.new] == ["seis"]


def test_total_cards_sums_decks():
    decks = [_deck("A", cards=3), _deck("B", cards=4)]
    _, _, total = categorize_vocabulary(decks)
    assert total == 7


def test_add_deck_returns_new_snapshot():
    store = empty_store()
    later = datetime(2026, 2, 1, tzinfo=timezone.utc)

    updated = add_deck(store, _deck("A", _item("hola", 10)), later)

    assert store.decks == []
    assert len(updated.decks) == 1
    assert updated.last_import_at == later
    assert updated.total_cards == 1
    assert [v.word for v in updated.mastery_levels.learning] == ["hola"]


def test_remove_deck_drops_stale_entries():
    store = add_deck(empty_store(), _deck("A", _item("hola", 120), cards=2), NOW)
    store = add_deck(store, _deck("B", _item("hola", 5), _item("adiós", 30), cards=3), NOW)
    assert store.total_cards == 5
    assert [v.word for v in store.mastery_levels.mastered] == ["hola"]

    store = remove_deck(store, "A")

    assert [d.name for d in store.decks] == ["B"]
    assert store.total_cards == 3
    assert store.mastery_levels.mastered == []
    assert [v.word for v in store.mastery_levels.new] == ["hola"]
    assert store.mastery_levels.new[0].interval_days == 5
    assert [v.word for v in store.mastery_levels.familiar] == ["adiós"]


def test_remove_deck_keeps_last_import():
    store = add_deck(empty_store(), _deck("A", _item("hola", 1)), NOW)
    assert remove_deck(store, "A").last_import_at == NOW


def test_remove_unknown_deck_is_noop():
    store = add_deck(empty_store(), _deck("A", _item("hola", 1)), NOW)
    after = remove_deck(store, "missing")
    assert after.decks == store.decks
    assert after.vocabulary == store.vocabulary


def test_remove_deck_removes_all_with_same_name():
    store = add_deck(empty_store(), _deck("A", _item("hola", 1)), NOW)
    store = add_deck(store, _deck("A", _item("gato", 1)), NOW)
    assert remove_deck(store, "A").decks == []
