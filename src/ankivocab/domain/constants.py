"""Centralized constants for ankivocab.

All magic numbers and fixed vocabularies of the archive codec live here so
every layer imports from a single source of truth.
"""

# ---------- Mastery tiers ----------
MASTERED_MIN_INTERVAL = 90
FAMILIAR_MIN_INTERVAL = 21
LEARNING_MIN_INTERVAL = 7

TIERS = ("mastered", "familiar", "learning", "new")

# Synthetic intervals for tabular imports, keyed by the manual tier.
MANUAL_TIER_INTERVALS = {
    "mastered": 180,  # 6 months
    "familiar": 45,  # 1.5 months
    "learning": 14,  # 2 weeks
    "new": 0,
}

# ---------- Scheduling ----------
DEFAULT_EASE_FACTOR = 2500  # 250%

# Anki cards.type -> card state
CARD_TYPE_STATES = {
    0: "new",
    1: "learning",
    2: "review",
    3: "learning",  # relearning
}

# ---------- Archive container ----------
FIELD_SEPARATOR = "\x1f"

LEGACY_DB_MEMBER = "collection.anki2"
MODERN_DB_MEMBER = "collection.anki21"
COMPRESSED_DB_MEMBER = "collection.anki21b"
DB_MEMBER_PRIORITY = (LEGACY_DB_MEMBER, MODERN_DB_MEMBER)
MEDIA_MEMBER = "media"
# Text of the single note in the collection.anki2 placeholder newer exporters emit
STUB_NOTICE_PREFIX = "Please update to the latest Anki version"

APKG_SUFFIX = ".apkg"
TABULAR_SUFFIXES = (".txt", ".tsv", ".csv")

# ---------- Export ----------
SCHEMA_VERSION = 11
# Stable ids keep repeated exports of the same deck referentially consistent.
EXPORT_MODEL_ID = 1607392319
EXPORT_DECK_ID = 2059400110
EXPORT_DCONF_ID = 1
EXPORT_MODEL_NAME = "ankivocab Basic"

# ---------- Tokenizer ----------
MIN_TOKEN_LENGTH = 3
PUNCTUATION = frozenset('¿?!¡.,;:()"[]')

# Closed-class Spanish function words
STOP_WORDS = frozenset(
    {
        "el", "la", "los", "las", "un", "una", "unos", "unas",
        "de", "del", "al", "en", "con", "por", "para", "sin",
        "que", "qué", "como", "cómo", "donde", "dónde",
        "es", "son", "está", "están", "ser", "estar",
        "hay", "muy", "más", "menos", "tan", "tanto",
    }
)  # fmt: skip
