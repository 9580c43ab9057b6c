"""Id generation for imported and exported cards."""

import secrets
import time

from ulid import ULID

# Anki's base91 guid alphabet
_BASE91_TABLE = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    "!#$%&()*+,-./:;<=>?@[]^_`{|}~"
)


def generate_card_token(prefix: str = "tsv") -> str:
    """Synthetic unique card id for imports without native ids."""
    return f"{prefix}_{ULID()}"


def generate_guid() -> str:
    """Random short globally-unique note identifier in Anki's base91 style."""
    num = secrets.randbits(64)
    chars = []
    while num:
        num, rem = divmod(num, len(_BASE91_TABLE))
        chars.append(_BASE91_TABLE[rem])
    return "".join(reversed(chars)) or _BASE91_TABLE[0]


class IdSequence:
    """
    Monotonic id allocator, seeded once per export.

    Each allocation reserves a note id and the card id immediately after it,
    so every id handed out is unique and strictly increasing across both
    the notes and cards tables.
    """

    def __init__(self, seed: int | None = None):
        self._next = seed if seed is not None else int(time.time() * 1000)

    def allocate(self) -> tuple[int, int]:
        note_id = self._next
        card_id = note_id + 1
        self._next += 2
        return note_id, card_id
