"""
Error taxonomy for the archive codec.

Import-level errors abort an import and leave the store untouched.
`RowDecodeError` is per-row and is absorbed by the record extractor.
"""


class AnkiVocabError(Exception):
    """Base class for all ankivocab errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ArchiveImportError(AnkiVocabError):
    """An import could not complete; nothing was added to the store."""


class CorruptArchive(ArchiveImportError):
    """The container could not be decompressed or listed."""


class MissingDatabase(ArchiveImportError):
    """No recognized collection database member in the container."""


class UnsupportedCompressedSchema(ArchiveImportError):
    """Only the zstd-compressed collection.anki21b database is present."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or (
                "This deck uses the newer compressed Anki format (collection.anki21b), "
                "which is not supported. Re-export it from Anki with "
                "'Support older Anki versions' (legacy-compatible export) enabled."
            )
        )


class CorruptDatabase(ArchiveImportError):
    """The database member exists but could not be opened or queried."""


class InvalidTabularFile(ArchiveImportError):
    """The tabular fallback content could not be decoded as UTF-8 text."""


class RowDecodeError(AnkiVocabError):
    """A single joined card/note row could not be decoded."""

    def __init__(self, row_id: object, reason: str):
        super().__init__(f"row {row_id}: {reason}")
        self.row_id = row_id
        self.reason = reason


class ExportFailed(AnkiVocabError):
    """Database construction or packaging failed; no output was produced."""


class StorageError(AnkiVocabError):
    """The persistence collaborator failed to load or save."""
