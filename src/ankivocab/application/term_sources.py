"""Loading export term pairs from YAML or tabular files."""

from pathlib import Path
from typing import Any

import yaml  # type: ignore

from ankivocab.application.tabular_import import decode_tabular_bytes, split_records
from ankivocab.domain.models import TermPair

YAML_SUFFIXES = (".yaml", ".yml")


class TermFileError(ValueError):
    """The term file is not a usable list of term pairs."""


def _optional_int(entry: dict[str, Any], key: str, index: int) -> int | None:
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TermFileError(f"Entry #{index}: '{key}' must be an integer, got {value!r}")
    return value


def parse_yaml_terms(text: str) -> list[TermPair]:
    """
    Parse a YAML list of term entries.

    Each entry is either a mapping with `term`, optional `counterpart`,
    `interval` and `ease`, or a two-item list `[term, counterpart]`.
    """
    try:
        data = yaml.safe_load(text) or []
    except yaml.YAMLError as e:
        raise TermFileError(f"Invalid YAML: {e}") from e

    if isinstance(data, dict) and "terms" in data:
        data = data["terms"]
    if not isinstance(data, list):
        raise TermFileError("Expected a list of terms")

    terms: list[TermPair] = []
    for i, entry in enumerate(data):
        if isinstance(entry, list) and entry:
            counterpart = str(entry[1]) if len(entry) > 1 else ""
            terms.append(TermPair(term=str(entry[0]), counterpart=counterpart))
        elif isinstance(entry, dict) and entry.get("term"):
            terms.append(
                TermPair(
                    term=str(entry["term"]),
                    counterpart=str(entry.get("counterpart") or ""),
                    interval_days=_optional_int(entry, "interval", i),
                    ease_factor=_optional_int(entry, "ease", i),
                )
            )
        else:
            raise TermFileError(
                f"Entry #{i}: expected a mapping with 'term' or a [term, counterpart] list"
            )
    return terms


def parse_tabular_terms(text: str) -> list[TermPair]:
    terms = []
    for fields in split_records(text):
        term = fields[0].strip()
        if term:
            counterpart = fields[1].strip() if len(fields) > 1 else ""
            terms.append(TermPair(term=term, counterpart=counterpart))
    return terms


def load_terms(path: Path) -> list[TermPair]:
    text = decode_tabular_bytes(path.read_bytes())
    if path.suffix.lower() in YAML_SUFFIXES:
        return parse_yaml_terms(text)
    return parse_tabular_terms(text)
