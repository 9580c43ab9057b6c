"""
Anki collection schema (version 11) for the legacy `collection.anki2` member.

The `col` row stores its configuration as JSON text blobs. Each blob is
modelled here as a typed struct and only turned into JSON at the write
boundary via `to_json()`.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_SQL = """
CREATE TABLE col (
    id integer primary key,
    crt integer not null,
    mod integer not null,
    scm integer not null,
    ver integer not null,
    dty integer not null,
    usn integer not null,
    ls integer not null,
    conf text not null,
    models text not null,
    decks text not null,
    dconf text not null,
    tags text not null
);
CREATE TABLE notes (
    id integer primary key,
    guid text not null,
    mid integer not null,
    mod integer not null,
    usn integer not null,
    tags text not null,
    flds text not null,
    sfld integer not null,
    csum integer not null,
    flags integer not null,
    data text not null
);
CREATE TABLE cards (
    id integer primary key,
    nid integer not null,
    did integer not null,
    ord integer not null,
    mod integer not null,
    usn integer not null,
    type integer not null,
    queue integer not null,
    due integer not null,
    ivl integer not null,
    factor integer not null,
    reps integer not null,
    lapses integer not null,
    left integer not null,
    odue integer not null,
    odid integer not null,
    flags integer not null,
    data text not null
);
CREATE TABLE revlog (
    id integer primary key,
    cid integer not null,
    usn integer not null,
    ease integer not null,
    ivl integer not null,
    lastIvl integer not null,
    factor integer not null,
    time integer not null,
    type integer not null
);
CREATE TABLE graves (
    usn integer not null,
    oid integer not null,
    type integer not null
);
CREATE INDEX ix_notes_usn on notes (usn);
CREATE INDEX ix_cards_usn on cards (usn);
CREATE INDEX ix_revlog_usn on revlog (usn);
CREATE INDEX ix_cards_nid on cards (nid);
CREATE INDEX ix_cards_sched on cards (did, queue, due);
CREATE INDEX ix_revlog_cid on revlog (cid);
CREATE INDEX ix_notes_csum on notes (csum);
"""

DEFAULT_CSS = """.card {
 font-family: arial;
 font-size: 20px;
 text-align: center;
 color: black;
 background-color: white;
}
"""

LATEX_PRE = (
    "\\documentclass[12pt]{article}\n\\special{papersize=3in,5in}\n"
    "\\usepackage[utf8]{inputenc}\n\\usepackage{amssymb,amsmath}\n"
    "\\pagestyle{empty}\n\\setlength{\\parindent}{0in}\n\\begin{document}\n"
)
LATEX_POST = "\\end{document}"


class _Blob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ModelField(_Blob):
    name: str
    ord: int
    sticky: bool = False
    rtl: bool = False
    font: str = "Arial"
    size: int = 20
    media: list[str] = Field(default_factory=list)


class CardTemplate(_Blob):
    name: str
    ord: int
    qfmt: str
    afmt: str
    did: int | None = None
    bqfmt: str = ""
    bafmt: str = ""


class NoteModel(_Blob):
    """A note type ("model"): two fields, one template."""

    id: int
    name: str
    did: int
    mod: int
    flds: list[ModelField]
    tmpls: list[CardTemplate]
    type: int = 0  # 0 = standard, 1 = cloze
    usn: int = -1
    sortf: int = 0
    css: str = DEFAULT_CSS
    latex_pre: str = Field(default=LATEX_PRE, alias="latexPre")
    latex_post: str = Field(default=LATEX_POST, alias="latexPost")
    latexsvg: bool = False
    req: list[list[Any]] = Field(default_factory=lambda: [[0, "any", [0]]])
    tags: list[str] = Field(default_factory=list)
    vers: list[Any] = Field(default_factory=list)


class NewCardConfig(_Blob):
    delays: list[float] = Field(default_factory=lambda: [1.0, 10.0])
    ints: list[int] = Field(default_factory=lambda: [1, 4, 7])
    initial_factor: int = Field(default=2500, alias="initialFactor")
    order: int = 1
    per_day: int = Field(default=20, alias="perDay")
    bury: bool = False
    separate: bool = True


class ReviewConfig(_Blob):
    per_day: int = Field(default=200, alias="perDay")
    ease4: float = 1.3
    fuzz: float = 0.05
    ivl_fct: float = Field(default=1.0, alias="ivlFct")
    max_ivl: int = Field(default=36500, alias="maxIvl")
    bury: bool = False
    min_space: int = Field(default=1, alias="minSpace")
    hard_factor: float = Field(default=1.2, alias="hardFactor")


class LapseConfig(_Blob):
    delays: list[float] = Field(default_factory=lambda: [10.0])
    mult: float = 0.0
    min_int: int = Field(default=1, alias="minInt")
    leech_fails: int = Field(default=8, alias="leechFails")
    leech_action: int = Field(default=0, alias="leechAction")


class DeckConfig(_Blob):
    id: int
    name: str
    mod: int
    usn: int = -1
    max_taken: int = Field(default=60, alias="maxTaken")
    autoplay: bool = True
    timer: int = 0
    replayq: bool = True
    dyn: bool = False
    new: NewCardConfig = Field(default_factory=NewCardConfig)
    rev: ReviewConfig = Field(default_factory=ReviewConfig)
    lapse: LapseConfig = Field(default_factory=LapseConfig)


class DeckDefinition(_Blob):
    id: int
    name: str
    conf: int
    mod: int
    desc: str = ""
    usn: int = -1
    dyn: int = 0
    collapsed: bool = False
    browser_collapsed: bool = Field(default=False, alias="browserCollapsed")
    new_today: list[int] = Field(default_factory=lambda: [0, 0], alias="newToday")
    rev_today: list[int] = Field(default_factory=lambda: [0, 0], alias="revToday")
    lrn_today: list[int] = Field(default_factory=lambda: [0, 0], alias="lrnToday")
    time_today: list[int] = Field(default_factory=lambda: [0, 0], alias="timeToday")
    extend_new: int = Field(default=10, alias="extendNew")
    extend_rev: int = Field(default=50, alias="extendRev")


class CollectionConfig(_Blob):
    """Global `col.conf` blob."""

    cur_deck: int = Field(alias="curDeck")
    cur_model: str = Field(alias="curModel")
    active_decks: list[int] = Field(alias="activeDecks")
    next_pos: int = Field(default=1, alias="nextPos")
    est_times: bool = Field(default=True, alias="estTimes")
    sort_type: str = Field(default="noteFld", alias="sortType")
    sort_backwards: bool = Field(default=False, alias="sortBackwards")
    time_lim: int = Field(default=0, alias="timeLim")
    add_to_cur: bool = Field(default=True, alias="addToCur")
    new_bury: bool = Field(default=True, alias="newBury")
    new_spread: int = Field(default=0, alias="newSpread")
    due_counts: bool = Field(default=True, alias="dueCounts")
    collapse_time: int = Field(default=1200, alias="collapseTime")


def keyed_by_id(blobs: list[DeckDefinition] | list[DeckConfig] | list[NoteModel]) -> str:
    """Serialize blobs as Anki stores them: a JSON object keyed by stringified id."""
    return json.dumps({str(b.id): b.to_dict() for b in blobs}, ensure_ascii=False)
