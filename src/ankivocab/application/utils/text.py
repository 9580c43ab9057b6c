import re
from html.parser import HTMLParser

from ankivocab.domain.constants import MIN_TOKEN_LENGTH, PUNCTUATION, STOP_WORDS

# ---------- Markup -> plain text ----------

_BREAKING_TAGS = {
    "br", "div", "p", "li", "ul", "ol", "tr", "td", "th", "table",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "blockquote", "section",
}  # fmt: skip
_HIDDEN_TAGS = {"script", "style"}
_WHITESPACE_RE = re.compile(r"\s+")


class _TextCollector(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.chunks: list[str] = []
        self.hidden_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _HIDDEN_TAGS:
            self.hidden_depth += 1
        elif tag in _BREAKING_TAGS:
            self.chunks.append(" ")

    def handle_startendtag(self, tag, attrs):
        if tag in _BREAKING_TAGS:
            self.chunks.append(" ")

    def handle_endtag(self, tag):
        if tag in _HIDDEN_TAGS:
            self.hidden_depth = max(0, self.hidden_depth - 1)
        elif tag in _BREAKING_TAGS:
            self.chunks.append(" ")

    def handle_data(self, data):
        if not self.hidden_depth:
            self.chunks.append(data)


def extract_text_from_html(html: str | None) -> str:
    """
    Render an Anki field to normalized plain text.

    Tags are removed, entities resolved, line-breaking tags become spaces and
    whitespace runs collapse to one space. Never raises.
    """
    if not html:
        return ""
    parser = _TextCollector()
    try:
        parser.feed(html)
        parser.close()
    except Exception:
        # HTMLParser is lenient; anything it still rejects is not renderable text.
        return ""
    return _WHITESPACE_RE.sub(" ", "".join(parser.chunks)).strip()


# ---------- Vocabulary tokens ----------

_PUNCTUATION_TABLE = str.maketrans({ch: " " for ch in PUNCTUATION})


def extract_vocabulary_words(text: str) -> list[str]:
    """
    Split plain text into candidate vocabulary tokens.

    Lower-cases, blanks out punctuation, drops tokens shorter than
    MIN_TOKEN_LENGTH and closed-class function words. Order is preserved and
    duplicates are kept; callers deduplicate.
    """
    words = text.lower().translate(_PUNCTUATION_TABLE).split()
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH and w not in STOP_WORDS]
