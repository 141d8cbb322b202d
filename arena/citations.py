"""Citation extraction from debate statements and per-debate de-duplication."""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from urllib.parse import urlsplit

from arena.models import Debate, Position, RoundType

logger = logging.getLogger(__name__)


class CitationType(str, Enum):
    URL = "url"
    ACADEMIC = "academic"
    BOOK = "book"
    ARTICLE = "article"
    GENERAL = "general"


@dataclass(frozen=True)
class Citation:
    text: str
    type: CitationType
    model: str
    position: Position
    round: RoundType
    url: str | None = None
    author: str | None = None
    title: str | None = None
    source: str | None = None
    year: int | None = None

    def format(self) -> str:
        """One-line bibliography entry."""
        if self.type is CitationType.URL:
            return f"{self.title} <{self.url}>" if self.title else f"<{self.url}>"
        parts: list[str] = []
        if self.author:
            parts.append(f"{self.author} ({self.year})" if self.year else self.author)
        if self.title:
            parts.append(f'"{self.title}"')
        if self.source:
            parts.append(self.source)
        if self.year and not self.author:
            parts.append(str(self.year))
        if self.url and not parts:
            parts.append(f"<{self.url}>")
        return ". ".join(parts) if parts else self.text


# Straight and typographic double quotes
_Q = "\"“”"
_NOT_Q = f"[^{_Q}]"


@dataclass(frozen=True)
class _Pattern:
    regex: re.Pattern[str]
    type: CitationType
    fields: Callable[[re.Match[str]], dict]


def _strip_url(url: str) -> str:
    """Drop sentence punctuation caught at the end of a URL match."""
    return re.sub(r"[.,;:!?]+$", "", url.strip())


def _title_from_url(url: str) -> str:
    """Readable label for a URL: last path segment, else the host."""
    parts = urlsplit(url)
    host = re.sub(r"^www\.", "", parts.hostname or "")
    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return host or url
    stem = re.sub(r"\.[^.]+$", "", segments[-1])
    title = re.sub(r"\b\w", lambda m: m.group(0).upper(), re.sub(r"[-_]", " ", stem))
    return title or host or url


# Most specific first; later patterns never claim text an earlier one matched
_PATTERNS: tuple[_Pattern, ...] = (
    _Pattern(
        re.compile(
            r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
            r"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*)",
            re.IGNORECASE,
        ),
        CitationType.URL,
        lambda m: {"url": _strip_url(m.group(0)), "title": _title_from_url(_strip_url(m.group(0)))},
    ),
    _Pattern(
        re.compile(r"doi:\s*(10\.\d{4,}/\S+)", re.IGNORECASE),
        CitationType.ACADEMIC,
        lambda m: {"url": f"https://doi.org/{m.group(1)}"},
    ),
    _Pattern(
        re.compile(
            rf"([A-Z][a-z]+(?:\s+(?:et\s+al\.|&|and)\s+[A-Z][a-z]+)?)\s*\((\d{{4}})\)\.\s*"
            rf"[{_Q}]({_NOT_Q}+)[{_Q}](?:\.\s*([^.]+))?"
        ),
        CitationType.ACADEMIC,
        lambda m: {"author": m.group(1), "year": int(m.group(2)), "title": m.group(3), "source": m.group(4)},
    ),
    _Pattern(
        re.compile(rf"[{_Q}]({_NOT_Q}+)[{_Q}](?:\s+by\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*))?\s*\((\d{{4}})\)"),
        CitationType.BOOK,
        lambda m: {"title": m.group(1), "author": m.group(2), "year": int(m.group(3))},
    ),
    _Pattern(
        re.compile(rf"[{_Q}]({_NOT_Q}+)[{_Q}],\s*([^,]+),\s*(\d{{4}})"),
        CitationType.ARTICLE,
        lambda m: {"title": m.group(1), "source": m.group(2), "year": int(m.group(3))},
    ),
    _Pattern(
        re.compile(rf"([A-Z][a-z]+(?:\s+et\s+al\.|\s+(?:&|and)\s+[A-Z][a-z]+)?)\s*\((\d{{4}})\)(?!\.\s*[{_Q}])"),
        CitationType.ACADEMIC,
        lambda m: {"author": m.group(1), "year": int(m.group(2))},
    ),
)


def _normalize(citation: Citation) -> Citation:
    def clean(value: str | None) -> str | None:
        return value.strip() if value else value

    url = clean(citation.url)
    if url:
        url = _strip_url(url)
    title = clean(citation.title)
    if title:
        title = title.strip(_Q)
    return replace(
        citation,
        text=citation.text.strip(),
        url=url,
        author=clean(citation.author),
        title=title,
        source=clean(citation.source),
    )


class CitationExtractor:
    """Finds URLs, DOIs and author/year style references in statement text."""

    def has_citations(self, content: str) -> bool:
        return any(p.regex.search(content) for p in _PATTERNS)

    def extract(
        self,
        content: str,
        model: str,
        position: Position,
        round_type: RoundType,
    ) -> list[Citation]:
        """Extract citations from one statement.

        Patterns run from most to least specific. A match overlapping a
        span already claimed, or repeating text already extracted, is
        skipped.

        Args:
            content: Statement text.
            model: Name of the model that produced it.
            position: Side the statement was made for.
            round_type: Round the statement belongs to.

        Returns:
            Citations in pattern order, then text order.
        """
        citations: list[Citation] = []
        seen: set[str] = set()
        claimed: list[tuple[int, int]] = []

        for pattern in _PATTERNS:
            for match in pattern.regex.finditer(content):
                text = match.group(0).strip()
                start, end = match.span()
                if text in seen:
                    continue
                if any(start < c_end and end > c_start for c_start, c_end in claimed):
                    continue
                seen.add(text)
                claimed.append((start, end))
                citations.append(_normalize(Citation(
                    text=text,
                    type=pattern.type,
                    model=model,
                    position=position,
                    round=round_type,
                    **pattern.fields(match),
                )))

        return citations

    def extract_round(self, debate: Debate, round_type: RoundType) -> list[Citation]:
        """Extract citations from both statements of a completed round."""
        rnd = debate.find_round(round_type)
        if rnd is None:
            return []
        citations: list[Citation] = []
        for statement in (rnd.affirmative_statement, rnd.negative_statement):
            if statement is not None:
                citations += self.extract(statement.content, statement.model, statement.position, round_type)
        return citations


def _normalize_url(url: str) -> str:
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        return url.lower().strip().rstrip("/")
    return f"{parts.scheme}://{parts.hostname}{parts.path}".rstrip("/").lower()


def _normalize_text(text: str) -> str:
    text = re.sub(r"\s+", " ", text.lower().strip())
    return re.sub(r"[.,;:!?'\"]", "", text)


def similarity_key(citation: Citation) -> str:
    """Key under which two citations count as the same source."""
    parts: list[str] = []
    if citation.url:
        parts.append(f"url:{_normalize_url(citation.url)}")
    if citation.author and citation.year:
        parts.append(f"author:{_normalize_text(citation.author)}:year:{citation.year}")
    if citation.title:
        parts.append(f"title:{_normalize_text(citation.title)}")
    if parts:
        return "|".join(parts)
    return f"text:{_normalize_text(citation.text)}"


class CitationTracker:
    """Accumulates the unique citations of one debate."""

    def __init__(self) -> None:
        self._citations: list[Citation] = []
        self._keys: set[str] = set()

    def add(self, citation: Citation) -> bool:
        """Track a citation. Returns False if an equivalent one is already tracked."""
        key = similarity_key(citation)
        if key in self._keys:
            return False
        self._keys.add(key)
        self._citations.append(citation)
        return True

    def add_all(self, citations: Iterable[Citation]) -> int:
        added = sum(1 for c in citations if self.add(c))
        logger.debug("Tracked %d new citation(s), %d total", added, len(self._citations))
        return added

    def by_position(self, position: Position) -> list[Citation]:
        return [c for c in self._citations if c.position is position]

    def by_model(self, model: str) -> list[Citation]:
        return [c for c in self._citations if c.model == model]

    def all(self) -> list[Citation]:
        return list(self._citations)

    def count(self, position: Position | None = None) -> int:
        if position is None:
            return len(self._citations)
        return len(self.by_position(position))

    def clear(self) -> None:
        self._citations.clear()
        self._keys.clear()
