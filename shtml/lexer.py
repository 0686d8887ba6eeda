"""
Tag scanner.

Splits template source into literal runs and tags. The character right after
the open delimiter decides the tag kind; the body extends to the first close
marker. Comments close with the comment marker followed by the close
delimiter, so they can wrap (and neutralize) any other tag.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .config import DEFAULT_DELIMITERS, DelimiterSet
from .errors import UnterminatedTagError


class TagKind(enum.Enum):
    """Kinds of chunks produced by the scanner."""
    TEXT = "TEXT"
    CODE = "CODE"
    ESCAPED = "ESCAPED"
    RAW = "RAW"
    IMPORT = "IMPORT"
    COMMENT = "COMMENT"


@dataclass(frozen=True)
class Chunk:
    """
    A literal run or a tag with positional information for diagnostics.

    For tags `value` is the body between the markers; for TEXT it is the
    literal text itself.
    """
    kind: TagKind
    value: str
    position: int        # Offset of the chunk in the source text
    line: int            # 1-based
    column: int          # 1-based

    def __repr__(self) -> str:
        return f"Chunk({self.kind.name}, {self.value!r}, {self.line}:{self.column})"


class TagScanner:
    """
    Walks raw template text and yields chunks in document order.

    The scanner is stateless apart from its delimiter set, so one instance
    can scan any number of texts.
    """

    def __init__(self, delimiters: DelimiterSet = DEFAULT_DELIMITERS, template_name: str = ""):
        self.delimiters = delimiters
        self.template_name = template_name
        self._kinds = {
            delimiters.comment: TagKind.COMMENT,
            delimiters.escape: TagKind.ESCAPED,
            delimiters.unescape: TagKind.RAW,
            delimiters.import_: TagKind.IMPORT,
        }

    def next_open_delimiter(self, text: str, start: int) -> Optional[int]:
        """Index of the next open delimiter at or after `start`, or None."""
        index = text.find(self.delimiters.open, start)
        return index if index >= 0 else None

    def tag_body(self, text: str, start: int, close_marker: str, tag_start: Optional[int] = None) -> Tuple[str, int]:
        """
        Extracts a tag body.

        Returns the text between `start` and the first `close_marker` at or
        after it, plus the index just past the marker.

        Raises:
            UnterminatedTagError: If the close marker does not occur
        """
        end = text.find(close_marker, start)
        if end < 0:
            line, column = self.location(text, start if tag_start is None else tag_start)
            raise UnterminatedTagError(close_marker, line, column, self.template_name)
        return text[start:end], end + len(close_marker)

    def classify(self, text: str, index: int) -> TagKind:
        """Tag kind for the character at `index` (just after the open delimiter)."""
        if index >= len(text):
            return TagKind.CODE
        return self._kinds.get(text[index], TagKind.CODE)

    def scan(self, text: str) -> Iterator[Chunk]:
        """
        Yields literal and tag chunks.

        Raises:
            UnterminatedTagError: If a tag has no close marker
        """
        d = self.delimiters
        cursor = 0
        length = len(text)

        while cursor < length:
            open_at = self.next_open_delimiter(text, cursor)
            if open_at is None:
                yield self._chunk(TagKind.TEXT, text[cursor:], text, cursor)
                return

            if open_at > cursor:
                yield self._chunk(TagKind.TEXT, text[cursor:open_at], text, cursor)

            marker_at = open_at + len(d.open)
            kind = self.classify(text, marker_at)

            if kind is TagKind.COMMENT:
                # The search starts at the marker itself, so "<%!%>" is an empty comment
                _, cursor = self.tag_body(text, marker_at, d.comment_close, open_at)
                body = text[marker_at + len(d.comment):cursor - len(d.comment_close)]
            elif kind is TagKind.CODE:
                body, cursor = self.tag_body(text, marker_at, d.close, open_at)
            else:
                body, cursor = self.tag_body(text, marker_at + 1, d.close, open_at)

            yield self._chunk(kind, body, text, open_at)

    def tokenize(self, text: str) -> List[Chunk]:
        """
        Scans the whole text into a list, so a malformed tag anywhere fails
        before any chunk is acted upon.
        """
        return list(self.scan(text))

    @staticmethod
    def location(text: str, position: int) -> Tuple[int, int]:
        """1-based (line, column) of an offset."""
        line = text.count("\n", 0, position) + 1
        line_start = text.rfind("\n", 0, position) + 1
        return line, position - line_start + 1

    def _chunk(self, kind: TagKind, value: str, text: str, position: int) -> Chunk:
        line, column = self.location(text, position)
        return Chunk(kind, value, position, line, column)


__all__ = ["TagKind", "Chunk", "TagScanner"]
