"""
Reference structured document used by the annotator.

The tree is a closed set of node kinds: a document holds paragraphs, and a
paragraph holds text runs and hard breaks. Positions follow the usual
document-tree convention: every paragraph contributes an opening and a
closing token, every character and every hard break occupies one position.
A two-paragraph document ``ab`` / ``cd`` therefore places ``a`` at 1, ``b``
at 2, the second paragraph node at 4 and ``c`` at 5.

Edits flatten the tree into its token sequence, change the sequence and
rebuild the tree, merging adjacent text runs that carry the same mark.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator, List, Union

from .models import AnnotationMark


@dataclass(slots=True)
class Text:
    text: str
    mark: AnnotationMark | None = None

    @property
    def node_size(self) -> int:
        return len(self.text)


@dataclass(slots=True)
class Break:
    @property
    def node_size(self) -> int:
        return 1


Inline = Union[Text, Break]


@dataclass(slots=True)
class Paragraph:
    children: List[Inline] = field(default_factory=list)

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.children)

    @property
    def node_size(self) -> int:
        return self.content_size + 2


Node = Union[Paragraph, Text, Break]


class _Boundary:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


_OPEN = _Boundary("open")
_CLOSE = _Boundary("close")
_Token = Union[_Boundary, Text, Break]


class Document:
    """An ordered list of paragraphs with position-based editing helpers."""

    def __init__(self, paragraphs: List[Paragraph] | None = None) -> None:
        self.paragraphs: List[Paragraph] = paragraphs or [Paragraph()]

    @classmethod
    def from_text(cls, text: str) -> "Document":
        """One paragraph per line of ``text``; no marks."""
        paragraphs = [
            Paragraph([Text(line)] if line else []) for line in text.split("\n")
        ]
        return cls(paragraphs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.paragraphs == other.paragraphs

    def __repr__(self) -> str:
        return f"Document({self.paragraphs!r})"

    def copy(self) -> "Document":
        return Document(
            [
                Paragraph([replace(child) for child in paragraph.children])
                for paragraph in self.paragraphs
            ]
        )

    @property
    def content_size(self) -> int:
        return sum(paragraph.node_size for paragraph in self.paragraphs)

    def descendants(self) -> Iterator[tuple[Node, int]]:
        """Yield every node with its position, in document order."""
        pos = 0
        for paragraph in self.paragraphs:
            yield paragraph, pos
            child_pos = pos + 1
            for child in paragraph.children:
                yield child, child_pos
                child_pos += child.node_size
            pos += paragraph.node_size

    def text_between(self, from_: int, to: int, block_separator: str = "") -> str:
        """Plain text of ``[from_, to)``; hard breaks read as newlines."""
        tokens = self._tokens()
        from_, to = self._clamp(from_, to)
        parts: List[str] = []
        first = not _inside_content(tokens, from_)
        for token in tokens[from_:to]:
            if token is _OPEN:
                if first:
                    first = False
                else:
                    parts.append(block_separator)
            elif isinstance(token, Text):
                parts.append(token.text)
            elif isinstance(token, Break):
                parts.append("\n")
        return "".join(parts)

    def marks_between(self, from_: int, to: int) -> List[tuple[int, int, AnnotationMark | None]]:
        """Text runs intersecting ``[from_, to)`` as ``(start, end, mark)``."""
        runs = []
        for node, pos in self.descendants():
            if isinstance(node, Text) and node.text:
                end = pos + node.node_size
                if pos < to and from_ < end:
                    runs.append((pos, end, node.mark))
        return runs

    def add_mark(self, from_: int, to: int, mark: AnnotationMark) -> None:
        self._set_mark(from_, to, mark)

    def remove_mark(self, from_: int, to: int) -> None:
        self._set_mark(from_, to, None)

    def insert_text(self, pos: int, text: str) -> None:
        """
        Insert ``text`` at ``pos``. Newlines split the paragraph.

        Inserted characters join a mark only when both neighbours carry it,
        so typing at either edge of an annotation stays outside it.
        """
        tokens = self._tokens()
        self._require_content_position(tokens, pos)
        before = tokens[pos - 1] if pos > 0 else None
        after = tokens[pos] if pos < len(tokens) else None
        mark = None
        if (
            isinstance(before, Text)
            and isinstance(after, Text)
            and before.mark is not None
            and before.mark == after.mark
        ):
            mark = before.mark
        inserted: List[_Token] = []
        for char in text:
            if char == "\n":
                inserted.extend((_CLOSE, _OPEN))
            else:
                inserted.append(Text(char, mark))
        tokens[pos:pos] = inserted
        self._load(tokens)

    def insert_break(self, pos: int) -> None:
        tokens = self._tokens()
        self._require_content_position(tokens, pos)
        tokens.insert(pos, Break())
        self._load(tokens)

    def split_paragraph(self, pos: int) -> None:
        tokens = self._tokens()
        self._require_content_position(tokens, pos)
        tokens[pos:pos] = [_CLOSE, _OPEN]
        self._load(tokens)

    def delete(self, from_: int, to: int) -> None:
        """Delete ``[from_, to)``; a range crossing paragraphs joins them."""
        if to <= from_:
            return
        tokens = self._tokens()
        self._require_content_position(tokens, from_)
        self._require_content_position(tokens, to)
        del tokens[from_:to]
        self._load(tokens)

    def _set_mark(self, from_: int, to: int, mark: AnnotationMark | None) -> None:
        tokens = self._tokens()
        from_, to = self._clamp(from_, to)
        for index in range(from_, to):
            token = tokens[index]
            if isinstance(token, Text):
                tokens[index] = Text(token.text, mark)
        self._load(tokens)

    def _clamp(self, from_: int, to: int) -> tuple[int, int]:
        size = self.content_size
        return max(0, min(from_, size)), max(0, min(to, size))

    def _tokens(self) -> List[_Token]:
        tokens: List[_Token] = []
        for paragraph in self.paragraphs:
            tokens.append(_OPEN)
            for child in paragraph.children:
                if isinstance(child, Text):
                    tokens.extend(Text(char, child.mark) for char in child.text)
                elif isinstance(child, Break):
                    tokens.append(Break())
                else:
                    raise TypeError(f"Unexpected inline node {child!r}")
            tokens.append(_CLOSE)
        return tokens

    def _load(self, tokens: List[_Token]) -> None:
        paragraphs: List[Paragraph] = []
        current: Paragraph | None = None
        for token in tokens:
            if token is _OPEN:
                current = Paragraph()
            elif token is _CLOSE:
                if current is None:
                    raise ValueError("Unbalanced paragraph tokens.")
                paragraphs.append(current)
                current = None
            elif current is None:
                raise ValueError("Inline content outside a paragraph.")
            elif isinstance(token, Text):
                last = current.children[-1] if current.children else None
                if isinstance(last, Text) and last.mark == token.mark:
                    last.text += token.text
                else:
                    current.children.append(Text(token.text, token.mark))
            else:
                current.children.append(Break())
        self.paragraphs = paragraphs or [Paragraph()]

    @staticmethod
    def _require_content_position(tokens: List[_Token], pos: int) -> None:
        if not _inside_content(tokens, pos):
            raise ValueError(f"Position {pos} is not inside paragraph content.")


def _inside_content(tokens: List[_Token], pos: int) -> bool:
    """True when ``pos`` falls between a paragraph's opening and closing tokens."""
    if pos <= 0 or pos >= len(tokens):
        return False
    return tokens[pos - 1] is not _CLOSE and tokens[pos] is not _OPEN
