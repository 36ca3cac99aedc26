"""
Format-preserving XML documents for gitversioning.

A RawDocument keeps the original bytes of a descriptor file together
with an element tree that records where every element starts and ends
in those bytes. Text changes are applied by splicing the new text into
the original bytes, so comments, whitespace, attribute quoting, entity
references and the XML declaration all survive untouched. Within an
edited element only its character data is replaced; comments and
processing instructions between the text stay where they are.

Example:
    doc = RawDocument.read(Path("pom.xml"))
    doc.root.child("version").set_text("1.2.3")
    doc.write(Path(".git-versioned-pom.xml"))
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple
from xml.parsers import expat
from xml.sax.saxutils import escape

DEFAULT_ENCODING = "utf-8"


class RawElement:
    """
    One element of a RawDocument.

    Offsets are byte positions in the original document:
    `start` is the '<' of the start tag, `content_start`/`content_end`
    delimit the element content, `end` is just past the end tag.
    """

    def __init__(self, tag: str, attrib: Dict[str, str], start: int):
        self.tag = tag
        self.attrib = attrib
        self.start = start
        self.content_start = start
        self.content_end = start
        self.end = start
        self.self_closing = False
        self.parent: Optional['RawElement'] = None
        self._children: List['RawElement'] = []
        self._text_parts: List[str] = []
        # (start, end, in_cdata) byte spans of contiguous character data
        self._text_runs: List[Tuple[int, int, bool]] = []
        self._new_text: Optional[str] = None

    @property
    def name(self) -> str:
        """Tag name without namespace prefix."""
        return self.tag.rsplit(':', 1)[-1]

    def children(self, name: Optional[str] = None) -> List['RawElement']:
        """Child elements in document order, optionally only those named `name`."""
        if name is None:
            return list(self._children)
        return [child for child in self._children if child.name == name]

    def child(self, name: str) -> Optional['RawElement']:
        """First child element named `name`, or None."""
        for element in self._children:
            if element.name == name:
                return element
        return None

    @property
    def text(self) -> str:
        if self._new_text is not None:
            return self._new_text
        return ''.join(self._text_parts)

    def set_text(self, value: str) -> None:
        """Replace the content of this leaf element with `value`."""
        if self._children:
            raise ValueError(f"element <{self.tag}> has child elements, can not set text")
        self._new_text = value

    @property
    def modified(self) -> bool:
        return self._new_text is not None and self._new_text != ''.join(self._text_parts)

    def iter(self) -> Iterator['RawElement']:
        """This element and all descendants in document order."""
        yield self
        for element in self._children:
            yield from element.iter()

    def __repr__(self) -> str:
        return f"<RawElement {self.tag} @{self.start}>"


class RawDocument:
    """
    An XML document that serializes back to its original bytes
    except for element texts changed through `RawElement.set_text`.
    """

    def __init__(self, data: bytes, root: RawElement, encoding: str = DEFAULT_ENCODING,
                 path: Optional[Path] = None):
        self.data = data
        self.root = root
        self.encoding = encoding
        self.path = path

    @classmethod
    def read(cls, path: Path) -> 'RawDocument':
        path = Path(path)
        return cls.parse(path.read_bytes(), path=path)

    @classmethod
    def parse(cls, data, path: Optional[Path] = None) -> 'RawDocument':
        if isinstance(data, str):
            data = data.encode(DEFAULT_ENCODING)
        builder = _OffsetTreeBuilder(data)
        root, encoding = builder.build()
        return cls(data, root, encoding=encoding, path=path)

    def child(self, name: str) -> Optional[RawElement]:
        """Document element if it is named `name`, None otherwise."""
        return self.root if self.root.name == name else None

    def to_bytes(self) -> bytes:
        replacements: List[Tuple[int, int, bytes]] = []
        for element in self.root.iter():
            if not element.modified:
                continue
            if element.self_closing:
                # <version/> becomes <version>text</version>
                text = escape(element._new_text).encode(self.encoding)
                open_tag = self.data[element.start:element.end - 2].rstrip()
                replacement = open_tag + b'>' + text + b'</' + element.tag.encode(self.encoding) + b'>'
                replacements.append((element.start, element.end, replacement))
            else:
                replacements.extend(self._text_replacements(element))

        out = bytearray()
        position = 0
        for start, end, replacement in sorted(replacements):
            out += self.data[position:start]
            out += replacement
            position = end
        out += self.data[position:]
        return bytes(out)

    def write(self, path: Path) -> None:
        Path(path).write_bytes(self.to_bytes())

    def _text_replacements(self, element: RawElement) -> List[Tuple[int, int, bytes]]:
        """
        Splices that put the new text of `element` in place of its old one.

        The first run of non-blank character data takes the new text and
        any later non-blank runs are emptied. Comments, processing
        instructions and CDATA markers in between are kept.
        """
        runs = element._text_runs
        if not runs:
            text = escape(element._new_text).encode(self.encoding)
            return [(element.content_start, element.content_start, text)]

        filled = [run for run in runs if self.data[run[0]:run[1]].strip()]
        start, end, in_cdata = filled[0] if filled else runs[0]
        text = element._new_text if in_cdata else escape(element._new_text)
        replacements = [(start, end, text.encode(self.encoding))]
        for start, end, _ in filled[1:]:
            replacements.append((start, end, b''))
        return replacements


class _OffsetTreeBuilder:
    """Builds a RawElement tree from expat events and byte offsets."""

    def __init__(self, data: bytes):
        self.data = data
        self.parser = expat.ParserCreate()
        self.parser.ordered_attributes = False
        self.parser.StartElementHandler = self._start
        self.parser.EndElementHandler = self._end
        self.parser.CharacterDataHandler = self._chardata
        self.parser.XmlDeclHandler = self._xml_decl
        self.parser.CommentHandler = self._comment
        self.parser.ProcessingInstructionHandler = self._processing_instruction
        self.parser.StartCdataSectionHandler = self._start_cdata
        self.parser.EndCdataSectionHandler = self._end_cdata
        self.root: Optional[RawElement] = None
        self.stack: List[RawElement] = []
        self.encoding = DEFAULT_ENCODING
        self.run_start: Optional[int] = None
        self.in_cdata = False

    def build(self) -> Tuple[RawElement, str]:
        self.parser.Parse(self.data, True)
        if self.root is None:
            raise ValueError("document has no root element")
        return self.root, self.encoding

    def _xml_decl(self, version, encoding, standalone):
        if encoding:
            self.encoding = encoding.lower()

    def _start(self, tag, attrib):
        self._close_run()
        start = self.parser.CurrentByteIndex
        element = RawElement(tag, attrib, start)
        tag_end = self._find_tag_end(start)
        element.self_closing = self.data[tag_end - 2:tag_end - 1] == b'/'
        element.content_start = tag_end
        element.content_end = tag_end
        element.end = tag_end

        if self.stack:
            element.parent = self.stack[-1]
            self.stack[-1]._children.append(element)
        else:
            self.root = element
        self.stack.append(element)

    def _end(self, tag):
        self._close_run()
        element = self.stack.pop()
        if not element.self_closing:
            element.content_end = self.parser.CurrentByteIndex
            element.end = self._find_tag_end(element.content_end)

    def _chardata(self, text):
        if self.stack:
            if self.run_start is None:
                self.run_start = self.parser.CurrentByteIndex
            self.stack[-1]._text_parts.append(text)

    def _comment(self, data):
        self._close_run()

    def _processing_instruction(self, target, data):
        self._close_run()

    def _start_cdata(self):
        self._close_run()
        self.in_cdata = True

    def _end_cdata(self):
        self._close_run()
        self.in_cdata = False

    def _close_run(self):
        """End the character data run of the current element at the parser position."""
        if self.run_start is None:
            return
        self.stack[-1]._text_runs.append((self.run_start, self.parser.CurrentByteIndex, self.in_cdata))
        self.run_start = None

    def _find_tag_end(self, position: int) -> int:
        """Offset just past the '>' closing the tag that starts at `position`."""
        quote = None
        data = self.data
        for index in range(position, len(data)):
            char = data[index:index + 1]
            if quote is not None:
                if char == quote:
                    quote = None
            elif char in (b'"', b"'"):
                quote = char
            elif char == b'>':
                return index + 1
        raise ValueError(f"unterminated tag at byte offset {position}")
