"""
XML token stream utilities.

TokenDecoder turns the bytes of an XML part into a flat sequence of tokens
using an lxml pull parser. Elements are released as soon as they are closed,
so the part is never held in memory as a whole tree.
TokenEncoder writes tokens back out. The encoder only understands textual
names (``w:t``), which is the form produced by ``namespace_utils.fix_ns``.
"""

import re
import zipfile
import zlib
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple
from xml.sax.saxutils import escape

from lxml import etree

from ..core.error_handler import DecodeError, EncodeError
from ..core.models import Attr, CharData, EndElement, Name, Other, StartElement, Token
from .shared_constants import (
    ERROR_XML_PARSING,
    ERROR_XML_WRITING,
    LXML_HUGE_TREE_ENABLED,
    READ_CHUNK_SIZE,
    XML_NAMESPACES,
)

_PROLOG_RE = re.compile(rb'^(?:\xef\xbb\xbf)?<\?xml\s[^>]*\?>\s*')
_INVALID_XML_CHARS = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]')

_TEXT_ENTITIES: Dict[str, str] = {}
_ATTR_ENTITIES = {'"': '&quot;', '\t': '&#9;', '\n': '&#10;', '\r': '&#13;'}

_PARSER_EVENTS = ("start-ns", "start", "end", "comment", "pi")
_PROLOG_READ_SIZE = 1024
_WRITE_BUFFER_SIZE = 64 * 1024


class _EventTranslator:
    """
    Turns pull parser events into tokens in document order.

    Element prefixes are read from the parsed nodes, which keep the
    declaration the document actually used, so two prefixes bound to the
    same namespace stay distinct. Text is taken from ``.text``/``.tail`` of
    the node preceding each event; closed elements are cleared right after
    their end event together with any siblings already consumed.
    """

    def __init__(self):
        self._pending_ns: List[Tuple[str, str]] = []
        self._scopes: List[List[Tuple[str, str]]] = []
        self._names: List[Name] = []
        self._bindings: Dict[str, List[str]] = {'xml': [XML_NAMESPACES['xml']]}
        self._attr_prefix_cache: Dict[str, Optional[str]] = {}
        self._doctype_done = False

    def translate(self, event: str, node) -> Iterator[Token]:
        if event == "start-ns":
            prefix, uri = node
            self._pending_ns.append((prefix or "", uri))
        elif event == "start":
            yield from self._doctype(node)
            yield from self._text(self._text_before(node))
            yield self._start(node)
        elif event == "end":
            yield from self._text(node[-1].tail if len(node) else node.text)
            yield EndElement(self._names.pop())
            self._pop_scope()
            self._release(node)
        elif event == "comment":
            yield from self._text(self._text_before(node))
            yield Other(f"<!--{node.text or ''}-->".encode("utf-8"))
        elif event == "pi":
            yield from self._text(self._text_before(node))
            body = f"{node.target} {node.text}" if node.text else node.target
            yield Other(f"<?{body}?>".encode("utf-8"))

    def _start(self, element) -> StartElement:
        scope, self._pending_ns = self._pending_ns, []
        self._push_scope(scope)

        attrs = []
        for prefix, uri in scope:
            name = Name("xmlns", prefix) if prefix else Name("", "xmlns")
            attrs.append(Attr(name, uri))
        for index, (key, value) in enumerate(element.attrib.items(), start=1):
            attrs.append(Attr(self._attribute_name(element, key, index), value))

        name = Name(element.prefix or "", _local_name(element.tag))
        self._names.append(name)
        return StartElement(name, attrs)

    def _attribute_name(self, element, key: str, index: int) -> Name:
        if not key.startswith("{"):
            return Name("", key)
        uri = key[1:].partition("}")[0]
        if uri not in self._attr_prefix_cache:
            candidates = [
                prefix for prefix, uris in self._bindings.items()
                if prefix and uris and uris[-1] == uri
            ]
            self._attr_prefix_cache[uri] = candidates[0] if len(candidates) == 1 else None
        prefix = self._attr_prefix_cache[uri]
        if prefix is None:
            # several prefixes share the namespace; ask libxml2 which one was written
            prefix = element.xpath("name(@*[$n])", n=index).partition(":")[0]
        return Name(prefix, _local_name(key))

    def _doctype(self, element) -> Iterator[Token]:
        if self._doctype_done:
            return
        self._doctype_done = True
        doctype = element.getroottree().docinfo.doctype
        if doctype:
            yield Other(doctype.encode("utf-8"))

    @staticmethod
    def _text_before(node) -> Optional[str]:
        previous = node.getprevious()
        if previous is not None:
            return previous.tail
        parent = node.getparent()
        return parent.text if parent is not None else None

    @staticmethod
    def _text(text: Optional[str]) -> Iterator[Token]:
        if text:
            yield CharData(text)

    @staticmethod
    def _release(element):
        element.clear(keep_tail=True)
        parent = element.getparent()
        if parent is not None:
            while element.getprevious() is not None:
                del parent[0]

    def _push_scope(self, scope: List[Tuple[str, str]]):
        self._scopes.append(scope)
        for prefix, uri in scope:
            self._bindings.setdefault(prefix, []).append(uri)
        if scope:
            self._attr_prefix_cache.clear()

    def _pop_scope(self):
        scope = self._scopes.pop()
        for prefix, _ in scope:
            self._bindings[prefix].pop()
        if scope:
            self._attr_prefix_cache.clear()


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


class TokenDecoder:
    """
    Iterable of tokens decoded from a binary XML stream.

    The raw XML declaration is emitted first as an Other token because the
    parser does not report it. Text between two markup events is emitted as
    a single CharData token.
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = READ_CHUNK_SIZE):
        self.stream = stream
        self.chunk_size = chunk_size

    def __iter__(self) -> Iterator[Token]:
        translator = _EventTranslator()
        parser = etree.XMLPullParser(
            events=_PARSER_EVENTS,
            huge_tree=LXML_HUGE_TREE_ENABLED,
            resolve_entities=False,
        )

        first_chunk = True
        while True:
            if first_chunk:
                # large enough for the whole XML declaration
                chunk = self._read(max(self.chunk_size, _PROLOG_READ_SIZE))
                first_chunk = False
                prolog = _PROLOG_RE.match(chunk)
                if prolog:
                    yield Other(prolog.group(0))
            else:
                chunk = self._read(self.chunk_size)
            if not chunk:
                break
            try:
                parser.feed(chunk)
            except etree.XMLSyntaxError as e:
                raise DecodeError(f"{ERROR_XML_PARSING}: {e}") from e
            yield from self._drain_events(parser, translator)

        try:
            parser.close()
        except etree.XMLSyntaxError as e:
            raise DecodeError(f"{ERROR_XML_PARSING}: {e}") from e
        yield from self._drain_events(parser, translator)

    @staticmethod
    def _drain_events(parser, translator: _EventTranslator) -> Iterator[Token]:
        for event, node in parser.read_events():
            yield from translator.translate(event, node)

    def _read(self, size: int) -> bytes:
        try:
            return self.stream.read(size)
        except (OSError, zipfile.BadZipFile, zlib.error) as e:
            raise DecodeError(f"Failed to read XML part: {e}") from e


class TokenEncoder:
    """
    Serializes tokens into a binary stream.

    Names must already be in textual form (empty ``space``). An element that
    is closed right after it was opened is written self-closing, and closing
    tags are checked against the open elements so the output stays
    well-formed.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.bytes_written = 0
        self._parts: List[bytes] = []
        self._buffered = 0
        self._open: List[str] = []
        self._pending_start: Optional[str] = None

    def encode_token(self, token: Token):
        if isinstance(token, EndElement):
            self._encode_end(token)
            return

        self._close_pending_start()
        if isinstance(token, StartElement):
            parts = [self._text_name(token.name)]
            for attr in token.attrs:
                value = escape(self._check_chars(attr.value), _ATTR_ENTITIES)
                parts.append(f'{self._text_name(attr.name)}="{value}"')
            self._pending_start = "<" + " ".join(parts)
            self._open.append(parts[0])
        elif isinstance(token, CharData):
            self._write(escape(self._check_chars(token.text), _TEXT_ENTITIES).encode("utf-8"))
        elif isinstance(token, Other):
            self._write(token.payload)
        else:
            raise EncodeError(f"{ERROR_XML_WRITING}: unsupported token {token!r}")

    def flush(self):
        """Write any buffered output to the underlying stream."""
        self._close_pending_start()
        self._drain()
        try:
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise EncodeError(f"{ERROR_XML_WRITING}: {e}") from e

    def _encode_end(self, token: EndElement):
        name = self._text_name(token.name)
        if not self._open or self._open[-1] != name:
            expected = self._open[-1] if self._open else None
            raise EncodeError(
                f"{ERROR_XML_WRITING}: end tag </{name}> does not match start tag <{expected}>"
            )
        self._open.pop()
        if self._pending_start is not None:
            start, self._pending_start = self._pending_start, None
            self._write((start + "/>").encode("utf-8"))
            return
        self._write(f"</{name}>".encode("utf-8"))

    def _close_pending_start(self):
        if self._pending_start is not None:
            start, self._pending_start = self._pending_start, None
            self._write((start + ">").encode("utf-8"))

    def _write(self, data: bytes):
        self._parts.append(data)
        self._buffered += len(data)
        self.bytes_written += len(data)
        if self._buffered >= _WRITE_BUFFER_SIZE:
            self._drain()

    def _drain(self):
        if not self._parts:
            return
        data = b"".join(self._parts)
        self._parts = []
        self._buffered = 0
        try:
            self.stream.write(data)
        except (OSError, ValueError) as e:
            raise EncodeError(f"{ERROR_XML_WRITING}: {e}") from e

    @staticmethod
    def _text_name(name: Name) -> str:
        if name.space:
            raise EncodeError(
                f"{ERROR_XML_WRITING}: name {name.space}:{name.local} is not in textual form"
            )
        return name.local

    @staticmethod
    def _check_chars(text: str) -> str:
        match = _INVALID_XML_CHARS.search(text)
        if match:
            raise EncodeError(
                f"{ERROR_XML_WRITING}: character {match.group(0)!r} is not allowed in XML"
            )
        return text
