"""
Helpers for building small DOCX-like archives in memory.
"""

import io
import zipfile
from typing import List, Tuple

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\r\n'

CONTENT_TYPES = (
    b'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\r\n'
    b'<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    b'<Default Extension="xml" ContentType="application/xml"/></Types>'
)

BOLD = '<w:b/>'
COLOR = '<w:color w:val="FF0000"/>'


def text_run(text: str, props: str = "") -> str:
    """One <w:r> holding ``text``, optionally with run properties."""
    rpr = f"<w:rPr>{props}</w:rPr>" if props else ""
    return f"<w:r>{rpr}<w:t>{text}</w:t></w:r>"


def paragraph(*runs: str) -> str:
    return "<w:p>" + "".join(runs) + "</w:p>"


def document_xml(*paragraphs: str) -> bytes:
    """Complete word/document.xml with the given body paragraphs."""
    body = "".join(paragraphs)
    return XML_DECLARATION + (
        f'<w:document xmlns:w="{W_NS}" xmlns:r="{R_NS}">'
        f'<w:body>{body}<w:sectPr/></w:body></w:document>'
    ).encode("utf-8")


def build_archive(entries: List[Tuple[str, bytes]], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """Zip ``entries`` (name, data) in the given order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression) as archive:
        for name, data in entries:
            archive.writestr(name, data)
    return buffer.getvalue()


def build_docx(document: bytes, extra_entries: List[Tuple[str, bytes]] = None) -> bytes:
    """Minimal container: content types, the document part, then any extras."""
    entries = [("[Content_Types].xml", CONTENT_TYPES), ("word/document.xml", document)]
    entries.extend(extra_entries or [])
    return build_archive(entries)


def read_entries(data: bytes) -> List[Tuple[str, bytes]]:
    """(name, uncompressed bytes) of every entry, in archive order."""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return [(info.filename, archive.read(info)) for info in archive.infolist()]


def read_entry(data: bytes, name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read(name)
