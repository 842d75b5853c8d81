"""
Data Models for the DOCX filling pipeline.

This module defines the XML token variants that flow between the decoder,
the variable buffer and the encoder, plus the result record returned by a
transcode call.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Union


class Name(NamedTuple):
    """
    Parsed XML name.

    Attributes:
        space: Prefix the document used for the name ("" when unprefixed)
        local: Local part of the name
    """
    space: str
    local: str


class Attr(NamedTuple):
    """Single attribute of a start element."""
    name: Name
    value: str


@dataclass
class StartElement:
    """Opening tag with its attributes in document order."""
    name: Name
    attrs: List[Attr] = field(default_factory=list)


@dataclass
class EndElement:
    """Closing tag."""
    name: Name


@dataclass
class CharData:
    """Text content, already unescaped."""
    text: str


@dataclass
class Other:
    """
    Opaque passthrough token.

    The payload is already serialized (XML declaration, comment, processing
    instruction or doctype) and is written to the output unchanged.
    """
    payload: bytes


Token = Union[StartElement, EndElement, CharData, Other]


def copy_token(token: Token) -> Token:
    """Return a deep copy of a token so buffered state never aliases the stream."""
    return copy.deepcopy(token)


@dataclass
class TranscodeResult:
    """
    Outcome of one transcode call.

    Attributes:
        target_part: Name of the rewritten XML part
        entries: Names of all destination entries, in archive order
        bytes_written: Uncompressed bytes written across all entries
        replacements: Number of variables replaced in the target part
        unmatched_flushes: Candidates flushed unchanged (no key matched, or the
            markup they span could not be merged)
        forced_flushes: Flushes caused by the buffer reaching capacity
        processing_time: Time taken in seconds
        output_path: Path of the written document, when written to disk
    """
    target_part: str
    entries: List[str] = field(default_factory=list)
    bytes_written: int = 0
    replacements: int = 0
    unmatched_flushes: int = 0
    forced_flushes: int = 0
    processing_time: float = 0.0
    output_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary for serialization."""
        return {
            'target_part': self.target_part,
            'entries_count': len(self.entries),
            'entries': list(self.entries),
            'bytes_written': self.bytes_written,
            'replacements': self.replacements,
            'unmatched_flushes': self.unmatched_flushes,
            'forced_flushes': self.forced_flushes,
            'processing_time_seconds': round(self.processing_time, 3),
            'output_path': self.output_path,
        }
