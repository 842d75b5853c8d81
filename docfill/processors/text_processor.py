"""
Token stream transcoder for the document body part.

Pulls tokens from a TokenDecoder, routes them through a VariableBuffer and
writes the result with a TokenEncoder. The whole part is handled in a single
forward pass; memory use is bounded by the buffer capacity, not by the size
of the part.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterable

from ..config import FillConfig
from ..core.models import Token
from ..utils.xml_tokens import TokenDecoder, TokenEncoder
from .variable_buffer import VariableBuffer

logger = logging.getLogger(__name__)


class TranscoderState(Enum):
    """Lifecycle of one transcoding pass."""
    READY = "ready"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PartStats:
    """Counters collected while transcoding one XML part."""
    tokens: int = 0
    replacements: int = 0
    unmatched_flushes: int = 0
    forced_flushes: int = 0
    bytes_written: int = 0
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'tokens': self.tokens,
            'replacements': self.replacements,
            'unmatched_flushes': self.unmatched_flushes,
            'forced_flushes': self.forced_flushes,
            'bytes_written': self.bytes_written,
            'processing_time_seconds': round(self.processing_time, 3),
        }


class TokenStreamTranscoder:
    """
    Drives decode -> buffer/match -> encode for one XML part.

    Buffered tokens and counters live only for the duration of one pass, so
    one instance can be reused for any number of parts. ``state`` reports the
    most recent pass and is reset when the next one starts.
    """

    def __init__(self, config: FillConfig):
        """
        Initialize the transcoder.

        Args:
            config: Delimiters, replacement mapping and buffer capacity
        """
        self.config = config
        self.state = TranscoderState.READY

    def run(self, decoder: Iterable[Token], encoder: TokenEncoder) -> PartStats:
        """
        Transcode every token of ``decoder`` into ``encoder``.

        Args:
            decoder: Token source; exhaustion ends the pass normally
            encoder: Token sink

        Returns:
            PartStats for the pass

        Raises:
            DecodeError: If the source XML is malformed or unreadable
            EncodeError: If a token cannot be written
        """
        start_time = time.time()
        stats = PartStats()
        buffer = VariableBuffer(self.config, encoder)

        self.state = TranscoderState.STREAMING
        try:
            for token in decoder:
                if buffer.is_full():
                    buffer.force_flush()
                buffer.push(token)
                stats.tokens += 1

            self.state = TranscoderState.DRAINING
            buffer.flush()
            encoder.flush()
        except Exception:
            self.state = TranscoderState.FAILED
            raise

        self.state = TranscoderState.DONE
        stats.replacements = buffer.replacements
        stats.unmatched_flushes = buffer.unmatched_flushes
        stats.forced_flushes = buffer.forced_flushes
        stats.bytes_written = encoder.bytes_written
        stats.processing_time = time.time() - start_time
        logger.debug(f"Transcoded part: {stats.to_dict()}")
        return stats

    def transcode_stream(self, source: BinaryIO, destination: BinaryIO) -> PartStats:
        """
        Transcode an XML part from one binary stream into another.

        Args:
            source: Readable stream with the original part
            destination: Writable stream for the rewritten part

        Returns:
            PartStats for the pass
        """
        return self.run(TokenDecoder(source), TokenEncoder(destination))


def create_text_processor(config: FillConfig) -> TokenStreamTranscoder:
    """
    Factory function to create a token stream transcoder.

    Args:
        config: Fill configuration

    Returns:
        TokenStreamTranscoder instance
    """
    return TokenStreamTranscoder(config)
