"""
Token processors for the document body part.
"""

from .text_processor import PartStats, TokenStreamTranscoder, TranscoderState, create_text_processor
from .variable_buffer import VariableBuffer

__all__ = [
    'TokenStreamTranscoder', 'TranscoderState', 'PartStats', 'create_text_processor',
    'VariableBuffer',
]
