"""
docfill: fill [variable] placeholders in Word (.docx) documents.

The document body part is streamed through an XML token transcoder that
recognizes placeholders even when Word has split them across several
formatted runs; every other entry of the container is copied unchanged.
"""

from .config import FillConfig, get_default_config, load_mapping_file
from .core.document_processor import (
    DocumentProcessor,
    create_document_processor,
    fill_docx,
    fill_docx_bytes,
    transcode,
)
from .core.error_handler import (
    ArchiveOpenError,
    ConfigurationError,
    DecodeError,
    DocfillError,
    EncodeError,
    MissingTargetEntry,
    WriteError,
)
from .core.models import TranscodeResult

__version__ = "0.1.0"

__all__ = [
    # Configuration
    'FillConfig', 'get_default_config', 'load_mapping_file',

    # Document processing
    'DocumentProcessor', 'create_document_processor',
    'transcode', 'fill_docx', 'fill_docx_bytes', 'TranscodeResult',

    # Errors
    'DocfillError', 'ConfigurationError', 'ArchiveOpenError', 'MissingTargetEntry',
    'DecodeError', 'EncodeError', 'WriteError',
]
