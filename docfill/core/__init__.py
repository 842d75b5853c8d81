"""
Core infrastructure for the DOCX filling pipeline.

This package holds the token and result models, the error taxonomy and the
archive-level document processor. The document processor is imported from
``docfill.core.document_processor`` directly, since it depends on the
configuration module which itself depends on this package.
"""

# Error handling
from .error_handler import (
    ArchiveOpenError,
    ConfigurationError,
    DecodeError,
    DocfillError,
    EncodeError,
    ErrorCategory,
    MissingTargetEntry,
    ProcessingError,
    WriteError,
    describe_error,
)

# Token and result models
from .models import Attr, CharData, EndElement, Name, Other, StartElement, Token, TranscodeResult, copy_token

__all__ = [
    # Error handling
    'DocfillError', 'ConfigurationError', 'ArchiveOpenError', 'MissingTargetEntry',
    'DecodeError', 'EncodeError', 'WriteError',
    'ErrorCategory', 'ProcessingError', 'describe_error',

    # Models
    'Name', 'Attr', 'StartElement', 'EndElement', 'CharData', 'Other', 'Token',
    'copy_token', 'TranscodeResult',
]
