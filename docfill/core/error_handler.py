"""
Error taxonomy for the DOCX filling pipeline.

Every failure is terminal for the current transcode call: nothing is retried
internally and errors are raised straight to the caller, chained to the
underlying library exception.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    LOADING = "loading"
    VALIDATION = "validation"
    PARSING = "parsing"
    WRITING = "writing"
    UNKNOWN = "unknown"


class DocfillError(Exception):
    """Base class for all pipeline errors."""
    category = ErrorCategory.UNKNOWN


class ConfigurationError(DocfillError, ValueError):
    """Invalid delimiters, buffer capacity or mapping file."""
    category = ErrorCategory.CONFIGURATION


class ArchiveOpenError(DocfillError):
    """Source archive is malformed or unreadable."""
    category = ErrorCategory.LOADING


class MissingTargetEntry(DocfillError):
    """Target part is absent from the source archive."""
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, entry_name: str):
        super().__init__(message)
        self.entry_name = entry_name


class DecodeError(DocfillError):
    """Malformed XML or read failure while tokenizing the target part."""
    category = ErrorCategory.PARSING


class EncodeError(DocfillError):
    """Token cannot be serialized or the part stream rejected a write."""
    category = ErrorCategory.WRITING


class WriteError(DocfillError):
    """Destination sink failure."""
    category = ErrorCategory.WRITING


@dataclass
class ProcessingError:
    """Container for processing error information."""
    error_type: str
    error_message: str
    category: ErrorCategory
    timestamp: float = field(default_factory=time.time)
    cause: Optional[str] = None
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error_type': self.error_type,
            'error_message': self.error_message,
            'category': self.category.value,
            'timestamp': self.timestamp,
            'cause': self.cause,
        }


def describe_error(error: BaseException) -> ProcessingError:
    """
    Build a ProcessingError record for logging and reporting.

    Args:
        error: Exception raised by the pipeline or by a library underneath it

    Returns:
        ProcessingError describing the failure
    """
    category = getattr(error, 'category', ErrorCategory.UNKNOWN)
    cause = error.__cause__
    return ProcessingError(
        error_type=type(error).__name__,
        error_message=str(error),
        category=category,
        cause=f"{type(cause).__name__}: {cause}" if cause is not None else None,
        stack_trace=''.join(traceback.format_exception(type(error), error, error.__traceback__)),
    )
