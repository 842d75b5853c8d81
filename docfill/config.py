"""
Configuration module for the DOCX filling pipeline.
Centralizes configuration constants and CLI argument definitions.

This module provides:
- Default configuration constants for delimiters, target part and buffering
- CLI argument definitions for the command-line interface
- An immutable FillConfig dataclass passed into every transcode call
- Loading of the replacement mapping from a JSON file
"""

import argparse
import dataclasses
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from .core.error_handler import ConfigurationError
from .core.models import Name
from .utils.namespace_utils import parse_qualified_name
from .utils.shared_constants import (
    DEFAULT_BUFFER_CAPACITY,
    DEFAULT_CLOSING_BRACKET,
    DEFAULT_OPENING_BRACKET,
    DOCUMENT_XML,
    ERROR_CODES,
    TEXT_RUN_TAG,
)

logger = logging.getLogger(__name__)

# =============================================================================
# DIRECTORY CONFIGURATION
# =============================================================================

LOGS_DIR = "logs"               # Directory for detailed log files

# =============================================================================
# FILE CONFIGURATION
# =============================================================================

MAPPINGS_FILE = "mapping.json"   # JSON object of variable key -> replacement text

# =============================================================================
# CLI FLAG DEFINITIONS
# =============================================================================

# Dictionary defining all optional command-line interface arguments
# Each flag contains type, default value, and help text
CLI_FLAGS = {
    # Replacement values
    '--mapping': {
        'type': str,
        'default': None,
        'help': f'Path to a JSON mapping of variable keys to values (e.g. {MAPPINGS_FILE})'
    },
    '--set': {
        'dest': 'assignments',
        'action': 'append',
        'default': [],
        'metavar': 'KEY=VALUE',
        'help': 'Add or override one replacement, e.g. --set "[name]=Jane Doe" (repeatable)'
    },

    # Variable syntax
    '--opening': {
        'type': str,
        'default': DEFAULT_OPENING_BRACKET,
        'help': f'Opening delimiter character (default: {DEFAULT_OPENING_BRACKET})'
    },
    '--closing': {
        'type': str,
        'default': DEFAULT_CLOSING_BRACKET,
        'help': f'Closing delimiter character (default: {DEFAULT_CLOSING_BRACKET})'
    },

    # Document structure
    '--target-part': {
        'type': str,
        'default': DOCUMENT_XML,
        'help': f'Archive entry to rewrite (default: {DOCUMENT_XML})'
    },
    '--buffer-capacity': {
        'type': int,
        'default': DEFAULT_BUFFER_CAPACITY,
        'help': f'Maximum tokens held while looking for a closing delimiter (default: {DEFAULT_BUFFER_CAPACITY})'
    },

    # Logging configuration
    '--verbose': {
        'action': 'store_true',
        'help': 'Enable verbose logging output'
    },
    '--logs-dir': {
        'type': str,
        'default': LOGS_DIR,
        'help': f'Logs directory (default: {LOGS_DIR})'
    }
}

# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class FillConfig:
    """
    Immutable configuration for one or more transcode calls.

    Attributes:
        replacements: Variable keys (including delimiters, e.g. "[name]") mapped
            to replacement text. Stored as a read-only mapping.
        opening: Opening delimiter character
        closing: Closing delimiter character
        target_part: Archive entry whose variables are replaced
        buffer_capacity: Maximum number of tokens withheld while a candidate
            variable is open
        text_run_tag: Element whose text makes up candidate variables
    """

    replacements: Mapping[str, str] = field(default_factory=dict)
    opening: str = DEFAULT_OPENING_BRACKET
    closing: str = DEFAULT_CLOSING_BRACKET
    target_part: str = DOCUMENT_XML
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY
    text_run_tag: str = TEXT_RUN_TAG

    def __post_init__(self):
        """
        Validate settings and freeze the replacement mapping.

        Raises:
            ConfigurationError: If any setting is invalid
        """
        self._validate_brackets()
        self._validate_limits()
        object.__setattr__(self, 'replacements', MappingProxyType(self._validated_replacements()))

    def _validate_brackets(self):
        for label, value in (('opening', self.opening), ('closing', self.closing)):
            if not isinstance(value, str) or len(value) != 1:
                raise ConfigurationError(f"Invalid {label} delimiter {value!r}. Must be a single character")
        if self.opening == self.closing:
            raise ConfigurationError("Opening and closing delimiters must differ")

    def _validate_limits(self):
        if not isinstance(self.buffer_capacity, int) or self.buffer_capacity < 1:
            raise ConfigurationError(f"Invalid buffer_capacity {self.buffer_capacity!r}. Must be a positive integer")
        if not self.target_part:
            raise ConfigurationError("target_part must not be empty")
        if not self.text_run_tag:
            raise ConfigurationError("text_run_tag must not be empty")

    def _validated_replacements(self) -> Dict[str, str]:
        replacements = {}
        for key, value in dict(self.replacements).items():
            if not isinstance(key, str) or not key:
                raise ConfigurationError(f"Invalid variable key {key!r}. Must be a non-empty string")
            if not isinstance(value, str):
                raise ConfigurationError(f"Replacement for {key!r} must be a string, got {type(value).__name__}")
            if not (key.startswith(self.opening) and key.endswith(self.closing)):
                logger.warning(
                    f"Variable key {key!r} is not wrapped in {self.opening}{self.closing}; "
                    f"it can only match inside a delimited candidate"
                )
            replacements[key] = value
        return replacements

    @property
    def text_run_name(self) -> Name:
        """Text-run element as a (prefix, local) name."""
        return parse_qualified_name(self.text_run_tag)

    def with_brackets(self, opening: str, closing: str) -> 'FillConfig':
        """Return a copy using different delimiter characters."""
        return dataclasses.replace(self, opening=opening, closing=closing)

    def with_replacements(self, replacements: Mapping[str, str]) -> 'FillConfig':
        """Return a copy using a different replacement mapping."""
        return dataclasses.replace(self, replacements=replacements)

# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def load_mapping_file(path: Path) -> Dict[str, str]:
    """
    Load replacement values from a JSON object.

    Non-string values (numbers, booleans) are converted with ``str``.

    Args:
        path: Path to the JSON mapping file

    Returns:
        Dictionary of variable key -> replacement text

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a JSON object
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Mapping file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to load mapping file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Mapping file {path} must contain a JSON object")

    return {str(key): value if isinstance(value, str) else str(value) for key, value in data.items()}


def parse_assignments(assignments: Iterable[str]) -> Dict[str, str]:
    """
    Parse ``KEY=VALUE`` pairs given on the command line.

    The key is everything before the first ``=``, so values may contain ``=``.

    Raises:
        ConfigurationError: If an assignment has no ``=`` or an empty key
    """
    result = {}
    for assignment in assignments:
        key, sep, value = assignment.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"Invalid assignment {assignment!r}. Expected KEY=VALUE")
        result[key] = value
    return result


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create argument parser with CLI flags from configuration.

    Returns:
        argparse.ArgumentParser: Configured argument parser with all CLI flags
    """
    parser = argparse.ArgumentParser(
        prog="docfill",
        description="Fill [variable] placeholders in the body of a Word (.docx) document"
    )
    parser.add_argument('input', help='Source .docx document')
    parser.add_argument('output', help='Destination .docx document')

    # Add all CLI flags from the configuration dictionary
    for flag, config in CLI_FLAGS.items():
        parser.add_argument(flag, **config)

    return parser


def load_config_from_args(args: argparse.Namespace) -> FillConfig:
    """
    Build a FillConfig from parsed command line arguments.

    Values from ``--set`` override values loaded from ``--mapping``.

    Args:
        args: Parsed command line arguments from argparse

    Returns:
        FillConfig: Configured instance with argument values

    Raises:
        SystemExit: If configuration validation fails
    """
    try:
        replacements = {}
        if args.mapping:
            replacements.update(load_mapping_file(Path(args.mapping)))
        replacements.update(parse_assignments(args.assignments or []))

        return FillConfig(
            replacements=replacements,
            opening=args.opening,
            closing=args.closing,
            target_part=args.target_part,
            buffer_capacity=args.buffer_capacity,
        )
    except ConfigurationError as e:
        # Print error and exit if configuration is invalid
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(ERROR_CODES['INVALID_ARGUMENTS'])


def get_default_config(replacements: Optional[Mapping[str, str]] = None) -> FillConfig:
    """
    Get default configuration without CLI arguments.

    Returns:
        FillConfig: Default configuration with the given replacements
    """
    return FillConfig(replacements=replacements or {})
