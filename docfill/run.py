"""
Main entry point for the DOCX filling pipeline.

This module wires the command line to the document processor:
- Configuration from CLI flags and the JSON mapping file
- Console and file logging
- Atomic write of the filled document
"""

import sys
import time
import logging
from pathlib import Path
from typing import List, Optional

from .config import create_argument_parser, load_config_from_args
from .core.document_processor import fill_docx
from .core.error_handler import DocfillError, describe_error
from .utils.shared_constants import ERROR_CODES, LOG_FORMAT

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, logs_dir: Path = Path("logs")) -> Path:
    """
    Setup console and file logging.

    Args:
        verbose: Log at DEBUG level instead of INFO
        logs_dir: Directory receiving the timestamped log file

    Returns:
        Path of the log file
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Generate log filename with timestamp
    timestamp = time.strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"docfill_{timestamp}.log"

    log_level = logging.DEBUG if verbose else logging.INFO

    class ColoredFormatter(logging.Formatter):
        """Custom formatter with colored output for different log levels."""

        # ANSI color codes
        COLORS = {
            'DEBUG': '\033[36m',    # Cyan
            'INFO': '\033[32m',     # Green
            'WARNING': '\033[33m',  # Yellow
            'ERROR': '\033[31m',    # Red
            'CRITICAL': '\033[35m', # Magenta
            'RESET': '\033[0m'      # Reset
        }

        def format(self, record):
            formatted = super().format(record)
            color = self.COLORS.get(record.levelname)
            if color:
                formatted = f"{color}{formatted}{self.COLORS['RESET']}"
            return formatted

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))

    logging.basicConfig(
        level=log_level,
        handlers=[file_handler, console_handler]
    )

    logger.debug(f"Log file: {log_file}")
    return log_file


def main(argv: Optional[List[str]] = None) -> int:
    """
    Fill one document from the command line.

    Returns:
        Process exit code (see ERROR_CODES)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    config_obj = load_config_from_args(args)

    setup_logging(args.verbose, Path(args.logs_dir))
    logger.info(f"Filling {args.input} -> {args.output} ({len(config_obj.replacements)} variable(s))")

    try:
        result = fill_docx(args.input, args.output, config_obj)
    except DocfillError as e:
        error_info = describe_error(e)
        logger.error(f"❌ {error_info.error_type}: {error_info.error_message}")
        if error_info.cause:
            logger.debug(f"Caused by {error_info.cause}")
        return ERROR_CODES['PROCESSING_FAILED']

    logger.info(
        f"✅ Wrote {result.output_path}: {result.replacements} replacement(s) "
        f"in {result.processing_time:.2f}s"
    )
    if result.forced_flushes:
        logger.warning(
            f"⚠️ {result.forced_flushes} unterminated {config_obj.opening}...{config_obj.closing} "
            f"candidate(s) were left unchanged"
        )
    return ERROR_CODES['SUCCESS']


if __name__ == "__main__":
    sys.exit(main())
