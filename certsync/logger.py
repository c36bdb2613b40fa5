"""
Centralized logging setup and configuration.

Provides structured, colored logging for reconciliation runs, with a filter
that keeps private key material and credentials out of every log sink.
"""

import logging
import re
import sys
from typing import Iterable, List, Optional


# PEM private key blocks (RSA, EC, PKCS#8, encrypted PKCS#8)
_PRIVATE_KEY_PATTERN = re.compile(
    r"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.*?-----END \1PRIVATE KEY-----",
    re.DOTALL,
)
REDACTED = "[REDACTED]"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds colors to log output.

    Colors are only applied when output is to a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str = None, use_colors: bool = True):
        """
        Initialize the formatter.

        Args:
            fmt: Log message format string
            use_colors: Whether to use colors in output
        """
        super().__init__(fmt or "%(asctime)s [%(levelname)s] %(message)s")
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        original_msg = record.msg

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            record.levelname = f"{color}{record.levelname}{reset}"
            if original_levelname in ("WARNING", "ERROR", "CRITICAL"):
                record.msg = f"{color}{record.msg}{reset}"

        result = super().format(record)

        record.levelname = original_levelname
        record.msg = original_msg

        return result


class SecretRedactingFilter(logging.Filter):
    """
    Mask private keys and known secret values in log records.

    The message is rendered with its arguments first, so a secret passed as
    a %-style argument is caught as well.
    """

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self._secrets: List[str] = []
        for secret in secrets or []:
            self.add_secret(secret)

    def add_secret(self, secret: Optional[str]) -> None:
        """
        Register a literal value that must never be logged.

        Args:
            secret: Credential value; empty values are ignored
        """
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def redact(self, text: str) -> str:
        text = _PRIVATE_KEY_PATTERN.sub(REDACTED, text)
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class StructuredLogger(logging.Logger):
    """
    Extended logger with additional utility methods.
    """

    def section(self, title: str) -> None:
        """
        Log a section header.

        Args:
            title: Section title
        """
        self.info("")
        self.info("=" * 60)
        self.info(title)
        self.info("=" * 60)

    def subsection(self, title: str) -> None:
        self.info("")
        self.info(f"--- {title} ---")

    def success(self, message: str) -> None:
        """Log a success message (INFO level with special formatting)."""
        self.info(f"[OK] {message}")

    def failure(self, message: str) -> None:
        """Log a failure message (ERROR level with special formatting)."""
        self.error(f"[FAIL] {message}")

    def dry_run(self, message: str) -> None:
        """Log an action that a dry run skipped."""
        self.info(f"[DRY-RUN] {message}")


# Global logger instance
_logger: Optional[StructuredLogger] = None
_redactor = SecretRedactingFilter()


def register_secret(secret: Optional[str]) -> None:
    """
    Add a credential value to the global redaction filter.

    Args:
        secret: Value to mask in all log output
    """
    _redactor.add_secret(secret)


def setup_logger(
    name: str = "CertSync",
    verbose: bool = False,
    use_colors: bool = True,
    log_file: Optional[str] = None,
) -> StructuredLogger:
    """
    Setup and configure the global logger.

    Args:
        name: Logger name
        verbose: Enable debug-level logging
        use_colors: Enable colored output
        log_file: Optional file path for log output

    Returns:
        Configured StructuredLogger instance
    """
    global _logger

    logging.setLoggerClass(StructuredLogger)
    logger = logging.getLogger(name)
    logger.__class__ = StructuredLogger

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))
    console_handler.addFilter(_redactor)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s"
        ))
        file_handler.addFilter(_redactor)
        logger.addHandler(file_handler)

    _logger = logger
    return logger


def get_logger() -> StructuredLogger:
    """
    Get the global logger instance, creating a default one if needed.

    Returns:
        The configured StructuredLogger instance
    """
    global _logger

    if _logger is None:
        _logger = setup_logger()

    return _logger
