"""Custom log formatters for the SAML SP Utility.

This module provides specialized formatters for logging, including PII redaction.
"""

import logging
import re
from typing import List, Tuple


class PIIRedactingFormatter(logging.Formatter):
    """Formatter that redacts Personally Identifiable Information (PII) from log messages.

    Assertions name real people: NameIDs are often email addresses, and
    attribute values carry names. With redaction enabled, email addresses,
    ``name_id=...`` fields and ``<saml:NameID>`` element text are masked.

    Attributes:
        redact_pii: Whether to enable PII redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = PIIRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact_pii=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_pii: bool = False,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_pii = redact_pii

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # NameID element text: <saml:NameID Format="...">jdoe</saml:NameID>
            (re.compile(r'(<(?:\w+:)?NameID\b[^>]*>)[^<]*(</)'), r'\1[NAMEID-REDACTED]\2'),

            # name_id=jdoe, name_id='jdoe'
            (re.compile(r'name_id=["\']?[^"\'\s|,]+["\']?'), 'name_id=[NAMEID-REDACTED]'),

            # Email addresses
            (re.compile(r'\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b'), '[EMAIL-REDACTED]'),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional PII redaction.

        Args:
            record: Log record to format

        Returns:
            Formatted log message with PII redacted if enabled
        """
        original = super().format(record)

        if self.redact_pii:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
