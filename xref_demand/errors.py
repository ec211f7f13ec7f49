"""Exceptions that abort a pipeline run.

Record-level problems (malformed demand rows, unresolved or ambiguous keys)
are reported as data, never raised.
"""

from typing import Any, Optional


class XrefError(Exception):
    """Base exception for the cross-reference pipeline."""

    def __init__(
        self,
        message: str,
        error_code: str = "XREF_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(XrefError):
    """Invalid run configuration. The pipeline refuses to run."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code="CONFIG_ERROR", details=details)


class InputFileError(XrefError):
    """A required input file is missing or unreadable."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code="INPUT_FILE_ERROR", details=details)


class SchemaError(XrefError):
    """An input table lacks the columns a stage needs."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code="SCHEMA_ERROR", details=details)
