"""Climaview Custom Exception Hierarchy.

This module provides the exception hierarchy for Climaview with rich error
context for debugging, logging, and user feedback.

Exception Hierarchy:
    ClimaviewException (base)
    ├── ExplorerException
    │   ├── ValidationError
    │   └── ConfigurationError
    └── DataException
        ├── LoadFailure
        └── DatasetNotLoadedError

Malformed input rows and empty query results are deliberately NOT part of
this hierarchy: they are valid, representable outcomes (a smaller Dataset,
an empty slice, an empty mapping) and never raised.

All exceptions include rich context:
- error_code: Unique error identifier
- component: Name of the component that raised the error
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from climaview.exceptions import ValidationError
    >>> raise ValidationError(
    ...     message="Unknown panel slot",
    ...     component="ViewStateController",
    ...     context={"slot": "C", "valid_slots": ["A", "B"]}
    ... )

Author: Climaview Team
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class ClimaviewException(Exception):
    """Base exception for all Climaview errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "CV_EXPLORER_VALIDATION_ERROR")
        component: Name of the component that raised the error (optional)
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at construction time for debugging
    """

    ERROR_PREFIX = "CV"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize Climaview exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            component: Name of the component that raised the error
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate an error code from the exception class name.

        Returns:
            Error code like "CV_EXPLORER_VALIDATION_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.component:
            parts.append(f"Component: {self.component}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"component='{self.component}')"
        )


# ==============================================================================
# Explorer Exceptions
# ==============================================================================

class ExplorerException(ClimaviewException):
    """Base exception for explorer interaction and setup errors."""
    ERROR_PREFIX = "CV_EXPLORER"


class ValidationError(ExplorerException):
    """Caller input failed validation.

    Raised for programming errors at the explorer boundary, such as an
    unknown panel slot or an unknown color-domain policy.

    Example:
        >>> raise ValidationError(
        ...     message="Unknown slot 'C'",
        ...     component="ViewStateController",
        ...     invalid_fields={"slot": "must be 'A' or 'B'"}
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize validation error.

        Args:
            message: Error message
            component: Name of the component
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
        """
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        super().__init__(message, component=component, context=context)


class ConfigurationError(ExplorerException):
    """Explorer configuration is invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="Unsupported longitude mode",
        ...     component="record_validator",
        ...     config_key="lon_mode",
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        config_key: Optional[str] = None,
    ):
        if config_key:
            context = context or {}
            context["config_key"] = config_key
        super().__init__(message, component=component, context=context)


# ==============================================================================
# Data Exceptions
# ==============================================================================

class DataException(ClimaviewException):
    """Base exception for dataset lifecycle errors."""
    ERROR_PREFIX = "CV_DATA"


class LoadFailure(DataException):
    """Fetching the dataset rows or the basemap failed.

    The service stays unloaded; indexes are never built from a partial load.

    Example:
        >>> raise LoadFailure(
        ...     message="Rows fetch failed",
        ...     source="rows",
        ...     context={"cause": "FileNotFoundError"}
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ):
        if source:
            context = context or {}
            context["source"] = source
        super().__init__(message, component=component, context=context)


class DatasetNotLoadedError(DataException):
    """A query was issued before the dataset finished loading."""


# ==============================================================================
# Utilities
# ==============================================================================

def format_exception_chain(exc: BaseException) -> str:
    """Format an exception and its causes as a single readable string.

    Args:
        exc: Exception to format

    Returns:
        One line per exception in the ``__cause__`` / ``__context__`` chain,
        outermost first.
    """
    lines = []
    current: Optional[BaseException] = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        lines.append(f"{current.__class__.__name__}: {current}")
        current = current.__cause__ or current.__context__
    return "\n  caused by: ".join(lines)


__all__ = [
    "ClimaviewException",
    "ExplorerException",
    "ValidationError",
    "ConfigurationError",
    "DataException",
    "LoadFailure",
    "DatasetNotLoadedError",
    "format_exception_chain",
]
