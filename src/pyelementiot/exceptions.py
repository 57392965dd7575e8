"""Custom exceptions for pyelementiot library."""

from __future__ import annotations

from typing import Any


class ElementError(Exception):
    """Base exception for all ELEMENT client errors."""


class ConfigurationError(ElementError, ValueError):
    """Exception raised when a client is constructed with invalid options.

    Attributes:
        option: Optional name of the offending option.
        value: Optional value that was rejected.
    """

    def __init__(
        self,
        message: str = "",
        option: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Error message.
            option: Optional name of the offending option.
            value: Optional value that was rejected.
        """
        super().__init__(message)
        self.option = option
        self.value = value
