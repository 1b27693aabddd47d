"""Error taxonomy shared by every calculator."""

from __future__ import annotations


class PaymentEngineError(Exception):
    """Base exception for payment and category computation failures."""


class ConfigurationError(PaymentEngineError):
    """Raised when a formula, payment row or tariff table is missing or unusable."""


class InvalidInputError(PaymentEngineError):
    """Raised when a record is structurally invalid (negative counts, bad splits)."""


class VersusSplitError(InvalidInputError, ConfigurationError):
    """Raised when a versus class carries no usable co-instructor count."""
