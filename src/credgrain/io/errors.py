"""
Custom exceptions for the credgrain.io module.

Purpose
- Provide IO-layer error types for configuration loading and frame validation.
- Keep credgrain.core as the source of truth for domain errors (see credgrain.core.errors).

Source of truth and boundaries
- credgrain.core.errors.InputError/ConfigError are raised by the cred and grain engines.
- credgrain.io raises Io* errors at its own boundary:
  - IoConfigError: settings that cannot be turned into valid parameters, or unreadable TOML.
  - IoSchemaError: DataFrame failed validation against credgrain.core.tables descriptors.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations

__all__ = ["IoError", "IoConfigError", "IoSchemaError"]


class IoError(Exception):
    """
    Base class for IO-related errors in credgrain.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from credgrain.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when configuration is invalid or unsupported.

    Examples:
        - alpha outside (0, 1] in credgrain.toml
        - an explicit config path that is not valid TOML
    """


class IoSchemaError(IoError):
    """
    Raised when a DataFrame fails schema validation against credgrain.core.tables descriptors.

    Notes:
        Scalar columns (i64, f64, str) are cast before raising; a value that does not
        survive the cast counts as a null in a required column.
    """
