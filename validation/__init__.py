"""
Validation module for the drift reconciliation engine.

Provides engine configuration validation and remote error classification.
"""

from validation.errors import (
    TransientError,
    PermanentError,
    classify_exception,
    classify_http_error,
    error_kind,
)
from validation.config import DriftConfig, validate_config

__all__ = [
    'TransientError',
    'PermanentError',
    'classify_exception',
    'classify_http_error',
    'error_kind',
    'DriftConfig',
    'validate_config',
]
