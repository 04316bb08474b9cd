"""
Utility functions for demoheat.

This module provides:
- Identity normalization helpers (platform ids, display names)
- Null-tolerant coercion of decoder values
- Performance timing helpers
"""

import logging
import re
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import pandas as pd

from demoheat.core.constants import NULL_SENTINELS

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_NON_DIGITS = re.compile(r"[^0-9]")

# Largest integer a float64 holds exactly
MAX_EXACT_FLOAT_INT = 2**53


def timed(func: F) -> F:
    """
    Decorator to measure and log function execution time.

    Usage:
        @timed
        def my_function():
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        logger.debug(f"{func.__name__} completed in {elapsed:.3f}s")
        return result

    return wrapper  # type: ignore


def is_missing(value: Any) -> bool:
    """
    Check whether a decoder value should be treated as absent.

    Covers None, pandas/numpy NA values and the sentinel strings some
    decoders produce ("null", "undefined", ...).
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in NULL_SENTINELS
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def optional_str(value: Any) -> str | None:
    """
    Coerce a decoder value to a stripped string, or None if absent.

    Integral floats are written without the ".0". Floats beyond 2**53 are
    treated as absent: a 17-digit Steam id that went through a float column
    has already lost its low digits and cannot be recovered.
    """
    if is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        if abs(value) > MAX_EXACT_FLOAT_INT:
            logger.debug(f"Dropping float id {value!r}: beyond exact float precision")
            return None
        value = int(value)
    return str(value).strip()


def optional_float(value: Any) -> float | None:
    """
    Coerce a decoder value to float, or None if absent.

    NaN is kept as a float so the transformer can drop it explicitly.
    """
    if value is None or (isinstance(value, str) and value.strip().lower() in NULL_SENTINELS):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def optional_int(value: Any) -> int | None:
    """Coerce a decoder value to int, or None if absent or unparseable."""
    if is_missing(value):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def normalize_platform_id(value: Any) -> str:
    """
    Normalize a platform id by stripping every non-digit character.

    Returns an empty string when nothing numeric remains.

    >>> normalize_platform_id("STEAM 7656-1198")
    '76561198'
    """
    text = optional_str(value)
    if text is None:
        return ""
    return _NON_DIGITS.sub("", text)


def normalize_name(value: Any) -> str:
    """Normalize a display name for comparison (lower-case, trimmed)."""
    text = optional_str(value)
    if text is None:
        return ""
    return text.lower()


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is 0.

    Args:
        numerator: Top of fraction
        denominator: Bottom of fraction
        default: Value to return if denominator is 0

    Returns:
        Result of division or default
    """
    if denominator == 0:
        return default
    return numerator / denominator
