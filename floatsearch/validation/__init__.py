"""
Validation module for the float search service.

This module provides the field-level checks shared by filter parsing,
filter validation and page-size capping.
"""

from .rules import (
    _assert_finite,
    _assert_range,
    _assert_latitude,
    _assert_longitude,
    _assert_positive,
    _parse_float,
    _parse_int,
    _cap_limit,
)

__all__ = [
    "_assert_finite",
    "_assert_range",
    "_assert_latitude",
    "_assert_longitude",
    "_assert_positive",
    "_parse_float",
    "_parse_int",
    "_cap_limit",
]
