"""
Filter system for the float search service.

This module provides the immutable filter request, its wire parsing, and
validation of every sub-filter.
"""

from .models import (
    NumericRange,
    DateRange,
    BoundingBox,
    CircularRadius,
    GeospatialFilter,
    MeasurementFilter,
    PlatformFilter,
    QualityControlFilter,
    FilterRequest,
    FILTER_REQUEST_SCHEMA,
    parse_filter_request_json,
)

__all__ = [
    "NumericRange",
    "DateRange",
    "BoundingBox",
    "CircularRadius",
    "GeospatialFilter",
    "MeasurementFilter",
    "PlatformFilter",
    "QualityControlFilter",
    "FilterRequest",
    "FILTER_REQUEST_SCHEMA",
    "parse_filter_request_json",
]
