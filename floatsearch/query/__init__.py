"""
Query building module for the float search service.

This module compiles filter requests into positional clauses and assembles
them into complete SELECT and COUNT statements.
"""

from .builder import (
    build_select,
    build_count,
    redact,
    SelectBuildResult,
)
from .compiler import (
    FilterCompiler,
    compile_filters,
)

__all__ = [
    "build_select",
    "build_count",
    "redact",
    "SelectBuildResult",
    "FilterCompiler",
    "compile_filters",
]
