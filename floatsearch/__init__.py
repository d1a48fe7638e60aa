"""
ARGO float search service.

Compiles structured float/profile filters into parameterized warehouse
queries, runs them through an injected executor and shapes the rows into
typed, paginated results.
"""

from .errors import ExecutionError, ValidationError
from .filters import FilterRequest
from .geo import GeoPoint, haversine_distance_km
from .pagination import PageRequest, PageResult, assemble
from .quality import QualityLevel, classify
from .query import FilterCompiler, compile_filters
from .service import QueryService

__all__ = [
    "ExecutionError",
    "ValidationError",
    "FilterRequest",
    "GeoPoint",
    "haversine_distance_km",
    "PageRequest",
    "PageResult",
    "assemble",
    "QualityLevel",
    "classify",
    "FilterCompiler",
    "compile_filters",
    "QueryService",
]
