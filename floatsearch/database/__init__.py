"""
Database operations for the float search service.

This module defines the warehouse executor contract and its Snowflake
implementation.
"""

from .executor import Row, WarehouseExecutor
from .snowflake import SnowflakeExecutor, _load_p8_as_der_bytes

__all__ = [
    "Row",
    "WarehouseExecutor",
    "SnowflakeExecutor",
    "_load_p8_as_der_bytes",
]
