from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence

Row = Dict[str, Any]


class WarehouseExecutor(Protocol):
    """
    Runs one query with positional (qmark) parameters and returns rows as
    dicts with lower-case column names. Owns the row cap and the timeout,
    and fails with ``ExecutionError``.
    """

    async def execute(self, sql: str, params: Sequence[Any]) -> List[Row]:
        ...
