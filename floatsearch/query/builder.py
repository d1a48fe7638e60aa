from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence
import re

from ..clauses import CompiledClause, combine_clauses

_WS_RE = re.compile(r"\s+")
_REDACT_MAX = 400


def redact(sql: str, *, max_length: int = _REDACT_MAX) -> str:
    """
    Single-line form of a query for logs and errors. Queries only ever carry
    ``?`` placeholders, so nothing bound is exposed here.
    """
    flat = _WS_RE.sub(" ", sql).strip()
    if len(flat) > max_length:
        return flat[:max_length] + "..."
    return flat


def _where(clauses: Iterable[CompiledClause]) -> tuple[str, List[Any]]:
    body, params = combine_clauses(clauses)
    return (f"WHERE {body}" if body else ""), params


def _as_int(name: str, value: Any) -> int:
    n = int(value)
    if n < 0:
        raise ValueError(f"{name} must be >= 0, got {value!r}")
    return n


@dataclass
class SelectBuildResult:
    sql: str
    params: List[Any] = field(default_factory=list)


def build_select(
    columns: Sequence[str],
    from_sql: str,
    clauses: Iterable[CompiledClause] = (),
    *,
    select_params: Sequence[Any] = (),
    distinct: bool = False,
    group_by: Sequence[str] = (),
    qualify: Optional[str] = None,
    order_by: Sequence[str] = (),
    order_params: Sequence[Any] = (),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> SelectBuildResult:
    """
    Build a complete SELECT (Snowflake-friendly).
    - SELECT list from ``columns`` (trusted expressions)
    - FROM is passed through (may contain joins)
    - WHERE from ``clauses`` (parametrized, AND-joined)
    - GROUP BY / QUALIFY / ORDER BY passed through
    - LIMIT/OFFSET rendered from validated ints

    ``select_params`` bind placeholders inside the SELECT list and
    ``order_params`` those inside ORDER BY; they are placed around the WHERE
    params in statement order.
    """
    if not columns:
        raise ValueError("build_select needs at least one column")

    where_clause, where_params = _where(clauses)
    distinct_kw = "DISTINCT " if distinct else ""

    sql = f"SELECT {distinct_kw}{', '.join(columns)} FROM {from_sql}"
    if where_clause:
        sql += f" {where_clause}"
    if group_by:
        sql += " GROUP BY " + ", ".join(group_by)
    if qualify:
        sql += f" QUALIFY {qualify}"
    if order_by:
        sql += " ORDER BY " + ", ".join(order_by)
    if limit is not None:
        sql += f" LIMIT {_as_int('limit', limit)}"
        if offset:
            sql += f" OFFSET {_as_int('offset', offset)}"

    params = list(select_params) + where_params + list(order_params)
    if sql.count("?") != len(params):
        raise ValueError(f"Placeholder/param mismatch in {redact(sql)}")
    return SelectBuildResult(sql=sql, params=params)


def build_count(
    from_sql: str,
    clauses: Iterable[CompiledClause] = (),
    *,
    count_expr: str = "COUNT(*)",
    alias: str = "total_count",
) -> SelectBuildResult:
    """COUNT mirror of a select's FROM/WHERE."""
    return build_select([f"{count_expr} AS {alias}"], from_sql, clauses)


__all__ = [
    "SelectBuildResult",
    "build_select",
    "build_count",
    "redact",
]
