# app/database/queries.py
"""Helpers for building parameterised WHERE clauses.

Column names are never taken from user input: callers pass the whitelisted
columns of their table and only the values end up as ``$n`` parameters.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally"""
    return (
        term.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )


def build_where(
    equals: Optional[Dict[str, Any]] = None,
    search: Optional[str] = None,
    search_columns: Iterable[str] = (),
    since: Optional[Any] = None,
    since_column: Optional[str] = None,
    start: int = 1
) -> Tuple[str, List[Any]]:
    """Return (" WHERE ...", params) for equality filters, a case-insensitive
    substring search across ``search_columns`` and an optional lower bound.

    Filters whose value is None are skipped; an empty filter set yields an
    empty clause.
    """
    conditions: List[str] = []
    params: List[Any] = []
    param_count = start

    for column, value in (equals or {}).items():
        if value is None:
            continue
        conditions.append(f"{column} = ${param_count}")
        params.append(value)
        param_count += 1

    columns = list(search_columns)
    if search and columns:
        matches = [f"{column} ILIKE ${param_count}" for column in columns]
        conditions.append(f"({' OR '.join(matches)})")
        params.append(f"%{escape_like(search)}%")
        param_count += 1

    if since is not None and since_column:
        conditions.append(f"{since_column} >= ${param_count}")
        params.append(since)
        param_count += 1

    if not conditions:
        return "", params
    return " WHERE " + " AND ".join(conditions), params
