"""Turn caller filters ("status = ?", mappings, SQLAlchemy clauses) into WHERE clauses."""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from sqlalchemy import and_, bindparam, text
from sqlalchemy.sql.elements import ClauseElement

from pgconnect.errors import QueryError

PLACEHOLDER = "?"
_EXPANDING_TYPES = (list, tuple, set, frozenset)


def build_where(model: Type[Any], query: Any, args: Sequence[Any]) -> Optional[ClauseElement]:
    """Return a fresh WHERE clause for ``query`` bound to ``args`` (None for no filter)."""
    if query is None:
        if args:
            raise QueryError("arguments given without a filter expression", "filter")
        return None

    if isinstance(query, str):
        return bind_positional(query, args)

    if args:
        raise QueryError(
            f"positional arguments are only supported with string filters, got {type(query).__name__}",
            "filter",
        )

    if isinstance(query, ClauseElement):
        return query

    if isinstance(query, Mapping):
        conditions = []
        for key, value in query.items():
            column = getattr(model, key, None)
            if column is None:
                raise QueryError(f"unknown filter field {key!r} on {model.__name__}", "filter")
            conditions.append(column == value)
        return and_(*conditions)

    raise QueryError(f"unsupported filter type {type(query).__name__}", "filter")


def bind_positional(sql: str, args: Sequence[Any]):
    """Replace each ``?`` outside quoted literals with a bound parameter.

    Sequence arguments become expanding parameters, so ``id IN ?`` with a
    list renders as ``id IN (...)``.
    """
    parts: List[str] = []
    params: Dict[str, Any] = {}
    quote = None
    index = 0

    for char in sql:
        if quote is not None:
            parts.append(char)
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
            parts.append(char)
            continue
        if char == PLACEHOLDER:
            if index >= len(args):
                raise QueryError(
                    f"filter {sql!r} has more placeholders than the {len(args)} argument(s) given",
                    "filter",
                )
            name = f"arg_{index}"
            params[name] = args[index]
            parts.append(f":{name}")
            index += 1
            continue
        parts.append(char)

    if index != len(args):
        raise QueryError(
            f"filter {sql!r} has {index} placeholder(s) but {len(args)} argument(s) were given",
            "filter",
        )

    clause = text("".join(parts))
    if not params:
        return clause
    return clause.bindparams(
        *[
            bindparam(
                name,
                list(value) if isinstance(value, _EXPANDING_TYPES) else value,
                expanding=isinstance(value, _EXPANDING_TYPES),
            )
            for name, value in params.items()
        ]
    )
