from __future__ import annotations

from typing import Any, Iterable

import orjson


def _value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, (list, tuple)):
        return "[" + ", ".join(_value(x) for x in v) + "]"
    # JSON string literal gives the quoting and escaping Prismic expects
    return orjson.dumps(str(v)).decode("utf-8")


def at(path: str, value: Any) -> str:
    return f"[at({path}, {_value(value)})]"


def not_(path: str, value: Any) -> str:
    return f"[not({path}, {_value(value)})]"


def any_of(path: str, values: Iterable[Any]) -> str:
    return f"[any({path}, {_value(list(values))})]"


def build_query(predicates: Iterable[str]) -> str:
    """Join predicates into the value of the q parameter: [[at(...)][any(...)]]."""
    return "[" + "".join(predicates) + "]"
