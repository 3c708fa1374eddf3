from __future__ import annotations
import orjson
from pathlib import Path
from typing import Iterable, Dict, Any, Union

PathLike = Union[str, Path]


def write_jsonl(path: PathLike, records: Iterable[Dict[str, Any]]) -> int:
    n = 0
    with open(path, "wb") as f:
        for rec in records:
            f.write(orjson.dumps(rec))
            f.write(b"\n")
            n += 1
    return n


def write_json(path: PathLike, data: Dict[str, Any]) -> None:
    with open(path, "wb") as f:
        f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
