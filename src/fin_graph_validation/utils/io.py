from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import polars as pl

PathLike = Union[str, Path]


def write_json_atomic(path: PathLike, obj: Any) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    with _tempfile(target, suffix=".json") as tmp_path:
        with open(tmp_path, "w", encoding="utf-8") as fp:
            json.dump(obj, fp, indent=2)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(tmp_path, target)


def read_json(path: PathLike) -> Any:
    with open(Path(path), "r", encoding="utf-8") as fp:
        return json.load(fp)


def write_csv_atomic(path: PathLike, dataframe: pl.DataFrame) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    with _tempfile(target, suffix=".csv") as tmp_path:
        dataframe.write_csv(tmp_path)
        _fsync_path(tmp_path)
        os.replace(tmp_path, target)


class _AtomicTempFile:
    def __init__(self, temp_path: Path):
        self.temp_path = temp_path

    def __enter__(self) -> Path:
        return self.temp_path

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and self.temp_path.exists():
            self.temp_path.unlink(missing_ok=True)


def _tempfile(target: Path, suffix: str = "") -> _AtomicTempFile:
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.tmp-",
        suffix=suffix,
    )
    os.close(fd)
    return _AtomicTempFile(Path(tmp))


def _fsync_path(temp_path: Path) -> None:
    with open(temp_path, "rb") as fp:
        os.fsync(fp.fileno())


__all__ = ["read_json", "write_csv_atomic", "write_json_atomic"]
