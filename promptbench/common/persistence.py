"""JSON Lines storage for experiments and benchmark results.

Each record is one pydantic model serialized on its own line. Writers take a
``filelock`` lock on ``<file>.lock``; full rewrites go through a temp file
that is renamed over the original, so readers never see a half-written file.
"""

import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TypeVar
from uuid import UUID

from filelock import FileLock
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


def _lock_for(path: Path) -> FileLock:
    return FileLock(path.with_suffix(path.suffix + ".lock"))


def _coerce_id(record_id: UUID | str) -> UUID | None:
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id))
    except ValueError:
        return None


def _iter_records(path: Path, model_class: type[M]) -> Iterator[M]:
    with path.open("r", encoding="utf-8") as f:
        for raw in f:
            if raw.strip():
                yield model_class.model_validate_json(raw)


def _rewrite(path: Path, records: list[M]) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8") as out:
            out.writelines(record.model_dump_json() + "\n" for record in records)
        tmp.replace(path)
    finally:
        tmp.unlink(missing_ok=True)


def append_jsonl(path: str | Path, record: BaseModel) -> None:
    """Append ``record`` as one line, creating the file and its parents."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    line = record.model_dump_json() + "\n"

    with _lock_for(path), path.open("a", encoding="utf-8") as out:
        out.write(line)


def read_jsonl(path: str | Path, model_class: type[M]) -> list[M]:
    """Load every non-blank line of ``path`` as ``model_class``.

    Raises:
        FileNotFoundError: If ``path`` does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No JSONL file at {path}")
    return list(_iter_records(path, model_class))


def read_jsonl_by_id(path: str | Path, id: UUID | str, model_class: type[M]) -> M | None:
    """Return the record whose ``id`` equals ``id``.

    A missing file, an unparseable ID and an unknown ID all give None.
    """
    path = Path(path)
    target = _coerce_id(id)
    if target is None or not path.exists():
        return None
    return next(
        (r for r in _iter_records(path, model_class) if getattr(r, "id", None) == target),
        None,
    )


def write_jsonl(path: str | Path, records: list[M]) -> None:
    """Replace the contents of ``path`` with ``records``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with _lock_for(path):
        _rewrite(path, records)


def update_jsonl_by_id(
    path: str | Path,
    id: UUID | str,
    model_class: type[M],
    update: Callable[[M], M],
) -> M | None:
    """Replace one record with ``update(record)`` while holding the file lock.

    The read and the rewrite happen under a single lock acquisition, so
    concurrent updates to the same file are applied one after another.
    Exceptions raised by ``update`` propagate and leave the file untouched.

    Returns:
        The updated record, or None if no record has the given ID
    """
    path = Path(path)
    target = _coerce_id(id)
    if target is None or not path.exists():
        return None

    with _lock_for(path):
        records = list(_iter_records(path, model_class))
        for index, record in enumerate(records):
            if getattr(record, "id", None) == target:
                records[index] = update(record)
                _rewrite(path, records)
                return records[index]

    return None
