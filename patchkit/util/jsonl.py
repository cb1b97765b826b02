import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout
from pydantic import BaseModel

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SEC = 10.0


def _to_line(record: BaseModel | dict[str, Any] | str) -> str:
    if isinstance(record, BaseModel):
        line = record.model_dump_json()
    elif isinstance(record, str):
        line = record.rstrip("\n")
    else:
        line = json.dumps(record, default=str)
    return line + "\n"


def append_jsonl(path: Path, record: BaseModel | dict[str, Any] | str) -> bool:
    """
    Append one record to a JSONL file under a sibling `.lock` file.

    Event logging must never break an edit, so failures are logged and
    reported through the return value instead of raised.

    Returns:
        True if the line was written and fsynced, False otherwise.
    """

    path = Path(path)
    line = _to_line(record)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(f"{path}.lock", timeout=LOCK_TIMEOUT_SEC):
            with open(path, "ab") as f:
                f.write(line.encode("utf-8"))
                f.flush()
                os.fsync(f.fileno())
        return True

    except Timeout:
        logger.critical("Timed out waiting for lock on %s", path)
        return False
    except OSError as e:
        logger.critical("Failed to write JSONL record to %s: %s", path, e)
        return False


def read_jsonl(path: Path) -> Iterator[dict]:
    """Yield one dict per line. A missing file yields nothing."""

    path = Path(path)
    if not path.exists():
        return

    with path.open("r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("%s:%d: skipping malformed record: %s", path, line_number, e)
