import json
import os
from pathlib import Path
import tempfile
from typing import Any, Callable, Optional


def ensure_parent_dir(path: Path | str) -> None:
    """
    Ensure the parent directory of a file path exists.
    """
    parent = os.path.dirname(str(path))
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_bytes_atomic(path: str | Path, payload: bytes) -> None:
    """
    Write raw bytes to `path` through a temporary sibling file and os.replace.

    Readers either see the previous file or the complete new one, never a
    truncated write.
    """
    target_path = Path(path)
    ensure_parent_dir(target_path)

    fd, tmp_path_str = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=target_path.name,
        suffix=".tmp",
    )
    tmp_path = Path(tmp_path_str)

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target_path)
    except Exception:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def write_json(path: str | Path, data: Any) -> None:
    """
    Serialize `data` to JSON and write it atomically (see write_bytes_atomic).
    """
    payload = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
    write_bytes_atomic(path, payload)


def read_json(
    path: str | Path,
    default: Any = None,
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Any:
    """
    Read a JSON file safely.

    - returns `default` if the file does not exist
    - returns `default` if JSON is invalid (optionally calling on_error)
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        if on_error:
            on_error(e)
        return default
