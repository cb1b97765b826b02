import logging
import os
import stat
import tempfile
from pathlib import Path

from patchkit.engine.errors import PatchIOError

logger = logging.getLogger(__name__)


class PathEscapeError(Exception):
    def __init__(self, candidate: Path, workspace_root: Path):
        super().__init__(f"Candidate {str(candidate)} is not relative to workspace: {str(workspace_root)}")

class SymLinkError(Exception):
    def __init__(self, path: Path):
        super().__init__(f"Path contains symlink: {str(path)}")

def resolve_safe_path(
    workspace_root: Path,
    relative_path: str,
    allow_symlinks: bool = False
) -> Path:
    """
    Resolve a path within a workspace root safely.

    Args:
        workspace_root: Directory edits are confined to
        relative_path: User-provided path, relative to the workspace or
            absolute but inside it
        allow_symlinks: If False, reject paths that contain symlinks

    Returns:
        Resolved absolute Path that is guaranteed to be within workspace_root

    Raises:
        PathEscapeError: If the resolved path would escape the workspace
        SymLinkError: If symlinks are not allowed and path contains one
    """

    workspace_root = Path(workspace_root).resolve()
    requested = Path(relative_path)

    if requested.is_absolute():
        candidate = requested.resolve()
    else:
        candidate = (workspace_root / requested).resolve()

    if not candidate.is_relative_to(workspace_root):
        logger.warning("Path escape attempt: %s is not relative to %s", candidate, workspace_root)
        raise PathEscapeError(candidate, workspace_root)

    if not allow_symlinks:
        path_so_far = workspace_root
        unresolved = requested if requested.is_absolute() else workspace_root / requested
        try:
            parts = unresolved.relative_to(workspace_root).parts
        except ValueError:
            parts = candidate.relative_to(workspace_root).parts

        for part in parts:
            path_so_far = path_so_far / part

            if path_so_far.is_symlink():
                logger.warning("Symlink blocked: %s", path_so_far)
                raise SymLinkError(path_so_far)

    logger.debug("Resolved safe path: %s -> %s", relative_path, candidate)
    return candidate


def read_text(path: Path) -> str:
    """Read `path` as raw bytes and decode them as UTF-8."""

    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise PatchIOError(f"failed to read file: {e}", path=str(path)) from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise PatchIOError(f"file is not valid UTF-8: {path}", path=str(path)) from e


def atomic_write(path: Path, content: str, mode: int | None = None) -> None:
    """
    Replace `path` with `content` so the file is either fully updated or untouched.

    - Write to a temporary file in the same directory
    - fsync, then `os.replace` over the target
    - Keep the existing file mode unless `mode` is given
    """

    path = Path(path)
    directory = path.parent if str(path.parent) else Path(".")

    if mode is None:
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = 0o644
        except OSError as e:
            raise PatchIOError(f"failed to stat file: {e}", path=str(path)) from e

    tmp_path: str | None = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-")
        with os.fdopen(fd, "wb") as f:
            f.write(content.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        logger.error("Atomic write to %s failed: %s", path, e)
        raise PatchIOError(f"failed to write file: {e}", path=str(path)) from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.debug("Atomically wrote %d chars to %s", len(content), path)
