"""Temporary paths and directories bounded by a callback's lifetime.

with_temp_path() hands the callback a fresh path where nothing exists yet;
with_temp_dir() hands it a freshly created empty directory. Whatever exists at
the path afterwards is removed recursively once the callback is done,
including when it returned an awaitable that is still running, and whether it
succeeded or failed. The callback's result or error is passed through as is.

The temp_path() and temp_dir() context managers offer the same guarantee for
a with-block.
"""
from __future__ import annotations

import enum
import logging
import os
import shutil
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from ..utility_functions import generate_unique_path, release_after_failure, run_with_release

__all__ = [
    'TempResource',
    'TempResourceKind',
    'temp_dir',
    'temp_path',
    'with_temp_dir',
    'with_temp_path',
]

logger = logging.getLogger(__name__)

TEMP_NAME_ATTEMPTS: Final[int] = 100


class TempResourceKind(str, enum.Enum):
    FILE_PATH = "file-path"
    DIRECTORY = "directory"


@dataclass
class TempResource:
    """A generated path whose contents are deleted on release().

    Attributes:
        path: Absolute generated path.
        kind: Whether a directory was created up front.
        parent: Directory containing path.
        created: Whether anything was created at path by this library.
    """

    path: Path
    kind: TempResourceKind
    parent: Path
    created: bool = False
    released: bool = field(default=False, repr=False)

    @classmethod
    def reserve(cls, kind: TempResourceKind, *, prefix: str = "", suffix: str = "",
                parent: Path | str | None = None) -> TempResource:
        """Generate a unique path; create it as a directory if kind says so."""
        if kind is TempResourceKind.FILE_PATH:
            path = generate_unique_path(prefix, suffix, parent)
            return cls(path, kind, path.parent)

        for _ in range(TEMP_NAME_ATTEMPTS):
            path = generate_unique_path(prefix, suffix, parent)
            try:
                os.mkdir(path, 0o700)
            except FileExistsError:
                continue
            logger.debug("Created temporary directory %s", path)
            return cls(path, kind, path.parent, created=True)
        raise FileExistsError(
            f"No unused temporary directory name found after {TEMP_NAME_ATTEMPTS} attempts")

    def release(self) -> None:
        """Delete whatever exists at path. Runs once; later calls do nothing."""
        if self.released:
            return
        self.released = True
        _remove_recursively(self.path)


def _remove_recursively(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
            logger.debug("Removed temporary directory %s", path)
        else:
            path.unlink()
            logger.debug("Removed temporary file %s", path)
    except FileNotFoundError:
        pass


def _with_resource(kind: TempResourceKind, body: Callable[[Path], Any],
                   prefix: str, suffix: str, parent: Path | str | None) -> Any:
    resource = TempResource.reserve(kind, prefix=prefix, suffix=suffix, parent=parent)
    return run_with_release(lambda: body(resource.path), resource.release)


def with_temp_path(body: Callable[[Path], Any], *, prefix: str = "", suffix: str = "",
                   parent: Path | str | None = None) -> Any:
    """Call body with a unique path that doesn't exist yet, then delete it.

    Args:
        body: Callable receiving the path. It may create a file or a
            directory tree there, or nothing at all.
        prefix: Text placed at the start of the path's basename.
        suffix: Text placed at the end of the path's basename.
        parent: Directory to put the path in; defaults to the platform
            temporary directory.

    Returns:
        body's return value. If body returned an awaitable, a task (inside a
        running event loop) or coroutine settling to its result; the path is
        deleted when it settles.

    Raises:
        Whatever body raises, after the path was deleted.

    Example:
        >>> with_temp_path(lambda p: p.write_text("hello!") and 123)
        123
    """
    return _with_resource(TempResourceKind.FILE_PATH, body, prefix, suffix, parent)


def with_temp_dir(body: Callable[[Path], Any], *, prefix: str = "", suffix: str = "",
                  parent: Path | str | None = None) -> Any:
    """Call body with a new empty directory, then delete it and its contents.

    Arguments, return value and errors are the same as for with_temp_path().
    """
    return _with_resource(TempResourceKind.DIRECTORY, body, prefix, suffix, parent)


@contextmanager
def temp_path(*, prefix: str = "", suffix: str = "",
              parent: Path | str | None = None) -> Iterator[Path]:
    """Yield a unique nonexistent path; delete whatever is there on exit."""
    resource = TempResource.reserve(
        TempResourceKind.FILE_PATH, prefix=prefix, suffix=suffix, parent=parent)
    try:
        yield resource.path
    except BaseException:
        release_after_failure(resource.release)
        raise
    resource.release()


@contextmanager
def temp_dir(*, prefix: str = "", suffix: str = "",
             parent: Path | str | None = None) -> Iterator[Path]:
    """Yield a new empty directory; delete it recursively on exit."""
    resource = TempResource.reserve(
        TempResourceKind.DIRECTORY, prefix=prefix, suffix=suffix, parent=parent)
    try:
        yield resource.path
    except BaseException:
        release_after_failure(resource.release)
        raise
    resource.release()
