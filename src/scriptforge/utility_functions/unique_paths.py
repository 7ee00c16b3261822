"""Unique path generation for temporary filesystem resources.

Provides helpers that validate the pieces of a temporary path (parent
directory, prefix, suffix) and join them around a random token so that
concurrent callers in the same process never receive the same path.
"""
from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path

__all__ = ['generate_unique_path', 'sanitize_and_validate_path']

def sanitize_and_validate_path(path: Path | str, *, must_exist: bool = True,
                               must_be_dir: bool = False) -> Path:
    """Validate a directory or file path and return it in absolute form.

    The path is made absolute without resolving symlinks, so it stays
    textually under the directory the caller named.

    Args:
        path: Path to validate; accepts string or Path object.
        must_exist: Whether the path must exist on the filesystem.
        must_be_dir: Whether the path must be a directory (if it exists).

    Returns:
        Absolute, normalized Path.

    Raises:
        ValueError: If path is None, empty, contains null bytes, doesn't
            exist when required, or is not a directory when required.
        TypeError: If path is not a string or Path object.
    """
    if path is None:
        raise ValueError("Path cannot be None")

    if not isinstance(path, (str, os.PathLike)):
        raise TypeError(f"Path must be a string or Path object, got {type(path)}")

    if isinstance(path, str) and not path.strip():
        raise ValueError("Path cannot be empty or whitespace")

    if '\x00' in os.fspath(path):
        raise ValueError("Path cannot contain null bytes")

    absolute_path = Path(os.path.abspath(path))

    if must_exist and not absolute_path.exists():
        raise ValueError(f"Path does not exist: {absolute_path}")

    if must_be_dir and absolute_path.exists() and not absolute_path.is_dir():
        raise ValueError(f"Path is not a directory: {absolute_path}")

    return absolute_path


def _validate_name_part(value: str, label: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{label} must be a string, got {type(value)}")
    if '\x00' in value:
        raise ValueError(f"{label} cannot contain null bytes")
    separators = {os.sep, os.altsep} - {None}
    if any(sep in value for sep in separators):
        raise ValueError(f"{label} cannot contain path separators: {value!r}")
    return value

def generate_unique_path(prefix: str = "", suffix: str = "",
                         parent: Path | str | None = None) -> Path:
    """Build a path that no other live caller in this process will get.

    The result is ``<parent>/<prefix><token><suffix>`` where token is a
    random 128-bit hex string. Nothing is created on the filesystem.

    Args:
        prefix: Text placed before the token in the basename.
        suffix: Text placed after the token in the basename.
        parent: Existing directory to place the path in; defaults to the
            platform temporary directory.

    Returns:
        Absolute Path under parent.

    Raises:
        ValueError: If parent is not an existing directory, or prefix/suffix
            contain path separators or null bytes.
        TypeError: If prefix/suffix are not strings.
    """
    _validate_name_part(prefix, "prefix")
    _validate_name_part(suffix, "suffix")
    if parent is None:
        parent = tempfile.gettempdir()
    parent_dir = sanitize_and_validate_path(parent, must_exist=True, must_be_dir=True)
    return parent_dir / f"{prefix}{uuid.uuid4().hex}{suffix}"
