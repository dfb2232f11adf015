"""
file_handler.py - Utilities for file operations

This module provides file handling utilities for ghkit, including
append-only channel writes, safe file replacement and log discovery.
"""

import errno
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def append_to_file(file_path: str, content: str) -> None:
    """
    Append text to a file, creating parent directories as needed

    Args:
        file_path: File to append to
        content: Text to append

    Raises:
        OSError: If the file cannot be written
    """
    os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)

    with open(file_path, "a", encoding="utf-8") as f:
        f.write(content)


def safe_write_file(file_path: str, content: str) -> None:
    """
    Write content to a file atomically

    The content is written to a temporary file in the target directory and
    moved into place, so readers never observe a partially written file. An
    existing file keeps its permissions; a new one gets the default mode for
    the current umask.

    Args:
        file_path: Path to the file to write
        content: Content to write

    Raises:
        IsADirectoryError: If ``file_path`` is a directory
        OSError: If the file cannot be written
    """
    if os.path.isdir(file_path):
        raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), file_path)

    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

        if os.path.exists(file_path):
            shutil.copymode(file_path, temp_path)
        else:
            os.chmod(temp_path, 0o666 & ~_current_umask())
        os.replace(temp_path, file_path)
    finally:
        if os.path.exists(temp_path):
            os.unlink(temp_path)


def list_files(directory: str, suffix: str) -> List[str]:
    """
    List files in a directory with the given suffix

    Args:
        directory: Directory to list
        suffix: File suffix including the dot, e.g. ".jsonl"

    Returns:
        Sorted list of matching file paths, empty if the directory is missing
    """
    if not os.path.isdir(directory):
        return []

    return sorted(
        os.path.join(directory, name)
        for name in os.listdir(directory)
        if name.endswith(suffix) and os.path.isfile(os.path.join(directory, name))
    )


def find_latest_file(directory: str, suffix: str) -> Optional[str]:
    """
    Find the most recently modified file with the given suffix

    Args:
        directory: Directory to search
        suffix: File suffix including the dot

    Returns:
        Path of the newest file, or None if there is none
    """
    candidates = list_files(directory, suffix)
    if not candidates:
        return None

    return max(candidates, key=lambda path: (Path(path).stat().st_mtime, path))
