"""Helpers offered to plugins: files, paths, commands, downloads and logging."""

from __future__ import annotations

import enum
import logging
import os
import shutil
import subprocess
import tarfile
from collections.abc import Sequence
from pathlib import Path, PurePath
from typing import Any

import requests

from .tools import _extract_tar, app_path, current_platform, extract_zip

__all__ = [
    "StdioMode",
    "create_dir",
    "current_platform",
    "download_file",
    "exec_command",
    "file_get_content",
    "file_set_content",
    "is_dir",
    "is_file",
    "join_path",
    "parent_path",
    "path_exists",
    "plugin_log",
    "plugins_dir",
    "remove_dir",
    "stdio_mode",
    "untar_gz_file",
    "unzip_file",
]

_logger = logging.getLogger(__name__)

_TRACE = 5
_LEVELS = {
    "trace": _TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class StdioMode(enum.Enum):
    """Where a plugin command's output goes."""

    INHERIT = "inhert"
    PIPED = "piped"
    NULL = "null"

    @property
    def stream(self) -> int | None:
        """The value to hand to subprocess for this mode."""
        match self:
            case StdioMode.PIPED:
                return subprocess.PIPE
            case StdioMode.NULL:
                return subprocess.DEVNULL
            case _:
                return None


def stdio_mode(value: Any) -> StdioMode:
    """Read a stdio mode name case-insensitively; anything unknown inherits."""
    if isinstance(value, str):
        try:
            return StdioMode(value.lower())
        except ValueError:
            return StdioMode.INHERIT
    return StdioMode.INHERIT


def exec_command(
    cmd: Sequence[str], stdout: Any = None, stderr: Any = None
) -> subprocess.CompletedProcess | None:
    """Run ``cmd``; an empty command does nothing and returns None."""
    if not cmd:
        return None
    return subprocess.run(
        list(cmd),
        stdout=stdio_mode(stdout).stream,
        stderr=stdio_mode(stderr).stream,
        check=False,
    )


def create_dir(path: str, recursive: bool) -> bool:
    """Create a directory; report whether it exists afterwards."""
    target = Path(path)
    if target.exists():
        return True
    try:
        target.mkdir(parents=recursive)
    except OSError:
        return False
    return True


def remove_dir(path: str) -> bool:
    """Remove a directory tree; report whether it worked."""
    try:
        shutil.rmtree(path)
    except OSError:
        return False
    return True


def file_get_content(path: str) -> str:
    """Return the text of a file."""
    return Path(path).read_text(encoding="utf-8")


def file_set_content(path: str, content: str) -> bool:
    """Write text to a file, replacing it; report whether it worked."""
    try:
        Path(path).write_text(content, encoding="utf-8")
    except OSError:
        return False
    return True


def unzip_file(file: str, target: str) -> bool:
    """Unpack a zip archive; report whether it worked."""
    try:
        extract_zip(file, target)
    except (OSError, zipfile_errors()):
        return False
    return True


def zipfile_errors() -> type[Exception]:
    import zipfile

    return zipfile.BadZipFile


def untar_gz_file(file: str, target: str) -> bool:
    """Unpack a gzipped tar archive; report whether it worked."""
    try:
        with tarfile.open(file, "r:gz") as archive:
            _extract_tar(archive, Path(target))
    except (OSError, tarfile.TarError):
        return False
    return True


def join_path(*args: str) -> str:
    """Join path parts; an absolute part starts the path afresh."""
    return os.path.join(*args) if args else ""


def parent_path(path: str) -> str:
    """Return the parent of ``path``, or ``path`` itself if it has none."""
    pure = PurePath(path)
    if not pure.parts or pure == PurePath(pure.anchor):
        return path
    if len(pure.parts) == 1:
        return ""
    return str(pure.parent)


def path_exists(path: str) -> bool:
    return Path(path).exists()


def is_dir(path: str) -> bool:
    return Path(path).is_dir()


def is_file(path: str) -> bool:
    return Path(path).is_file()


def plugins_dir() -> str:
    """Return the directory plugins are kept in."""
    return str(app_path() / "plugins")


def download_file(url: str, path: str) -> bool:
    """Download ``url`` into ``path``; report whether it worked."""
    try:
        response = requests.get(url, timeout=60)
    except requests.RequestException:
        return False
    try:
        Path(path).write_bytes(response.content)
    except OSError:
        return False
    return True


def plugin_log(level: str, message: str) -> None:
    """Log a plugin's message at trace, debug, info, warn or error level."""
    try:
        numeric = _LEVELS[level]
    except KeyError:
        raise ValueError(f"unknown log level: {level}") from None
    _logger.log(numeric, "%s", message)