"""Locating the crate root and reading `cargo metadata`."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import CargoError

MAX_ANCESTORS = 10
"""How many directories, starting at the working one, are searched for `Cargo.toml`."""


@dataclass(frozen=True)
class Metadata:
    """The fields of `cargo metadata` the tool uses."""

    workspace_root: Path
    target_directory: Path


def contains_manifest(path: str | os.PathLike[str]) -> bool:
    """Return whether the directory directly contains a `Cargo.toml`."""
    try:
        with os.scandir(path) as entries:
            return any(entry.name == "Cargo.toml" for entry in entries)
    except OSError:
        return False


def crate_root(start: str | os.PathLike[str] | None = None) -> Path:
    """Return the nearest directory at or above ``start`` holding a `Cargo.toml`."""
    directory = Path(start).absolute() if start is not None else Path.cwd()
    for candidate in [directory, *directory.parents][:MAX_ANCESTORS]:
        if contains_manifest(candidate):
            return candidate
    raise CargoError("Failed to find the cargo directory")


def parse_metadata_output(stdout: str) -> Metadata:
    """Read the workspace root and target directory from `cargo metadata` output."""
    first_line = next(iter(stdout.splitlines()), None)
    if first_line is None:
        raise CargoError("InvalidOutput")
    try:
        meta = json.loads(first_line)
    except json.JSONDecodeError as exc:
        raise CargoError("InvalidOutput") from exc
    if not isinstance(meta, dict):
        raise CargoError("InvalidOutput")
    workspace_root = meta.get("workspace_root")
    target_directory = meta.get("target_directory")
    if not isinstance(workspace_root, str) or not isinstance(target_directory, str):
        raise CargoError("InvalidOutput")
    return Metadata(Path(workspace_root), Path(target_directory))


def load_metadata(cwd: str | os.PathLike[str] | None = None) -> Metadata:
    """Run `cargo metadata` in ``cwd`` and parse what it prints."""
    try:
        result = subprocess.run(
            ["cargo", "metadata"], cwd=cwd, capture_output=True, check=False
        )
    except OSError as exc:
        raise CargoError("Manifest") from exc

    if result.returncode != 0:
        message = result.stderr.decode("utf-8", errors="replace").strip()
        raise CargoError(message.removeprefix("error: "))

    return parse_metadata_output(result.stdout.decode("utf-8", errors="replace"))