"""Options shared by the build and serve commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class BuildOptions:
    """Options of the build command."""

    target: Path | None = None
    release: bool = False
    verbose: bool = False
    example: str | None = None
    profile: str | None = None
    platform: str | None = None
    features: list[str] | None = None


@dataclass
class ServeOptions:
    """Options of the serve command."""

    target: Path | None = None
    port: int = 8080
    example: str | None = None
    release: bool = False
    verbose: bool = False
    profile: str | None = None
    platform: str | None = None
    hot_reload: bool = False
    features: list[str] | None = None


def parse_public_url(val: str) -> str:
    """Make sure a public URL starts and ends with a slash."""
    prefix = "" if val.startswith("/") else "/"
    suffix = "" if val.endswith("/") else "/"
    return f"{prefix}{val}{suffix}"