"""Version information, taken from the environment the tool was built with."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class CommitInfo:
    short_commit_hash: str
    commit_hash: str
    commit_date: str


@dataclass(frozen=True)
class VersionInfo:
    version: str
    release_channel: str | None = None
    commit_info: CommitInfo | None = None

    def __str__(self) -> str:
        if self.commit_info is None:
            return self.version
        info = self.commit_info
        return f"{self.version} ({info.short_commit_hash} {info.commit_date})"


def version_info(env: Mapping[str, str] | None = None) -> VersionInfo:
    """Build version information from release and commit variables."""
    env = os.environ if env is None else env
    short_hash = env.get("RA_COMMIT_SHORT_HASH")
    full_hash = env.get("RA_COMMIT_HASH")
    date = env.get("RA_COMMIT_DATE")
    commit = (
        CommitInfo(short_hash, full_hash, date)
        if short_hash is not None and full_hash is not None and date is not None
        else None
    )
    return VersionInfo(
        version=env.get("CFG_RELEASE", "0.0.0"),
        release_channel=env.get("CFG_RELEASE_CHANNEL"),
        commit_info=commit,
    )