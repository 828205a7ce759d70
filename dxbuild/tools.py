"""External tools (binaryen, sass, tailwindcss): locating, installing and running them."""

from __future__ import annotations

import enum
import os
import shutil
import stat
import subprocess
import sys
import tarfile
import zipfile
from collections.abc import Sequence
from pathlib import Path

import platformdirs
import requests

from .errors import DxError

_CHUNK_SIZE = 64 * 1024


def current_platform() -> str:
    """Return the platform name used in tool downloads: windows, macos or linux."""
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("linux"):
        return "linux"
    raise DxError("unsupported platform")


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def app_path() -> Path:
    """Return the tool's data directory, creating it if needed."""
    return _ensure_dir(Path(platformdirs.user_data_path()) / "dioxus")


def temp_path() -> Path:
    """Return the directory for temporary downloads, creating it if needed."""
    return _ensure_dir(app_path() / "temp")


def tools_path() -> Path:
    """Return the directory external tools are installed into, creating it if needed."""
    return _ensure_dir(app_path() / "tools")


def tool_names() -> list[str]:
    """Return the names of all supported tools."""
    return [tool.value for tool in Tool]


def clone_repo(directory: str | os.PathLike[str], url: str) -> None:
    """Clone the git repository at ``url`` into ``directory``."""
    target = Path(directory)
    subprocess.run(
        ["git", "clone", url, target.name],
        cwd=target.parent,
        capture_output=True,
        check=False,
    )


def extract_zip(file: str | os.PathLike[str], target: str | os.PathLike[str]) -> None:
    """Unpack a zip archive into ``target``."""
    destination = Path(target)
    with zipfile.ZipFile(file) as archive:
        destination.mkdir(parents=True, exist_ok=True)
        for info in archive.infolist():
            if info.is_dir():
                (destination / info.filename.replace("\\", "")).mkdir(
                    parents=True, exist_ok=True
                )
                continue
            output = destination / info.filename
            output.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as source, output.open("wb") as sink:
                shutil.copyfileobj(source, sink)


def _extract_tar(archive: tarfile.TarFile, destination: Path) -> None:
    if hasattr(tarfile, "data_filter"):
        archive.extractall(destination, filter="data")
    else:
        archive.extractall(destination)


class Tool(enum.Enum):
    """An external tool the build can use; the value is its name."""

    BINARYEN = "binaryen"
    SASS = "sass"
    TAILWIND = "tailwindcss"

    def bin_path(self) -> str:
        """Directory, inside the installed tool, that holds its executables."""
        return "bin" if self is Tool.BINARYEN else "."

    def tool_version(self) -> str:
        match self:
            case Tool.BINARYEN:
                return "version_105"
            case Tool.SASS:
                return "1.51.0"
            case Tool.TAILWIND:
                return "v3.1.6"

    def extension(self) -> str:
        """The kind of package downloaded: tar.gz, zip or a bare bin."""
        match self:
            case Tool.BINARYEN:
                return "tar.gz"
            case Tool.SASS:
                return "zip" if current_platform() == "windows" else "tar.gz"
            case Tool.TAILWIND:
                return "bin"

    def download_url(self) -> str:
        version = self.tool_version()
        target = current_platform()
        match self:
            case Tool.BINARYEN:
                return (
                    "https://github.com/WebAssembly/binaryen/releases/download/"
                    f"{version}/binaryen-{version}-x86_64-{target}.tar.gz"
                )
            case Tool.SASS:
                return (
                    "https://github.com/sass/dart-sass/releases/download/"
                    f"{version}/dart-sass-{version}-{target}-x64.{self.extension()}"
                )
            case Tool.TAILWIND:
                suffix = ".exe" if target == "windows" else ""
                return (
                    "https://github.com/tailwindlabs/tailwindcss/releases/download/"
                    f"{version}/tailwindcss-{target}-x64{suffix}"
                )

    def is_installed(self) -> bool:
        return (tools_path() / self.value).is_dir()

    def temp_out_path(self) -> Path:
        """Where the downloaded package is stored before installation."""
        return temp_path() / f"{self.value}-tool.tmp"

    def download_package(self) -> Path:
        """Download the tool's package and return where it was saved."""
        out = self.temp_out_path()
        try:
            response = requests.get(self.download_url(), stream=True, timeout=60)
            with response, out.open("wb") as file:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    file.write(chunk)
        except requests.RequestException as exc:
            raise DxError(f"error downloading {self.value}: {exc}") from exc
        return out

    def _unpacked_dir_name(self) -> str:
        match self:
            case Tool.BINARYEN:
                return f"binaryen-{self.tool_version()}"
            case Tool.SASS:
                return "dart-sass"
            case Tool.TAILWIND:
                return self.value

    def install_package(self) -> None:
        """Install the previously downloaded package into the tools directory."""
        package = self.temp_out_path()
        tools = tools_path()
        dir_name = self._unpacked_dir_name()
        extension = self.extension()

        if extension == "tar.gz":
            with tarfile.open(package, "r:gz") as archive:
                _extract_tar(archive, tools)
            os.rename(tools / dir_name, tools / self.value)
        elif extension == "zip":
            extract_zip(package, tools)
            os.rename(tools / dir_name, tools / self.value)
        else:
            platform = current_platform()
            directory = tools / dir_name
            directory.mkdir()
            file_name = f"{self.value}.exe" if platform == "windows" else self.value
            binary = directory / file_name
            shutil.copyfile(package, binary)
            if platform == "linux":
                mode = binary.stat().st_mode
                binary.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            package.unlink()

    def command_file(self, command: str) -> str:
        """The file name of ``command`` on this platform."""
        if current_platform() != "windows":
            return command
        suffix = ".bat" if self is Tool.SASS else ".exe"
        return f"{command}{suffix}"

    def call(self, command: str, args: Sequence[str]) -> subprocess.CompletedProcess:
        """Run one of the tool's commands with its output going to the terminal."""
        executable = (
            tools_path() / self.value / self.bin_path() / self.command_file(command)
        )
        if not executable.is_file():
            raise DxError("Command file not found.")
        return subprocess.run([str(executable), *args], check=False)