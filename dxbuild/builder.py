"""Compiling the crate for the web or the desktop and laying out the output directory."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

from .assets import build_assets, copy_public
from .config import CrateConfig, ExecutableKind
from .errors import BuildFailed, DxError
from .tools import Tool

_logger = logging.getLogger(__name__)

WASM_TARGET = "wasm32-unknown-unknown"


@dataclass(frozen=True)
class Diagnostic:
    """A compiler diagnostic reported by cargo."""

    level: str
    message: str
    rendered: str | None = None
    code: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Diagnostic:
        """Build a diagnostic from the `message` object of a cargo compiler message."""
        code = data.get("code")
        if isinstance(code, dict):
            code = code.get("code")
        rendered = data.get("rendered")
        return cls(
            level=str(data.get("level", "")),
            message=str(data.get("message", "")),
            rendered=rendered if isinstance(rendered, str) else None,
            code=code if isinstance(code, str) else None,
        )


@dataclass
class BuildResult:
    """What a web build produced: its warnings and how long it took in milliseconds."""

    warnings: list[Diagnostic] = field(default_factory=list)
    elapsed_time: int = 0


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _release_type(config: CrateConfig) -> str:
    return "release" if config.release else "debug"


def cargo_build_args(
    config: CrateConfig, quiet: bool = False, wasm: bool = True
) -> list[str]:
    """Return the cargo command line for a web (``wasm``) or desktop build."""
    args = ["cargo", "build"]
    if wasm:
        args += ["--target", WASM_TARGET, "--message-format=json"]
    if config.release:
        args.append("--release")
    if config.verbose:
        args.append("--verbose")
    if wasm and quiet:
        args.append("--quiet")
    if config.custom_profile is not None:
        args += ["--profile", config.custom_profile]
    if config.features is not None:
        args += ["--features", " ".join(config.features)]
    executable = config.executable
    args += [f"--{executable.kind.value}", executable.name]
    return args


def wasm_input_path(config: CrateConfig) -> Path:
    """Where cargo leaves the compiled `.wasm` module."""
    base = config.target_dir / WASM_TARGET / _release_type(config)
    if config.executable.kind is ExecutableKind.EXAMPLE:
        base = base / "examples"
    return base / f"{config.executable.name}.wasm"


def desktop_binary_path(config: CrateConfig) -> Path:
    """Where cargo leaves the compiled desktop executable."""
    base = config.target_dir / _release_type(config)
    if config.executable.kind is ExecutableKind.EXAMPLE:
        base = base / "examples"
    name = config.executable.name
    if _is_windows():
        name = f"{name}.exe"
    return base / name


def parse_build_messages(
    lines: Iterable[str], on_progress: Callable[[str], None] | None = None
) -> list[Diagnostic]:
    """Read cargo's JSON messages; collect warnings and raise on the first error."""
    warnings: list[Diagnostic] = []
    for line in lines:
        text = line.strip()
        if not text.startswith("{"):
            continue
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            continue
        if not isinstance(message, dict):
            continue

        reason = message.get("reason")
        if reason == "compiler-message":
            data = message.get("message")
            if not isinstance(data, dict):
                continue
            diagnostic = Diagnostic.from_json(data)
            if diagnostic.level == "error":
                raise BuildFailed(
                    diagnostic.rendered if diagnostic.rendered is not None else "Unknown"
                )
            if diagnostic.level == "warning":
                warnings.append(diagnostic)
        elif reason == "compiler-artifact":
            if on_progress is not None:
                on_progress(f"Compiling {message.get('package_id', '')} ")
        elif reason == "build-finished":
            if message.get("success"):
                _logger.info("👑 Build done.")
            else:
                raise BuildFailed("cargo reported a failed build")
    return warnings


class _Spinner:
    """A one-line progress indicator on a terminal; silent elsewhere."""

    _FRAMES = "/|\\- "

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._enabled = stream.isatty()
        self._frame = 0
        self._shown = False

    def update(self, message: str) -> None:
        if not self._enabled:
            return
        frame = self._FRAMES[self._frame % len(self._FRAMES)]
        self._frame += 1
        self._stream.write(f"\r{frame} {message}\x1b[K")
        self._stream.flush()
        self._shown = True

    def clear(self) -> None:
        if self._enabled and self._shown:
            self._stream.write("\r\x1b[K")
            self._stream.flush()
            self._shown = False


def _run_cargo_wasm(config: CrateConfig, quiet: bool) -> list[Diagnostic]:
    spinner = _Spinner(sys.stderr)
    spinner.update("💼 Waiting to start build the project...")
    try:
        process = subprocess.Popen(
            cargo_build_args(config, quiet, wasm=True),
            cwd=config.crate_dir,
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        spinner.clear()
        raise BuildFailed(f"failed to run cargo: {exc}") from exc

    try:
        return parse_build_messages(process.stdout, spinner.update)
    except BaseException:
        process.kill()
        raise
    finally:
        spinner.clear()
        process.stdout.close()
        process.wait()


def _bindgen(config: CrateConfig, input_path: Path, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    command = [
        "wasm-bindgen",
        str(input_path),
        "--target",
        "web",
        "--debug",
        "--keep-debug",
        "--out-name",
        config.dioxus_config.application.name,
        "--out-dir",
        str(out_dir),
    ]
    failure = (
        "Bindgen build failed! \n"
        "This is probably due to the wasm-bindgen version not matching the project."
    )
    try:
        result = subprocess.run(command, check=False)
    except OSError as exc:
        raise BuildFailed(failure) from exc
    if result.returncode != 0:
        raise BuildFailed(failure)


def _optimize_wasm(config: CrateConfig, tools: dict[str, Any]) -> None:
    binaryen = Tool.BINARYEN
    if not binaryen.is_installed():
        _logger.warning(
            "Binaryen tool not found, you can use `dioxus tool add binaryen` to install it."
        )
        return
    info = tools["binaryen"]
    if not isinstance(info, dict) or info.get("wasm_opt") is not True:
        return
    _logger.info("Optimizing WASM size with wasm-opt...")
    name = config.dioxus_config.application.name
    target = config.out_dir / "assets" / "dioxus" / f"{name}_bg.wasm"
    if not target.is_file():
        return
    args = [str(target), "-o", str(target)]
    if config.release:
        args.append("-Oz")
    binaryen.call("wasm-opt", args)


def _string_setting(table: dict[str, Any], key: str, default: str) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise DxError(f"tailwindcss setting `{key}` must be a string")
    return value


def _build_tailwind(config: CrateConfig, tools: dict[str, Any]) -> None:
    tailwind = Tool.TAILWIND
    if not tailwind.is_installed():
        _logger.warning(
            "Tailwind tool not found, you can use `dioxus tool add tailwindcss` to install it."
        )
        return
    info = tools["tailwindcss"]
    if not isinstance(info, dict):
        return
    _logger.info("Building Tailwind bundle CSS file...")
    args = [
        "-i",
        _string_setting(info, "input", "./public"),
        "-o",
        "dist/tailwind.css",
        "-c",
        _string_setting(info, "config", "./src/tailwind.config.js"),
    ]
    if config.release:
        args.append("--minify")
    tailwind.call("tailwindcss", args)


def build(config: CrateConfig, quiet: bool = False) -> BuildResult:
    """Build the crate for the web and lay out the output directory."""
    ignore_files = build_assets(config)
    started = time.monotonic()

    _logger.info("🚅 Running build command...")
    warnings = _run_cargo_wasm(config, quiet)

    _bindgen(config, wasm_input_path(config), config.out_dir / "assets" / "dioxus")

    tools = config.dioxus_config.application.tools or {}
    if "binaryen" in tools:
        _optimize_wasm(config, tools)
    if "tailwindcss" in tools:
        _build_tailwind(config, tools)

    copy_public(config, ignore_files)

    elapsed = int((time.monotonic() - started) * 1000)
    return BuildResult(warnings=warnings, elapsed_time=elapsed)


def build_desktop(config: CrateConfig, is_serve: bool = False) -> Path:
    """Build the crate as a desktop program; return where the executable was copied."""
    _logger.info("🚅 Running build [Desktop] command...")
    ignore_files = build_assets(config)

    try:
        result = subprocess.run(
            cargo_build_args(config, wasm=False), cwd=config.crate_dir, check=False
        )
    except OSError as exc:
        raise BuildFailed(f"failed to run cargo: {exc}") from exc
    if result.returncode != 0:
        raise BuildFailed("Program build failed.")

    source = desktop_binary_path(config)
    config.out_dir.mkdir(parents=True, exist_ok=True)
    destination = config.out_dir / source.name
    shutil.copy(source, destination)

    copy_public(config, ignore_files)

    out_dir = config.dioxus_config.application.out_dir or Path("dist")
    _logger.info("🚩 Build completed: [./%s]", out_dir)
    return destination