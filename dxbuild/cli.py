"""The command line: build, serve, create, clean, config, tool and version commands."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import re
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .assets import DEFAULT_INDEX_HTML, gen_page
from .builder import BuildResult, build, build_desktop
from .cargo import crate_root
from .config import (
    CrateConfig,
    Executable,
    ExecutableKind,
    create_crate_config,
    load_dioxus_config,
)
from .errors import CustomError, DxError
from .options import BuildOptions, ServeOptions
from .server import startup
from .tools import Tool, tool_names, tools_path
from .version import version_info

_logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "gh:dioxuslabs/dioxus-template"

CONFIG_TEMPLATE = """[application]
name = "{{project-name}}"
default_platform = "{{default-platform}}"
out_dir = "dist"
asset_dir = "public"

[web.app]
title = "dioxus | ⛺"

[web.watcher]
reload_html = true
watch_path = ["src", "public"]
index_on_404 = true

[web.resource]
style = []
script = []

[web.resource.dev]
script = []
"""
"""The `Dioxus.toml` written by `config init`."""

_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9\-_]$")


def name_valid_check(name: str) -> bool:
    """Return whether ``name`` matches the rejected project-name pattern."""
    return _NAME_PATTERN.match(name) is not None


def _apply_common(
    config: CrateConfig,
    *,
    release: bool,
    verbose: bool,
    example: str | None,
    profile: str | None,
) -> None:
    config.release = release
    config.verbose = verbose
    if example is not None:
        config.executable = Executable(ExecutableKind.EXAMPLE, example)
    if profile is not None:
        config.custom_profile = profile


def _dist_dir(config: CrateConfig) -> Path:
    out_dir = config.dioxus_config.application.out_dir or Path("dist")
    return config.crate_dir / out_dir


def regen_dev_page(config: CrateConfig) -> Path:
    """Write the development index page into the output directory; return its path."""
    html = gen_page(config.dioxus_config, True, config.crate_dir)
    dist = _dist_dir(config)
    dist.mkdir(parents=True, exist_ok=True)
    index = dist / "index.html"
    index.write_text(html, encoding="utf-8")
    return index


def run_build(options: BuildOptions) -> BuildResult | Path:
    """Build the project for the chosen platform."""
    config = create_crate_config()
    _apply_common(
        config,
        release=options.release,
        verbose=options.verbose,
        example=options.example,
        profile=options.profile,
    )
    if options.features is not None:
        config.features = list(options.features)

    platform = options.platform or config.dioxus_config.application.default_platform
    if platform == "web":
        result = build(config, False)
        page = gen_page(config.dioxus_config, False, config.crate_dir)
        config.out_dir.mkdir(parents=True, exist_ok=True)
        (config.out_dir / "index.html").write_text(page, encoding="utf-8")
        return result
    if platform == "desktop":
        return build_desktop(config, False)
    raise CustomError("Unsupported platform target.")


def run_clean() -> None:
    """Run `cargo clean` and remove the output directory."""
    config = create_crate_config()
    result = subprocess.run(["cargo", "clean"], capture_output=True, check=False)
    if result.returncode != 0:
        raise CustomError("Cargo clean failed.")
    dist = _dist_dir(config)
    if dist.is_dir():
        shutil.rmtree(dist)


def run_config_init(name: str, force: bool = False, platform: str = "web") -> bool:
    """Write `Dioxus.toml` into the crate root; return whether a file was written."""
    conf_path = crate_root() / "Dioxus.toml"
    if conf_path.is_file() and not force:
        _logger.warning(
            "config file `Dioxus.toml` already exist, use `--force` to overwrite it."
        )
        return False
    content = CONFIG_TEMPLATE.replace("{{project-name}}", name).replace(
        "{{default-platform}}", platform
    )
    conf_path.write_text(content, encoding="utf-8")
    _logger.info("🚩 Init config file completed.")
    return True


def run_config_print() -> str:
    """Print the project's resolved config and return the printed text."""
    text = repr(create_crate_config().dioxus_config)
    print(text)
    return text


def _run_config_custom_html() -> Path:
    html_path = crate_root() / "index.html"
    html_path.write_text(DEFAULT_INDEX_HTML, encoding="utf-8")
    _logger.info("🚩 Create custom html file done.")
    return html_path


def run_create(name: str = ".", template: str = DEFAULT_TEMPLATE) -> Path:
    """Generate a new project from a template; return its directory."""
    if name_valid_check(name):
        raise CustomError(f"❗Unsupported project name: '{name}'.")

    project_path = Path(name)
    if (project_path / "Dioxus.toml").is_file() or (project_path / "Cargo.toml").is_file():
        raise CustomError(f"🧨 Folder '{name}' is initialized.")

    _logger.info("🔧 Start: Creating new project '%s'.", name)

    probe = subprocess.run(
        ["cargo", "generate", "--help"], capture_output=True, check=False
    )
    if probe.returncode != 0:
        _logger.warning("Tool is not installed: cargo-generate, try to install it.")
        install = subprocess.run(["cargo", "install", "cargo-generate"], check=False)
        if install.returncode != 0:
            raise CustomError("Try to install cargo-generate failed.")

    generate = subprocess.run(
        ["cargo", "generate", template, "--name", name, "--force"],
        stdout=subprocess.PIPE,
        check=False,
    )
    if generate.returncode != 0:
        raise CustomError("Generate project failed. Try to update cargo-generate.")

    conf_path = project_path / "Dioxus.toml"
    content = conf_path.read_text(encoding="utf-8")
    content = content.replace("{{project-name}}", name).replace(
        "{{default-platform}}", "web"
    )
    conf_path.write_text(content, encoding="utf-8")

    print()
    _logger.info("💡 Project initialized:")
    _logger.info("🎯> cd ./%s", name)
    _logger.info("🎯> dioxus serve")
    return project_path


def run_serve(options: ServeOptions) -> None:
    """Build and serve the project, or build and run it on the desktop."""
    config = create_crate_config()
    config.hot_reload = options.hot_reload
    _apply_common(
        config,
        release=options.release,
        verbose=options.verbose,
        example=options.example,
        profile=options.profile,
    )

    platform = options.platform or config.dioxus_config.application.default_platform
    if platform == "desktop":
        binary = build_desktop(config, True)
        subprocess.run([str(binary)], check=False)
        return
    if platform != "web":
        raise CustomError("Unsupported platform target.")

    regen_dev_page(config)
    startup(options.port, dataclasses.replace(config))


def run_tool_list() -> list[str]:
    """Print every supported tool, marking installed ones; return the printed lines."""
    lines = []
    for name in tool_names():
        marker = " [installed]" if Tool(name).is_installed() else ""
        lines.append(f"- {name}{marker}")
    for line in lines:
        print(line)
    return lines


def run_tool_add(name: str) -> bool:
    """Download and install a tool; return False if it was already installed."""
    if name not in tool_names():
        raise CustomError(f"Tool {name} not found.")
    tool = Tool(name)
    if tool.is_installed():
        _logger.warning("Tool %s is installed.", name)
        return False

    _logger.info("Start to download tool package...")
    try:
        tool.download_package()
    except (DxError, OSError) as exc:
        raise CustomError(f"Tool download failed: {exc}") from exc

    _logger.info("Start to install tool package...")
    try:
        tool.install_package()
    except (DxError, OSError) as exc:
        raise CustomError(f"Tool install failed: {exc}") from exc

    _logger.info("Tool %s installed successfully!", name)
    return True


def _add_shared_build_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("target", nargs="?", type=Path, default=None)
    parser.add_argument("--release", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--example")
    parser.add_argument("--profile")
    parser.add_argument("--platform")
    parser.add_argument("--features", nargs="+")


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the command line."""
    parser = argparse.ArgumentParser(
        prog="dioxus", description="Build, Bundle & Ship Dioxus Apps."
    )
    parser.add_argument("-v", action="store_true", help="Enable verbose logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    build_cmd = commands.add_parser(
        "build", help="Build the Rust WASM app and all of its assets."
    )
    _add_shared_build_flags(build_cmd)

    serve_cmd = commands.add_parser(
        "serve", help="Build, watch & serve the Rust WASM app and all of its assets."
    )
    _add_shared_build_flags(serve_cmd)
    serve_cmd.add_argument("--port", type=int, default=8080)
    serve_cmd.add_argument("--hot-reload", action="store_true")

    create_cmd = commands.add_parser("create", help="Init a new project for Dioxus.")
    create_cmd.add_argument("name", nargs="?", default=".")
    create_cmd.add_argument("--template", default=DEFAULT_TEMPLATE)

    commands.add_parser("clean", help="Clean output artifacts.")
    commands.add_parser("version", help="Print the version of this extension")

    config_cmd = commands.add_parser("config", help="Dioxus config file controls.")
    config_sub = config_cmd.add_subparsers(dest="config_command", required=True)
    init_cmd = config_sub.add_parser("init", help="Init `Dioxus.toml` for project/folder.")
    init_cmd.add_argument("name")
    init_cmd.add_argument("--force", action="store_true")
    init_cmd.add_argument("--platform", default="web")
    config_sub.add_parser("format-print", help="Format print Dioxus config.")
    config_sub.add_parser("custom-html", help="Create a custom html file.")

    tool_cmd = commands.add_parser("tool", help="Manage external build tools.")
    tool_sub = tool_cmd.add_subparsers(dest="tool_command", required=True)
    tool_sub.add_parser("list", help="Return all supported tools.")
    tool_sub.add_parser("app-path", help="Get default tool install path.")
    add_cmd = tool_sub.add_parser("add", help="Install a new tool.")
    add_cmd.add_argument("name")

    return parser


def _build_options(args: argparse.Namespace) -> BuildOptions:
    return BuildOptions(
        target=args.target,
        release=args.release,
        verbose=args.verbose,
        example=args.example,
        profile=args.profile,
        platform=args.platform,
        features=args.features,
    )


def _serve_options(args: argparse.Namespace) -> ServeOptions:
    return ServeOptions(
        target=args.target,
        port=args.port,
        example=args.example,
        release=args.release,
        verbose=args.verbose,
        profile=args.profile,
        platform=args.platform,
        hot_reload=args.hot_reload,
        features=args.features,
    )


def _dispatch(args: argparse.Namespace) -> None:
    match args.command:
        case "build":
            run_build(_build_options(args))
        case "serve":
            run_serve(_serve_options(args))
        case "create":
            run_create(args.name, args.template)
        case "clean":
            run_clean()
        case "version":
            print(version_info())
        case "config":
            match args.config_command:
                case "init":
                    run_config_init(args.name, args.force, args.platform)
                case "format-print":
                    run_config_print()
                case "custom-html":
                    _run_config_custom_html()
        case "tool":
            match args.tool_command:
                case "list":
                    run_tool_list()
                case "app-path":
                    print(tools_path())
                case "add":
                    run_tool_add(args.name)


_FAILURES = {
    "build": "🚫 Building project failed",
    "serve": "🚫 Serving project failed",
    "create": "🚫 Creating new project failed",
    "clean": "🚫 Cleaning project failed",
    "config": "🚫 Configuring new project failed",
    "tool": "🚫 Error with tool",
    "version": "🚫 Printing the version failed",
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit code."""
    from .log_setup import set_up_logging

    args = build_parser().parse_args(argv)
    set_up_logging()

    try:
        dioxus_config = load_dioxus_config()
    except DxError as exc:
        _logger.error("Failed to load `Dioxus.toml` because: %s", exc)
        return 1
    if dioxus_config is None:
        _logger.warning(
            "You appear to be creating a Dioxus project from scratch; "
            "we will use the default config"
        )

    try:
        _dispatch(args)
    except (DxError, OSError) as exc:
        _logger.error("%s: %s", _FAILURES[args.command], exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0