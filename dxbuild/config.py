"""Project configuration: `Dioxus.toml` and the resolved crate layout."""

from __future__ import annotations

import enum
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cargo import Metadata, crate_root, load_metadata
from .errors import CargoError, DxError

DEFAULT_TITLE = "dioxus | ⛺"


@dataclass
class ApplicationConfig:
    name: str
    default_platform: str
    out_dir: Path | None = None
    asset_dir: Path | None = None
    tools: dict[str, Any] | None = None
    sub_package: str | None = None


@dataclass
class WebAppConfig:
    title: str | None = None
    base_path: str | None = None


@dataclass
class WebWatcherConfig:
    watch_path: list[Path] | None = None
    reload_html: bool | None = None
    index_on_404: bool | None = None


@dataclass
class WebDevResourceConfig:
    style: list[Path] | None = None
    script: list[Path] | None = None


@dataclass
class WebResourceConfig:
    dev: WebDevResourceConfig = field(default_factory=WebDevResourceConfig)
    style: list[Path] | None = None
    script: list[Path] | None = None


@dataclass
class WebConfig:
    app: WebAppConfig = field(default_factory=WebAppConfig)
    watcher: WebWatcherConfig = field(default_factory=WebWatcherConfig)
    resource: WebResourceConfig = field(default_factory=WebResourceConfig)


@dataclass
class DioxusConfig:
    application: ApplicationConfig
    web: WebConfig
    plugin: Any = True


class ExecutableKind(enum.Enum):
    """The kind of cargo target; the value is the cargo flag name."""

    BINARY = "bin"
    LIB = "lib"
    EXAMPLE = "example"


@dataclass(frozen=True)
class Executable:
    kind: ExecutableKind
    name: str


@dataclass
class CrateConfig:
    out_dir: Path
    crate_dir: Path
    workspace_dir: Path
    target_dir: Path
    asset_dir: Path
    manifest: dict[str, Any]
    executable: Executable
    dioxus_config: DioxusConfig
    release: bool = False
    hot_reload: bool = False
    verbose: bool = False
    custom_profile: str | None = None
    features: list[str] | None = None


def default_config() -> DioxusConfig:
    """Return the configuration used when a project has no `Dioxus.toml`."""
    return DioxusConfig(
        application=ApplicationConfig(
            name="dioxus",
            default_platform="web",
            out_dir=Path("dist"),
            asset_dir=Path("public"),
        ),
        web=WebConfig(
            app=WebAppConfig(title=DEFAULT_TITLE, base_path=None),
            watcher=WebWatcherConfig(
                watch_path=[Path("src")], reload_html=False, index_on_404=True
            ),
            resource=WebResourceConfig(
                dev=WebDevResourceConfig(style=[], script=[]), style=[], script=[]
            ),
        ),
        plugin={},
    )


def _field(table: dict[str, Any], key: str, kind: type, *, required: bool = False) -> Any:
    if key not in table:
        if required:
            raise ValueError(f"missing field `{key}`")
        return None
    value = table[key]
    if not isinstance(value, kind):
        raise ValueError(f"field `{key}` has the wrong type")
    return value


def _table(table: dict[str, Any], key: str) -> dict[str, Any]:
    return _field(table, key, dict, required=True)


def _path(table: dict[str, Any], key: str) -> Path | None:
    value = _field(table, key, str)
    return None if value is None else Path(value)


def _paths(table: dict[str, Any], key: str) -> list[Path] | None:
    values = _field(table, key, list)
    if values is None:
        return None
    if not all(isinstance(item, str) for item in values):
        raise ValueError(f"field `{key}` must hold strings")
    return [Path(item) for item in values]


def _from_table(data: dict[str, Any]) -> DioxusConfig:
    app = _table(data, "application")
    application = ApplicationConfig(
        name=_field(app, "name", str, required=True),
        default_platform=_field(app, "default_platform", str, required=True),
        out_dir=_path(app, "out_dir"),
        asset_dir=_path(app, "asset_dir"),
        tools=_field(app, "tools", dict),
        sub_package=_field(app, "sub_package", str),
    )

    web = _table(data, "web")
    app_table = _table(web, "app")
    watcher = _table(web, "watcher")
    resource = _table(web, "resource")
    dev = _table(resource, "dev")

    return DioxusConfig(
        application=application,
        web=WebConfig(
            app=WebAppConfig(
                title=_field(app_table, "title", str),
                base_path=_field(app_table, "base_path", str),
            ),
            watcher=WebWatcherConfig(
                watch_path=_paths(watcher, "watch_path"),
                reload_html=_field(watcher, "reload_html", bool),
                index_on_404=_field(watcher, "index_on_404", bool),
            ),
            resource=WebResourceConfig(
                dev=WebDevResourceConfig(
                    style=_paths(dev, "style"), script=_paths(dev, "script")
                ),
                style=_paths(resource, "style"),
                script=_paths(resource, "script"),
            ),
        ),
        plugin=data.get("plugin", True),
    )


def parse_dioxus_config(text: str) -> DioxusConfig:
    """Parse the text of a `Dioxus.toml`."""
    try:
        return _from_table(tomllib.loads(text))
    except (ValueError, TypeError) as exc:
        raise DxError("Dioxus.toml parse failed") from exc


def find_config_file(directory: str | os.PathLike[str]) -> Path | None:
    """Return the project's config file, preferring `Dioxus.toml` over `dioxus.toml`."""
    base = Path(directory)
    for name in ("Dioxus.toml", "dioxus.toml"):
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_dioxus_config(crate_dir: str | os.PathLike[str] | None = None) -> DioxusConfig | None:
    """Load the config of the crate, or return None when there is none."""
    if crate_dir is None:
        try:
            crate_dir = crate_root()
        except CargoError:
            return None
    path = find_config_file(crate_dir)
    if path is None:
        return None
    return parse_dioxus_config(path.read_text(encoding="utf-8"))


def executable_from_manifest(manifest: dict[str, Any]) -> Executable:
    """Pick the output name from a parsed `Cargo.toml`: first bin, then lib, then package."""
    bins = manifest.get("bin")
    if isinstance(bins, list) and bins:
        product = bins[0]
    else:
        product = manifest.get("lib")
    name = product.get("name") if isinstance(product, dict) else None
    if not isinstance(name, str):
        package = manifest.get("package")
        name = package.get("name") if isinstance(package, dict) else None
    if not isinstance(name, str):
        raise DxError("No lib found from cargo metadata")
    return Executable(ExecutableKind.BINARY, name)


def create_crate_config(
    crate_dir: str | os.PathLike[str] | None = None,
    metadata: Metadata | None = None,
) -> CrateConfig:
    """Resolve the crate layout from its root, its config and cargo metadata."""
    root = Path(crate_dir) if crate_dir is not None else crate_root()
    dioxus_config = load_dioxus_config(root) or default_config()
    app = dioxus_config.application

    crate_path = root / app.sub_package if app.sub_package else root
    meta = metadata if metadata is not None else load_metadata(crate_path)

    manifest_path = crate_path / "Cargo.toml"
    try:
        manifest = tomllib.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise CargoError(f"Failed to read {manifest_path}: {exc}") from exc

    return CrateConfig(
        out_dir=crate_path / (app.out_dir or Path("dist")),
        crate_dir=crate_path,
        workspace_dir=meta.workspace_root,
        target_dir=meta.target_directory,
        asset_dir=crate_path / (app.asset_dir or Path("public")),
        manifest=manifest,
        executable=executable_from_manifest(manifest),
        dioxus_config=dioxus_config,
    )