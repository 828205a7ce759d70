"""Asset preparation for a build: sass compilation, public files and the index page."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePath
from typing import Any

from .cargo import crate_root
from .config import DEFAULT_TITLE, CrateConfig, DioxusConfig
from .errors import DxError
from .tools import Tool

_logger = logging.getLogger(__name__)

DEFAULT_INDEX_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>{app_title}</title>
    <meta content="text/html;charset=utf-8" http-equiv="Content-Type" />
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <meta charset="UTF-8" />
    {style_include}
  </head>
  <body>
    <div id="main"></div>
    <script type="module">
      import init from "{base_path}/assets/dioxus/{app_name}.js";
      init("{base_path}/assets/dioxus/{app_name}_bg.wasm").then(wasm => {
        if (wasm.__wbindgen_start == undefined) {
          wasm.main();
        }
      });
    </script>
    {script_include}
  </body>
</html>
"""
"""The page used when the crate has no `index.html` of its own."""

AUTORELOAD_JS = """(function () {
  var protocol = window.location.protocol === "https:" ? "wss:" : "ws:";
  var url = protocol + "//" + window.location.host + "/_dioxus/ws";
  var poll_interval = 8080;
  var reload_upon_connect = function () {
    window.setTimeout(function () {
      var ws = new WebSocket(url);
      ws.onopen = function () { window.location.reload(); };
      ws.onclose = reload_upon_connect;
    }, poll_interval);
  };
  var ws = new WebSocket(url);
  ws.onmessage = function (ev) {
    if (ev.data === "reload") {
      window.location.reload();
    }
  };
  ws.onclose = reload_upon_connect;
})();"""
"""Script added to served pages so they reload after a rebuild."""

_SASS_SUFFIXES = {".scss", ".sass"}


def strip_leading_slash(path: str) -> str:
    """Drop one leading slash, making an asset path relative to the asset directory."""
    return path[1:] if path.startswith("/") else path


def sass_source_map_flag(table: Mapping[str, Any]) -> str:
    """Return the sass source-map flag chosen by the `source_map` setting."""
    value = table.get("source_map")
    if isinstance(value, bool) and not value:
        return "--no-source-map"
    return "--source-map"


def _run_sass(sass: Tool, source: Path, target: Path, flag: str) -> bool:
    try:
        sass.call("sass", [str(source), str(target), flag])
    except (DxError, OSError) as exc:
        _logger.debug("sass failed for %s: %s", source, exc)
        return False
    return True


def _compile_listed(
    sass: Tool, config: CrateConfig, entry: str, flag: str, *, report: bool
) -> Path | None:
    relative = strip_leading_slash(entry)
    source = config.asset_dir / relative
    target = config.out_dir / PurePath(relative).parent / f"{source.stem}.css"
    if not source.is_file():
        return None
    if _run_sass(sass, source, target, flag):
        return source
    if report:
        _logger.error("sass could not compile %s", source)
    return None


def _compile_all(sass: Tool, config: CrateConfig, flag: str) -> list[Path]:
    asset_dir = config.asset_dir
    if not asset_dir.is_dir():
        return []
    compiled = []
    for source in sorted(asset_dir.rglob("*")):
        if not source.is_file() or source.suffix not in _SASS_SUFFIXES:
            continue
        target = (
            config.out_dir
            / source.relative_to(asset_dir).parent
            / f"{source.stem}.css"
        )
        if _run_sass(sass, source, target, flag):
            compiled.append(source)
    return compiled


def build_assets(config: CrateConfig) -> list[Path]:
    """Compile sass sources; return the asset files that must not be copied as-is."""
    tools = config.dioxus_config.application.tools or {}
    sass = Tool.SASS
    if "sass" not in tools or not sass.is_installed():
        return []
    table = tools["sass"]
    if not isinstance(table, dict) or "input" not in table:
        return []

    flag = sass_source_map_flag(table)
    source = table["input"]

    if isinstance(source, str):
        entry = source.strip()
        if entry == "*":
            return _compile_all(sass, config, flag)
        compiled = _compile_listed(sass, config, entry, flag, report=True)
        return [compiled] if compiled is not None else []

    if isinstance(source, list):
        results = (
            _compile_listed(sass, config, item, flag, report=False)
            for item in source
            if isinstance(item, str)
        )
        return [path for path in results if path is not None]

    return []


def copy_public(config: CrateConfig, ignore_files: Iterable[Path]) -> None:
    """Copy the asset directory into the output directory, minus ``ignore_files``."""
    asset_dir = config.asset_dir
    if not asset_dir.is_dir():
        return
    ignored = list(ignore_files)
    out_dir = config.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    for path in sorted(asset_dir.iterdir()):
        if path.is_file():
            shutil.copy(path, out_dir / path.name)
            continue
        try:
            shutil.copytree(path, out_dir / path.name, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            _logger.warning("Error copying dir: %s", exc)
        for ignore in ignored:
            copied = out_dir / Path(ignore).relative_to(asset_dir)
            if copied.is_file():
                copied.unlink()


def _tag_lines(paths: Iterable[Path], pattern: str) -> str:
    return "".join(pattern.format(str(path)) for path in paths)


def render_page(template: str, config: DioxusConfig, serve: bool) -> str:
    """Fill the placeholders of an index page template from the project config."""
    resource = config.web.resource
    styles = list(resource.style or [])
    scripts = list(resource.script or [])
    if serve:
        styles.extend(resource.dev.style or [])
        scripts.extend(resource.dev.script or [])

    style_str = _tag_lines(styles, '<link rel="stylesheet" href="{}">\n')
    if "tailwindcss" in (config.application.tools or {}):
        style_str += '<link rel="stylesheet" href="tailwind.css">\n'
    script_str = _tag_lines(scripts, '<script src="{}"></script>\n')

    html = template.replace("{style_include}", style_str)
    html = html.replace("{script_include}", script_str)
    if serve:
        html += f"<script>{AUTORELOAD_JS}</script>"
    html = html.replace("{app_name}", config.application.name)
    base_path = config.web.app.base_path
    html = html.replace("{base_path}", base_path if base_path is not None else ".")
    title = config.web.app.title if config.web.app.title is not None else DEFAULT_TITLE
    return html.replace("{app_title}", title)


def gen_page(
    config: DioxusConfig,
    serve: bool,
    crate_dir: str | os.PathLike[str] | None = None,
) -> str:
    """Produce the index page, using the crate's own `index.html` when it has one."""
    root = Path(crate_dir) if crate_dir is not None else crate_root()
    custom = root / "index.html"
    template = DEFAULT_INDEX_HTML
    if custom.is_file():
        try:
            template = custom.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            template = DEFAULT_INDEX_HTML
    return render_page(template, config, serve)