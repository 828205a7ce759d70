"""The development server: static files, a reload socket and a rebuilding file watcher."""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
import os
import socket
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from aiohttp import web
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .assets import gen_page
from .builder import BuildResult, build
from .config import CrateConfig
from .errors import DxError

_logger = logging.getLogger(__name__)

DIOXUS_CLI_VERSION = "0.1.5"
RELOAD_MESSAGE = "reload"

_WATCHED_EVENTS = {"created", "modified", "deleted", "moved"}

_HUB_KEY = web.AppKey("hub", object)
_CONFIG_KEY = web.AppKey("config", object)
_ROOT_KEY = web.AppKey("root", Path)


class ReloadHub:
    """Fans reload notices out to connected pages; safe to notify from any thread."""

    def __init__(self) -> None:
        self._subscribers: dict[asyncio.Queue, asyncio.AbstractEventLoop] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        """Return a queue that receives a reload notice; call from the event loop."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        loop = asyncio.get_running_loop()
        with self._lock:
            self._subscribers[queue] = loop
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._subscribers.pop(queue, None)

    @staticmethod
    def _offer(queue: asyncio.Queue) -> None:
        # Pending notices coalesce: one reload is enough.
        with contextlib.suppress(asyncio.QueueFull):
            queue.put_nowait(RELOAD_MESSAGE)

    def notify(self) -> int:
        """Send a reload notice to every subscriber; return how many there were."""
        with self._lock:
            targets = list(self._subscribers.items())
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        for queue, loop in targets:
            if loop is running:
                self._offer(queue)
            else:
                with contextlib.suppress(RuntimeError):
                    loop.call_soon_threadsafe(self._offer, queue)
        return len(targets)


def _write_dev_page(config: CrateConfig) -> Path:
    html = gen_page(config.dioxus_config, True, config.crate_dir)
    out_dir = config.dioxus_config.application.out_dir or Path("dist")
    dist = config.crate_dir / out_dir
    dist.mkdir(parents=True, exist_ok=True)
    index = dist / "index.html"
    index.write_text(html, encoding="utf-8")
    return index


@dataclass
class BuildManager:
    """Rebuilds the project and tells connected pages to reload."""

    config: CrateConfig
    hub: ReloadHub
    build_fn: Callable[[CrateConfig, bool], BuildResult] = build

    def rebuild(self) -> BuildResult:
        _logger.info("🪁 Rebuild project")
        result = self.build_fn(self.config, True)
        if self.config.dioxus_config.web.watcher.reload_html:
            try:
                _write_dev_page(self.config)
            except (OSError, DxError) as exc:
                _logger.warning("could not regenerate the dev page: %s", exc)
        self.hub.notify()
        return result


def get_ip() -> str | None:
    """Return this machine's address on the outward-facing network, if any."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            return sock.getsockname()[0]
    except OSError:
        return None


def _paint(text: str, *codes: int) -> str:
    prefix = "".join(f"\x1b[{code}m" for code in codes)
    return f"{prefix}{text}\x1b[0m"


def console_info(
    ip: str,
    port: int,
    config: CrateConfig,
    changed: Sequence[os.PathLike[str] | str] = (),
    warning_count: int = 0,
    elapsed_time: int = 0,
) -> str:
    """Return the status banner shown after starting or rebuilding."""
    if config.custom_profile is not None:
        profile = config.custom_profile
    else:
        profile = "Release" if config.release else "Debug"
    hot_reload = "RSX" if config.hot_reload else "Normal"
    template = (
        "Custom [index.html]" if (config.crate_dir / "index.html").is_file() else "Default"
    )
    url_rewrite = "True" if config.dioxus_config.web.watcher.index_on_404 else "False"
    now = datetime.datetime.now().strftime("%H:%M:%S")

    if not changed:
        header = (
            f"{_paint('Dioxus', 1, 32)} @ v{DIOXUS_CLI_VERSION} [{_paint(now, 2)}] \n"
        )
    else:
        header = "Project Reloaded: " + _paint(
            f"Changed {len(changed)} files. [{now}]", 35, 1
        ) + "\n"

    if warning_count == 0:
        summary = _paint("A perfect compilation!", 32, 1) + "\n"
    else:
        summary = _paint(
            f"There were {warning_count - 1} warning messages during the build.", 33, 1
        )

    lines = [
        header,
        f"\t> Local : {_paint(f'http://localhost:{port}/', 34)}",
        f"\t> NetWork : {_paint(f'http://{ip}:{port}/', 34)}",
        "",
        f"\t> Profile : {_paint(profile, 32)}",
        f"\t> Hot Reload : {_paint(hot_reload, 36)}",
        f"\t> Index Template : {_paint(template, 32)}",
        f"\t> URL Rewrite [index_on_404] : {_paint(url_rewrite, 35)}",
        "",
        f"\t> Build Time Use : {_paint(str(elapsed_time), 32, 1)} millis",
        "",
        summary,
    ]
    return "\n".join(lines)


def _print_console_info(
    ip: str, port: int, config: CrateConfig, changed: Sequence[str], result: BuildResult
) -> None:
    print("\x1b[2J\x1b[H", end="")
    print(
        console_info(ip, port, config, changed, len(result.warnings), result.elapsed_time),
        flush=True,
    )


def _resolve_inside(root: Path, tail: str) -> Path | None:
    base = root.resolve()
    candidate = (base / tail).resolve()
    if candidate != base and base not in candidate.parents:
        return None
    return candidate


async def _ws_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    hub: ReloadHub = request.app[_HUB_KEY]
    queue = hub.subscribe()

    async def pump() -> None:
        while True:
            message = await queue.get()
            await ws.send_str(message)

    sender = asyncio.create_task(pump())
    try:
        async for _ in ws:
            pass
    finally:
        hub.unsubscribe(queue)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, ConnectionError, RuntimeError):
            await sender
    return ws


async def _file_handler(request: web.Request) -> web.StreamResponse:
    root: Path = request.app[_ROOT_KEY]
    config: CrateConfig = request.app[_CONFIG_KEY]
    target = _resolve_inside(root, request.match_info.get("tail", ""))
    if target is not None:
        if target.is_dir():
            target = target / "index.html"
        if target.is_file():
            return web.FileResponse(target)
    if config.dioxus_config.web.watcher.index_on_404:
        try:
            body = (root / "index.html").read_text(encoding="utf-8")
        except OSError:
            raise web.HTTPNotFound() from None
        return web.Response(text=body, content_type="text/html")
    raise web.HTTPNotFound()


def create_app(config: CrateConfig, hub: ReloadHub) -> web.Application:
    """Build the web application that serves the output directory."""
    app = web.Application()
    app[_HUB_KEY] = hub
    app[_CONFIG_KEY] = config
    app[_ROOT_KEY] = config.crate_dir / config.out_dir
    app.router.add_get("/_dioxus/ws", _ws_handler)
    app.router.add_get("/{tail:.*}", _file_handler)
    return app


class _RebuildHandler(FileSystemEventHandler):
    def __init__(
        self, manager: BuildManager, ip: str, port: int, rust_only: bool
    ) -> None:
        super().__init__()
        self._manager = manager
        self._ip = ip
        self._port = port
        self._rust_only = rust_only
        self._last_update = int(time.time())
        self._lock = threading.Lock()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _WATCHED_EVENTS:
            return
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        if self._rust_only and not any(path.endswith(".rs") for path in paths):
            return
        with self._lock:
            if int(time.time()) <= self._last_update:
                return
            try:
                result = self._manager.rebuild()
            except (DxError, OSError) as exc:
                _logger.error("%s", exc)
                return
            self._last_update = int(time.time())
            _print_console_info(self._ip, self._port, self._manager.config, paths, result)


def _start_watcher(manager: BuildManager, ip: str, port: int) -> Observer:
    config = manager.config
    handler = _RebuildHandler(manager, ip, port, rust_only=config.hot_reload)
    observer = Observer()
    watch_paths = config.dioxus_config.web.watcher.watch_path or [Path("src")]
    for sub_path in watch_paths:
        try:
            observer.schedule(handler, str(config.crate_dir / sub_path), recursive=True)
        except OSError as exc:
            _logger.error("error watching %s: \n%s", sub_path, exc)
    observer.start()
    return observer


def startup(port: int, config: CrateConfig) -> None:
    """Build once, then serve the output and rebuild whenever watched files change."""
    ip = get_ip() or "0.0.0.0"
    first = build(config, False)
    _logger.info("🚀 Starting development server...")
    if config.hot_reload:
        _logger.info("RSX changes trigger a full rebuild")

    hub = ReloadHub()
    manager = BuildManager(config, hub)
    observer = _start_watcher(manager, ip, port)
    _print_console_info(ip, port, config, [], first)
    try:
        web.run_app(create_app(config, hub), host="0.0.0.0", port=port, print=None)
    finally:
        observer.stop()
        observer.join()