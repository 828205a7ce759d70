import io
import json
import subprocess
from pathlib import Path

import pytest

from dxbuild.builder import (
    BuildResult,
    Diagnostic,
    build,
    build_desktop,
    cargo_build_args,
    desktop_binary_path,
    parse_build_messages,
    wasm_input_path,
)
from dxbuild.config import CrateConfig, Executable, ExecutableKind, default_config
from dxbuild.errors import BuildFailed


def make_config(tmp_path, kind=ExecutableKind.BINARY, name="app", **kwargs):
    crate = tmp_path / "crate"
    crate.mkdir(exist_ok=True)
    return CrateConfig(
        out_dir=crate / "dist",
        crate_dir=crate,
        workspace_dir=crate,
        target_dir=tmp_path / "target",
        asset_dir=crate / "public",
        manifest={},
        executable=Executable(kind, name),
        dioxus_config=default_config(),
        **kwargs,
    )


def compiler_message(level, rendered=None):
    message = {"level": level, "message": f"{level} text"}
    if rendered is not None:
        message["rendered"] = rendered
    return json.dumps({"reason": "compiler-message", "message": message})


def fake_popen(lines, processes):
    class _Process:
        def __init__(self, args, **kwargs):
            self.args = args
            self.kwargs = kwargs
            self.stdout = io.StringIO("".join(line + "\n" for line in lines))
            self.killed = False
            processes.append(self)

        def kill(self):
            self.killed = True

        def wait(self):
            return 0

    return _Process


def test_wasm_args_basic(tmp_path):
    args = cargo_build_args(make_config(tmp_path), quiet=False, wasm=True)
    assert args == [
        "cargo",
        "build",
        "--target",
        "wasm32-unknown-unknown",
        "--message-format=json",
        "--bin",
        "app",
    ]


def test_wasm_args_with_all_options(tmp_path):
    config = make_config(
        tmp_path,
        release=True,
        verbose=True,
        custom_profile="fast",
        features=["a", "b"],
    )
    args = cargo_build_args(config, quiet=True, wasm=True)
    assert "--release" in args
    assert "--verbose" in args
    assert "--quiet" in args
    assert args[args.index("--profile") + 1] == "fast"
    assert args[args.index("--features") + 1] == "a b"
    assert args[-2:] == ["--bin", "app"]


def test_desktop_args_ignore_quiet_and_json(tmp_path):
    args = cargo_build_args(make_config(tmp_path), quiet=True, wasm=False)
    assert args == ["cargo", "build", "--bin", "app"]


@pytest.mark.parametrize(
    "kind, flag",
    [
        (ExecutableKind.BINARY, "--bin"),
        (ExecutableKind.LIB, "--lib"),
        (ExecutableKind.EXAMPLE, "--example"),
    ],
)
def test_executable_flag(tmp_path, kind, flag):
    args = cargo_build_args(make_config(tmp_path, kind=kind, name="demo"))
    assert args[-2:] == [flag, "demo"]


def test_wasm_input_path_debug(tmp_path):
    config = make_config(tmp_path)
    assert wasm_input_path(config) == (
        tmp_path / "target" / "wasm32-unknown-unknown" / "debug" / "app.wasm"
    )


def test_wasm_input_path_release_example(tmp_path):
    config = make_config(tmp_path, kind=ExecutableKind.EXAMPLE, name="ex", release=True)
    assert wasm_input_path(config) == (
        tmp_path / "target" / "wasm32-unknown-unknown" / "release" / "examples" / "ex.wasm"
    )


def test_desktop_binary_path(tmp_path):
    config = make_config(tmp_path, kind=ExecutableKind.EXAMPLE, name="ex")
    path = desktop_binary_path(config)
    assert path.parent == tmp_path / "target" / "debug" / "examples"
    assert path.name.startswith("ex")


def test_parse_collects_warnings_and_skips_noise():
    progress = []
    lines = [
        "not json at all",
        compiler_message("warning", "warn rendered"),
        json.dumps({"reason": "compiler-artifact", "package_id": "pkg 0.1.0"}),
        compiler_message("note"),
        json.dumps({"reason": "build-finished", "success": True}),
    ]
    warnings = parse_build_messages(lines, progress.append)
    assert [w.rendered for w in warnings] == ["warn rendered"]
    assert warnings[0].level == "warning"
    assert progress == ["Compiling pkg 0.1.0 "]


def test_parse_error_raises_with_rendered_text():
    with pytest.raises(BuildFailed) as info:
        parse_build_messages([compiler_message("error", "bad thing")])
    assert info.value.message == "bad thing"


def test_parse_error_without_rendered_is_unknown():
    with pytest.raises(BuildFailed) as info:
        parse_build_messages([compiler_message("error")])
    assert info.value.message == "Unknown"


def test_parse_failed_build_raises():
    with pytest.raises(BuildFailed):
        parse_build_messages([json.dumps({"reason": "build-finished", "success": False})])


def test_diagnostic_from_json_reads_code():
    diagnostic = Diagnostic.from_json(
        {"level": "warning", "message": "m", "code": {"code": "unused_variables"}}
    )
    assert diagnostic.code == "unused_variables"
    assert diagnostic.rendered is None


def test_build_desktop_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(
        subprocess, "run", lambda *a, **k: subprocess.CompletedProcess(a, 1)
    )
    with pytest.raises(BuildFailed) as info:
        build_desktop(make_config(tmp_path))
    assert info.value.message == "Program build failed."


def test_build_desktop_copies_binary_and_assets(tmp_path, monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    config = make_config(tmp_path)
    binary = desktop_binary_path(config)
    binary.parent.mkdir(parents=True)
    binary.write_bytes(b"binary")
    config.asset_dir.mkdir()
    (config.asset_dir / "style.css").write_text("body {}")

    destination = build_desktop(config)

    assert destination == config.out_dir / binary.name
    assert destination.read_bytes() == b"binary"
    assert (config.out_dir / "style.css").read_text() == "body {}"
    assert calls[0][0] == cargo_build_args(config, wasm=False)
    assert calls[0][1]["cwd"] == config.crate_dir


def test_build_raises_and_kills_on_compile_error(tmp_path, monkeypatch):
    processes = []
    monkeypatch.setattr(
        subprocess, "Popen", fake_popen([compiler_message("error", "oops")], processes)
    )
    with pytest.raises(BuildFailed) as info:
        build(make_config(tmp_path), quiet=True)
    assert info.value.message == "oops"
    assert processes[0].killed is True


def test_build_runs_bindgen_and_copies_assets(tmp_path, monkeypatch):
    processes = []
    runs = []
    lines = [
        compiler_message("warning", "w1"),
        json.dumps({"reason": "build-finished", "success": True}),
    ]
    monkeypatch.setattr(subprocess, "Popen", fake_popen(lines, processes))

    def fake_run(args, **kwargs):
        runs.append(args)
        return subprocess.CompletedProcess(args, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    config = make_config(tmp_path)
    config.asset_dir.mkdir()
    (config.asset_dir / "favicon.ico").write_bytes(b"icon")

    result = build(config, quiet=True)

    assert isinstance(result, BuildResult)
    assert [w.rendered for w in result.warnings] == ["w1"]
    assert result.elapsed_time >= 0
    assert processes[0].args == cargo_build_args(config, True, wasm=True)
    bindgen = runs[0]
    assert bindgen[0] == "wasm-bindgen"
    assert bindgen[1] == str(wasm_input_path(config))
    assert bindgen[bindgen.index("--out-name") + 1] == "dioxus"
    assert Path(bindgen[bindgen.index("--out-dir") + 1]) == config.out_dir / "assets" / "dioxus"
    assert (config.out_dir / "favicon.ico").read_bytes() == b"icon"


def test_build_bindgen_failure(tmp_path, monkeypatch):
    lines = [json.dumps({"reason": "build-finished", "success": True})]
    monkeypatch.setattr(subprocess, "Popen", fake_popen(lines, []))
    monkeypatch.setattr(
        subprocess, "run", lambda args, **k: subprocess.CompletedProcess(args, 2)
    )
    with pytest.raises(BuildFailed) as info:
        build(make_config(tmp_path))
    assert info.value.message.startswith("Bindgen build failed!")