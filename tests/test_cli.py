import logging
from pathlib import Path

import pytest

from dxbuild.cli import (
    build_parser,
    main,
    name_valid_check,
    regen_dev_page,
    run_config_init,
    run_create,
    run_tool_add,
    run_tool_list,
)
from dxbuild.config import (
    CrateConfig,
    Executable,
    ExecutableKind,
    default_config,
    parse_dioxus_config,
)
from dxbuild.errors import CustomError


@pytest.fixture
def crate_dir(tmp_path, monkeypatch):
    (tmp_path / "Cargo.toml").write_text('[package]\nname = "demo"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def clean_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == "dxbuild-console":
            root.removeHandler(handler)


def make_config(tmp_path):
    return CrateConfig(
        out_dir=tmp_path / "dist",
        crate_dir=tmp_path,
        workspace_dir=tmp_path,
        target_dir=tmp_path / "target",
        asset_dir=tmp_path / "public",
        manifest={},
        executable=Executable(ExecutableKind.BINARY, "app"),
        dioxus_config=default_config(),
    )


def test_ready():
    args = build_parser().parse_args(["build", "--release"])
    assert args.command == "build"
    assert args.release is True


def test_serve_defaults():
    args = build_parser().parse_args(["serve"])
    assert args.port == 8080
    assert args.hot_reload is False
    assert args.platform is None


def test_serve_port_and_features():
    args = build_parser().parse_args(
        ["serve", "--port", "3000", "--features", "a", "b", "--hot-reload"]
    )
    assert args.port == 3000
    assert args.features == ["a", "b"]
    assert args.hot_reload is True


def test_create_defaults():
    args = build_parser().parse_args(["create"])
    assert args.name == "."
    assert args.template == "gh:dioxuslabs/dioxus-template"


def test_config_init_defaults():
    args = build_parser().parse_args(["config", "init", "demo"])
    assert (args.config_command, args.name, args.force, args.platform) == (
        "init",
        "demo",
        False,
        "web",
    )


def test_missing_command_exits():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.parametrize(
    "name, expected",
    [("ab", True), ("a1", True), ("a-", True), ("abc", False), ("1a", False), (".", False)],
)
def test_name_valid_check(name, expected):
    assert name_valid_check(name) is expected


def test_create_rejects_matching_name(crate_dir):
    with pytest.raises(CustomError, match="Unsupported project name"):
        run_create("ab")


def test_create_rejects_initialized_folder(crate_dir):
    project = crate_dir / "proj"
    project.mkdir()
    (project / "Cargo.toml").write_text("", encoding="utf-8")
    with pytest.raises(CustomError, match="is initialized"):
        run_create("proj")


def test_config_init_writes_parsable_config(crate_dir):
    assert run_config_init("demo", False, "desktop") is True
    config = parse_dioxus_config((crate_dir / "Dioxus.toml").read_text(encoding="utf-8"))
    assert config.application.name == "demo"
    assert config.application.default_platform == "desktop"
    assert config.application.out_dir == Path("dist")


def test_config_init_keeps_existing_without_force(crate_dir):
    conf = crate_dir / "Dioxus.toml"
    conf.write_text("keep", encoding="utf-8")
    assert run_config_init("demo", False, "web") is False
    assert conf.read_text(encoding="utf-8") == "keep"


def test_config_init_force_overwrites(crate_dir):
    conf = crate_dir / "Dioxus.toml"
    conf.write_text("old", encoding="utf-8")
    assert run_config_init("demo", True, "web") is True
    assert 'name = "demo"' in conf.read_text(encoding="utf-8")


def test_regen_dev_page_default_template(tmp_path):
    index = regen_dev_page(make_config(tmp_path))
    assert index == tmp_path / "dist" / "index.html"
    html = index.read_text(encoding="utf-8")
    assert "<title>dioxus | ⛺</title>" in html
    assert "/_dioxus/ws" in html
    assert "./assets/dioxus/dioxus.js" in html


def test_regen_dev_page_custom_template(tmp_path):
    (tmp_path / "index.html").write_text("X {app_name}", encoding="utf-8")
    html = regen_dev_page(make_config(tmp_path)).read_text(encoding="utf-8")
    assert html.startswith("X dioxus<script>")


def test_tool_add_unknown():
    with pytest.raises(CustomError, match="Tool nothing not found."):
        run_tool_add("nothing")


def test_tool_list_names(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    lines = run_tool_list()
    assert [line.split()[1] for line in lines] == ["binaryen", "sass", "tailwindcss"]
    assert capsys.readouterr().out.splitlines() == lines


def test_main_version(crate_dir, monkeypatch, capsys, clean_logging):
    for key in ("CFG_RELEASE", "RA_COMMIT_HASH", "RA_COMMIT_SHORT_HASH", "RA_COMMIT_DATE"):
        monkeypatch.delenv(key, raising=False)
    assert main(["version"]) == 0
    assert capsys.readouterr().out.splitlines()[-1] == "0.0.0"


def test_main_bad_config(crate_dir, clean_logging):
    (crate_dir / "Dioxus.toml").write_text("[application]\n", encoding="utf-8")
    assert main(["version"]) == 1


def test_main_reports_command_failure(crate_dir, clean_logging):
    (crate_dir / "Dioxus.toml").write_text("x", encoding="utf-8")
    (crate_dir / "Dioxus.toml").unlink()
    assert main(["tool", "add", "nothing"]) == 1