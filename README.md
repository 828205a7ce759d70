# dxbuild

`dxbuild` builds, bundles and serves Dioxus applications. It drives `cargo`
to compile your crate for the web (`wasm32-unknown-unknown`) or the desktop,
runs `wasm-bindgen` on the web build, optionally post-processes the output
with Binaryen, Sass and Tailwind CSS, copies your public assets and writes
the `index.html` page. For development it runs a local server that rebuilds
when watched files change and tells connected pages to reload.

## Installation

```console
pip install dxbuild
```

Python 3.11 or newer is required. Building needs `cargo` on your `PATH`, and
web builds also need the `wasm-bindgen` command on your `PATH`.

## Usage

Run the commands from inside your crate or a directory below it; the crate
root is found by looking upwards (at most ten directories) for `Cargo.toml`.

Create a new project from a `cargo generate` template (the default template
is `gh:dioxuslabs/dioxus-template`; `cargo-generate` is installed if missing):

```console
dxbuild create my-app
dxbuild create my-app --template <template>
```

Write a `Dioxus.toml` into the crate root (an existing one is kept unless
`--force` is given), print the resolved configuration, or write the default
`index.html` into the crate root so you can customise it:

```console
dxbuild config init my-app --platform web
dxbuild config format-print
dxbuild config custom-html
```

Build the application into the output directory (`dist` by default):

```console
dxbuild build
dxbuild build --release --features feat-a feat-b
dxbuild build --example demo --profile my-profile
dxbuild build --platform desktop
```

`--platform` is `web` or `desktop`; without it the `default_platform` from
the configuration is used.

Start the development server on all interfaces, rebuilding whenever a
watched file changes:

```console
dxbuild serve --port 8080
dxbuild serve --hot-reload
```

With `--hot-reload` only changes to `.rs` files trigger a rebuild, and every
such change is a full rebuild. The page served at any path that is not a
file is the output `index.html` when `index_on_404` is set. With the
`desktop` platform, `serve` builds the program and runs it instead.

Remove build artifacts (`cargo clean`) and the output directory:

```console
dxbuild clean
```

Manage the optional external tools, which are installed into a per-user
data directory:

```console
dxbuild tool list
dxbuild tool app-path
dxbuild tool add sass
```

The supported tools are `binaryen`, `sass` and `tailwindcss`.

Print the version (taken from the `CFG_RELEASE` and `RA_COMMIT_*`
environment variables, `0.0.0` when unset):

```console
dxbuild version
```

Run `dxbuild --help`, or `--help` after any command, for every option.

## Configuration

Project settings live in `Dioxus.toml` (or `dioxus.toml`) in the crate root.
Without one the defaults are used: application name `dioxus`, platform
`web`, output directory `dist`, asset directory `public`, and `src` as the
watched path. When a file is present, the `[application]` table with `name`
and `default_platform`, and the `[web.app]`, `[web.watcher]`,
`[web.resource]` and `[web.resource.dev]` tables must all be there.

```toml
[application]
name = "my-app"
default_platform = "web"
out_dir = "dist"
asset_dir = "public"

[application.tools]
binaryen = { wasm_opt = true }
sass = { input = "*", source_map = true }
tailwindcss = { input = "./public", config = "./src/tailwind.config.js" }

[web.app]
title = "my-app"

[web.watcher]
watch_path = ["src"]
reload_html = true
index_on_404 = true

[web.resource]
style = []
script = []

[web.resource.dev]
style = []
script = []
```

A tool is used only when it is both installed and listed under
`[application.tools]`:

- `binaryen` runs `wasm-opt` on the generated module when `wasm_opt = true`
  (adding `-Oz` in release builds).
- `sass` compiles `input` into `.css` files in the output directory; `input`
  is `"*"` for every `.scss`/`.sass` file in the asset directory, one path, or
  a list of paths. `source_map = false` turns source maps off.
- `tailwindcss` writes `dist/tailwind.css` and links it from the page.

## Using it as a library

The building blocks are importable:

- `dxbuild.config`: `load_dioxus_config`, `parse_dioxus_config`,
  `default_config`, `create_crate_config` and the configuration dataclasses.
- `dxbuild.cargo`: `crate_root`, `load_metadata`, `parse_metadata_output`.
- `dxbuild.builder`: `build`, `build_desktop`, `cargo_build_args`,
  `parse_build_messages`.
- `dxbuild.assets`: `build_assets`, `copy_public`, `render_page`, `gen_page`.
- `dxbuild.server`: `create_app` (an aiohttp application), `ReloadHub`,
  `BuildManager`, `console_info`, `startup`.
- `dxbuild.tools`: the `Tool` enum and its download, install and call methods.
- `dxbuild.plugin_config` and `dxbuild.plugin_api`: reading the `[plugin]`
  section and helper functions for files, paths, archives, commands,
  downloads and logging.

Errors are raised as `dxbuild.errors.DxError` and its subclasses.

## What it does not do

- Rebuilding on change is always a full rebuild; there is no in-place
  patching of RSX templates in a running page.
- There is no command to translate HTML into RSX and no RSX formatter.
- Plugins are not loaded or run: the `[plugin]` section can be read with
  `plugin_config_from_value` and the helpers in `dxbuild.plugin_api` can be
  called directly, but no command uses them.