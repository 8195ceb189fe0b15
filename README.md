# wasmsite

`wasmsite` is a library for driving the build of full-stack web projects made
of a server binary and a WebAssembly front-end library, described by
`[[workspace.metadata.leptos]]` sections (or a `[package.metadata.leptos]`
section) in a `Cargo.toml`.

It resolves the project configuration, honours `.env` files and `LEPTOS_*`
environment variables, builds and starts the cargo commands for the server and
the front end, keeps the site's assets in sync, runs Sass and Tailwind, and
adds content hashes to the generated front-end files.

## Installation

```
pip install .
pip install ".[test]"   # with pytest, to run the test suite
```

## Loading a workspace

```python
from wasmsite.cli import Opts
from wasmsite.project import Config

config = Config.load(Opts(release=True), "examples", "examples/workspace/Cargo.toml", True, None)
for project in config.projects:
    print(project.name, project.to_envs())
```

`Config.load` runs `cargo metadata` for the manifest. When you already have the
metadata, `Config.from_metadata` takes a `wasmsite.packages.Metadata`, which
`Metadata.from_json` builds from the JSON text or decoded object of
`cargo metadata --format-version 1`.

If one project has its packages under the given working directory, only that
project is kept. Otherwise all projects are kept; choose one with
`Opts(project=...)`. `Config.current_project()` returns the single remaining
project and raises `ConfigError` when there are several.

## Cargo commands

```python
from wasmsite.cargo import build_cargo_front_cmd, build_cargo_server_cmd

project = config.current_project()

server = build_cargo_server_cmd("build", project)
print(server.line())        # e.g. cargo build --package=... --bin=... --release
print(server.env_string())  # LEPTOS_OUTPUT_NAME=... LEPTOS_SITE_ROOT=... ...

front = build_cargo_front_cmd("build", True, project)
process = front.spawn()     # subprocess.Popen with the LEPTOS_* variables set
process.wait()
```

The server command uses `bin-cargo-command` from the configuration in place of
`cargo` when it is set. `front_cargo_process` and `server_cargo_process` build
and start the command in one step and return both.

`test_project(project)` runs the server and the front-end test suites and
returns whether both passed; `test_all(config)` does so for every project and
raises `RuntimeError` naming the first project whose tests failed.

## Command-line options

`wasmsite.cli.parse_cli(argv)` parses a command line with the subcommands
`build`, `test`, `end-to-end`, `serve`, `watch` and `new` into a `Cli`.
`Cli.opts()` returns the build options (`Opts`) and `Cli.bin_args()` the
arguments left for the server binary after the options of `serve` and `watch`.

`NewCommand.run()` creates a new project from a template by running
`cargo generate`; short names such as `start-axum` or `leptos-rs/start` are
expanded to the full starter repository URL by `absolute_git_url`.

## Change tracking

```python
from wasmsite.change import Change, ChangeSet

changes = ChangeSet()
changes.add(Change.STYLE)
changes.need_style_build(True, False)       # True
changes.need_server_build()                 # False
ChangeSet.all_changes().need_front_build()  # True
```

## Profiles and tool versions

`wasmsite.profile.Profile.resolve(is_release, release, debug)` picks the cargo
profile, and `Profile.args()` gives the matching cargo flags (`--release`,
`--profile=<name>` or nothing).

`wasmsite.version.VersionConfig` reports the Tailwind and Sass versions in use
(defaults `v4.0.6` and `1.83.4`); set `LEPTOS_TAILWIND_VERSION` or
`LEPTOS_SASS_VERSION` to override them.

## Site output

- `wasmsite.assets.sync_assets(proj, changes)` mirrors the assets directory
  into the site root when the assets changed, leaving `index.html` and the
  package directory alone, and returns whether it did.
- `wasmsite.tools.compile_sass(style_file, optimise, exe)` and
  `wasmsite.tools.compile_tailwind(proj, tw_conf, exe)` run the given Sass or
  Tailwind executable and return the CSS; failures raise
  `wasmsite.tools.ToolError`. A missing Tailwind config file is created with a
  starter configuration first.
- `wasmsite.hashing.add_hashes_to_site(proj)` renames the files of the package
  directory to `<stem>.<md5>.<ext>`, updates the references in the JS file,
  writes the JS, WASM and CSS hashes to the project's hash file and returns the
  mapping from old to new paths.

## Configuration errors

Invalid settings, such as a `site-root` of `/` or `.`, a site port equal to the
reload port, a missing package or an ambiguous bin target, raise
`wasmsite.project_config.ConfigError`.

## What it does not do

`wasmsite` is a library. It has no installed command: `parse_cli` only parses
a command line, and nothing dispatches it to a build. It does not serve the
site, watch files or send reload signals, and it does not run wasm-bindgen,
optimise the WASM, minify JavaScript, process or minify CSS, precompress
files, or download the Sass and Tailwind executables — their paths must be
passed in.